import logging
import math
import os
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from app.models.claim_history import ClaimHistory
from app.services.errors import CooldownActive
from app.services.store import Identity, find_most_recent_claim

logger = logging.getLogger(__name__)

DEFAULT_COOLDOWN_PERIOD = 3600000  # 1 hour in milliseconds


@dataclass(frozen=True)
class CooldownStatus:
    claim: ClaimHistory | None
    remaining_ms: int


def get_cooldown_period() -> int:
    """Cooldown in milliseconds from COOLDOWN_PERIOD, falling back to one hour."""
    raw = os.getenv("COOLDOWN_PERIOD")
    try:
        period = int(raw)
    except (TypeError, ValueError):
        return DEFAULT_COOLDOWN_PERIOD
    return period if period > 0 else DEFAULT_COOLDOWN_PERIOD


def _remaining_ms(claimed_at: datetime, cooldown: int, now: datetime) -> int:
    elapsed = (now - claimed_at) / timedelta(milliseconds=1)
    return max(0, math.ceil(cooldown - elapsed))


def _reject_if_recent(claim: ClaimHistory | None, cooldown: int, now: datetime, key: str):
    if claim is None:
        return
    remaining = _remaining_ms(claim.claimed_at, cooldown, now)
    logger.info("Claim blocked by %s cooldown, %d ms remaining", key, remaining)
    raise CooldownActive(remaining)


def check_ip(db: Session, ip_address: str, cooldown: int, now: datetime | None = None):
    now = now or datetime.utcnow()
    since = now - timedelta(milliseconds=cooldown)
    claim = find_most_recent_claim(db, ip_address=ip_address, since=since)
    _reject_if_recent(claim, cooldown, now, "ip")


def check_session(db: Session, session_id: str | None, cooldown: int, now: datetime | None = None):
    # A first-time visitor has no cookie yet; only the IP check applies.
    if not session_id:
        return
    now = now or datetime.utcnow()
    since = now - timedelta(milliseconds=cooldown)
    claim = find_most_recent_claim(db, session_id=session_id, since=since)
    _reject_if_recent(claim, cooldown, now, "session")


def check_identity(db: Session, identity: Identity, cooldown: int, now: datetime | None = None):
    """
    Raise CooldownActive if either the IP or the session claimed recently.

    IP is checked first so a fresh cookie never bypasses it. Nothing is written.
    """
    now = now or datetime.utcnow()
    check_ip(db, identity.ip_address, cooldown, now)
    check_session(db, identity.session_id, cooldown, now)


def time_remaining(db: Session, identity: Identity, cooldown: int, now: datetime | None = None) -> CooldownStatus:
    now = now or datetime.utcnow()
    if identity.session_id:
        claim = find_most_recent_claim(db, session_id=identity.session_id)
    else:
        claim = find_most_recent_claim(db, ip_address=identity.ip_address)

    if claim is None:
        return CooldownStatus(claim=None, remaining_ms=0)
    return CooldownStatus(claim=claim, remaining_ms=_remaining_ms(claim.claimed_at, cooldown, now))
