"""
Data access shared by the allocator and the throttle guard.

Every function takes the caller's Session; nothing here commits. The
allocator owns the transaction around ``mark_claimed`` + ``insert_claim_record``.
"""
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.orm import Session, joinedload

from app.models.coupon import Coupon
from app.models.claim_history import ClaimHistory


@dataclass(frozen=True)
class Identity:
    ip_address: str
    session_id: str | None = None
    user_email: str | None = None
    user_agent: str | None = None


def _eligible(now: datetime):
    return (
        Coupon.is_active == True,  # noqa: E712
        Coupon.is_claimed == False,  # noqa: E712
        Coupon.expiry_date > now,
    )


def find_oldest_eligible(db: Session, now: datetime) -> Coupon | None:
    return (
        db.query(Coupon)
        .filter(*_eligible(now))
        .order_by(Coupon.created_at.asc(), Coupon.id.asc())
        .first()
    )


def mark_claimed(db: Session, coupon_id: int, now: datetime) -> bool:
    """
    Flip ``is_claimed`` only if the coupon is still eligible at write time.

    Returns False when another request got there first.
    """
    updated = (
        db.query(Coupon)
        .filter(Coupon.id == coupon_id, *_eligible(now))
        .update(
            {Coupon.is_claimed: True, Coupon.updated_at: now},
            synchronize_session=False,
        )
    )
    return updated == 1


def insert_claim_record(db: Session, coupon_id: int, identity: Identity, now: datetime) -> ClaimHistory:
    record = ClaimHistory(
        coupon_id=coupon_id,
        user_email=identity.user_email,
        ip_address=identity.ip_address,
        browser_info=identity.user_agent,
        session_id=identity.session_id,
        claimed_at=now,
    )
    db.add(record)
    return record


def find_most_recent_claim(
    db: Session,
    ip_address: str | None = None,
    session_id: str | None = None,
    since: datetime | None = None,
) -> ClaimHistory | None:
    """Newest claim for a session token, or for an IP when no token is given."""
    query = db.query(ClaimHistory).options(joinedload(ClaimHistory.coupon))
    if session_id is not None:
        query = query.filter(ClaimHistory.session_id == session_id)
    elif ip_address is not None:
        query = query.filter(ClaimHistory.ip_address == ip_address)
    else:
        raise ValueError("an ip_address or session_id is required")

    if since is not None:
        query = query.filter(ClaimHistory.claimed_at > since)

    return query.order_by(ClaimHistory.claimed_at.desc(), ClaimHistory.id.desc()).first()


def list_claim_history(
    db: Session,
    ip_address: str | None = None,
    user_email: str | None = None,
    coupon_id: int | None = None,
) -> list[ClaimHistory]:
    query = db.query(ClaimHistory).options(joinedload(ClaimHistory.coupon))
    if ip_address is not None:
        query = query.filter(ClaimHistory.ip_address == ip_address)
    if user_email is not None:
        query = query.filter(ClaimHistory.user_email == user_email)
    if coupon_id is not None:
        query = query.filter(ClaimHistory.coupon_id == coupon_id)
    return query.order_by(ClaimHistory.claimed_at.desc(), ClaimHistory.id.desc()).all()


def has_claim_records(db: Session, coupon_id: int) -> bool:
    return db.query(ClaimHistory.id).filter(ClaimHistory.coupon_id == coupon_id).first() is not None
