import logging
from datetime import datetime

from sqlalchemy.orm import Session

from app.models.coupon import Coupon
from app.services.errors import NoCouponsAvailable
from app.services.store import Identity, find_oldest_eligible, insert_claim_record, mark_claimed

logger = logging.getLogger(__name__)

MAX_CLAIM_ATTEMPTS = 5


def claim_coupon(db: Session, identity: Identity, now: datetime | None = None) -> Coupon:
    """
    🔐 ATOMIC CLAIM: hand out the oldest eligible coupon to ``identity``.

    The coupon is reserved with a conditional update (still unclaimed at write
    time) and the claim record is committed in the same transaction. Losing the
    race to a concurrent request re-runs the selection; after
    MAX_CLAIM_ATTEMPTS the pool is reported as empty.
    """
    now = now or datetime.utcnow()

    try:
        for attempt in range(1, MAX_CLAIM_ATTEMPTS + 1):
            coupon = find_oldest_eligible(db, now)
            if coupon is None:
                break

            if not mark_claimed(db, coupon.id, now):
                logger.warning("Coupon %s was claimed concurrently (attempt %d)", coupon.id, attempt)
                continue

            insert_claim_record(db, coupon.id, identity, now)
            db.commit()
            db.refresh(coupon)
            logger.info("Coupon %s claimed by ip=%s session=%s", coupon.code, identity.ip_address, identity.session_id)
            return coupon
    except Exception:
        db.rollback()
        raise

    db.rollback()
    raise NoCouponsAvailable()


def public_coupon_view(coupon: Coupon) -> dict:
    """Fields a claimant may see; never the id or the state flags."""
    return {
        "code": coupon.code,
        "description": coupon.description,
        "discount": coupon.discount,
        "expiryDate": coupon.expiry_date.isoformat() if coupon.expiry_date else None,
    }
