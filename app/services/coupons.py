"""Admin-side coupon management shared by the HTTP admin API and manage_coupons.py."""
import logging
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from app.models.coupon import Coupon, default_expiry
from app.services.errors import (
    CouponAlreadyClaimed,
    CouponNotFound,
    DuplicateCouponCode,
    InvalidCouponCode,
    InvalidExpiryDate,
)
from app.services.store import has_claim_records

logger = logging.getLogger(__name__)


def normalize_code(code: str) -> str:
    return (code or "").strip().upper()


def _require_code(code: str) -> str:
    normalized = normalize_code(code)
    if not normalized:
        raise InvalidCouponCode()
    return normalized


def parse_expiry(value: str) -> datetime:
    """Parse an ISO date/datetime into naive UTC."""
    try:
        parsed = datetime.fromisoformat(value)
    except (TypeError, ValueError):
        raise InvalidExpiryDate()
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def serialize_coupon(coupon: Coupon) -> dict:
    """Full admin view of a coupon."""
    return {
        "id": coupon.id,
        "code": coupon.code,
        "description": coupon.description,
        "discount": coupon.discount,
        "expiryDate": coupon.expiry_date.isoformat() if coupon.expiry_date else None,
        "isActive": coupon.is_active,
        "isClaimed": coupon.is_claimed,
        "createdAt": coupon.created_at.isoformat() if coupon.created_at else None,
        "updatedAt": coupon.updated_at.isoformat() if coupon.updated_at else None,
    }


def list_coupons(db: Session) -> list[Coupon]:
    return db.query(Coupon).order_by(Coupon.created_at.asc(), Coupon.id.asc()).all()


def get_coupon(db: Session, coupon_id: int) -> Coupon:
    coupon = db.query(Coupon).filter(Coupon.id == coupon_id).first()
    if not coupon:
        raise CouponNotFound()
    return coupon


def get_coupon_by_code(db: Session, code: str) -> Coupon:
    coupon = db.query(Coupon).filter(Coupon.code == normalize_code(code)).first()
    if not coupon:
        raise CouponNotFound()
    return coupon


def create_coupon(
    db: Session,
    code: str,
    description: str | None = None,
    discount: float = 0,
    expiry_date: datetime | None = None,
    is_active: bool = True,
) -> Coupon:
    code = _require_code(code)
    if db.query(Coupon).filter(Coupon.code == code).first():
        raise DuplicateCouponCode()

    coupon = Coupon(
        code=code,
        description=description,
        discount=discount,
        expiry_date=expiry_date or default_expiry(),
        is_active=is_active,
        is_claimed=False,
    )
    db.add(coupon)
    db.commit()
    db.refresh(coupon)

    logger.info("Coupon %s created (id=%s)", coupon.code, coupon.id)
    return coupon


def update_coupon(
    db: Session,
    coupon_id: int,
    code: str | None = None,
    description: str | None = None,
    discount: float | None = None,
    expiry_date: datetime | None = None,
    is_active: bool | None = None,
) -> Coupon:
    """Partial update; admins cannot change ``is_claimed``."""
    coupon = get_coupon(db, coupon_id)

    if code is not None:
        code = _require_code(code)
        if code != coupon.code:
            if db.query(Coupon).filter(Coupon.code == code).first():
                raise DuplicateCouponCode()
            coupon.code = code

    if description is not None:
        coupon.description = description

    if discount is not None:
        coupon.discount = discount

    if expiry_date is not None:
        coupon.expiry_date = expiry_date

    if is_active is not None:
        coupon.is_active = is_active

    db.commit()
    db.refresh(coupon)

    logger.info("Coupon %s updated", coupon.id)
    return coupon


def set_active(db: Session, coupon_id: int, is_active: bool) -> Coupon:
    return update_coupon(db, coupon_id, is_active=is_active)


def delete_coupon(db: Session, coupon_id: int):
    coupon = get_coupon(db, coupon_id)

    if coupon.is_claimed or has_claim_records(db, coupon.id):
        raise CouponAlreadyClaimed()

    db.delete(coupon)
    db.commit()
    logger.info("Coupon %s deleted", coupon_id)
