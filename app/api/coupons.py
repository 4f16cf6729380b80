import logging
import os
import uuid
from dataclasses import replace

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import SESSION_COOKIE, get_admin_email, get_anonymous_identity, get_identity
from app.services import coupons as coupon_service
from app.services.allocator import claim_coupon, public_coupon_view
from app.services.store import Identity
from app.services.throttle import check_identity, get_cooldown_period, time_remaining

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/coupons", tags=["coupons"])

SESSION_COOKIE_MAX_AGE = 365 * 24 * 60 * 60  # 1 year, in seconds


class CouponCreateRequest(BaseModel):
    code: str = Field(..., min_length=1)  # e.g., "WELCOME10"
    description: str | None = None
    discount: float = 0
    expiry_date: str | None = Field(None, alias="expiryDate")  # ISO format, defaults to +30 days
    is_active: bool = Field(True, alias="isActive")

    class Config:
        populate_by_name = True


class CouponUpdateRequest(BaseModel):
    code: str | None = None
    description: str | None = None
    discount: float | None = None
    expiry_date: str | None = Field(None, alias="expiryDate")
    is_active: bool | None = Field(None, alias="isActive")

    class Config:
        populate_by_name = True


# ---------------------- Public ----------------------

@router.post("/claim")
def claim(response: Response, identity: Identity = Depends(get_identity), db: Session = Depends(get_db)):
    """
    Claim the next available coupon (public).
    🔒 Blocked for the cooldown period after a claim from the same IP or session.
    """
    check_identity(db, identity, get_cooldown_period())

    minted = identity.session_id is None
    if minted:
        identity = replace(identity, session_id=str(uuid.uuid4()))

    coupon = claim_coupon(db, identity)

    if minted:
        response.set_cookie(
            SESSION_COOKIE,
            identity.session_id,
            max_age=SESSION_COOKIE_MAX_AGE,
            httponly=True,
            secure=os.getenv("ENV", "prod") != "dev",
            samesite="lax",
        )

    return {
        "success": True,
        "message": "Coupon claimed successfully",
        "coupon": public_coupon_view(coupon),
    }


@router.get("/last-claimed")
def last_claimed(identity: Identity = Depends(get_anonymous_identity), db: Session = Depends(get_db)):
    """Last coupon claimed by this visitor and the cooldown left, in milliseconds."""
    state = time_remaining(db, identity, get_cooldown_period())

    if state.claim is None:
        return {
            "success": True,
            "message": "No claimed coupons found",
            "coupon": None,
            "cooldownRemaining": 0,
            "lastClaimedAt": None,
        }

    coupon = state.claim.coupon
    return {
        "success": True,
        "coupon": public_coupon_view(coupon) if coupon else None,
        "cooldownRemaining": state.remaining_ms,
        "lastClaimedAt": state.claim.claimed_at.isoformat(),
    }


# ---------------------- Admin ----------------------

@router.get("")
def list_coupons(admin: str = Depends(get_admin_email), db: Session = Depends(get_db)):
    coupons = coupon_service.list_coupons(db)
    return {
        "success": True,
        "count": len(coupons),
        "coupons": [coupon_service.serialize_coupon(c) for c in coupons],
    }


@router.get("/{coupon_id}")
def get_coupon(coupon_id: int, admin: str = Depends(get_admin_email), db: Session = Depends(get_db)):
    coupon = coupon_service.get_coupon(db, coupon_id)
    return {"success": True, "coupon": coupon_service.serialize_coupon(coupon)}


@router.post("", status_code=status.HTTP_201_CREATED)
def create_coupon(data: CouponCreateRequest, admin: str = Depends(get_admin_email), db: Session = Depends(get_db)):
    """
    🎉 Create a new coupon.

    Example:
    POST /api/coupons
    {
        "code": "WELCOME10",
        "description": "10% off your first order",
        "discount": 10,
        "expiryDate": "2026-12-31T23:59:59"
    }
    """
    expiry_date = coupon_service.parse_expiry(data.expiry_date) if data.expiry_date else None

    coupon = coupon_service.create_coupon(
        db,
        code=data.code,
        description=data.description,
        discount=data.discount,
        expiry_date=expiry_date,
        is_active=data.is_active,
    )
    logger.info("Coupon %s created by %s", coupon.code, admin)

    return {"success": True, "coupon": coupon_service.serialize_coupon(coupon)}


@router.put("/{coupon_id}")
def update_coupon(
    coupon_id: int,
    data: CouponUpdateRequest,
    admin: str = Depends(get_admin_email),
    db: Session = Depends(get_db),
):
    """✏️ Update an existing coupon. Only the fields sent are changed."""
    expiry_date = coupon_service.parse_expiry(data.expiry_date) if data.expiry_date else None

    coupon = coupon_service.update_coupon(
        db,
        coupon_id,
        code=data.code,
        description=data.description,
        discount=data.discount,
        expiry_date=expiry_date,
        is_active=data.is_active,
    )
    return {"success": True, "coupon": coupon_service.serialize_coupon(coupon)}


@router.delete("/{coupon_id}")
def delete_coupon(coupon_id: int, admin: str = Depends(get_admin_email), db: Session = Depends(get_db)):
    """🗑️ Delete a coupon. Claimed coupons are kept for the audit trail."""
    coupon_service.delete_coupon(db, coupon_id)
    logger.info("Coupon %s deleted by %s", coupon_id, admin)
    return {"success": True, "message": "Coupon removed"}


@router.post("/{coupon_id}/deactivate")
def deactivate_coupon(coupon_id: int, admin: str = Depends(get_admin_email), db: Session = Depends(get_db)):
    """🛑 Take a coupon out of the pool without deleting it."""
    coupon = coupon_service.set_active(db, coupon_id, False)
    return {"success": True, "message": f"Coupon '{coupon.code}' deactivated", "isActive": coupon.is_active}


@router.post("/{coupon_id}/activate")
def activate_coupon(coupon_id: int, admin: str = Depends(get_admin_email), db: Session = Depends(get_db)):
    """✅ Put a previously deactivated coupon back in the pool."""
    coupon = coupon_service.set_active(db, coupon_id, True)
    return {"success": True, "message": f"Coupon '{coupon.code}' activated", "isActive": coupon.is_active}
