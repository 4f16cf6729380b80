from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_admin_email
from app.models.claim_history import ClaimHistory
from app.services.store import list_claim_history

router = APIRouter(prefix="/api/history", tags=["history"])


def _coupon_summary(record: ClaimHistory, detailed: bool = False) -> dict | None:
    coupon = record.coupon
    if coupon is None:
        return None
    summary = {"id": coupon.id, "code": coupon.code, "description": coupon.description}
    if detailed:
        summary.update({
            "discount": coupon.discount,
            "expiryDate": coupon.expiry_date.isoformat() if coupon.expiry_date else None,
            "isActive": coupon.is_active,
        })
    return summary


def serialize_claim(record: ClaimHistory) -> dict:
    return {
        "id": record.id,
        "coupon": _coupon_summary(record),
        "userEmail": record.user_email,
        "ipAddress": record.ip_address,
        "browserInfo": record.browser_info,
        "sessionId": record.session_id,
        "claimedAt": record.claimed_at.isoformat(),
    }


def _history_response(records: list[ClaimHistory]) -> dict:
    return {
        "success": True,
        "count": len(records),
        "history": [serialize_claim(r) for r in records],
    }


@router.get("")
def get_claim_history(admin: str = Depends(get_admin_email), db: Session = Depends(get_db)):
    return _history_response(list_claim_history(db))


@router.get("/ip/{ip_address}")
def get_claim_history_by_ip(ip_address: str, admin: str = Depends(get_admin_email), db: Session = Depends(get_db)):
    return _history_response(list_claim_history(db, ip_address=ip_address))


@router.get("/user/{user_email}")
def get_claim_history_by_user(user_email: str, admin: str = Depends(get_admin_email), db: Session = Depends(get_db)):
    return _history_response(list_claim_history(db, user_email=user_email))


@router.get("/user/{user_email}/detailed")
def get_user_coupons_detailed(user_email: str, admin: str = Depends(get_admin_email), db: Session = Depends(get_db)):
    """Every coupon a user claimed, with full coupon details."""
    records = list_claim_history(db, user_email=user_email)

    if not records:
        return {"success": True, "message": "No coupons claimed by this user", "count": 0, "coupons": []}

    return {
        "success": True,
        "count": len(records),
        "coupons": [
            {
                "coupon": _coupon_summary(r, detailed=True),
                "claimedAt": r.claimed_at.isoformat(),
                "ipAddress": r.ip_address,
                "browserInfo": r.browser_info,
            }
            for r in records
        ],
    }


@router.get("/coupon/{coupon_id}")
def get_claim_history_by_coupon(coupon_id: int, admin: str = Depends(get_admin_email), db: Session = Depends(get_db)):
    return _history_response(list_claim_history(db, coupon_id=coupon_id))
