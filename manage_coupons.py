"""
🎟️ COUPON MANAGEMENT HELPER
Quick script to create and manage coupons in the database.

Usage:
    python manage_coupons.py --create "WELCOME10" --description "10% off" --discount 10 --expires 2026-12-31
    python manage_coupons.py --list
    python manage_coupons.py --deactivate "WELCOME10"
    python manage_coupons.py --activate "WELCOME10"
    python manage_coupons.py --delete "WELCOME10"
    python manage_coupons.py --stats "WELCOME10"
"""

import sys
from datetime import datetime

from app.database import Base, SessionLocal, engine
from app.models.claim_history import ClaimHistory
from app.services import coupons as coupon_service
from app.services.errors import CouponServiceError


def create_coupon(code, description=None, discount=0, expires=None):
    """Create a new coupon"""
    db = SessionLocal()

    try:
        expiry_date = coupon_service.parse_expiry(expires) if expires else None
        coupon = coupon_service.create_coupon(
            db, code, description=description, discount=discount, expiry_date=expiry_date
        )
    except CouponServiceError as e:
        print(f"❌ {e.message}")
        return False
    finally:
        db.close()

    print(f"✅ Coupon created successfully!")
    print(f"   Code: {coupon.code}")
    print(f"   Discount: {coupon.discount}")
    print(f"   Expires: {coupon.expiry_date.isoformat()}")
    print(f"   Active: {coupon.is_active}")
    return True


def list_coupons():
    """List all coupons, oldest first (the order they are handed out in)"""
    db = SessionLocal()

    try:
        coupons = coupon_service.list_coupons(db)

        if not coupons:
            print("No coupons found.")
            return

        print("\n📋 COUPONS:\n")
        print(f"{'Code':<20} {'Discount':<10} {'Status':<15} {'Claimed':<10} {'Expires':<20}")
        print("-" * 75)

        for c in coupons:
            status = "🟢 Active" if c.is_active else "🔴 Inactive"
            claimed = "Yes" if c.is_claimed else "No"
            expires = c.expiry_date.strftime("%Y-%m-%d")
            print(f"{c.code:<20} {c.discount:<10} {status:<15} {claimed:<10} {expires:<20}")

        print()
    finally:
        db.close()


def set_active(code, is_active):
    """Activate or deactivate a coupon"""
    db = SessionLocal()

    try:
        coupon = coupon_service.get_coupon_by_code(db, code)
        coupon_service.set_active(db, coupon.id, is_active)
    except CouponServiceError as e:
        print(f"❌ Coupon '{code}': {e.message}")
        return False
    finally:
        db.close()

    print(f"✅ Coupon '{code}' has been {'activated' if is_active else 'deactivated'}")
    return True


def delete_coupon(code):
    """Delete a coupon (refused once it has been claimed)"""
    db = SessionLocal()

    try:
        coupon = coupon_service.get_coupon_by_code(db, code)
        coupon_service.delete_coupon(db, coupon.id)
    except CouponServiceError as e:
        print(f"❌ Coupon '{code}': {e.message}")
        return False
    finally:
        db.close()

    print(f"✅ Coupon '{code}' has been deleted")
    return True


def get_coupon_stats(code):
    """Get detailed stats for a coupon"""
    db = SessionLocal()

    try:
        try:
            coupon = coupon_service.get_coupon_by_code(db, code)
        except CouponServiceError as e:
            print(f"❌ Coupon '{code}': {e.message}")
            return False

        claim = db.query(ClaimHistory).filter(ClaimHistory.coupon_id == coupon.id).first()
        is_expired = coupon.expiry_date <= datetime.utcnow()

        print(f"\n📊 COUPON STATS: {coupon.code}\n")
        print(f"Description:     {coupon.description or '-'}")
        print(f"Discount:        {coupon.discount}")
        print(f"Status:          {'🟢 Active' if coupon.is_active else '🔴 Inactive'}")
        print(f"Created:         {coupon.created_at.strftime('%Y-%m-%d %H:%M:%S')}")
        print(f"Expires:         {coupon.expiry_date.strftime('%Y-%m-%d %H:%M:%S')}")
        print(f"Expired:         {'Yes ⚠️' if is_expired else 'No'}")
        print(f"Claimed:         {'Yes' if coupon.is_claimed else 'No'}")
        if claim:
            print(f"Claimed At:      {claim.claimed_at.strftime('%Y-%m-%d %H:%M:%S')}")
            print(f"Claimed From:    {claim.ip_address}")
        print()

        return True
    finally:
        db.close()


def main(argv):
    if len(argv) < 2:
        print(__doc__)
        return 1

    command = argv[1]

    if command == "--create":
        if len(argv) < 3:
            print("Usage: python manage_coupons.py --create <code> [--description TEXT] [--discount N] [--expires YYYY-MM-DD]")
            return 1

        code = argv[2]
        description = None
        discount = 0
        expires = None

        # Parse optional arguments
        i = 3
        while i < len(argv):
            if argv[i] == "--description" and i + 1 < len(argv):
                description = argv[i + 1]
                i += 2
            elif argv[i] == "--discount" and i + 1 < len(argv):
                discount = float(argv[i + 1])
                i += 2
            elif argv[i] == "--expires" and i + 1 < len(argv):
                expires = argv[i + 1]
                i += 2
            else:
                i += 1

        return 0 if create_coupon(code, description, discount, expires) else 1

    if command == "--list":
        list_coupons()
        return 0

    if command in ("--activate", "--deactivate", "--delete", "--stats"):
        if len(argv) < 3:
            print(f"Usage: python manage_coupons.py {command} <code>")
            return 1
        code = argv[2]
        if command == "--activate":
            ok = set_active(code, True)
        elif command == "--deactivate":
            ok = set_active(code, False)
        elif command == "--delete":
            ok = delete_coupon(code)
        else:
            ok = get_coupon_stats(code)
        return 0 if ok else 1

    print(f"Unknown command: {command}")
    print(__doc__)
    return 1


if __name__ == "__main__":
    Base.metadata.create_all(bind=engine)
    sys.exit(main(sys.argv))
