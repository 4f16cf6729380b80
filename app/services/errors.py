"""Expected failures of the coupon services.

Each carries the HTTP status the API layer answers with; ``app.main`` turns
them into ``{"success": false, "message": ...}`` responses.
"""
import math


class CouponServiceError(Exception):
    status_code = 400
    message = "Request failed"

    def __init__(self, message: str | None = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class NoCouponsAvailable(CouponServiceError):
    status_code = 404
    message = "No coupons available at the moment"


class CooldownActive(CouponServiceError):
    status_code = 429

    def __init__(self, remaining_ms: int):
        self.remaining_ms = remaining_ms
        self.remaining_minutes = math.ceil(remaining_ms / 60000)
        super().__init__(
            f"Rate limit exceeded. Please try again after {self.remaining_minutes} minutes."
        )


class CouponNotFound(CouponServiceError):
    status_code = 404
    message = "Coupon not found"


class DuplicateCouponCode(CouponServiceError):
    message = "Coupon with this code already exists"


class CouponAlreadyClaimed(CouponServiceError):
    message = "Cannot delete a coupon that has been claimed"


class InvalidExpiryDate(CouponServiceError):
    message = "Invalid expiryDate format. Use ISO format: YYYY-MM-DDTHH:MM:SS"


class InvalidCouponCode(CouponServiceError):
    message = "Coupon code cannot be blank"
