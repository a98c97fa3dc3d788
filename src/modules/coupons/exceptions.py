"""Coupon exceptions.

Raised while pricing an order, validating a code or managing coupons.
The API layer turns them into 4xx responses carrying the message.
"""

from __future__ import annotations

from decimal import Decimal


class CouponNotFound(Exception):
    """No active coupon matches the supplied code."""

    def __init__(self, code: str) -> None:
        self.code = code
        super().__init__("Invalid or expired coupon code")


class CouponExpired(Exception):
    """The coupon is outside its validity window."""

    def __init__(self, code: str) -> None:
        self.code = code
        super().__init__(f"Coupon {code} is not valid at this time")


class CouponUsageExceeded(Exception):
    """The global or per-user usage limit has been reached."""

    def __init__(self, code: str, per_user: bool = False) -> None:
        self.code = code
        self.per_user = per_user
        if per_user:
            message = "You have already used this coupon the maximum number of times"
        else:
            message = f"Coupon {code} has reached its usage limit"
        super().__init__(message)


class CouponMinimumNotMet(Exception):
    """The order subtotal is below the coupon's minimum order amount."""

    def __init__(self, code: str, minimum: Decimal) -> None:
        self.code = code
        self.minimum = minimum
        super().__init__(f"Minimum order amount for this coupon is ${minimum}")


class CouponAlreadyExists(Exception):
    """Another coupon already uses this code."""

    def __init__(self, code: str) -> None:
        self.code = code
        super().__init__(f"Coupon code {code} already exists")


class CouponInUse(Exception):
    """The coupon has been redeemed; its usage history keeps it alive."""

    def __init__(self, code: str) -> None:
        self.code = code
        super().__init__(
            f"Coupon {code} has been used and cannot be deleted; deactivate it instead"
        )


class InvalidCouponTerms(Exception):
    """The coupon's value or validity window is inconsistent."""
