"""Coupon eligibility and discount arithmetic.

Pure functions over a coupon record; shared by checkout pricing and the
coupon validation endpoint so both quote the same amount.
"""

from __future__ import annotations

from datetime import datetime
from decimal import ROUND_HALF_EVEN, Decimal
from typing import Optional

from django.utils import timezone

from modules.coupons.constants import CouponType
from modules.coupons.exceptions import (
    CouponExpired,
    CouponMinimumNotMet,
    CouponUsageExceeded,
)
from modules.coupons.models import Coupon

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def quantize_money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_EVEN)


def ensure_usable(
    coupon: Coupon,
    user_usage_count: int,
    subtotal: Decimal,
    now: Optional[datetime] = None,
) -> None:
    """Raise unless ``coupon`` may be applied to ``subtotal`` right now.

    Checks run in a fixed order: validity window, global usage limit,
    the user's own limit, then the minimum order amount.
    """
    if not coupon.is_within_window(now or timezone.now()):
        raise CouponExpired(coupon.code)
    if not coupon.has_remaining_uses:
        raise CouponUsageExceeded(coupon.code)
    if user_usage_count >= coupon.user_usage_limit:
        raise CouponUsageExceeded(coupon.code, per_user=True)
    if subtotal < coupon.minimum_order_amount:
        raise CouponMinimumNotMet(coupon.code, coupon.minimum_order_amount)


def calculate_discount(coupon: Coupon, subtotal: Decimal) -> Decimal:
    """Monetary discount for ``subtotal``; never more than the subtotal."""
    if coupon.discount_type == CouponType.PERCENTAGE:
        discount = quantize_money(subtotal * coupon.value / Decimal("100"))
        if coupon.maximum_discount_amount is not None:
            discount = min(discount, coupon.maximum_discount_amount)
    elif coupon.discount_type == CouponType.FIXED:
        discount = min(coupon.value, subtotal)
    else:
        # free shipping zeroes the shipping line instead
        discount = ZERO
    return quantize_money(max(discount, ZERO))
