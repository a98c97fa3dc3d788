"""Unit tests for coupon eligibility checks and discount arithmetic."""

from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone
from freezegun import freeze_time

from modules.coupons.constants import CouponType
from modules.coupons.discounts import calculate_discount, ensure_usable
from modules.coupons.exceptions import (
    CouponExpired,
    CouponMinimumNotMet,
    CouponUsageExceeded,
)
from modules.coupons.models import Coupon

pytestmark = pytest.mark.unit


def _coupon(**overrides):
    now = timezone.now()
    values = {
        "code": "SAVE10",
        "name": "Ten percent off",
        "discount_type": CouponType.PERCENTAGE,
        "value": Decimal("10"),
        "start_date": now - timedelta(days=1),
        "end_date": now + timedelta(days=1),
    }
    values.update(overrides)
    return Coupon(**values)


class TestCalculateDiscount:
    def test_percentage(self):
        assert calculate_discount(_coupon(), Decimal("100.00")) == Decimal("10.00")

    def test_percentage_rounds_to_cents(self):
        coupon = _coupon(value=Decimal("15"))
        assert calculate_discount(coupon, Decimal("33.33")) == Decimal("5.00")

    def test_percentage_cap(self):
        coupon = _coupon(value=Decimal("50"), maximum_discount_amount=Decimal("20"))
        assert calculate_discount(coupon, Decimal("100.00")) == Decimal("20.00")

    def test_fixed(self):
        coupon = _coupon(discount_type=CouponType.FIXED, value=Decimal("5"))
        assert calculate_discount(coupon, Decimal("40.00")) == Decimal("5.00")

    def test_fixed_is_limited_to_subtotal(self):
        coupon = _coupon(discount_type=CouponType.FIXED, value=Decimal("25"))
        assert calculate_discount(coupon, Decimal("12.50")) == Decimal("12.50")

    def test_free_shipping_gives_no_money_off(self):
        coupon = _coupon(discount_type=CouponType.FREE_SHIPPING, value=Decimal("0"))
        assert calculate_discount(coupon, Decimal("80.00")) == Decimal("0.00")


class TestEnsureUsable:
    def test_valid_coupon_passes(self):
        ensure_usable(_coupon(), user_usage_count=0, subtotal=Decimal("10.00"))

    def test_not_started_yet(self):
        coupon = _coupon(start_date=timezone.now() + timedelta(days=1))
        with pytest.raises(CouponExpired):
            ensure_usable(coupon, 0, Decimal("10.00"))

    def test_window_is_evaluated_at_now(self):
        with freeze_time("2026-01-15 12:00:00"):
            coupon = _coupon(
                start_date=timezone.now() - timedelta(days=10),
                end_date=timezone.now() + timedelta(days=10),
            )
        with freeze_time("2026-02-15 12:00:00"):
            with pytest.raises(CouponExpired):
                ensure_usable(coupon, 0, Decimal("10.00"))

    def test_global_limit(self):
        coupon = _coupon(usage_limit=5, usage_count=5)
        with pytest.raises(CouponUsageExceeded) as exc_info:
            ensure_usable(coupon, 0, Decimal("10.00"))
        assert exc_info.value.per_user is False

    def test_per_user_limit(self):
        coupon = _coupon(user_usage_limit=1)
        with pytest.raises(CouponUsageExceeded) as exc_info:
            ensure_usable(coupon, 1, Decimal("10.00"))
        assert exc_info.value.per_user is True

    def test_minimum_amount(self):
        coupon = _coupon(minimum_order_amount=Decimal("50.00"))
        with pytest.raises(CouponMinimumNotMet, match=r"\$50.00"):
            ensure_usable(coupon, 0, Decimal("49.99"))

    def test_minimum_amount_is_inclusive(self):
        coupon = _coupon(minimum_order_amount=Decimal("50.00"))
        ensure_usable(coupon, 0, Decimal("50.00"))

    def test_window_is_checked_before_limits(self):
        coupon = _coupon(
            end_date=timezone.now() - timedelta(seconds=1),
            usage_limit=1,
            usage_count=1,
        )
        with pytest.raises(CouponExpired):
            ensure_usable(coupon, 0, Decimal("10.00"))
