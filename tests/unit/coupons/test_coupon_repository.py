"""Unit tests for the Coupon repository and the quote service."""

from decimal import Decimal

import pytest

from modules.coupons.exceptions import (
    CouponMinimumNotMet,
    CouponNotFound,
    CouponUsageExceeded,
)
from modules.coupons.models import Coupon, CouponUsage
from modules.coupons.repositories import CouponDjangoRepository
from modules.coupons.services import CouponService
from modules.orders.models import Order

pytestmark = pytest.mark.unit


@pytest.fixture()
def repo():
    return CouponDjangoRepository()


@pytest.fixture()
def make_order(customer):
    def _make(**overrides):
        values = {
            "customer": customer,
            "subtotal": Decimal("100.00"),
            "total": Decimal("100.00"),
        }
        values.update(overrides)
        return Order.objects.create(**values)

    return _make


class TestRecordUsage:
    def test_appends_usage_and_bumps_count(
        self, repo, make_coupon, make_order, customer
    ):
        coupon = make_coupon(usage_limit=10)
        order = make_order()

        usage = repo.record_usage("save10", customer.pk, order.pk)

        assert usage.coupon_id == coupon.pk
        coupon.refresh_from_db()
        assert coupon.usage_count == 1

    def test_global_limit_is_enforced(self, repo, make_coupon, make_order, customer):
        make_coupon(usage_limit=1, usage_count=1)
        with pytest.raises(CouponUsageExceeded):
            repo.record_usage("SAVE10", customer.pk, make_order().pk)
        assert not CouponUsage.objects.exists()

    def test_per_user_limit_is_enforced(
        self, repo, make_coupon, make_order, customer, other_customer
    ):
        coupon = make_coupon(user_usage_limit=1)
        repo.record_usage("SAVE10", customer.pk, make_order().pk)

        with pytest.raises(CouponUsageExceeded) as exc_info:
            repo.record_usage("SAVE10", customer.pk, make_order().pk)
        assert exc_info.value.per_user is True

        repo.record_usage(
            "SAVE10", other_customer.pk, make_order(customer=other_customer).pk
        )
        coupon.refresh_from_db()
        assert coupon.usage_count == 2

    def test_unknown_code(self, repo, make_order, customer):
        with pytest.raises(CouponNotFound):
            repo.record_usage("GHOST", customer.pk, make_order().pk)

    def test_find_by_code_ignores_inactive(self, repo, make_coupon):
        make_coupon(is_active=False)
        assert repo.find_by_code("SAVE10") is None

    def test_code_is_stored_uppercase(self, make_coupon):
        coupon = make_coupon(code=" spring5 ")
        assert Coupon.objects.get(pk=coupon.pk).code == "SPRING5"


class TestQuote:
    def test_quote(self, repo, make_coupon, customer):
        make_coupon()
        quote = CouponService(repo).quote("save10", Decimal("80.00"), customer.pk)
        assert quote.code == "SAVE10"
        assert quote.discount == Decimal("8.00")
        assert quote.free_shipping is False

    def test_quote_below_minimum(self, repo, make_coupon):
        make_coupon(minimum_order_amount=Decimal("100.00"))
        with pytest.raises(CouponMinimumNotMet):
            CouponService(repo).quote("SAVE10", Decimal("99.00"))

    def test_quote_counts_the_users_past_redemptions(
        self, repo, make_coupon, make_order, customer
    ):
        make_coupon()
        repo.record_usage("SAVE10", customer.pk, make_order().pk)
        with pytest.raises(CouponUsageExceeded):
            CouponService(repo).quote("SAVE10", Decimal("50.00"), customer.pk)
