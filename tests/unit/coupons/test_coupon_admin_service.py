"""Unit tests for the coupon administration use cases."""

from datetime import timedelta
from decimal import Decimal
from uuid import uuid4

import pytest
from django.utils import timezone
from freezegun import freeze_time

from modules.coupons.constants import CouponType
from modules.coupons.dtos import CreateCouponDTO, UpdateCouponDTO
from modules.coupons.exceptions import (
    CouponAlreadyExists,
    CouponInUse,
    CouponNotFound,
    InvalidCouponTerms,
)
from modules.coupons.models import Coupon
from modules.coupons.repositories import CouponDjangoRepository
from modules.coupons.services import CouponService
from modules.orders.models import Order

pytestmark = pytest.mark.unit


@pytest.fixture()
def service():
    return CouponService(CouponDjangoRepository())


def _create_dto(**overrides):
    values = {
        "code": " spring20 ",
        "name": "Spring sale",
        "discount_type": "percentage",
        "value": "20",
        "end_date": (timezone.now() + timedelta(days=10)).isoformat(),
    }
    values.update(overrides)
    return CreateCouponDTO.model_validate(values)


def _redeem(coupon, customer, discount="10.00", total="90.00"):
    order = Order.objects.create(
        customer=customer,
        subtotal=Decimal("100.00"),
        discount=Decimal(discount),
        total=Decimal(total),
        coupon_code=coupon.code,
    )
    CouponDjangoRepository().record_usage(coupon.code, customer.pk, order.id)


class TestCreate:
    def test_code_is_normalised(self, service):
        coupon = service.create_coupon(_create_dto())

        assert coupon.code == "SPRING20"
        assert coupon.is_active is True
        assert coupon.user_usage_limit == 1
        assert coupon.start_date <= timezone.now()

    def test_duplicate_code_ignores_case(self, service, make_coupon):
        make_coupon(code="SPRING20")
        with pytest.raises(CouponAlreadyExists):
            service.create_coupon(_create_dto(code="spring20"))

    def test_percentage_above_100_is_rejected(self, service):
        with pytest.raises(InvalidCouponTerms):
            service.create_coupon(_create_dto(value="150"))
        assert not Coupon.objects.exists()

    def test_fixed_amount_may_exceed_100(self, service):
        coupon = service.create_coupon(
            _create_dto(discount_type=CouponType.FIXED, value="150.00")
        )
        assert coupon.value == Decimal("150.00")

    def test_end_before_start_is_rejected(self, service):
        with pytest.raises(InvalidCouponTerms):
            service.create_coupon(
                _create_dto(end_date=(timezone.now() - timedelta(days=1)).isoformat())
            )

    def test_dto_rejects_negative_value_and_zero_limits(self):
        with pytest.raises(ValueError):
            _create_dto(value="-5")
        with pytest.raises(ValueError):
            _create_dto(user_usage_limit=0)


class TestUpdate:
    def test_only_sent_fields_change(self, service, make_coupon):
        coupon = make_coupon(description="Original")

        updated = service.update_coupon(
            coupon.id, UpdateCouponDTO.model_validate({"value": "15"})
        )

        assert updated.value == Decimal("15")
        assert updated.description == "Original"

    def test_null_clears_usage_limit(self, service, make_coupon):
        coupon = make_coupon(usage_limit=5)
        updated = service.update_coupon(
            coupon.id, UpdateCouponDTO.model_validate({"usage_limit": None})
        )
        assert updated.usage_limit is None

    def test_code_taken_by_another_coupon(self, service, make_coupon):
        make_coupon(code="WINTER")
        coupon = make_coupon(code="SAVE10")
        with pytest.raises(CouponAlreadyExists):
            service.update_coupon(
                coupon.id, UpdateCouponDTO.model_validate({"code": "winter"})
            )

    def test_keeping_own_code_is_allowed(self, service, make_coupon):
        coupon = make_coupon(code="SAVE10")
        updated = service.update_coupon(
            coupon.id, UpdateCouponDTO.model_validate({"code": "save10"})
        )
        assert updated.code == "SAVE10"

    def test_switch_to_percentage_rechecks_value(self, service, make_coupon):
        coupon = make_coupon(discount_type=CouponType.FIXED, value=Decimal("250"))
        with pytest.raises(InvalidCouponTerms):
            service.update_coupon(
                coupon.id,
                UpdateCouponDTO.model_validate({"discount_type": "percentage"}),
            )

    def test_unknown_coupon(self, service):
        with pytest.raises(CouponNotFound):
            service.update_coupon(uuid4(), UpdateCouponDTO())


class TestToggleAndDelete:
    def test_toggle_flips_activation(self, service, make_coupon):
        coupon = make_coupon()
        assert service.toggle_status(coupon.id).is_active is False
        assert service.toggle_status(coupon.id).is_active is True

    def test_unused_coupon_is_deleted(self, service, make_coupon):
        coupon = make_coupon()
        service.delete_coupon(coupon.id)
        assert not Coupon.objects.filter(pk=coupon.pk).exists()

    def test_redeemed_coupon_is_kept(self, service, make_coupon, customer):
        coupon = make_coupon()
        _redeem(coupon, customer)

        with pytest.raises(CouponInUse):
            service.delete_coupon(coupon.id)
        assert Coupon.objects.filter(pk=coupon.pk).exists()


class TestStats:
    @freeze_time("2026-03-01 12:00:00")
    def test_usage_figures(self, service, make_coupon, customer, other_customer):
        coupon = make_coupon(
            usage_limit=4,
            user_usage_limit=2,
            end_date=timezone.now() + timedelta(days=9, hours=1),
        )
        _redeem(coupon, customer)
        _redeem(coupon, customer, discount="5.00", total="45.00")
        _redeem(coupon, other_customer)

        result = service.get_stats(coupon.id)

        assert result["coupon"]["code"] == "SAVE10"
        stats = result["stats"]
        assert stats["total_usage"] == 3
        assert stats["usage_percentage"] == Decimal("75.00")
        assert stats["unique_users"] == 2
        assert stats["total_discount"] == Decimal("25.00")
        assert stats["revenue"] == Decimal("225.00")
        assert stats["is_valid"] is True
        assert stats["days_until_expiry"] == 10

    def test_unused_unlimited_coupon(self, service, make_coupon):
        coupon = make_coupon(is_active=False)

        stats = service.get_stats(coupon.id)["stats"]

        assert stats["usage_percentage"] == Decimal("0.00")
        assert stats["total_discount"] == Decimal("0.00")
        assert stats["is_valid"] is False


class TestList:
    def test_filters_are_applied(self, service, make_coupon):
        make_coupon(code="A")
        make_coupon(code="B", is_active=False)
        assert [c.code for c in service.list_coupons({"is_active": False})] == ["B"]
