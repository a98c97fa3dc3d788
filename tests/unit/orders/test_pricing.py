"""Unit tests for PricingCalculator.

Runs against the real catalog and coupon repositories; nothing is
written by the calculator itself.
"""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal
from uuid import uuid4

import pytest
from django.utils import timezone

from modules.catalog.exceptions import (
    InsufficientStock,
    ProductInactive,
    ProductNotFound,
)
from modules.catalog.models import Product
from modules.catalog.repositories import ProductDjangoRepository
from modules.coupons.constants import CouponType
from modules.coupons.exceptions import (
    CouponExpired,
    CouponMinimumNotMet,
    CouponNotFound,
    CouponUsageExceeded,
)
from modules.coupons.repositories import CouponDjangoRepository
from modules.orders.dtos import CreateOrderItemDTO, ShippingMethodDTO
from modules.orders.pricing import PricingCalculator

pytestmark = pytest.mark.unit


@pytest.fixture()
def calculator():
    return PricingCalculator(ProductDjangoRepository(), CouponDjangoRepository())


def _item(product, quantity=1):
    return CreateOrderItemDTO(product_id=product.id, quantity=quantity)


class TestLinePricing:
    def test_no_coupon_total_is_subtotal_plus_shipping_plus_tax(
        self, calculator, make_product, customer
    ):
        ring = make_product(price=Decimal("19.99"))
        draft = calculator.price([_item(ring, 3)], customer.pk)

        assert draft.subtotal == Decimal("59.97")
        assert draft.shipping_cost == Decimal("10.00")
        assert draft.tax == Decimal("4.80")
        assert draft.total == draft.subtotal + draft.shipping_cost + draft.tax

    def test_line_uses_current_catalog_price(self, calculator, make_product, customer):
        ring = make_product(price=Decimal("50.00"))
        Product.objects.filter(pk=ring.pk).update(price=Decimal("75.00"))

        draft = calculator.price([_item(ring, 2)], customer.pk)

        assert draft.lines[0].unit_price == Decimal("75.00")
        assert draft.lines[0].line_total == Decimal("150.00")

    def test_free_shipping_at_threshold(self, calculator, make_product, customer):
        ring = make_product(price=Decimal("100.00"))
        draft = calculator.price([_item(ring)], customer.pk)
        assert draft.shipping_cost == Decimal("0.00")
        assert draft.total == Decimal("108.00")

    def test_explicit_shipping_method_cost_wins(
        self, calculator, make_product, customer
    ):
        ring = make_product(price=Decimal("250.00"))
        express = ShippingMethodDTO(name="Express", cost=Decimal("25.00"))

        draft = calculator.price([_item(ring)], customer.pk, shipping_method=express)

        assert draft.shipping_cost == Decimal("25.00")
        assert draft.shipping_method == express

    def test_untracked_product_ignores_inventory(
        self, calculator, make_product, customer
    ):
        engraving = make_product(inventory_quantity=0, track_quantity=False)
        draft = calculator.price([_item(engraving, 5)], customer.pk)
        assert draft.lines[0].track_quantity is False
        assert draft.lines[0].quantity == 5

    def test_variant_is_carried_to_the_line(self, calculator, make_product, customer):
        ring = make_product()
        item = CreateOrderItemDTO(
            product_id=ring.id, quantity=1, variant={"size": "7", "metal": "gold"}
        )
        draft = calculator.price([item], customer.pk)
        assert draft.lines[0].variant.size == "7"
        assert draft.lines[0].variant.metal == "gold"


class TestLineFailures:
    def test_unknown_product(self, calculator, customer):
        missing = uuid4()
        with pytest.raises(ProductNotFound) as exc_info:
            calculator.price(
                [CreateOrderItemDTO(product_id=missing, quantity=1)], customer.pk
            )
        assert exc_info.value.product_id == missing

    def test_soft_deleted_product_is_not_found(
        self, calculator, make_product, customer
    ):
        ring = make_product()
        ring.delete()
        with pytest.raises(ProductNotFound):
            calculator.price([_item(ring)], customer.pk)

    def test_inactive_product(self, calculator, make_product, customer):
        ring = make_product(name="Retired Band", is_active=False)
        with pytest.raises(ProductInactive, match="Retired Band"):
            calculator.price([_item(ring)], customer.pk)

    def test_insufficient_stock_reports_available(
        self, calculator, make_product, customer
    ):
        ring = make_product(inventory_quantity=2)
        with pytest.raises(InsufficientStock) as exc_info:
            calculator.price([_item(ring, 3)], customer.pk)
        assert exc_info.value.available == 2
        assert exc_info.value.requested == 3

    def test_zero_stock(self, calculator, make_product, customer):
        ring = make_product(inventory_quantity=0)
        with pytest.raises(InsufficientStock):
            calculator.price([_item(ring)], customer.pk)

    def test_pricing_does_not_touch_inventory(
        self, calculator, make_product, customer
    ):
        ring = make_product(inventory_quantity=4)
        calculator.price([_item(ring, 4)], customer.pk)
        ring.refresh_from_db()
        assert ring.inventory_quantity == 4
        assert ring.sold_count == 0


class TestCoupons:
    def test_save10_scenario(self, calculator, make_product, make_coupon, customer):
        ring = make_product(price=Decimal("50.00"))
        make_coupon(code="SAVE10", value=Decimal("10"))

        draft = calculator.price([_item(ring, 2)], customer.pk, coupon_code="SAVE10")

        assert draft.subtotal == Decimal("100.00")
        assert draft.discount == Decimal("10.00")
        assert draft.shipping_cost == Decimal("10.00")
        assert draft.tax == Decimal("7.20")
        assert draft.total == Decimal("107.20")
        assert draft.coupon_code == "SAVE10"

    def test_code_lookup_is_case_insensitive(
        self, calculator, make_product, make_coupon, customer
    ):
        ring = make_product(price=Decimal("50.00"))
        make_coupon(code="SAVE10")
        draft = calculator.price([_item(ring)], customer.pk, coupon_code="save10")
        assert draft.coupon_code == "SAVE10"

    def test_percentage_is_capped(
        self, calculator, make_product, make_coupon, customer
    ):
        ring = make_product(price=Decimal("400.00"))
        make_coupon(
            code="BIG25",
            value=Decimal("25"),
            maximum_discount_amount=Decimal("50.00"),
        )
        draft = calculator.price([_item(ring)], customer.pk, coupon_code="BIG25")
        assert draft.discount == Decimal("50.00")

    def test_fixed_coupon_never_exceeds_subtotal(
        self, calculator, make_product, make_coupon, customer
    ):
        charm = make_product(price=Decimal("15.00"))
        make_coupon(code="GIFT20", discount_type=CouponType.FIXED, value=Decimal("20"))

        draft = calculator.price([_item(charm)], customer.pk, coupon_code="GIFT20")

        assert draft.discount == Decimal("15.00")
        assert draft.tax == Decimal("0.00")
        assert draft.total == Decimal("10.00")

    def test_free_shipping_coupon(
        self, calculator, make_product, make_coupon, customer
    ):
        ring = make_product(price=Decimal("30.00"))
        make_coupon(
            code="SHIPFREE", discount_type=CouponType.FREE_SHIPPING, value=Decimal("0")
        )
        express = ShippingMethodDTO(name="Express", cost=Decimal("25.00"))

        draft = calculator.price(
            [_item(ring)], customer.pk, coupon_code="SHIPFREE", shipping_method=express
        )

        assert draft.discount == Decimal("0.00")
        assert draft.shipping_cost == Decimal("0.00")
        assert draft.free_shipping is True
        assert draft.total == Decimal("32.40")

    def test_unknown_coupon(self, calculator, make_product, customer):
        ring = make_product()
        with pytest.raises(CouponNotFound):
            calculator.price([_item(ring)], customer.pk, coupon_code="NOPE")

    def test_inactive_coupon_is_not_found(
        self, calculator, make_product, make_coupon, customer
    ):
        ring = make_product()
        make_coupon(code="OLD", is_active=False)
        with pytest.raises(CouponNotFound):
            calculator.price([_item(ring)], customer.pk, coupon_code="OLD")

    def test_expired_coupon(self, calculator, make_product, make_coupon, customer):
        ring = make_product()
        make_coupon(
            code="SUMMER",
            start_date=timezone.now() - timedelta(days=60),
            end_date=timezone.now() - timedelta(days=1),
        )
        with pytest.raises(CouponExpired):
            calculator.price([_item(ring)], customer.pk, coupon_code="SUMMER")

    def test_global_limit_reached(
        self, calculator, make_product, make_coupon, customer
    ):
        ring = make_product()
        make_coupon(code="FIRST100", usage_limit=100, usage_count=100)
        with pytest.raises(CouponUsageExceeded):
            calculator.price([_item(ring)], customer.pk, coupon_code="FIRST100")

    def test_minimum_not_met_reports_threshold(
        self, calculator, make_product, make_coupon, customer
    ):
        ring = make_product(price=Decimal("40.00"))
        make_coupon(code="MIN200", minimum_order_amount=Decimal("200.00"))
        with pytest.raises(CouponMinimumNotMet) as exc_info:
            calculator.price([_item(ring)], customer.pk, coupon_code="MIN200")
        assert exc_info.value.minimum == Decimal("200.00")
