"""Pricing calculator.

Turns requested order lines plus an optional coupon into an
``OrderDraft``.  Read-only: it resolves products and coupons through the
repositories but never mutates them, so a failure here leaves no trace.

Money rules:
- each derived amount (line totals, discount, shipping, tax) is quantized
  to cents once, with ROUND_HALF_EVEN;
- ``total`` is the plain sum of those quantized parts, never re-rounded.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, Iterable, List, Optional

import structlog
from django.conf import settings

from modules.catalog.exceptions import (
    InsufficientStock,
    ProductInactive,
    ProductNotFound,
)
from modules.coupons.constants import CouponType
from modules.coupons.discounts import (
    ZERO,
    calculate_discount,
    ensure_usable,
    quantize_money,
)
from modules.coupons.exceptions import CouponNotFound
from modules.orders import constants
from modules.orders.dtos import (
    CreateOrderItemDTO,
    OrderDraft,
    PricedLine,
    ShippingMethodDTO,
)

if TYPE_CHECKING:
    from modules.catalog.repositories.interfaces import IProductRepository
    from modules.coupons.models import Coupon
    from modules.coupons.repositories.interfaces import ICouponRepository

logger = structlog.get_logger(__name__)


def _setting(name: str, default):
    return getattr(settings, name, default)


def shipping_for(
    discounted_subtotal: Decimal,
    shipping_method: Optional[ShippingMethodDTO] = None,
    free_shipping: bool = False,
) -> Decimal:
    """Shipping charge for an order worth ``discounted_subtotal``."""
    if free_shipping:
        return ZERO
    if shipping_method is not None:
        return quantize_money(shipping_method.cost)
    threshold = Decimal(
        _setting("ORDER_FREE_SHIPPING_THRESHOLD", constants.FREE_SHIPPING_THRESHOLD)
    )
    if discounted_subtotal >= threshold:
        return ZERO
    return quantize_money(
        Decimal(_setting("ORDER_FLAT_SHIPPING_FEE", constants.FLAT_SHIPPING_FEE))
    )


def tax_for(discounted_subtotal: Decimal) -> Decimal:
    rate = Decimal(_setting("ORDER_TAX_RATE", constants.TAX_RATE))
    return quantize_money(max(discounted_subtotal, ZERO) * rate)


class PricingCalculator:
    """Prices a checkout request against the live catalog and coupons."""

    def __init__(
        self,
        product_repository: IProductRepository,
        coupon_repository: ICouponRepository,
    ) -> None:
        self._product_repo = product_repository
        self._coupon_repo = coupon_repository

    def price(
        self,
        items: Iterable[CreateOrderItemDTO],
        customer_id,
        coupon_code: Optional[str] = None,
        shipping_method: Optional[ShippingMethodDTO] = None,
    ) -> OrderDraft:
        """Build the draft or raise the first failure met.

        Raises:
            ProductNotFound, ProductInactive, InsufficientStock: per line.
            CouponNotFound, CouponExpired, CouponUsageExceeded,
            CouponMinimumNotMet: when ``coupon_code`` is given.
        """
        lines = self._price_lines(items)
        subtotal = quantize_money(sum((line.line_total for line in lines), ZERO))

        coupon: Optional[Coupon] = None
        discount = ZERO
        if coupon_code:
            coupon = self._resolve_coupon(coupon_code, customer_id, subtotal)
            discount = calculate_discount(coupon, subtotal)

        free_shipping = (
            coupon is not None and coupon.discount_type == CouponType.FREE_SHIPPING
        )
        discounted = subtotal - discount
        shipping_cost = shipping_for(discounted, shipping_method, free_shipping)
        tax = tax_for(discounted)
        total = discounted + shipping_cost + tax

        draft = OrderDraft(
            customer_id=customer_id,
            lines=lines,
            subtotal=subtotal,
            discount=discount,
            shipping_cost=shipping_cost,
            tax=tax,
            total=total,
            currency=_setting("ORDER_CURRENCY", constants.DEFAULT_CURRENCY),
            coupon_code=coupon.code if coupon else None,
            free_shipping=free_shipping,
            shipping_method=shipping_method,
        )
        logger.info(
            "order.priced",
            customer_id=str(customer_id),
            subtotal=str(subtotal),
            discount=str(discount),
            total=str(total),
        )
        return draft

    def _price_lines(self, items: Iterable[CreateOrderItemDTO]) -> List[PricedLine]:
        lines: List[PricedLine] = []
        for item in items:
            product = self._product_repo.get_by_id(str(item.product_id))
            if product is None:
                raise ProductNotFound(item.product_id)
            if not product.is_active:
                raise ProductInactive(product.id, product.name)
            if product.track_quantity and product.inventory_quantity < item.quantity:
                raise InsufficientStock(
                    product.id,
                    requested=item.quantity,
                    available=product.inventory_quantity,
                    name=product.name,
                )
            unit_price = quantize_money(product.price)
            lines.append(
                PricedLine(
                    product_id=product.id,
                    sku=product.sku,
                    name=product.name,
                    quantity=item.quantity,
                    unit_price=unit_price,
                    line_total=quantize_money(unit_price * item.quantity),
                    track_quantity=product.track_quantity,
                    variant=item.variant,
                )
            )
        return lines

    def _resolve_coupon(self, code: str, customer_id, subtotal: Decimal) -> Coupon:
        coupon = self._coupon_repo.find_by_code(code)
        if coupon is None:
            raise CouponNotFound(code)
        ensure_usable(
            coupon,
            user_usage_count=self._coupon_repo.count_user_usages(coupon, customer_id),
            subtotal=subtotal,
        )
        return coupon
