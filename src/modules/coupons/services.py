"""Coupon service layer.

``quote`` answers "what would this code give me?" for the storefront
before checkout.  Checkout itself re-validates through the pricing
calculator; a quote reserves nothing.

The admin use cases (create, update, toggle, delete, statistics) keep
two rules: codes are unique regardless of case, and a coupon that has
been redeemed is never deleted, only deactivated.
"""

from __future__ import annotations

import math
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Dict, Optional

import structlog
from django.db import transaction
from django.db.models import QuerySet
from django.utils import timezone

from modules.coupons.constants import CouponType
from modules.coupons.discounts import ZERO, calculate_discount, ensure_usable
from modules.coupons.dtos import CouponQuoteDTO
from modules.coupons.exceptions import (
    CouponAlreadyExists,
    CouponInUse,
    CouponNotFound,
    InvalidCouponTerms,
)
from modules.coupons.models import Coupon

if TYPE_CHECKING:
    from modules.coupons.dtos import CreateCouponDTO, UpdateCouponDTO
    from modules.coupons.repositories.interfaces import ICouponRepository

logger = structlog.get_logger(__name__)

NULLABLE_FIELDS = {"maximum_discount_amount", "usage_limit"}


def _check_terms(coupon: Coupon) -> None:
    if coupon.discount_type == CouponType.PERCENTAGE and coupon.value > 100:
        raise InvalidCouponTerms("A percentage coupon cannot exceed 100%.")
    if coupon.end_date <= coupon.start_date:
        raise InvalidCouponTerms("End date must be after start date.")


class CouponService:
    def __init__(self, repository: ICouponRepository) -> None:
        self._repo = repository

    def quote(
        self, code: str, order_amount: Decimal, user_id: Optional[object] = None
    ) -> CouponQuoteDTO:
        """Validate ``code`` against ``order_amount`` and return the discount.

        Raises:
            CouponNotFound, CouponExpired, CouponUsageExceeded,
            CouponMinimumNotMet
        """
        coupon = self._repo.find_by_code(code)
        if coupon is None:
            logger.info("coupon.quote_unknown_code", code=code)
            raise CouponNotFound(code)

        used = self._repo.count_user_usages(coupon, user_id) if user_id else 0
        ensure_usable(coupon, used, order_amount)

        discount = calculate_discount(coupon, order_amount)
        logger.info("coupon.quoted", code=coupon.code, discount=str(discount))
        return CouponQuoteDTO(
            code=coupon.code,
            name=coupon.name,
            description=coupon.description,
            discount_type=coupon.discount_type,
            value=coupon.value,
            discount=discount,
            free_shipping=coupon.discount_type == CouponType.FREE_SHIPPING,
            minimum_order_amount=coupon.minimum_order_amount,
            maximum_discount_amount=coupon.maximum_discount_amount,
        )

    # ------------------------------------------------------------------
    # Admin commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def create_coupon(self, dto: CreateCouponDTO) -> Coupon:
        """Raises ``CouponAlreadyExists`` or ``InvalidCouponTerms``."""
        log = logger.bind(code=dto.code)
        if self._repo.get_by_code(dto.code):
            log.warning("coupon.duplicate_code")
            raise CouponAlreadyExists(dto.code)

        coupon = Coupon(**dto.model_dump(exclude_none=True))
        _check_terms(coupon)
        coupon = self._repo.save(coupon)
        log.info("coupon.created", coupon_id=str(coupon.id))
        return coupon

    @transaction.atomic
    def update_coupon(self, coupon_id, dto: UpdateCouponDTO) -> Coupon:
        """Apply the fields that were sent.

        ``null`` clears the optional limits; for every other field it
        means "leave unchanged".
        """
        coupon = self.get_coupon(coupon_id)
        log = logger.bind(coupon_id=str(coupon.id))

        changes = {
            field: value
            for field, value in dto.model_dump(exclude_unset=True).items()
            if value is not None or field in NULLABLE_FIELDS
        }
        code = changes.get("code")
        if code and code != coupon.code:
            existing = self._repo.get_by_code(code)
            if existing is not None and existing.pk != coupon.pk:
                log.warning("coupon.duplicate_code", code=code)
                raise CouponAlreadyExists(code)

        for field, value in changes.items():
            setattr(coupon, field, value)
        _check_terms(coupon)
        coupon = self._repo.save(coupon)
        log.info("coupon.updated", fields=sorted(changes))
        return coupon

    @transaction.atomic
    def toggle_status(self, coupon_id) -> Coupon:
        coupon = self.get_coupon(coupon_id)
        coupon.is_active = not coupon.is_active
        coupon = self._repo.save(coupon)
        logger.info(
            "coupon.status_toggled",
            coupon_id=str(coupon.id),
            is_active=coupon.is_active,
        )
        return coupon

    @transaction.atomic
    def delete_coupon(self, coupon_id) -> None:
        """Raises ``CouponInUse`` once any order has redeemed the coupon."""
        coupon = self.get_coupon(coupon_id)
        if self._repo.has_usages(coupon):
            logger.warning("coupon.delete_refused", coupon_id=str(coupon.id))
            raise CouponInUse(coupon.code)
        self._repo.delete(coupon)

    # ------------------------------------------------------------------
    # Admin queries
    # ------------------------------------------------------------------

    def list_coupons(self, filters: Optional[Dict[str, Any]] = None) -> QuerySet:
        return self._repo.list(filters)

    def get_coupon(self, coupon_id) -> Coupon:
        coupon = self._repo.get_by_id(str(coupon_id))
        if coupon is None:
            raise CouponNotFound(str(coupon_id))
        return coupon

    def get_stats(self, coupon_id) -> Dict[str, Any]:
        coupon = self.get_coupon(coupon_id)
        now = timezone.now()
        summary = self._repo.usage_summary(coupon)

        usage_percentage = ZERO
        if coupon.usage_limit:
            usage_percentage = (
                Decimal(coupon.usage_count) * 100 / coupon.usage_limit
            ).quantize(Decimal("0.01"))
        seconds_left = (coupon.end_date - now).total_seconds()

        return {
            "coupon": {
                "id": str(coupon.id),
                "code": coupon.code,
                "name": coupon.name,
                "discount_type": coupon.discount_type,
                "value": coupon.value,
            },
            "stats": {
                "total_usage": coupon.usage_count,
                "usage_limit": coupon.usage_limit,
                "usage_percentage": usage_percentage,
                "unique_users": summary["unique_users"],
                "total_discount": summary["total_discount"],
                "revenue": summary["revenue"],
                "is_active": coupon.is_active,
                "is_valid": (
                    coupon.is_active
                    and coupon.is_within_window(now)
                    and coupon.has_remaining_uses
                ),
                "days_until_expiry": math.ceil(seconds_left / 86400),
            },
        }
