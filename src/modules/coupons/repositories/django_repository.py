"""Django ORM implementation of the Coupon repository.

``record_usage`` locks the coupon row (``SELECT FOR UPDATE``) before
re-reading the counters, so two concurrent checkouts by the same user
cannot both pass the limit check and both append a usage.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Count, F, QuerySet, Sum

from modules.coupons.exceptions import CouponNotFound, CouponUsageExceeded
from modules.coupons.models import Coupon, CouponUsage
from modules.coupons.repositories.interfaces import ICouponRepository

logger = structlog.get_logger(__name__)

_ZERO = Decimal("0.00")


class CouponDjangoRepository(ICouponRepository):
    """Concrete Coupon repository backed by Django ORM."""

    def get_by_id(self, id: str) -> Optional[Coupon]:
        try:
            return Coupon.objects.filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    @transaction.atomic
    def save(self, entity: Coupon) -> Coupon:
        entity.save()
        logger.info("coupon.saved", coupon_id=str(entity.id), code=entity.code)
        return entity

    def find_by_code(self, code: str) -> Optional[Coupon]:
        return Coupon.objects.filter(code__iexact=code.strip(), is_active=True).first()

    def count_user_usages(self, coupon: Coupon, user_id) -> int:
        return CouponUsage.objects.filter(coupon=coupon, user_id=user_id).count()

    @transaction.atomic
    def record_usage(self, code: str, user_id, order_id) -> CouponUsage:
        coupon = (
            Coupon.objects.select_for_update()
            .filter(code__iexact=code.strip())
            .first()
        )
        if coupon is None:
            raise CouponNotFound(code)

        log = logger.bind(coupon_code=coupon.code, user_id=str(user_id))

        if not coupon.has_remaining_uses:
            log.warning("coupon.usage_limit_reached")
            raise CouponUsageExceeded(coupon.code)
        if self.count_user_usages(coupon, user_id) >= coupon.user_usage_limit:
            log.warning("coupon.user_usage_limit_reached")
            raise CouponUsageExceeded(coupon.code, per_user=True)

        usage = CouponUsage.objects.create(
            coupon=coupon, user_id=user_id, order_id=order_id
        )
        Coupon.objects.filter(pk=coupon.pk).update(usage_count=F("usage_count") + 1)

        log.info("coupon.usage_recorded", order_id=str(order_id))
        return usage

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------

    def list(self, filters: Optional[Dict[str, Any]] = None) -> QuerySet:
        queryset = Coupon.objects.all()
        if filters:
            queryset = queryset.filter(**filters)
        return queryset

    def get_by_code(self, code: str) -> Optional[Coupon]:
        return Coupon.objects.filter(code__iexact=code.strip()).first()

    def has_usages(self, coupon: Coupon) -> bool:
        return CouponUsage.objects.filter(coupon=coupon).exists()

    @transaction.atomic
    def delete(self, coupon: Coupon) -> None:
        coupon_id = str(coupon.id)
        coupon.delete()
        logger.info("coupon.deleted", coupon_id=coupon_id, code=coupon.code)

    def usage_summary(self, coupon: Coupon) -> Dict[str, Any]:
        totals = CouponUsage.objects.filter(coupon=coupon).aggregate(
            redemptions=Count("id"),
            unique_users=Count("user", distinct=True),
            total_discount=Sum("order__discount"),
            revenue=Sum("order__total"),
        )
        return {
            "redemptions": totals["redemptions"],
            "unique_users": totals["unique_users"],
            "total_discount": totals["total_discount"] or _ZERO,
            "revenue": totals["revenue"] or _ZERO,
        }
