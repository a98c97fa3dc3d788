"""Coupon and CouponUsage models.

- ``code`` is unique and stored uppercase; look-ups are case-insensitive.
- ``usage_limit`` of ``None`` means unlimited.
- ``CouponUsage`` rows are append-only: one per redeemed order, kept as
  audit history and used to enforce ``user_usage_limit``.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from modules.core.models import BaseModel
from modules.coupons.constants import CouponType


class Coupon(BaseModel):
    code = models.CharField(max_length=50, unique=True)
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")
    discount_type = models.CharField(max_length=20, choices=CouponType.choices)
    value = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    minimum_order_amount = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )
    maximum_discount_amount = models.DecimalField(
        max_digits=12, decimal_places=2, null=True, blank=True
    )
    usage_limit = models.PositiveIntegerField(null=True, blank=True)
    usage_count = models.PositiveIntegerField(default=0)
    user_usage_limit = models.PositiveIntegerField(default=1)
    start_date = models.DateTimeField(default=timezone.now)
    end_date = models.DateTimeField()
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = "coupons"
        ordering = ["-created_at"]
        indexes = [
            models.Index(
                fields=["is_active", "start_date", "end_date"],
                name="coupons_validity_idx",
            ),
        ]

    def is_within_window(self, now: Optional[datetime] = None) -> bool:
        now = now or timezone.now()
        return self.start_date <= now <= self.end_date

    @property
    def has_remaining_uses(self) -> bool:
        return self.usage_limit is None or self.usage_count < self.usage_limit

    def save(self, *args, **kwargs) -> None:
        if self.code:
            self.code = self.code.strip().upper()
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.code} ({self.discount_type} {self.value})"


class CouponUsage(BaseModel):
    coupon = models.ForeignKey(
        "coupons.Coupon",
        on_delete=models.PROTECT,
        related_name="usages",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="coupon_usages",
    )
    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.PROTECT,
        related_name="coupon_usages",
    )

    class Meta:
        db_table = "coupon_usages"
        ordering = ["created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["coupon", "order"], name="coupon_usage_once_per_order"
            ),
        ]

    def __str__(self) -> str:
        return f"{self.coupon_id} used by {self.user_id} on {self.order_id}"
