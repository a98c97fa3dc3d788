from __future__ import annotations

from django.conf import settings
from django.db import models

from modules.core.models import BaseModel


class AnalyticsEventType(models.TextChoices):
    PURCHASE = "purchase", "Purchase"
    ORDER_CANCELLED = "order_cancelled", "Order cancelled"


class AnalyticsEvent(BaseModel):
    type = models.CharField(max_length=40, choices=AnalyticsEventType.choices)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="analytics_events",
    )
    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="analytics_events",
    )
    revenue = models.DecimalField(
        max_digits=12, decimal_places=2, null=True, blank=True
    )
    data = models.JSONField(default=dict, blank=True)

    class Meta:
        db_table = "analytics_events"
        ordering = ["-created_at"]
        indexes = [
            models.Index(
                fields=["type", "created_at"], name="analytics_type_created_idx"
            ),
        ]

    def __str__(self) -> str:
        return f"{self.type} ({self.created_at:%Y-%m-%d})"
