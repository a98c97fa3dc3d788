"""Shopping cart record.

A user has at most one active cart.  Checkout closes it by flipping
``is_active``; the row is kept for abandoned-cart analysis.
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from modules.core.models import BaseModel


class Cart(BaseModel):
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="carts",
    )
    items = models.JSONField(default=list, blank=True)
    coupon_code = models.CharField(max_length=50, blank=True, default="")
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = "carts"
        ordering = ["-updated_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["user"],
                condition=models.Q(is_active=True),
                name="carts_one_active_per_user",
            ),
        ]

    def __str__(self) -> str:
        state = "active" if self.is_active else "closed"
        return f"Cart {self.id} ({state})"
