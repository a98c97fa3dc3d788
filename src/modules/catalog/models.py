"""Product catalog record.

Only the fields order placement needs are modelled here: price,
inventory bookkeeping and the active flag.

- SKU is unique and normalised to uppercase.
- ``inventory_quantity`` and ``sold_count`` can never go negative (DB check
  constraints back the conditional updates in the repository).
- Soft delete via ``deleted_at`` (inherited from SoftDeleteModel).
"""

from __future__ import annotations

from decimal import Decimal

import structlog
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models

from modules.core.models import SoftDeleteModel

logger = structlog.get_logger(__name__)


class Product(SoftDeleteModel):
    sku = models.CharField(max_length=64, unique=True)
    name = models.CharField(max_length=255)
    price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    inventory_quantity = models.IntegerField(default=0)
    track_quantity = models.BooleanField(default=True)
    low_stock_threshold = models.PositiveIntegerField(default=5)
    is_active = models.BooleanField(default=True)
    sold_count = models.IntegerField(default=0)

    class Meta:
        db_table = "products"
        ordering = ["name"]
        indexes = [
            models.Index(fields=["is_active"], name="products_active_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                check=models.Q(price__gte=0),
                name="products_price_non_negative",
            ),
            models.CheckConstraint(
                check=models.Q(inventory_quantity__gte=0),
                name="products_inventory_non_negative",
            ),
            models.CheckConstraint(
                check=models.Q(sold_count__gte=0),
                name="products_sold_count_non_negative",
            ),
        ]

    @property
    def in_stock(self) -> bool:
        return not self.track_quantity or self.inventory_quantity > 0

    @property
    def is_low_stock(self) -> bool:
        return (
            self.track_quantity
            and self.inventory_quantity <= self.low_stock_threshold
        )

    def clean(self) -> None:
        super().clean()
        if self.inventory_quantity is not None and self.inventory_quantity < 0:
            raise ValidationError(
                {"inventory_quantity": "Inventory quantity cannot be negative."}
            )

    def save(self, *args, **kwargs) -> None:
        if self.sku:
            self.sku = self.sku.strip().upper()
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.sku} - {self.name}"
