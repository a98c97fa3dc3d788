"""Order, OrderItem, OrderStatusHistory and OrderNumberSequence models.

Rules enforced here:
- Order numbers come from ``OrderNumberSequence``; the auto-increment key
  makes two orders sharing a number impossible rather than unlikely.
- Customer FK uses PROTECT to preserve financial history.
- OrderItem snapshots the product price at creation (``unit_price``) and
  ``line_total`` is always ``quantity * unit_price``.  Nothing re-reads the
  catalog price after the order exists.
- Every status change appends an ``OrderStatusHistory`` row.
- Soft delete via ``deleted_at`` (inherited from SoftDeleteModel).
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models

from modules.core.models import BaseModel, SoftDeleteModel
from modules.orders.constants import (
    ORDER_NUMBER_PREFIX,
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    OrderStatus,
)
from modules.payments.constants import PaymentStatus


class OrderNumberSequence(models.Model):
    """One row per issued order number; the PK is the counter."""

    id = models.BigAutoField(primary_key=True)
    issued_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "order_number_sequence"

    @classmethod
    def next_number(cls) -> str:
        entry = cls.objects.create()
        return f"{ORDER_NUMBER_PREFIX}-{entry.issued_at:%Y%m%d}-{entry.id:08d}"


class Order(SoftDeleteModel):
    """Order aggregate root.

    ``order_number`` is the customer-facing identifier
    (``ORD-YYYYMMDD-00000042``); the UUIDv7 ``id`` is used for internal
    references and API look-ups.

    ``paid_at`` is set once the gateway confirmed the charge, and tells a
    later cancellation that the sale was committed.
    """

    order_number = models.CharField(max_length=32, unique=True, editable=False)
    customer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="orders",
    )
    status = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.PENDING,
    )
    payment_status = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING,
    )
    shipping_address = models.JSONField(default=dict)
    billing_address = models.JSONField(default=dict)

    subtotal = models.DecimalField(max_digits=12, decimal_places=2)
    discount = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )
    shipping_cost = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )
    tax = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    total = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(max_length=3, default="USD")

    payment_method = models.JSONField(default=dict)
    transaction_id = models.CharField(max_length=255, blank=True, default="")
    payment_details = models.JSONField(default=dict, blank=True)
    paid_at = models.DateTimeField(null=True, blank=True)

    coupon_code = models.CharField(max_length=50, blank=True, default="")
    shipping_method = models.JSONField(null=True, blank=True)
    tracking_number = models.CharField(max_length=100, blank=True, default="")
    notes = models.TextField(blank=True, default="")
    cancellation_reason = models.TextField(blank=True, default="")

    class Meta:
        db_table = "orders"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status"], name="orders_status_idx"),
            models.Index(fields=["payment_status"], name="orders_payment_status_idx"),
            models.Index(
                fields=["customer", "-created_at"], name="orders_customer_idx"
            ),
            models.Index(fields=["-created_at"], name="orders_created_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                check=models.Q(total__gte=0), name="orders_total_non_negative"
            ),
        ]

    # ------------------------------------------------------------------
    # State Machine helpers
    # ------------------------------------------------------------------

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATES

    def can_transition_to(self, new_status: str) -> bool:
        return new_status in VALID_TRANSITIONS.get(self.status, set())

    def save(self, *args: Any, **kwargs: Any) -> None:
        if not self.order_number:
            self.order_number = OrderNumberSequence.next_number()
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.order_number} ({self.status})"


class OrderItem(BaseModel):
    """Line item linking an Order to a Product.

    ``inventory_reserved`` records whether checkout took units from the
    product's inventory, so cancellation puts back exactly what was taken
    even if the product's ``track_quantity`` flag changes later.
    ``sale_committed`` is set once the line was counted in ``sold_count``.
    """

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="items",
    )
    product = models.ForeignKey(
        "catalog.Product",
        on_delete=models.PROTECT,
        related_name="order_items",
    )
    product_name = models.CharField(max_length=255)
    sku = models.CharField(max_length=64)
    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    unit_price = models.DecimalField(max_digits=12, decimal_places=2)
    line_total = models.DecimalField(max_digits=12, decimal_places=2, editable=False)
    variant = models.JSONField(default=dict, blank=True)
    inventory_reserved = models.BooleanField(default=False)
    sale_committed = models.BooleanField(default=False)

    class Meta:
        db_table = "order_items"
        ordering = ["created_at"]
        constraints = [
            models.CheckConstraint(
                check=models.Q(quantity__gte=1),
                name="order_items_quantity_positive",
            ),
        ]

    def clean(self) -> None:
        super().clean()
        if self.quantity is not None and self.quantity < 1:
            raise ValidationError({"quantity": "Quantity must be at least 1."})

    def save(self, *args: Any, **kwargs: Any) -> None:
        self.line_total = self.quantity * self.unit_price
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.sku} x{self.quantity} (${self.line_total})"


class OrderStatusHistory(BaseModel):
    """Append-only audit trail for order status transitions.

    ``user`` is nullable: ``None`` means the change was performed by the
    system (payment result, automatic cancellation).
    """

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="status_history",
    )
    old_status = models.CharField(  # noqa: DJ01
        max_length=20,
        choices=OrderStatus.choices,
        null=True,
        blank=True,
    )
    new_status = models.CharField(max_length=20, choices=OrderStatus.choices)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
    )
    notes = models.TextField(blank=True, default="")

    class Meta:
        db_table = "order_status_history"
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(fields=["order", "created_at"], name="osh_order_created_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.order} : {self.old_status} -> {self.new_status}"
