"""Django ORM implementation of the Order repository.

Satisfies ``IOrderRepository`` using Django's QuerySet API.
Write operations are wrapped in ``transaction.atomic()`` so the Order
aggregate (Order + OrderItems + history) is persisted as a unit.

Concurrency control on status updates uses ``select_for_update()``.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Avg, Count, Q, QuerySet, Sum
from django.db.models.functions import TruncDate

from modules.orders.constants import REVENUE_STATES, OrderStatus
from modules.orders.dtos import OrderDraft
from modules.orders.models import Order, OrderItem, OrderStatusHistory
from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)

_ZERO = Decimal("0.00")


class OrderDjangoRepository(IOrderRepository):
    """Concrete Order repository backed by Django ORM."""

    # ------------------------------------------------------------------
    # Create (aggregate root + children)
    # ------------------------------------------------------------------

    @transaction.atomic
    def create_pending(
        self,
        draft: OrderDraft,
        customer,
        shipping_address: Dict[str, Any],
        billing_address: Dict[str, Any],
        payment_method: Dict[str, Any],
        notes: str = "",
    ) -> Order:
        order = Order(
            customer=customer,
            status=OrderStatus.PENDING,
            shipping_address=shipping_address,
            billing_address=billing_address,
            subtotal=draft.subtotal,
            discount=draft.discount,
            shipping_cost=draft.shipping_cost,
            tax=draft.tax,
            total=draft.total,
            currency=draft.currency,
            payment_method=payment_method,
            coupon_code=draft.coupon_code or "",
            shipping_method=(
                draft.shipping_method.model_dump(mode="json")
                if draft.shipping_method
                else None
            ),
            notes=notes,
        )
        order.save()

        for line in draft.lines:
            OrderItem(
                order=order,
                product_id=line.product_id,
                product_name=line.name,
                sku=line.sku,
                quantity=line.quantity,
                unit_price=line.unit_price,
                variant=line.variant.model_dump(exclude_none=True),
                inventory_reserved=line.track_quantity,
            ).save()

        self.add_history(order, OrderStatus.PENDING, notes="Order created")

        logger.info(
            "order.persisted",
            order_id=str(order.id),
            order_number=order.order_number,
            item_count=len(draft.lines),
        )
        return order

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_by_id(self, id: str) -> Optional[Order]:
        """Retrieve an order with eager-loaded relations.

        Returns ``None`` for non-existent, soft-deleted or invalid IDs.
        """
        try:
            return (
                Order.objects.alive()
                .select_related("customer")
                .prefetch_related("items__product", "status_history")
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def get_for_update(self, id: str) -> Optional[Order]:
        """Retrieve an order with a row-level lock (SELECT FOR UPDATE).

        Must run inside ``transaction.atomic``.  Items are loaded by the
        caller after the lock is held.
        """
        try:
            return (
                Order.objects.alive()
                .select_for_update()
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> QuerySet:
        queryset = (
            Order.objects.alive()
            .select_related("customer")
            .prefetch_related("items")
        )
        if filters:
            queryset = queryset.filter(**filters)
        return queryset

    # ------------------------------------------------------------------
    # Save / transitions
    # ------------------------------------------------------------------

    @transaction.atomic
    def save(self, entity: Order) -> Order:
        entity.save()
        logger.info("order.saved", order_id=str(entity.id))
        return entity

    @transaction.atomic
    def transition(
        self,
        order: Order,
        new_status: str,
        user=None,
        history_notes: str = "",
        **fields: Any,
    ) -> Order:
        old_status = order.status
        order.status = new_status
        for name, value in fields.items():
            setattr(order, name, value)
        order.save(update_fields=["status", *fields])

        self.add_history(
            order, new_status, old_status=old_status, user=user, notes=history_notes
        )
        logger.info(
            "order.transitioned",
            order_id=str(order.id),
            old_status=old_status,
            new_status=new_status,
        )
        return order

    def add_history(
        self,
        order: Order,
        new_status: str,
        old_status: Optional[str] = None,
        user=None,
        notes: str = "",
    ) -> OrderStatusHistory:
        return OrderStatusHistory.objects.create(
            order=order,
            old_status=old_status,
            new_status=new_status,
            user=user,
            notes=notes,
        )

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def statistics(self, since: datetime) -> Dict[str, Any]:
        orders = Order.objects.alive().filter(created_at__gte=since)
        revenue_orders = orders.filter(status__in=REVENUE_STATES)

        summary = orders.aggregate(
            total_orders=Count("id"),
            pending_orders=Count("id", filter=Q(status=OrderStatus.PENDING)),
            completed_orders=Count("id", filter=Q(status=OrderStatus.DELIVERED)),
            cancelled_orders=Count("id", filter=Q(status=OrderStatus.CANCELLED)),
        )
        revenue = revenue_orders.aggregate(
            total_revenue=Sum("total"), average_order_value=Avg("total")
        )

        daily_revenue = [
            {
                "date": row["day"],
                "revenue": row["revenue"],
                "orders": row["orders"],
            }
            for row in revenue_orders.annotate(day=TruncDate("created_at"))
            .values("day")
            .annotate(revenue=Sum("total"), orders=Count("id"))
            .order_by("day")
        ]

        top_products = list(
            OrderItem.objects.filter(order__in=revenue_orders)
            .values("product_id", "product_name")
            .annotate(total_sold=Sum("quantity"), total_revenue=Sum("line_total"))
            .order_by("-total_sold", "product_name")[:10]
        )

        average = revenue["average_order_value"]
        return {
            **summary,
            "total_revenue": revenue["total_revenue"] or _ZERO,
            "average_order_value": (
                Decimal(str(average)).quantize(Decimal("0.01"))
                if average is not None
                else _ZERO
            ),
            "daily_revenue": daily_revenue,
            "top_products": top_products,
        }
