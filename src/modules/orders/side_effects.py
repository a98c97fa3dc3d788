"""Post-payment side effects.

Runs after an order has been recorded as paid.  Each step is attempted
independently: a failure is logged as ``order.side_effect_failed`` and
the next step still runs.  The paid order is never rolled back.

Steps run in a fixed order so stock and coupon bookkeeping are durable
before the best-effort notifications go out.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, List, Tuple

import structlog

from modules.analytics.models import AnalyticsEventType
from modules.notifications.constants import NotificationEvent

if TYPE_CHECKING:
    from modules.analytics.recorder import IAnalyticsRecorder
    from modules.carts.repositories.interfaces import ICartRepository
    from modules.catalog.repositories.interfaces import IProductRepository
    from modules.coupons.repositories.interfaces import ICouponRepository
    from modules.notifications.dispatcher import INotificationDispatcher
    from modules.orders.dtos import OrderDraft
    from modules.orders.models import Order

logger = structlog.get_logger(__name__)


class PostPaymentSequence:
    def __init__(
        self,
        product_repository: IProductRepository,
        coupon_repository: ICouponRepository,
        cart_repository: ICartRepository,
        notifier: INotificationDispatcher,
        analytics: IAnalyticsRecorder,
    ) -> None:
        self._product_repo = product_repository
        self._coupon_repo = coupon_repository
        self._cart_repo = cart_repository
        self._notifier = notifier
        self._analytics = analytics

    def steps(self) -> List[Tuple[str, Callable[[Order, OrderDraft], None]]]:
        return [
            ("commit_sale", self.commit_sale),
            ("record_coupon_usage", self.record_coupon_usage),
            ("deactivate_cart", self.deactivate_cart),
            ("notify_customer", self.notify_customer),
            ("notify_admins", self.notify_admins),
            ("record_purchase", self.record_purchase),
        ]

    def run(self, order: Order, draft: OrderDraft) -> List[str]:
        """Run every step; returns the names of the steps that failed."""
        log = logger.bind(order_id=str(order.id), order_number=order.order_number)
        failed = []
        for name, step in self.steps():
            try:
                step(order, draft)
            except Exception:
                log.exception("order.side_effect_failed", step=name)
                failed.append(name)
        log.info("order.side_effects_completed", failed_steps=failed)
        return failed

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def commit_sale(self, order: Order, draft: OrderDraft) -> None:
        for item in order.items.all():
            if item.sale_committed:
                continue
            self._product_repo.commit_sale(item.product_id, item.quantity)
            item.sale_committed = True
            item.save(update_fields=["sale_committed"])

    def record_coupon_usage(self, order: Order, draft: OrderDraft) -> None:
        if draft.coupon_code:
            self._coupon_repo.record_usage(
                draft.coupon_code, order.customer_id, order.id
            )

    def deactivate_cart(self, order: Order, draft: OrderDraft) -> None:
        self._cart_repo.deactivate_active(order.customer_id)

    def notify_customer(self, order: Order, draft: OrderDraft) -> None:
        self._notifier.notify(
            NotificationEvent.ORDER_CONFIRMATION, {"order_id": str(order.id)}
        )

    def notify_admins(self, order: Order, draft: OrderDraft) -> None:
        self._notifier.notify(NotificationEvent.NEW_ORDER, {"order_id": str(order.id)})

    def record_purchase(self, order: Order, draft: OrderDraft) -> None:
        self._analytics.record(
            AnalyticsEventType.PURCHASE,
            {
                "user_id": order.customer_id,
                "order_id": str(order.id),
                "revenue": str(order.total),
                "data": {
                    "order_number": order.order_number,
                    "item_count": sum(line.quantity for line in draft.lines),
                    "coupon_code": draft.coupon_code,
                },
            },
        )
