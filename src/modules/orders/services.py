"""Order service layer (Use Cases).

Orchestrates checkout, cancellation and administrative status changes.
The service defines the unit-of-work boundaries: database work runs in
short ``transaction.atomic`` blocks, the payment call runs outside them.

Checkout sequence:
1. Price the request (read-only; failures leave no trace).
2. Atomically reserve stock with conditional decrements and persist the
   ``pending`` order.  Losing a stock race rolls both back.
3. Charge the gateway.
4. Paid: record the transaction and run the post-payment side effects.
   Not paid (declined, unreachable, timed out): release the reservation
   and cancel with payment status ``failed``.
"""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional

import structlog
from django.conf import settings
from django.db import transaction
from django.utils import timezone

from modules.analytics.models import AnalyticsEventType
from modules.catalog.exceptions import InsufficientStock
from modules.notifications.constants import NotificationEvent
from modules.orders.constants import (
    DEFAULT_STATISTICS_PERIOD,
    STATISTICS_PERIODS,
    OrderStatus,
)
from modules.orders.dtos import OrderPlacementResult
from modules.orders.exceptions import InvalidStateTransition, OrderNotFound
from modules.orders.side_effects import PostPaymentSequence
from modules.payments.constants import PaymentStatus
from modules.payments.dtos import ChargeRequest
from modules.payments.exceptions import PaymentFailed, PaymentGatewayError

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from modules.analytics.recorder import IAnalyticsRecorder
    from modules.carts.repositories.interfaces import ICartRepository
    from modules.catalog.repositories.interfaces import IProductRepository
    from modules.coupons.repositories.interfaces import ICouponRepository
    from modules.notifications.dispatcher import INotificationDispatcher
    from modules.orders.dtos import CreateOrderDTO, OrderDraft
    from modules.orders.models import Order
    from modules.orders.pricing import PricingCalculator
    from modules.orders.repositories.interfaces import IOrderRepository
    from modules.payments.gateways.base import PaymentGateway
    from modules.payments.registry import GatewayResolver

logger = structlog.get_logger(__name__)

PAYMENT_UNAVAILABLE = "Payment processor unavailable. Please try again."


class OrderService:
    """Application service for Order use-cases.

    Receives repositories and collaborators via constructor injection (DIP).
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        product_repository: IProductRepository,
        coupon_repository: ICouponRepository,
        cart_repository: ICartRepository,
        pricing: PricingCalculator,
        gateway_resolver: GatewayResolver,
        notifier: INotificationDispatcher,
        analytics: IAnalyticsRecorder,
    ) -> None:
        self._order_repo = order_repository
        self._product_repo = product_repository
        self._pricing = pricing
        self._resolve_gateway = gateway_resolver
        self._notifier = notifier
        self._analytics = analytics
        self._side_effects = PostPaymentSequence(
            product_repository=product_repository,
            coupon_repository=coupon_repository,
            cart_repository=cart_repository,
            notifier=notifier,
            analytics=analytics,
        )

    # ------------------------------------------------------------------
    # Checkout
    # ------------------------------------------------------------------

    def create_order(self, dto: CreateOrderDTO, customer) -> OrderPlacementResult:
        """Price, persist and charge an order.

        Returns a result with ``success=False`` when the payment was not
        taken; the order then exists as ``cancelled``/``failed``.

        Raises:
            ProductNotFound, ProductInactive, InsufficientStock,
            CouponNotFound, CouponExpired, CouponUsageExceeded,
            CouponMinimumNotMet: before anything is persisted.
            UnsupportedPaymentMethod: no gateway for the method type.
        """
        log = logger.bind(customer_id=str(customer.pk))
        log.info("order.creation_started")

        gateway = self._resolve_gateway(dto.payment_method.type)
        draft = self._pricing.price(
            dto.items,
            customer.pk,
            coupon_code=dto.coupon_code,
            shipping_method=dto.shipping_method,
        )
        order = self._reserve_and_persist(dto, draft, customer)
        log = log.bind(order_id=str(order.id), order_number=order.order_number)
        log.info("order.created", total=str(order.total))

        billing = dto.billing_address or dto.shipping_address
        request = ChargeRequest(
            amount=order.total,
            currency=order.currency,
            method=dto.payment_method,
            order_number=order.order_number,
            customer_email=customer.email,
            billing_address=billing.model_dump(),
        )
        try:
            result = gateway.charge(request)
            if not result.success:
                raise PaymentFailed(result.error or "Payment declined", result.details)
        except PaymentFailed as exc:
            log.warning("order.payment_failed", error=exc.detail)
            return self._fail_payment(order, exc.detail, exc.details)
        except PaymentGatewayError as exc:
            log.error("order.payment_gateway_error", error=exc.detail)
            return self._fail_payment(
                order, PAYMENT_UNAVAILABLE, {"gateway_error": exc.detail}
            )
        except Exception:
            # an order whose payment outcome is unknown is treated as unpaid
            log.exception("order.payment_gateway_crashed")
            return self._fail_payment(order, PAYMENT_UNAVAILABLE, {})

        order = self._order_repo.transition(
            order,
            OrderStatus.PAID,
            history_notes="Payment captured",
            payment_status=PaymentStatus.PAID,
            transaction_id=result.transaction_id or "",
            payment_details=result.details,
            paid_at=timezone.now(),
        )
        log.info("order.paid", transaction_id=order.transaction_id)

        self._side_effects.run(order, draft)
        return self._result(order, success=True)

    @transaction.atomic
    def _reserve_and_persist(
        self, dto: CreateOrderDTO, draft: OrderDraft, customer
    ) -> Order:
        # sorted by product id so concurrent checkouts lock rows in one order
        for line in sorted(draft.lines, key=lambda line: str(line.product_id)):
            if not line.track_quantity:
                continue
            reserved = self._product_repo.decrement_inventory(
                line.product_id, line.quantity
            )
            if not reserved:
                raise InsufficientStock(
                    line.product_id,
                    requested=line.quantity,
                    available=self._product_repo.available_quantity(line.product_id),
                    name=line.name,
                )

        billing = dto.billing_address or dto.shipping_address
        return self._order_repo.create_pending(
            draft,
            customer=customer,
            shipping_address=dto.shipping_address.model_dump(),
            billing_address=billing.model_dump(),
            payment_method=dto.payment_method.model_dump(),
            notes=dto.notes,
        )

    @transaction.atomic
    def _fail_payment(
        self, order: Order, error: str, details: Dict[str, Any]
    ) -> OrderPlacementResult:
        self._restore_inventory(order)
        self._order_repo.transition(
            order,
            OrderStatus.CANCELLED,
            history_notes=f"Payment failed: {error}",
            payment_status=PaymentStatus.FAILED,
            payment_details={"error": error, **details},
            cancellation_reason=f"Payment failed: {error}",
        )
        return self._result(order, success=False, error=error)

    # ------------------------------------------------------------------
    # Cancellation
    # ------------------------------------------------------------------

    def cancel_order(self, order_id, reason: str = "", user=None) -> Order:
        """Cancel an order, put its stock back and refund a paid charge.

        The order row stays locked while the refund is attempted so two
        concurrent cancellations cannot both refund.  A failed refund is
        logged and the order is cancelled anyway with payment status
        ``paid`` left for operators to settle.

        Raises:
            OrderNotFound: order does not exist or belongs to someone else.
            InvalidStateTransition: status is not cancellable.
        """
        with transaction.atomic():
            order = self._locked_order(order_id, user)
            log = logger.bind(
                order_id=str(order.id),
                order_number=order.order_number,
                current_status=order.status,
            )

            cancellable = set(settings.ORDER_CANCELLABLE_STATUSES)
            if order.status not in cancellable or not order.can_transition_to(
                OrderStatus.CANCELLED
            ):
                log.warning("order.cancel_not_allowed")
                raise InvalidStateTransition(order.status, OrderStatus.CANCELLED)

            self._restore_inventory(order)

            payment_status = order.payment_status
            if order.payment_status == PaymentStatus.PAID and self._refund(
                order, reason
            ):
                payment_status = PaymentStatus.REFUNDED

            order = self._order_repo.transition(
                order,
                OrderStatus.CANCELLED,
                user=user,
                history_notes=reason or "Order cancelled",
                payment_status=payment_status,
                cancellation_reason=reason,
            )
            log.info("order.cancelled", payment_status=payment_status)

        self._notifier.notify(
            NotificationEvent.ORDER_CANCELLED,
            {"order_id": str(order.id), "reason": reason},
        )
        self._analytics.record(
            AnalyticsEventType.ORDER_CANCELLED,
            {
                "user_id": order.customer_id,
                "order_id": str(order.id),
                "data": {"order_number": order.order_number, "reason": reason},
            },
        )
        return order

    # ------------------------------------------------------------------
    # Administrative status changes
    # ------------------------------------------------------------------

    def update_status(
        self,
        order_id,
        new_status: str,
        tracking_number: Optional[str] = None,
        notes: str = "",
        user=None,
    ) -> Order:
        """Transition an order to ``new_status`` (admin).

        ``cancelled`` goes through ``cancel_order`` so stock is restored.
        ``refunded`` refunds a paid charge first.

        Raises:
            OrderNotFound: order does not exist.
            InvalidStateTransition: transition is not allowed; the order is
                left unchanged.
        """
        if new_status == OrderStatus.CANCELLED:
            order = self.cancel_order(
                order_id, reason=notes or "Cancelled by administrator", user=user
            )
            if tracking_number:
                order.tracking_number = tracking_number
                self._order_repo.save(order)
            return order

        with transaction.atomic():
            order = self._locked_order(order_id)
            old_status = order.status
            log = logger.bind(
                order_id=str(order.id),
                current_status=old_status,
                new_status=new_status,
            )

            if new_status not in OrderStatus.values or not order.can_transition_to(
                new_status
            ):
                log.warning("order.invalid_transition")
                raise InvalidStateTransition(order.status, new_status)

            fields: Dict[str, Any] = {}
            if tracking_number:
                fields["tracking_number"] = tracking_number
            if notes:
                fields["notes"] = f"{order.notes}\n{notes}" if order.notes else notes
            if (
                new_status == OrderStatus.REFUNDED
                and order.payment_status == PaymentStatus.PAID
                and self._refund(order, notes or "Refunded by administrator")
            ):
                fields["payment_status"] = PaymentStatus.REFUNDED

            order = self._order_repo.transition(
                order, new_status, user=user, history_notes=notes, **fields
            )
            log.info("order.status_updated")

        self._notifier.notify(
            NotificationEvent.ORDER_STATUS_UPDATED,
            {"order_id": str(order.id), "old_status": old_status},
        )
        return order

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_order(self, order_id, customer=None) -> Order:
        """Retrieve a single order; customers only see their own.

        Raises:
            OrderNotFound: if the order does not exist or is not visible.
        """
        order = self._order_repo.get_by_id(str(order_id))
        if order is None or not self._visible_to(order, customer):
            raise OrderNotFound(order_id)
        return order

    def list_orders(self, filters: Optional[Dict[str, Any]] = None) -> QuerySet:
        return self._order_repo.list(filters)

    def get_statistics(self, period: str = DEFAULT_STATISTICS_PERIOD) -> Dict[str, Any]:
        if period not in STATISTICS_PERIODS:
            period = DEFAULT_STATISTICS_PERIOD
        since = timezone.now() - timedelta(days=STATISTICS_PERIODS[period])
        return {"period": period, **self._order_repo.statistics(since)}

    def export_rows(self, orders: Iterable[Order]) -> List[Dict[str, str]]:
        """One flat row per order, keyed by ``EXPORT_COLUMNS``."""
        rows = []
        for order in orders:
            address = order.shipping_address or {}
            rows.append(
                {
                    "order_number": order.order_number,
                    "customer_name": order.customer.get_full_name(),
                    "customer_email": order.customer.email,
                    "status": order.status,
                    "payment_status": order.payment_status,
                    "total": str(order.total),
                    "items": "; ".join(
                        f"{item.product_name} (x{item.quantity})"
                        for item in order.items.all()
                    ),
                    "created_at": order.created_at.isoformat(),
                    "shipping_address": ", ".join(
                        part
                        for part in (
                            address.get("address1"),
                            address.get("city"),
                            address.get("state"),
                            address.get("postal_code"),
                        )
                        if part
                    ),
                }
            )
        logger.info("order.exported", rows=len(rows))
        return rows

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _visible_to(order: Order, user) -> bool:
        if user is None or user.is_staff:
            return True
        return order.customer_id == user.pk

    def _locked_order(self, order_id, user=None) -> Order:
        order = self._order_repo.get_for_update(str(order_id))
        if order is None or not self._visible_to(order, user):
            raise OrderNotFound(order_id)
        return order

    def _restore_inventory(self, order: Order) -> None:
        items = sorted(order.items.all(), key=lambda item: str(item.product_id))
        for item in items:
            self._product_repo.restore_inventory(
                item.product_id,
                item.quantity,
                release_sale=item.sale_committed,
                restock=item.inventory_reserved,
            )

    def _refund(self, order: Order, reason: str) -> bool:
        log = logger.bind(order_id=str(order.id), transaction_id=order.transaction_id)
        try:
            gateway: PaymentGateway = self._resolve_gateway(
                order.payment_method.get("type")
            )
            result = gateway.refund(order.transaction_id, order.total, reason)
        except PaymentGatewayError as exc:
            log.error("order.refund_failed", error=exc.detail)
            return False
        except Exception:
            log.exception("order.refund_crashed")
            return False
        if not result.success:
            log.error("order.refund_failed", error=result.error)
            return False
        log.info("order.refunded", refund_id=result.refund_id)
        return True

    @staticmethod
    def _result(
        order: Order, success: bool, error: Optional[str] = None
    ) -> OrderPlacementResult:
        return OrderPlacementResult(
            order_id=order.id,
            order_number=order.order_number,
            total=order.total,
            status=order.status,
            payment_status=order.payment_status,
            success=success,
            error=error,
        )
