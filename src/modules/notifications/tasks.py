"""Celery tasks delivering order notifications.

Each task reloads the order by id (payloads stay JSON-serialisable),
sends the email and stores an in-app ``Notification`` record.  SMTP
failures are retried with backoff; an order that disappeared is logged
and skipped.
"""

from __future__ import annotations

from smtplib import SMTPException

import structlog
from celery import shared_task
from django.conf import settings
from django.core.mail import send_mail
from django.template.loader import render_to_string

from modules.notifications.constants import NotificationEvent, RecipientType
from modules.notifications.models import Notification

logger = structlog.get_logger(__name__)

_RETRY = {
    "autoretry_for": (SMTPException, ConnectionError),
    "retry_backoff": True,
    "max_retries": 3,
}


def _load_order(order_id: str):
    from modules.orders.models import Order

    return (
        Order.objects.select_related("customer")
        .prefetch_related("items__product")
        .filter(id=order_id)
        .first()
    )


def _send(template: str, subject: str, recipients, context) -> None:
    recipients = [r for r in recipients if r]
    if not recipients:
        return
    body = render_to_string(f"notifications/{template}.txt", context)
    send_mail(subject, body, settings.DEFAULT_FROM_EMAIL, recipients)


@shared_task(name="notifications.send_order_confirmation", **_RETRY)
def send_order_confirmation(order_id: str) -> None:
    order = _load_order(order_id)
    if order is None:
        logger.warning("notification.order_missing", order_id=order_id)
        return
    _send(
        "order_confirmation",
        f"Order Confirmation - {order.order_number}",
        [order.customer.email],
        {"order": order, "storefront_url": settings.STOREFRONT_URL},
    )
    Notification.objects.create(
        type=NotificationEvent.ORDER_CONFIRMATION,
        title="Order Confirmed",
        message=f"Your order {order.order_number} has been placed",
        recipient=order.customer,
        recipient_type=RecipientType.CUSTOMER,
        action_url=f"/orders/{order.id}",
        data={"order_id": str(order.id), "order_number": order.order_number},
    )
    logger.info("notification.order_confirmation_sent", order_id=order_id)


@shared_task(name="notifications.notify_admins_new_order", **_RETRY)
def notify_admins_new_order(order_id: str) -> None:
    order = _load_order(order_id)
    if order is None:
        logger.warning("notification.order_missing", order_id=order_id)
        return
    customer_name = order.customer.get_full_name() or order.customer.get_username()
    Notification.objects.create(
        type=NotificationEvent.NEW_ORDER,
        title="New Order Received",
        message=f"Order {order.order_number} for ${order.total:.2f} has been placed",
        recipient_type=RecipientType.ALL_ADMINS,
        action_url=f"/admin/orders/{order.id}",
        data={
            "order_id": str(order.id),
            "order_number": order.order_number,
            "customer_name": customer_name,
            "total": str(order.total),
        },
    )
    _send(
        "new_order_admin",
        f"New order {order.order_number}",
        settings.ORDER_ADMIN_EMAILS,
        {"order": order, "customer_name": customer_name},
    )
    logger.info("notification.admin_new_order_sent", order_id=order_id)


@shared_task(name="notifications.send_order_cancellation", **_RETRY)
def send_order_cancellation(order_id: str, reason: str = "") -> None:
    order = _load_order(order_id)
    if order is None:
        logger.warning("notification.order_missing", order_id=order_id)
        return
    _send(
        "order_cancelled",
        f"Order Cancelled - {order.order_number}",
        [order.customer.email],
        {"order": order, "reason": reason},
    )
    Notification.objects.create(
        type=NotificationEvent.ORDER_CANCELLED,
        title="Order Cancelled",
        message=f"Order {order.order_number} has been cancelled",
        recipient_type=RecipientType.ALL_ADMINS,
        action_url=f"/admin/orders/{order.id}",
        data={
            "order_id": str(order.id),
            "order_number": order.order_number,
            "reason": reason,
        },
    )
    logger.info("notification.order_cancellation_sent", order_id=order_id)


@shared_task(name="notifications.send_order_status_update", **_RETRY)
def send_order_status_update(order_id: str, old_status: str = "") -> None:
    order = _load_order(order_id)
    if order is None:
        logger.warning("notification.order_missing", order_id=order_id)
        return
    _send(
        "order_status_update",
        f"Order {order.order_number} is now {order.get_status_display()}",
        [order.customer.email],
        {"order": order, "old_status": old_status},
    )
    Notification.objects.create(
        type=NotificationEvent.ORDER_STATUS_UPDATED,
        title="Order Status Updated",
        message=(
            f"Your order {order.order_number} status has been updated "
            f"to {order.status}"
        ),
        recipient=order.customer,
        recipient_type=RecipientType.CUSTOMER,
        action_url=f"/orders/{order.id}",
        data={
            "order_id": str(order.id),
            "order_number": order.order_number,
            "new_status": order.status,
            "old_status": old_status,
        },
    )
    logger.info("notification.order_status_update_sent", order_id=order_id)
