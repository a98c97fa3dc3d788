"""Notification dispatcher.

``notify`` hands the event to a Celery task and returns immediately.
Submission problems (broker down, serialisation) are logged and dropped:
a notification must never fail the order flow that produced it.
"""

from __future__ import annotations

from typing import Any, Dict, Protocol

import structlog

from modules.notifications import tasks
from modules.notifications.constants import NotificationEvent

logger = structlog.get_logger(__name__)


class INotificationDispatcher(Protocol):
    def notify(self, event: str, payload: Dict[str, Any]) -> None: ...


_TASKS = {
    NotificationEvent.ORDER_CONFIRMATION: tasks.send_order_confirmation,
    NotificationEvent.NEW_ORDER: tasks.notify_admins_new_order,
    NotificationEvent.ORDER_CANCELLED: tasks.send_order_cancellation,
    NotificationEvent.ORDER_STATUS_UPDATED: tasks.send_order_status_update,
}


class CeleryNotificationDispatcher:
    def notify(self, event: str, payload: Dict[str, Any]) -> None:
        task = _TASKS.get(event)
        if task is None:
            logger.warning("notification.unknown_event", event_name=event)
            return
        try:
            task.delay(**payload)
        except Exception:
            logger.exception("notification.dispatch_failed", event_name=event)
            return
        logger.info("notification.dispatched", event_name=event)
