from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, Optional

import structlog
from celery import shared_task

from modules.analytics.models import AnalyticsEvent

logger = structlog.get_logger(__name__)


@shared_task(name="analytics.record_event")
def record_event(
    event_type: str,
    user_id: Optional[int] = None,
    order_id: Optional[str] = None,
    revenue: Optional[str] = None,
    data: Optional[Dict[str, Any]] = None,
) -> str:
    event = AnalyticsEvent.objects.create(
        type=event_type,
        user_id=user_id,
        order_id=order_id,
        revenue=Decimal(revenue) if revenue is not None else None,
        data=data or {},
    )
    logger.info("analytics.event_recorded", event_type=event_type, order_id=order_id)
    return str(event.id)
