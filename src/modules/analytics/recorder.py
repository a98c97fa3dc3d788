"""Analytics recorder: fire-and-forget submission of analytics events."""

from __future__ import annotations

from typing import Any, Dict, Protocol

import structlog

from modules.analytics.tasks import record_event

logger = structlog.get_logger(__name__)


class IAnalyticsRecorder(Protocol):
    def record(self, event: str, payload: Dict[str, Any]) -> None: ...


class CeleryAnalyticsRecorder:
    def record(self, event: str, payload: Dict[str, Any]) -> None:
        try:
            record_event.delay(event, **payload)
        except Exception:
            logger.exception("analytics.record_failed", event_name=event)
