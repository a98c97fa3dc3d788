"""Diagnostic Celery task for the core module."""

import structlog
from celery import shared_task

logger = structlog.get_logger(__name__)


@shared_task(name="core.ping")
def ping():
    """Round-trip check that a worker is consuming the storefront queues."""
    logger.info("core.ping.executed", status="ok")
    return {"status": "ok", "message": "pong"}
