"""Payment exceptions.

``PaymentFailed`` is a definitive answer from the processor (declined
card, rejected PayPal execution).  ``PaymentGatewayError`` means the
processor could not be reached or did not answer in time; checkout treats
both as "not paid".
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class PaymentFailed(Exception):
    def __init__(self, detail: str, details: Optional[Dict[str, Any]] = None) -> None:
        self.detail = detail
        self.details = details or {}
        super().__init__(detail)


class PaymentGatewayError(Exception):
    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(detail)


class UnsupportedPaymentMethod(Exception):
    """No gateway is registered for the payment method type."""
