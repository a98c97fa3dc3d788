"""Payment gateway contract."""

from __future__ import annotations

from abc import ABC, abstractmethod
from decimal import Decimal

from modules.payments.dtos import ChargeRequest, ChargeResult, RefundResult


def to_minor_units(amount: Decimal) -> int:
    """Dollars to cents for processors that take integer amounts."""
    return int((amount * 100).to_integral_value())


class PaymentGateway(ABC):
    """Adapter over one payment processor.

    ``charge`` and ``refund`` return a result for every answer the
    processor gives, declines included, and raise ``PaymentGatewayError``
    only when no answer was obtained (transport failure, timeout).
    """

    name: str = ""

    @abstractmethod
    def charge(self, request: ChargeRequest) -> ChargeResult: ...

    @abstractmethod
    def refund(
        self, transaction_id: str, amount: Decimal, reason: str = ""
    ) -> RefundResult: ...
