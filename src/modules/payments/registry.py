"""Resolve the gateway adapter for a payment method type."""

from __future__ import annotations

from typing import Callable, Dict

from modules.payments.constants import PaymentMethodType
from modules.payments.exceptions import UnsupportedPaymentMethod
from modules.payments.gateways import PaymentGateway, PayPalGateway, StripeGateway

GatewayResolver = Callable[[str], PaymentGateway]

_FACTORIES: Dict[str, Callable[[], PaymentGateway]] = {
    PaymentMethodType.CARD: StripeGateway,
    PaymentMethodType.PAYPAL: PayPalGateway,
}


def get_gateway(method_type: str) -> PaymentGateway:
    try:
        factory = _FACTORIES[method_type]
    except KeyError:
        raise UnsupportedPaymentMethod(method_type) from None
    return factory()
