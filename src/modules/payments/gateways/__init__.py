"""Payment gateway adapters."""

from modules.payments.gateways.base import PaymentGateway
from modules.payments.gateways.paypal_gateway import PayPalGateway
from modules.payments.gateways.stripe_gateway import StripeGateway

__all__ = ["PaymentGateway", "PayPalGateway", "StripeGateway"]
