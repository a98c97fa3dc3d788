"""Stripe adapter: confirm a PaymentIntent for card payments."""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

import stripe
import structlog
from django.conf import settings

from modules.payments.dtos import ChargeRequest, ChargeResult, RefundResult
from modules.payments.exceptions import PaymentGatewayError
from modules.payments.gateways.base import PaymentGateway, to_minor_units

logger = structlog.get_logger(__name__)


class StripeGateway(PaymentGateway):
    name = "stripe"

    def __init__(self, client: Optional[stripe.StripeClient] = None) -> None:
        if client is None:
            client = stripe.StripeClient(
                settings.STRIPE_SECRET_KEY,
                http_client=stripe.RequestsClient(
                    timeout=settings.PAYMENT_GATEWAY_TIMEOUT
                ),
                max_network_retries=0,
            )
        self._client = client

    def charge(self, request: ChargeRequest) -> ChargeResult:
        log = logger.bind(order_number=request.order_number, gateway=self.name)
        params = {
            "amount": to_minor_units(request.amount),
            "currency": request.currency.lower(),
            "payment_method": request.method.payment_method_id,
            "confirm": True,
            "description": f"Order {request.order_number}",
            "metadata": {"order_number": request.order_number},
            "automatic_payment_methods": {
                "enabled": True,
                "allow_redirects": "never",
            },
        }
        if request.customer_email:
            params["receipt_email"] = request.customer_email

        try:
            intent = self._client.payment_intents.create(
                params=params,
                options={"idempotency_key": f"charge-{request.order_number}"},
            )
        except (stripe.CardError, stripe.InvalidRequestError) as exc:
            log.info("payment.stripe_declined", code=exc.code)
            return ChargeResult(
                success=False,
                error=exc.user_message or str(exc),
                details={"code": exc.code},
            )
        except stripe.StripeError as exc:
            log.error("payment.stripe_unreachable", error=str(exc))
            raise PaymentGatewayError(str(exc)) from exc

        if intent.status != "succeeded":
            log.info("payment.stripe_not_captured", status=intent.status)
            return ChargeResult(
                success=False,
                error=f"Payment was not completed (status: {intent.status})",
                details={"payment_intent": intent.id, "status": intent.status},
            )

        log.info("payment.stripe_succeeded", payment_intent=intent.id)
        return ChargeResult(
            success=True,
            transaction_id=intent.id,
            details={"payment_intent": intent.id, "status": intent.status},
        )

    def refund(
        self, transaction_id: str, amount: Decimal, reason: str = ""
    ) -> RefundResult:
        log = logger.bind(transaction_id=transaction_id, gateway=self.name)
        try:
            refund = self._client.refunds.create(
                params={
                    "payment_intent": transaction_id,
                    "amount": to_minor_units(amount),
                    "reason": "requested_by_customer",
                    "metadata": {"reason": reason[:500]},
                }
            )
        except stripe.InvalidRequestError as exc:
            log.warning("payment.stripe_refund_rejected", error=str(exc))
            return RefundResult(success=False, error=exc.user_message or str(exc))
        except stripe.StripeError as exc:
            log.error("payment.stripe_refund_unreachable", error=str(exc))
            raise PaymentGatewayError(str(exc)) from exc

        succeeded = refund.status in ("succeeded", "pending")
        log.info("payment.stripe_refund", status=refund.status)
        return RefundResult(
            success=succeeded,
            refund_id=refund.id,
            error=None if succeeded else f"Refund status: {refund.status}",
        )
