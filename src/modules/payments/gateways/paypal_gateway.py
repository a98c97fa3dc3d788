"""PayPal adapter: execute a payment the buyer already approved."""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

import paypalrestsdk
import requests
import structlog
from django.conf import settings
from paypalrestsdk.exceptions import ConnectionError as PayPalConnectionError
from paypalrestsdk.exceptions import ResourceNotFound

from modules.payments.dtos import ChargeRequest, ChargeResult, RefundResult
from modules.payments.exceptions import PaymentGatewayError
from modules.payments.gateways.base import PaymentGateway

logger = structlog.get_logger(__name__)


def _sale_id(payment) -> Optional[str]:
    for transaction in payment.transactions or []:
        for resource in transaction.related_resources or []:
            sale = getattr(resource, "sale", None)
            if sale is not None:
                return sale.id
    return None


class PayPalGateway(PaymentGateway):
    name = "paypal"

    def __init__(self, api: Optional[paypalrestsdk.Api] = None) -> None:
        if api is None:
            api = paypalrestsdk.Api(
                {
                    "mode": settings.PAYPAL_MODE,
                    "client_id": settings.PAYPAL_CLIENT_ID,
                    "client_secret": settings.PAYPAL_CLIENT_SECRET,
                    "http_options": {"timeout": settings.PAYMENT_GATEWAY_TIMEOUT},
                }
            )
        self._api = api

    def charge(self, request: ChargeRequest) -> ChargeResult:
        log = logger.bind(order_number=request.order_number, gateway=self.name)
        method = request.method
        try:
            payment = paypalrestsdk.Payment.find(method.payment_id, api=self._api)
            executed = payment.execute({"payer_id": method.payer_id})
        except ResourceNotFound:
            log.info("payment.paypal_unknown_payment", payment_id=method.payment_id)
            return ChargeResult(success=False, error="PayPal payment not found")
        except (PayPalConnectionError, requests.RequestException) as exc:
            log.error("payment.paypal_unreachable", error=str(exc))
            raise PaymentGatewayError(str(exc)) from exc

        if not executed:
            error = payment.error or {}
            log.info("payment.paypal_declined", error=error.get("name"))
            return ChargeResult(
                success=False,
                error=error.get("message", "PayPal payment was not approved"),
                details={"name": error.get("name")},
            )

        sale_id = _sale_id(payment)
        log.info("payment.paypal_succeeded", payment_id=payment.id, sale_id=sale_id)
        return ChargeResult(
            success=True,
            transaction_id=sale_id or payment.id,
            details={"payment_id": payment.id, "state": payment.state},
        )

    def refund(
        self, transaction_id: str, amount: Decimal, reason: str = ""
    ) -> RefundResult:
        log = logger.bind(transaction_id=transaction_id, gateway=self.name)
        try:
            sale = paypalrestsdk.Sale.find(transaction_id, api=self._api)
            refund = sale.refund(
                {
                    "amount": {
                        "total": f"{amount:.2f}",
                        "currency": settings.ORDER_CURRENCY,
                    },
                    "description": reason[:255],
                }
            )
        except ResourceNotFound:
            log.warning("payment.paypal_refund_unknown_sale")
            return RefundResult(success=False, error="PayPal sale not found")
        except (PayPalConnectionError, requests.RequestException) as exc:
            log.error("payment.paypal_refund_unreachable", error=str(exc))
            raise PaymentGatewayError(str(exc)) from exc

        if refund.success():
            log.info("payment.paypal_refunded", refund_id=refund.id)
            return RefundResult(success=True, refund_id=refund.id)
        error = refund.error or {}
        log.warning("payment.paypal_refund_failed", error=error.get("name"))
        return RefundResult(success=False, error=error.get("message", "Refund failed"))
