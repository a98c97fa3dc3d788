"""Unit tests for the PayPal adapter with paypalrestsdk lookups patched."""

from decimal import Decimal
from unittest.mock import MagicMock, patch

import paypalrestsdk
import pytest
import requests

from modules.payments.dtos import ChargeRequest, PayPalPaymentMethod
from modules.payments.exceptions import PaymentGatewayError
from modules.payments.gateways import PayPalGateway

pytestmark = pytest.mark.unit


@pytest.fixture()
def gateway():
    return PayPalGateway(api=MagicMock())


@pytest.fixture()
def request_():
    return ChargeRequest(
        amount=Decimal("64.00"),
        currency="USD",
        method=PayPalPaymentMethod(payment_id="PAYID-123", payer_id="PAYER-9"),
        order_number="ORD-20261019-00000002",
    )


def _payment(executed=True, error=None):
    payment = MagicMock()
    payment.id = "PAYID-123"
    payment.state = "approved"
    payment.error = error
    payment.execute.return_value = executed
    resource = MagicMock()
    resource.sale.id = "SALE-77"
    payment.transactions = [MagicMock(related_resources=[resource])]
    return payment


class TestCharge:
    def test_executes_approved_payment(self, gateway, request_):
        payment = _payment()
        with patch.object(paypalrestsdk.Payment, "find", return_value=payment):
            result = gateway.charge(request_)

        assert result.success is True
        assert result.transaction_id == "SALE-77"
        payment.execute.assert_called_once_with({"payer_id": "PAYER-9"})

    def test_rejected_execution(self, gateway, request_):
        payment = _payment(
            executed=False,
            error={"name": "INSTRUMENT_DECLINED", "message": "Instrument declined"},
        )
        with patch.object(paypalrestsdk.Payment, "find", return_value=payment):
            result = gateway.charge(request_)

        assert result.success is False
        assert result.error == "Instrument declined"

    def test_unreachable(self, gateway, request_):
        with patch.object(
            paypalrestsdk.Payment,
            "find",
            side_effect=requests.ConnectionError("down"),
        ):
            with pytest.raises(PaymentGatewayError):
                gateway.charge(request_)


class TestRefund:
    def test_refund_sale(self, gateway):
        sale = MagicMock()
        sale.refund.return_value = MagicMock(id="REF-1", success=lambda: True)
        with patch.object(paypalrestsdk.Sale, "find", return_value=sale):
            result = gateway.refund("SALE-77", Decimal("64.00"), "Returned")

        assert result.success is True
        assert result.refund_id == "REF-1"
        body = sale.refund.call_args.args[0]
        assert body["amount"] == {"total": "64.00", "currency": "USD"}

    def test_refund_failure(self, gateway):
        sale = MagicMock()
        sale.refund.return_value = MagicMock(
            success=lambda: False, error={"message": "Refund window closed"}
        )
        with patch.object(paypalrestsdk.Sale, "find", return_value=sale):
            result = gateway.refund("SALE-77", Decimal("64.00"))

        assert result.success is False
        assert result.error == "Refund window closed"
