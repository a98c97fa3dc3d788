import pytest

from modules.payments.exceptions import UnsupportedPaymentMethod
from modules.payments.gateways import PayPalGateway, StripeGateway
from modules.payments.registry import get_gateway

pytestmark = pytest.mark.unit


@pytest.fixture(autouse=True)
def _credentials(settings):
    settings.STRIPE_SECRET_KEY = "sk_test_123"
    settings.PAYPAL_CLIENT_ID = "client"
    settings.PAYPAL_CLIENT_SECRET = "secret"


@pytest.mark.parametrize(
    ("method_type", "expected"),
    [("card", StripeGateway), ("paypal", PayPalGateway)],
)
def test_resolves_gateway_by_method_type(method_type, expected):
    assert isinstance(get_gateway(method_type), expected)


def test_unknown_method_type():
    with pytest.raises(UnsupportedPaymentMethod):
        get_gateway("bitcoin")
