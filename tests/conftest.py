from datetime import timedelta
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework.test import APIClient

from modules.catalog.models import Product
from modules.coupons.constants import CouponType
from modules.coupons.models import Coupon
from modules.payments.dtos import ChargeResult, RefundResult
from modules.payments.gateways.base import PaymentGateway

User = get_user_model()


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def api_client_with_correlation(api_client):
    """APIClient pre-configured with a known correlation ID header."""
    cid = "test-correlation-id-fixture"
    api_client.defaults["HTTP_X_REQUEST_ID"] = cid
    return api_client, cid


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


@pytest.fixture()
def customer():
    return User.objects.create_user(
        username="jane",
        email="jane@example.com",
        password="testpass123",
        first_name="Jane",
        last_name="Doe",
    )


@pytest.fixture()
def other_customer():
    return User.objects.create_user(
        username="john", email="john@example.com", password="testpass123"
    )


@pytest.fixture()
def admin_user():
    return User.objects.create_user(
        username="admin",
        email="admin@example.com",
        password="testpass123",
        is_staff=True,
    )


@pytest.fixture()
def customer_client(customer):
    client = APIClient()
    client.force_authenticate(user=customer)
    return client


@pytest.fixture()
def admin_client(admin_user):
    client = APIClient()
    client.force_authenticate(user=admin_user)
    return client


# ---------------------------------------------------------------------------
# Catalog and coupons
# ---------------------------------------------------------------------------


@pytest.fixture()
def make_product():
    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        values = {
            "sku": f"RING-{counter['n']:03d}",
            "name": f"Solitaire Ring {counter['n']}",
            "price": Decimal("50.00"),
            "inventory_quantity": 10,
        }
        values.update(overrides)
        return Product.objects.create(**values)

    return _make


@pytest.fixture()
def make_coupon():
    def _make(**overrides):
        now = timezone.now()
        values = {
            "code": "SAVE10",
            "name": "Ten percent off",
            "discount_type": CouponType.PERCENTAGE,
            "value": Decimal("10"),
            "start_date": now - timedelta(days=1),
            "end_date": now + timedelta(days=30),
        }
        values.update(overrides)
        return Coupon.objects.create(**values)

    return _make


@pytest.fixture()
def address():
    return {
        "first_name": "Jane",
        "last_name": "Doe",
        "address1": "1 Main Street",
        "city": "New York",
        "state": "NY",
        "postal_code": "10001",
        "country": "US",
    }


# ---------------------------------------------------------------------------
# Payment gateway doubles
# ---------------------------------------------------------------------------


@pytest.fixture()
def gateway():
    """Gateway double that approves charges and refunds."""
    fake = MagicMock(spec=PaymentGateway)
    fake.charge.return_value = ChargeResult(
        success=True, transaction_id="pi_test_123", details={"status": "succeeded"}
    )
    fake.refund.return_value = RefundResult(success=True, refund_id="re_test_123")
    return fake
