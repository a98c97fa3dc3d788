"""Framework errors are rendered by drf-standardized-errors."""

import pytest

pytestmark = pytest.mark.integration


def test_unauthenticated_error_shape(api_client):
    response = api_client.get("/api/v1/orders/")

    assert response.status_code == 401
    body = response.json()
    assert body["type"] == "client_error"
    assert body["errors"][0]["code"] == "not_authenticated"


def test_validation_error_shape(customer_client):
    response = customer_client.post(
        "/api/v1/orders/{}/cancel/".format("00000000-0000-0000-0000-000000000000"),
        {"reason": "x" * 501},
        format="json",
    )

    assert response.status_code == 400
    body = response.json()
    assert body["type"] == "validation_error"
    assert body["errors"][0]["attr"] == "reason"
