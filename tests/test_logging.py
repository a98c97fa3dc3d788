import logging
import uuid

import pytest

from config.settings import mask_sensitive_data


class TestCorrelationIdMiddleware:
    def test_returns_provided_request_id(self, client):
        response = client.get("/health", HTTP_X_REQUEST_ID="checkout-req-123")
        assert response["X-Request-ID"] == "checkout-req-123"

    def test_generates_uuid4_when_missing(self, client):
        request_id = client.get("/health")["X-Request-ID"]
        assert str(uuid.UUID(request_id, version=4)) == request_id

    def test_correlation_id_reaches_log_records(self, client, caplog):
        custom_id = "log-correlation-789"
        with caplog.at_level(logging.INFO):
            client.get("/health", HTTP_X_REQUEST_ID=custom_id)
        assert any(custom_id in record.getMessage() for record in caplog.records)

    def test_request_duration_is_logged(self, client, caplog):
        with caplog.at_level(logging.INFO):
            client.get("/health")
        assert any("duration_ms" in record.getMessage() for record in caplog.records)


class TestSensitiveDataMasking:
    @pytest.mark.parametrize(
        "value",
        ["4242 4242 4242 4242", "4242424242424242", "card=5555555555554444"],
    )
    def test_card_numbers_masked(self, value):
        result = mask_sensitive_data(None, None, {"event": "test", "data": value})
        assert "4242" not in result["data"] and "5555" not in result["data"]
        assert "***MASKED***" in result["data"]

    def test_password_masked(self):
        result = mask_sensitive_data(
            None, None, {"event": "test", "data": "password='s3cret123'"}
        )
        assert "s3cret123" not in result["data"]

    def test_client_secret_masked(self):
        result = mask_sensitive_data(
            None, None, {"event": "test", "data": "client_secret: EBWKjlELKMYqRNQ6"}
        )
        assert "EBWKjlELKMYqRNQ6" not in result["data"]
        assert "***MASKED***" in result["data"]

    def test_authorization_header_masked(self):
        result = mask_sensitive_data(
            None, None, {"event": "test", "header": "authorization=Bearer.abc.def"}
        )
        assert "Bearer.abc.def" not in result["header"]

    def test_order_number_is_not_masked(self):
        event = {"event": "order.created", "order_number": "ORD-20261019-00000042"}
        result = mask_sensitive_data(None, None, event)
        assert result["order_number"] == "ORD-20261019-00000042"
        assert result["event"] == "order.created"

    def test_non_string_values_untouched(self):
        result = mask_sensitive_data(None, None, {"event": "x", "quantity": 4242})
        assert result["quantity"] == 4242
