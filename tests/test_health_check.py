from unittest.mock import patch


class TestHealthCheck:
    def test_health_check_returns_200(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert "timestamp" in data

    def test_health_check_reports_database_and_cache(self, client):
        data = client.get("/health").json()
        assert data["services"]["database"]["status"] == "up"
        assert data["services"]["cache"]["status"] == "up"
        assert "response_time_ms" in data["services"]["cache"]

    def test_health_check_is_public(self, api_client):
        response = api_client.get("/health")
        assert response.status_code == 200

    def test_cache_outage_returns_503(self, client):
        with patch(
            "modules.core.views._check_cache",
            side_effect=ConnectionError("redis down"),
        ):
            response = client.get("/health")
        assert response.status_code == 503
        data = response.json()
        assert data["status"] == "unhealthy"
        assert data["services"]["cache"]["status"] == "down"
        assert data["services"]["database"]["status"] == "up"
