"""
Tests for the health endpoint and app-wide middleware behavior.
"""

from shared.config.settings import settings


class TestHealth:
    def test_health_ok(self, client):
        response = client.get("/api/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "database": "ok", "environment": settings.environment}

    def test_health_needs_no_token(self, client):
        assert client.get("/api/health").status_code == 200


class TestMiddlewares:
    def test_security_headers(self, client):
        response = client.get("/api/health")

        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"
        assert "Strict-Transport-Security" not in response.headers

    def test_request_id_is_echoed(self, client):
        response = client.get("/api/health", headers={"X-Request-ID": "req-123"})
        assert response.headers["X-Request-ID"] == "req-123"

    def test_request_id_is_generated(self, client):
        assert client.get("/api/health").headers["X-Request-ID"]

    def test_non_json_body_is_rejected(self, client, auth_headers):
        response = client.post(
            "/api/orders",
            content="items=1",
            headers={**auth_headers, "Content-Type": "application/x-www-form-urlencoded"},
        )

        assert response.status_code == 415
        assert response.json()["kind"] == "invalid_input"
