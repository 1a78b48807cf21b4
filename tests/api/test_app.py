"""
API tests for application-level behavior: health probes, middleware and
error handling.
"""

import pytest
from fastapi.testclient import TestClient


class TestHealth:

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_ready_without_database(self, client):
        response = client.get("/ready")

        assert response.status_code == 503
        assert response.json()["status"] == "not_ready"
        assert response.json()["checks"] == {"database": "unhealthy"}

    def test_ready(self, client, monkeypatch):
        async def ping():
            return True

        monkeypatch.setattr("bookstore_api.main.ping", ping)

        response = client.get("/ready")

        assert response.status_code == 200
        assert response.json()["status"] == "ready"

    def test_metrics_exposition(self, client):
        response = client.get("/metrics")

        assert response.status_code == 200
        assert "http_requests_total" in response.text


class TestMiddleware:

    def test_security_headers(self, client):
        response = client.get("/health")

        assert response.headers["x-content-type-options"] == "nosniff"
        assert response.headers["x-frame-options"] == "DENY"
        assert "strict-transport-security" not in response.headers

    def test_correlation_id_is_echoed(self, client):
        response = client.get("/health", headers={"X-Correlation-ID": "req-42"})

        assert response.headers["x-correlation-id"] == "req-42"

    def test_correlation_id_is_generated(self, client):
        assert len(client.get("/health").headers["x-correlation-id"]) == 36


class TestErrors:

    def test_unknown_route(self, client):
        response = client.get("/api/nope")

        assert response.status_code == 404
        assert response.json() == {"detail": "Not Found"}

    def test_validation_error(self, client, login_as, customer_user):
        login_as(customer_user)

        response = client.post("/api/orders", json={"books": "nope"})

        assert response.status_code == 422
        assert isinstance(response.json()["detail"], list)

    def test_unhandled_error(self, app, login_as, vendor_user, book_repo):
        login_as(vendor_user)
        book_repo.list_books.side_effect = RuntimeError("connection reset")

        response = TestClient(app, raise_server_exceptions=False).get("/api/books")

        assert response.status_code == 500
        assert response.json() == {"detail": "Internal server error"}
        assert "connection reset" not in response.text
