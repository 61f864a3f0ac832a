"""Tests for the FastAPI application wiring.

Health endpoints, middleware and error handling - not the business routes.
"""

from typing import Any, Generator
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from storefront.models.errors import ConfigurationError
from storefront_api.dependencies import reset_services
from storefront_api.main import create_app


@pytest.fixture
def small_body_client(
    monkeypatch: pytest.MonkeyPatch, dynamodb_tables: Any, patched_stripe_client: Any
) -> Generator[TestClient, None, None]:
    """App built with a 64-byte body limit."""
    monkeypatch.setenv("MAX_BODY_BYTES", "64")
    reset_services()
    with TestClient(create_app()) as test_client:
        yield test_client


class TestHealthCheck:
    """Tests for the health check endpoints."""

    def test_ping_returns_ok(self, client: TestClient) -> None:
        response = client.get("/api/ping")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["service"] == "storefront-api"
        assert "timestamp" in data

    def test_health_reports_version_and_environment(self, client: TestClient) -> None:
        response = client.get("/api/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["version"] == "0.1.0"
        assert data["environment"] == "local"


class TestStartup:
    def test_missing_signing_secret_fails_app_creation(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("JWT_SECRET")
        reset_services()

        with pytest.raises(ConfigurationError):
            create_app()


class TestMiddleware:
    """Tests for correlation IDs, CORS and the body size limit."""

    def test_correlation_id_is_echoed(self, client: TestClient) -> None:
        response = client.get("/api/ping", headers={"X-Correlation-ID": "req-123"})

        assert response.headers["X-Correlation-ID"] == "req-123"

    def test_correlation_id_is_generated(self, client: TestClient) -> None:
        response = client.get("/api/ping")

        assert response.headers["X-Correlation-ID"]

    def test_unsafe_correlation_id_is_replaced(self, client: TestClient) -> None:
        response = client.get("/api/ping", headers={"X-Correlation-ID": "x" * 500})

        assert response.headers["X-Correlation-ID"] != "x" * 500

    def test_cors_allows_credentials_for_frontend(self, client: TestClient) -> None:
        response = client.options(
            "/api/v1/login",
            headers={
                "Origin": "http://localhost:3000",
                "Access-Control-Request-Method": "POST",
            },
        )

        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "http://localhost:3000"
        assert response.headers["access-control-allow-credentials"] == "true"

    def test_oversized_json_body_rejected(self, small_body_client: TestClient) -> None:
        response = small_body_client.post(
            "/api/v1/login",
            json={"email": "ada@example.com", "password": "x" * 200},
        )

        assert response.status_code == 413

    def test_chunked_body_over_limit_rejected(self, small_body_client: TestClient) -> None:
        chunks = iter([b'{"email": "ada@example.com", ', b'"password": "' + b"x" * 100 + b'"}'])

        response = small_body_client.post(
            "/api/v1/login", content=chunks, headers={"Content-Type": "application/json"}
        )

        assert response.status_code == 413

    def test_chunked_body_within_limit_reaches_route(self, small_body_client: TestClient) -> None:
        chunks = iter([b'{"email":"a@example.com",', b'"password":"wrong-pass"}'])

        response = small_body_client.post(
            "/api/v1/login", content=chunks, headers={"Content-Type": "application/json"}
        )

        # Unknown account, so the body was parsed downstream
        assert response.status_code == 401

    def test_webhook_is_exempt_from_body_limit(self, small_body_client: TestClient) -> None:
        response = small_body_client.post(
            "/api/v1/payment/webhook",
            content=b'{"padding": "' + b"x" * 200 + b'"}',
            headers={"Stripe-Signature": "t=1,v1=deadbeef"},
        )

        # Reaches signature verification instead of the size check
        assert response.status_code == 400
        assert response.json()["error_code"] == "ERR_STRIPE_001"


class TestErrorHandling:
    def test_validation_error_lists_fields_without_values(self, client: TestClient) -> None:
        response = client.post("/api/v1/login", json={"email": "not-an-email", "password": ""})

        assert response.status_code == 422
        body = response.json()
        assert body["error_code"] == "ERR_REQUEST_001"
        assert set(body["details"]) == {"email", "password"}
        assert "not-an-email" not in response.text

    def test_unexpected_error_returns_generic_500(self, client: TestClient) -> None:
        from storefront_api.dependencies import get_order_store

        # Unhandled errors propagate out of TestClient unless disabled
        no_raise = TestClient(client.app, raise_server_exceptions=False)
        no_raise.post(
            "/api/v1/register",
            json={"name": "Ada", "email": "ada@example.com", "password": "correct-horse"},
        )
        store = get_order_store()
        with patch.object(store, "get_order", side_effect=RuntimeError("boom")):
            response = no_raise.post("/api/v1/payment/checkout_session", json={"order_id": "O1"})

        assert response.status_code == 500
        assert response.json()["error_code"] == "ERR_INTERNAL"
        assert "boom" not in response.text
