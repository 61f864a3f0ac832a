"""Pytest configuration and fixtures for the Storefront backend tests.

This module provides reusable fixtures for testing:
- DynamoDB mocking with moto (users, orders, webhook-events tables)
- Store and service instances wired to the mocked tables
- A fake Stripe client and real Stripe-format webhook signatures
"""

import datetime as dt
import hashlib
import hmac
import json
import os
import time
from types import SimpleNamespace
from typing import Any, Generator
from unittest.mock import MagicMock, patch

import boto3
import pytest
from moto import mock_aws

# === Environment Setup ===

# Set environment variables for testing before the app is imported
os.environ.setdefault("AWS_DEFAULT_REGION", "eu-west-1")
os.environ.setdefault("DYNAMODB_TABLE_PREFIX", "test-storefront")
os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")
os.environ["ENVIRONMENT"] = "local"
os.environ["JWT_SECRET"] = "test-jwt-secret-that-is-at-least-32-chars"
os.environ["JWT_EXPIRES_DAYS"] = "7"
os.environ["STRIPE_SECRET_KEY"] = "sk_test_storefront"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test_secret_for_testing"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ.pop("SSM_PARAMETER_PREFIX", None)

TEST_JWT_SECRET = os.environ["JWT_SECRET"]
TEST_WEBHOOK_SECRET = os.environ["STRIPE_WEBHOOK_SECRET"]
TABLE_PREFIX = os.environ["DYNAMODB_TABLE_PREFIX"]


# === Singleton Reset ===


@pytest.fixture(autouse=True)
def reset_singletons() -> Generator[None, None, None]:
    """Reset cached services before and after each test.

    Ensures tests using mock_aws get fresh boto3 resources inside the mock
    context rather than reusing one from a previous test.
    """
    from storefront.services.ssm_service import get_ssm_service
    from storefront_api.dependencies import reset_services

    reset_services()
    get_ssm_service.cache_clear()
    yield
    reset_services()
    get_ssm_service.cache_clear()


# === DynamoDB Fixtures ===


TABLES: list[dict[str, Any]] = [
    {
        "TableName": f"{TABLE_PREFIX}-users",
        "KeySchema": [{"AttributeName": "email", "KeyType": "HASH"}],
        "AttributeDefinitions": [
            {"AttributeName": "email", "AttributeType": "S"},
            {"AttributeName": "user_id", "AttributeType": "S"},
        ],
        "GlobalSecondaryIndexes": [
            {
                "IndexName": "user-id-index",
                "KeySchema": [{"AttributeName": "user_id", "KeyType": "HASH"}],
                "Projection": {"ProjectionType": "ALL"},
            },
        ],
        "BillingMode": "PAY_PER_REQUEST",
    },
    {
        "TableName": f"{TABLE_PREFIX}-orders",
        "KeySchema": [{"AttributeName": "order_id", "KeyType": "HASH"}],
        "AttributeDefinitions": [
            {"AttributeName": "order_id", "AttributeType": "S"},
            {"AttributeName": "checkout_session_id", "AttributeType": "S"},
            {"AttributeName": "payment_intent_id", "AttributeType": "S"},
        ],
        "GlobalSecondaryIndexes": [
            {
                "IndexName": "checkout-session-index",
                "KeySchema": [{"AttributeName": "checkout_session_id", "KeyType": "HASH"}],
                "Projection": {"ProjectionType": "KEYS_ONLY"},
            },
            {
                "IndexName": "payment-intent-index",
                "KeySchema": [{"AttributeName": "payment_intent_id", "KeyType": "HASH"}],
                "Projection": {"ProjectionType": "KEYS_ONLY"},
            },
        ],
        "BillingMode": "PAY_PER_REQUEST",
    },
    {
        "TableName": f"{TABLE_PREFIX}-webhook-events",
        "KeySchema": [{"AttributeName": "event_id", "KeyType": "HASH"}],
        "AttributeDefinitions": [{"AttributeName": "event_id", "AttributeType": "S"}],
        "BillingMode": "PAY_PER_REQUEST",
    },
]


@pytest.fixture
def dynamodb_tables() -> Generator[Any, None, None]:
    """Mocked DynamoDB with all Storefront tables created."""
    with mock_aws():
        client = boto3.client("dynamodb", region_name=os.environ["AWS_DEFAULT_REGION"])
        for table in TABLES:
            client.create_table(**table)
        yield client


@pytest.fixture
def db(dynamodb_tables: Any) -> Any:
    from storefront.services.dynamodb import get_dynamodb_service

    return get_dynamodb_service()


@pytest.fixture
def user_store(db: Any) -> Any:
    from storefront.services.credential_store import UserStore

    return UserStore(db, bcrypt_rounds=4)


@pytest.fixture
def order_store(db: Any) -> Any:
    from storefront.services.order_store import OrderStore

    return OrderStore(db)


@pytest.fixture
def event_store(db: Any) -> Any:
    from storefront.services.event_store import ProcessedEventStore

    return ProcessedEventStore(db)


# === Config Fixtures ===


@pytest.fixture
def app_config() -> Any:
    from storefront.config import load_config

    return load_config()


# === Order Fixtures ===


@pytest.fixture
def make_order(order_store: Any) -> Any:
    """Factory creating pending orders; default total is 4200 cents."""
    from storefront.models.order import OrderItem

    def _make(
        user_id: str = "USR-OWNER",
        order_id: str = "O1",
        items: list[tuple[str, int, int]] | None = None,
        shipping_cents: int = 200,
        tax_cents: int = 0,
    ) -> Any:
        line_items = [
            OrderItem(product_id=pid, name=f"Product {pid}", quantity=qty, unit_amount_cents=price)
            for pid, qty, price in (items or [("P1", 2, 2000)])
        ]
        return order_store.create_order(
            user_id,
            line_items,
            shipping_cents=shipping_cents,
            tax_cents=tax_cents,
            order_id=order_id,
        )

    return _make


# === Stripe Fixtures ===


def stripe_session(
    session_id: str = "cs_test_abc123",
    order_id: str = "O1",
    user_id: str = "USR-OWNER",
    amount_total: int = 4200,
    status: str = "open",
    currency: str = "usd",
) -> SimpleNamespace:
    """Build an object shaped like a Stripe Checkout Session."""
    return SimpleNamespace(
        id=session_id,
        url=f"https://checkout.stripe.com/c/pay/{session_id}",
        amount_total=amount_total,
        currency=currency,
        status=status,
        expires_at=int(time.time()) + 86400,
        metadata={"order_id": order_id, "user_id": user_id},
        payment_intent=None,
    )


@pytest.fixture
def stripe_client() -> MagicMock:
    """Fake StripeClient; configure checkout.sessions.* return values per test."""
    client = MagicMock()
    client.checkout.sessions.create.return_value = stripe_session()
    return client


@pytest.fixture
def patched_stripe_client(stripe_client: MagicMock) -> Generator[MagicMock, None, None]:
    """Make every StripeService built by the app use the fake client."""
    with patch("storefront.services.stripe_service.StripeClient", return_value=stripe_client):
        yield stripe_client


def create_stripe_signature(
    payload: bytes,
    secret: str = TEST_WEBHOOK_SECRET,
    timestamp: int | None = None,
) -> str:
    """Create a valid Stripe webhook signature.

    Stripe signatures use HMAC-SHA256 with format: t={timestamp},v1={signature}
    """
    ts = str(timestamp if timestamp is not None else int(time.time()))
    signed_payload = f"{ts}.{payload.decode('utf-8')}"
    signature = hmac.new(
        secret.encode("utf-8"),
        signed_payload.encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()
    return f"t={ts},v1={signature}"


def checkout_completed_event(
    event_id: str = "evt_1ABC123DEF456",
    session_id: str = "cs_test_abc123",
    order_id: str | None = "O1",
    amount_total: int = 4200,
    payment_status: str = "paid",
    payment_intent: str | None = "pi_test_123",
    currency: str = "usd",
) -> dict[str, Any]:
    """Create a checkout.session.completed webhook event."""
    return {
        "id": event_id,
        "object": "event",
        "type": "checkout.session.completed",
        "created": int(time.time()),
        "livemode": False,
        "data": {
            "object": {
                "id": session_id,
                "object": "checkout.session",
                "amount_total": amount_total,
                "currency": currency,
                "payment_status": payment_status,
                "payment_intent": payment_intent,
                "metadata": {"order_id": order_id} if order_id else {},
            }
        },
    }


def encode_event(event: dict[str, Any]) -> bytes:
    return json.dumps(event).encode("utf-8")


def utc(*args: int) -> dt.datetime:
    return dt.datetime(*args, tzinfo=dt.UTC)


# === API Fixtures ===


TEST_PASSWORD = "correct-horse-battery"


@pytest.fixture
def client(dynamodb_tables: Any, patched_stripe_client: MagicMock) -> Generator[Any, None, None]:
    """TestClient over a freshly built app backed by moto and the fake Stripe client."""
    from fastapi.testclient import TestClient

    from storefront_api.main import create_app

    with TestClient(create_app()) as test_client:
        yield test_client


@pytest.fixture
def register(client: Any) -> Any:
    """Register an account through the API; the client keeps the session cookie."""

    def _register(email: str = "ada@example.com", password: str = TEST_PASSWORD, name: str = "Ada") -> Any:
        response = client.post(
            "/api/v1/register", json={"name": name, "email": email, "password": password}
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _register
