"""FastAPI dependency injection providers for shared services.

This module provides factory functions for service instances using @lru_cache
so each service is built once per process. Services are lazily instantiated
and cached for performance.

Usage in routes:
    from storefront_api.dependencies import get_checkout_service, require_identity

    @router.post("/payment/checkout_session")
    async def create_checkout_session(
        identity: Identity = Depends(require_identity),
        checkout: CheckoutService = Depends(get_checkout_service),
    ):
        ...

Service Dependency Graph:
    AppConfig (get_config)
        ├── TokenIssuer ─┐
        ├── SessionTransport ─┴── AuthGuard
        └── StripeService
    DynamoDBService (singleton via get_dynamodb_service)
        ├── UserStore
        ├── OrderStore ─┬── CheckoutService (+ StripeService)
        └── ProcessedEventStore ─┴── WebhookHandler (+ StripeService)

Testing:
    Use reset_services() to clear cached instances between tests.
"""

from functools import lru_cache

from fastapi import Depends, Request

from storefront.config import AppConfig, load_config
from storefront.models.auth import Identity
from storefront.services.checkout_service import CheckoutService
from storefront.services.credential_store import UserStore
from storefront.services.dynamodb import get_dynamodb_service
from storefront.services.event_store import ProcessedEventStore
from storefront.services.order_store import OrderStore
from storefront.services.stripe_service import StripeService
from storefront.services.token_service import TokenIssuer
from storefront.services.webhook_handler import WebhookHandler
from storefront_api.security import AuthGuard
from storefront_api.session import SessionTransport


@lru_cache
def get_config() -> AppConfig:
    """Get the process-wide configuration.

    Raises:
        ConfigurationError: If required settings are missing or invalid.
    """
    return load_config()


@lru_cache
def get_token_issuer() -> TokenIssuer:
    return TokenIssuer.from_config(get_config())


@lru_cache
def get_session_transport() -> SessionTransport:
    return SessionTransport(get_config())


@lru_cache
def get_auth_guard() -> AuthGuard:
    return AuthGuard(issuer=get_token_issuer(), transport=get_session_transport())


@lru_cache
def get_user_store() -> UserStore:
    """Get cached UserStore instance.

    Returns:
        UserStore configured with DynamoDB singleton.
    """
    return UserStore(db=get_dynamodb_service(), bcrypt_rounds=get_config().bcrypt_rounds)


@lru_cache
def get_order_store() -> OrderStore:
    return OrderStore(db=get_dynamodb_service())


@lru_cache
def get_event_store() -> ProcessedEventStore:
    return ProcessedEventStore(db=get_dynamodb_service())


@lru_cache
def get_stripe_service() -> StripeService:
    """Get cached StripeService instance.

    Returns:
        StripeService with the configured key, timeout and webhook secret.
    """
    return StripeService(get_config())


@lru_cache
def get_checkout_service() -> CheckoutService:
    """Get cached CheckoutService instance.

    Returns:
        CheckoutService configured with the order store and gateway.
    """
    return CheckoutService(orders=get_order_store(), gateway=get_stripe_service())


@lru_cache
def get_webhook_handler() -> WebhookHandler:
    """Get cached WebhookHandler instance.

    Returns:
        WebhookHandler configured with gateway, order and event stores.
    """
    return WebhookHandler(
        gateway=get_stripe_service(),
        orders=get_order_store(),
        events=get_event_store(),
    )


def require_identity(
    request: Request,
    guard: AuthGuard = Depends(get_auth_guard),
) -> Identity:
    """Dependency for protected endpoints: 401 unless a valid token is present."""
    return guard.authenticate(request)


def reset_services() -> None:
    """Clear all cached service instances.

    Call this in test fixtures to ensure clean state between tests.
    Also resets the underlying DynamoDB singleton.

    Example:
        @pytest.fixture(autouse=True)
        def reset_state():
            yield
            reset_services()
    """
    from storefront.services.dynamodb import reset_dynamodb_service

    # Clear all lru_cache instances
    get_config.cache_clear()
    get_token_issuer.cache_clear()
    get_session_transport.cache_clear()
    get_auth_guard.cache_clear()
    get_user_store.cache_clear()
    get_order_store.cache_clear()
    get_event_store.cache_clear()
    get_stripe_service.cache_clear()
    get_checkout_service.cache_clear()
    get_webhook_handler.cache_clear()

    # Reset underlying DynamoDB singleton
    reset_dynamodb_service()
