"""Pydantic models for Storefront data entities."""

from .auth import Identity, IssuedToken, PublicUser, User
from .enums import (
    CheckoutSessionStatus,
    CookieSameSite,
    OrderStatus,
    WebhookProcessingResult,
)
from .errors import (
    ConfigurationError,
    EmailTaken,
    ERROR_MESSAGES,
    ERROR_RECOVERY,
    ErrorCode,
    Forbidden,
    InvalidCredentials,
    InvalidWebhookPayload,
    InvalidWebhookSignature,
    OrderNotFound,
    OrderNotPayable,
    PaymentGatewayError,
    ReconciliationError,
    StorefrontError,
    ToolError,
    Unauthenticated,
)
from .order import Order, OrderItem
from .payment import CheckoutSession
from .stripe_webhook import GatewayEvent, WebhookEventRecord, WebhookOutcome

__all__ = [
    # Enums
    "CheckoutSessionStatus",
    "CookieSameSite",
    "OrderStatus",
    "WebhookProcessingResult",
    # Auth
    "Identity",
    "IssuedToken",
    "PublicUser",
    "User",
    # Orders
    "Order",
    "OrderItem",
    # Payment
    "CheckoutSession",
    # Webhooks
    "GatewayEvent",
    "WebhookEventRecord",
    "WebhookOutcome",
    # Errors
    "ConfigurationError",
    "EmailTaken",
    "ERROR_MESSAGES",
    "ERROR_RECOVERY",
    "ErrorCode",
    "Forbidden",
    "InvalidCredentials",
    "InvalidWebhookPayload",
    "InvalidWebhookSignature",
    "OrderNotFound",
    "OrderNotPayable",
    "PaymentGatewayError",
    "ReconciliationError",
    "StorefrontError",
    "ToolError",
    "Unauthenticated",
]
