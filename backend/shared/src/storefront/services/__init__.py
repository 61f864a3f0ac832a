"""Backend services for the Storefront payment core."""

from .checkout_service import CheckoutService
from .credential_store import UserStore
from .dynamodb import DynamoDBService, get_dynamodb_service, reset_dynamodb_service
from .event_store import ProcessedEventStore
from .order_store import OrderStore
from .ssm_service import SSMService, SSMServiceError, get_ssm_service
from .stripe_service import StripeService
from .token_service import (
    InvalidSignature,
    MalformedToken,
    TokenError,
    TokenExpired,
    TokenIssuer,
)
from .webhook_handler import WebhookHandler

__all__ = [
    "CheckoutService",
    "DynamoDBService",
    "get_dynamodb_service",
    "reset_dynamodb_service",
    "InvalidSignature",
    "MalformedToken",
    "OrderStore",
    "ProcessedEventStore",
    "SSMService",
    "SSMServiceError",
    "get_ssm_service",
    "StripeService",
    "TokenError",
    "TokenExpired",
    "TokenIssuer",
    "UserStore",
    "WebhookHandler",
]
