"""Enumeration types for Storefront data models."""

from enum import Enum


class OrderStatus(str, Enum):
    """Fulfillment state of an order."""

    PENDING_PAYMENT = "pending_payment"
    PAID = "paid"
    FULFILLED = "fulfilled"
    REFUNDED = "refunded"
    FAILED = "failed"


class CheckoutSessionStatus(str, Enum):
    """Status of a gateway checkout session."""

    OPEN = "open"
    COMPLETE = "complete"
    EXPIRED = "expired"


class WebhookProcessingResult(str, Enum):
    """Outcome recorded for a processed webhook event."""

    PROCESSING = "processing"
    SUCCESS = "success"
    DUPLICATE = "duplicate"
    SKIPPED = "skipped"
    MANUAL_REVIEW = "manual_review"


class CookieSameSite(str, Enum):
    """Cross-site policy for the session cookie."""

    STRICT = "strict"
    LAX = "lax"
    NONE = "none"
