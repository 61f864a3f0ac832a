"""Structured logging utilities with correlation ID support.

Provides:
- Correlation ID context management for request tracing
- Structured logging formatter for consistent log output
- Helper functions for auth, checkout and webhook logging

Usage:
    from storefront.utils.logging import get_logger, set_correlation_id

    # In middleware/request handler:
    set_correlation_id(request.headers.get("X-Correlation-ID"))

    # In service code:
    logger = get_logger(__name__)
    logger.info("Creating checkout session", extra={"order_id": "ORD-123"})
"""

import logging
import uuid
from contextvars import ContextVar
from typing import Any

# Context variable for correlation ID - thread-safe and async-safe
_correlation_id: ContextVar[str | None] = ContextVar("correlation_id", default=None)


def generate_correlation_id() -> str:
    """Generate a new correlation ID.

    Returns:
        UUID-based correlation ID string
    """
    return str(uuid.uuid4())


def set_correlation_id(correlation_id: str | None = None) -> str:
    """Set the correlation ID for the current request context.

    Args:
        correlation_id: Optional existing correlation ID. If None, generates new one.

    Returns:
        The correlation ID that was set
    """
    cid = correlation_id or generate_correlation_id()
    _correlation_id.set(cid)
    return cid


def get_correlation_id() -> str | None:
    """Get the current correlation ID."""
    return _correlation_id.get()


def clear_correlation_id() -> None:
    """Clear the correlation ID context."""
    _correlation_id.set(None)


class CorrelationIdFilter(logging.Filter):
    """Logging filter that adds correlation_id to log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id() or "no-correlation-id"
        return True


class StructuredFormatter(logging.Formatter):
    """Formatter for structured log output with correlation ID."""

    def format(self, record: logging.LogRecord) -> str:
        if not hasattr(record, "correlation_id"):
            record.correlation_id = get_correlation_id() or "no-correlation-id"

        base = super().format(record)

        # Prefix for easy grep/filtering
        return f"[{record.correlation_id}] {base}"


def configure_logging(level: int = logging.INFO) -> None:
    """Install the structured formatter on the root logger.

    Safe to call more than once; an existing structured handler is reused.

    Args:
        level: Root log level
    """
    root = logging.getLogger()
    root.setLevel(level)

    for handler in root.handlers:
        if isinstance(handler.formatter, StructuredFormatter):
            return

    handler = logging.StreamHandler()
    handler.setFormatter(StructuredFormatter("%(levelname)s %(name)s: %(message)s"))
    handler.addFilter(CorrelationIdFilter())
    root.addHandler(handler)


def get_logger(name: str) -> logging.Logger:
    """Get a logger with correlation ID support.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    if not any(isinstance(f, CorrelationIdFilter) for f in logger.filters):
        logger.addFilter(CorrelationIdFilter())

    return logger


# Context keys whose values must never reach the logs
REDACTED_KEYS = frozenset({"token", "password", "authorization", "cookie", "signature"})

# LogRecord attributes; passing them in ``extra`` raises KeyError
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


def _emit(
    logger: logging.Logger,
    level: int,
    headline: str,
    context: dict[str, Any],
) -> None:
    """Log ``headline | key=value | ...`` with ``context`` attached as extras.

    None values are dropped and sensitive keys are masked.
    """
    fields = {
        key: "[REDACTED]" if key in REDACTED_KEYS else value
        for key, value in context.items()
        if value is not None
    }
    message = " | ".join([headline, *(f"{key}={value}" for key, value in fields.items())])
    extra = {(f"ctx_{key}" if key in _RECORD_ATTRS else key): value for key, value in fields.items()}
    logger.log(level, message, extra=extra)


def log_auth_event(
    logger: logging.Logger,
    event: str,
    *,
    user_id: str | None = None,
    reason: str | None = None,
    **extra: Any,
) -> None:
    """Log an authentication event.

    Rejections carry the internal reason (signature, expiry, malformed) for
    operators only; clients always get the same generic answer.

    Args:
        logger: Logger instance
        event: Event name (e.g., "login", "rejected", "logout")
        user_id: Subject identifier if known
        reason: Rejection reason if the event is a failure
        **extra: Additional context fields
    """
    level = logging.WARNING if reason else logging.INFO
    _emit(logger, level, f"Auth event: {event}", {"user_id": user_id, "reason": reason, **extra})


def log_payment_operation(
    logger: logging.Logger,
    operation: str,
    *,
    order_id: str | None = None,
    session_id: str | None = None,
    amount_cents: int | None = None,
    status: str | None = None,
    error: str | None = None,
    **extra: Any,
) -> None:
    """Log a gateway operation (create, reuse, supersede or expire a session).

    Logged at ERROR when ``error`` is given, INFO otherwise.
    """
    context = {
        "order_id": order_id,
        "session_id": session_id,
        "amount_cents": amount_cents,
        "status": status,
        "error": error,
        **extra,
    }
    _emit(logger, logging.ERROR if error else logging.INFO, f"Payment operation: {operation}", context)


# Webhook results that need operator attention, and ones that are routine no-ops
_WEBHOOK_ERROR_RESULTS = frozenset({"error", "manual_review"})
_WEBHOOK_WARNING_RESULTS = frozenset({"duplicate", "skipped"})


def log_webhook_event(
    logger: logging.Logger,
    event_type: str,
    event_id: str,
    *,
    order_id: str | None = None,
    session_id: str | None = None,
    result: str | None = None,
    error: str | None = None,
    **extra: Any,
) -> None:
    """Log a webhook delivery and its processing result.

    Args:
        logger: Logger instance
        event_type: Gateway event type (e.g., "checkout.session.completed")
        event_id: Gateway event ID
        order_id: Associated order ID if available
        session_id: Associated checkout session ID if available
        result: Processing result (success, duplicate, skipped, manual_review)
        error: Error message if processing failed
        **extra: Additional context fields
    """
    if result in _WEBHOOK_ERROR_RESULTS:
        level = logging.ERROR
    elif result in _WEBHOOK_WARNING_RESULTS:
        level = logging.WARNING
    else:
        level = logging.INFO

    context = {
        "event_type": event_type,
        "event_id": event_id,
        "result": result,
        "order_id": order_id,
        "session_id": session_id,
        "error": error,
        **extra,
    }
    _emit(logger, level, f"Webhook event: {event_type} ({event_id})", context)
