"""Standard error codes for the Storefront backend.

Every domain failure is a StorefrontError carrying an ErrorCode. The API
layer converts it to a ToolError JSON body and an HTTP status, so clients
see one consistent error shape across auth, checkout and webhooks.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class ErrorCode(str, Enum):
    """Standard error codes."""

    # Authentication / authorization (ERR_AUTH_001-ERR_AUTH_004)
    AUTH_REQUIRED = "ERR_AUTH_001"
    INVALID_CREDENTIALS = "ERR_AUTH_002"
    EMAIL_TAKEN = "ERR_AUTH_003"
    FORBIDDEN = "ERR_AUTH_004"

    # Orders (ERR_ORDER_001-ERR_ORDER_002)
    ORDER_NOT_FOUND = "ERR_ORDER_001"
    ORDER_NOT_PAYABLE = "ERR_ORDER_002"

    # Payment gateway (ERR_STRIPE_001-ERR_STRIPE_004)
    INVALID_WEBHOOK_SIGNATURE = "ERR_STRIPE_001"
    STRIPE_API_ERROR = "ERR_STRIPE_002"
    INVALID_WEBHOOK_PAYLOAD = "ERR_STRIPE_003"
    RECONCILIATION_FAILED = "ERR_STRIPE_004"

    # Request validation (ERR_REQUEST_001)
    INVALID_REQUEST = "ERR_REQUEST_001"


# Human-readable error messages
ERROR_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.AUTH_REQUIRED: "Authentication required to perform this action",
    ErrorCode.INVALID_CREDENTIALS: "Invalid email or password",
    ErrorCode.EMAIL_TAKEN: "An account with this email already exists",
    ErrorCode.FORBIDDEN: "You are not allowed to perform this action",
    ErrorCode.ORDER_NOT_FOUND: "Order not found",
    ErrorCode.ORDER_NOT_PAYABLE: "Order is not awaiting payment",
    ErrorCode.INVALID_WEBHOOK_SIGNATURE: "Invalid webhook signature",
    ErrorCode.STRIPE_API_ERROR: "Payment provider error occurred",
    ErrorCode.INVALID_WEBHOOK_PAYLOAD: "Webhook payload could not be parsed",
    ErrorCode.RECONCILIATION_FAILED: "Webhook event could not be matched to an order",
    ErrorCode.INVALID_REQUEST: "Request is invalid",
}

# Recovery suggestions for clients
ERROR_RECOVERY: dict[ErrorCode, str] = {
    ErrorCode.AUTH_REQUIRED: "Log in and try again",
    ErrorCode.INVALID_CREDENTIALS: "Check your email and password and try again",
    ErrorCode.EMAIL_TAKEN: "Log in with the existing account instead",
    ErrorCode.FORBIDDEN: "Verify you own this resource",
    ErrorCode.ORDER_NOT_FOUND: "Verify the order ID",
    ErrorCode.ORDER_NOT_PAYABLE: "Check the order status before paying",
    ErrorCode.INVALID_WEBHOOK_SIGNATURE: "Verify webhook secret configuration",
    ErrorCode.STRIPE_API_ERROR: "Try the checkout again in a moment",
    ErrorCode.INVALID_WEBHOOK_PAYLOAD: "Verify the webhook endpoint API version",
    ErrorCode.RECONCILIATION_FAILED: "Review the event manually",
    ErrorCode.INVALID_REQUEST: "Check the listed fields and try again",
}


class ToolError(BaseModel):
    """Standard error response format.

    All endpoints return this shape when a domain error occurs.
    """

    model_config = ConfigDict(strict=True)

    success: bool = False
    error_code: ErrorCode
    message: str
    recovery: str
    details: Optional[dict[str, str]] = None

    @classmethod
    def from_code(
        cls,
        code: ErrorCode,
        details: Optional[dict[str, str]] = None,
    ) -> "ToolError":
        """Create a ToolError from an error code.

        Args:
            code: The error code
            details: Optional additional context about the error

        Returns:
            A ToolError with the message and recovery hint for the code.
        """
        return cls(
            error_code=code,
            message=ERROR_MESSAGES[code],
            recovery=ERROR_RECOVERY[code],
            details=details,
        )


class StorefrontError(Exception):
    """Base exception for domain failures.

    Can be caught and converted to a ToolError for API responses.
    """

    # Subclasses set this so they can be raised without an explicit code
    default_code: ErrorCode

    def __init__(
        self,
        code: Optional[ErrorCode] = None,
        details: Optional[dict[str, str]] = None,
    ):
        self.code = code or self.default_code
        self.message = ERROR_MESSAGES[self.code]
        self.recovery = ERROR_RECOVERY[self.code]
        self.details = details
        super().__init__(self.message)

    def to_tool_error(self) -> ToolError:
        """Convert this exception to a ToolError for API responses."""
        return ToolError.from_code(self.code, self.details)


class Unauthenticated(StorefrontError):
    """No token, or a token that failed verification.

    Deliberately carries no detail about why verification failed.
    """

    default_code = ErrorCode.AUTH_REQUIRED


class InvalidCredentials(StorefrontError):
    """Unknown email or wrong password (indistinguishable to the caller)."""

    default_code = ErrorCode.INVALID_CREDENTIALS


class EmailTaken(StorefrontError):
    default_code = ErrorCode.EMAIL_TAKEN


class Forbidden(StorefrontError):
    """Valid identity, disallowed action."""

    default_code = ErrorCode.FORBIDDEN


class OrderNotFound(StorefrontError):
    default_code = ErrorCode.ORDER_NOT_FOUND


class OrderNotPayable(StorefrontError):
    default_code = ErrorCode.ORDER_NOT_PAYABLE


class InvalidWebhookSignature(StorefrontError):
    """Webhook sender could not be authenticated."""

    default_code = ErrorCode.INVALID_WEBHOOK_SIGNATURE


class InvalidWebhookPayload(StorefrontError):
    """Signed webhook body that is not a usable event."""

    default_code = ErrorCode.INVALID_WEBHOOK_PAYLOAD


class PaymentGatewayError(StorefrontError):
    """Raised when a payment provider operation fails."""

    default_code = ErrorCode.STRIPE_API_ERROR

    def __init__(
        self,
        message: str,
        gateway_error_code: Optional[str] = None,
    ) -> None:
        """Initialize with message and optional provider error code.

        Args:
            message: Internal error description (logged, not returned).
            gateway_error_code: Provider-specific error code if available.
        """
        details = {"gateway_error_code": gateway_error_code} if gateway_error_code else None
        super().__init__(details=details)
        self.internal_message = message
        self.gateway_error_code = gateway_error_code

    def __str__(self) -> str:
        return self.internal_message


class ReconciliationError(StorefrontError):
    """Trusted webhook event that cannot be matched to an order.

    Never returned to the gateway as a failure: the event is acknowledged
    and recorded for manual review.
    """

    default_code = ErrorCode.RECONCILIATION_FAILED

    def __init__(self, reason: str, order_id: Optional[str] = None) -> None:
        super().__init__(details={"reason": reason})
        self.reason = reason
        self.order_id = order_id

    def __str__(self) -> str:
        return self.reason


class ConfigurationError(Exception):
    """Missing or invalid configuration. Fatal at startup."""
