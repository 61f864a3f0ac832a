"""FastAPI exception handlers producing the ToolError JSON body.

Every failure leaves the API in one shape (``success``, ``error_code``,
``message``, ``recovery``, ``details``):

- StorefrontError subclasses map to a status through ERROR_CODE_TO_HTTP_STATUS
- Request validation failures become 422 ERR_REQUEST_001 listing the
  offending fields; submitted values are never echoed (they may be passwords)
- Anything else is a generic 500; the exception is logged, never returned

401 responses carry ``WWW-Authenticate: Bearer``.

Usage:
    from storefront_api.exceptions import register_exception_handlers
    register_exception_handlers(app)
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_401_UNAUTHORIZED,
    HTTP_403_FORBIDDEN,
    HTTP_404_NOT_FOUND,
    HTTP_409_CONFLICT,
    HTTP_422_UNPROCESSABLE_ENTITY,
    HTTP_500_INTERNAL_SERVER_ERROR,
    HTTP_502_BAD_GATEWAY,
)

from storefront.models.errors import ErrorCode, PaymentGatewayError, StorefrontError, ToolError

logger = logging.getLogger(__name__)

ERROR_CODE_TO_HTTP_STATUS: dict[ErrorCode, int] = {
    ErrorCode.AUTH_REQUIRED: HTTP_401_UNAUTHORIZED,
    ErrorCode.INVALID_CREDENTIALS: HTTP_401_UNAUTHORIZED,
    ErrorCode.FORBIDDEN: HTTP_403_FORBIDDEN,
    ErrorCode.ORDER_NOT_FOUND: HTTP_404_NOT_FOUND,
    ErrorCode.EMAIL_TAKEN: HTTP_409_CONFLICT,
    ErrorCode.ORDER_NOT_PAYABLE: HTTP_409_CONFLICT,
    ErrorCode.INVALID_WEBHOOK_SIGNATURE: HTTP_400_BAD_REQUEST,
    ErrorCode.INVALID_WEBHOOK_PAYLOAD: HTTP_400_BAD_REQUEST,
    ErrorCode.STRIPE_API_ERROR: HTTP_502_BAD_GATEWAY,
    # Only surfaces if reconciliation is attempted outside the webhook handler
    ErrorCode.RECONCILIATION_FAILED: HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorCode.INVALID_REQUEST: HTTP_422_UNPROCESSABLE_ENTITY,
}

INTERNAL_ERROR_BODY = {
    "success": False,
    "error_code": "ERR_INTERNAL",
    "message": "An unexpected error occurred",
    "recovery": "Please try again later or contact support",
    "details": None,
}


def get_http_status_for_error(code: ErrorCode) -> int:
    """HTTP status for an ErrorCode (400 when unmapped)."""
    return ERROR_CODE_TO_HTTP_STATUS.get(code, HTTP_400_BAD_REQUEST)


def _tool_error_response(status_code: int, tool_error: ToolError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if status_code == HTTP_401_UNAUTHORIZED else None
    return JSONResponse(
        status_code=status_code,
        content=tool_error.model_dump(mode="json"),
        headers=headers,
    )


async def storefront_error_handler(request: Request, exc: StorefrontError) -> JSONResponse:
    status_code = get_http_status_for_error(exc.code)

    if isinstance(exc, PaymentGatewayError):
        # Internal message stays in the logs
        logger.error("%s %s -> %d %s: %s", request.method, request.url.path, status_code, exc.code.value, exc)
    else:
        logger.info("%s %s -> %d %s", request.method, request.url.path, status_code, exc.code.value)

    return _tool_error_response(status_code, exc.to_tool_error())


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report invalid fields by location and message only."""
    details: dict[str, str] = {}
    for error in exc.errors():
        # Drop the leading "body"/"query" segment
        location = ".".join(str(part) for part in error.get("loc", ())[1:]) or "body"
        details.setdefault(location, str(error.get("msg", "invalid")))

    logger.info("%s %s -> 422 invalid fields: %s", request.method, request.url.path, ", ".join(details))
    return _tool_error_response(
        HTTP_422_UNPROCESSABLE_ENTITY,
        ToolError.from_code(ErrorCode.INVALID_REQUEST, details),
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=HTTP_500_INTERNAL_SERVER_ERROR, content=INTERNAL_ERROR_BODY)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StorefrontError, storefront_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, generic_exception_handler)
