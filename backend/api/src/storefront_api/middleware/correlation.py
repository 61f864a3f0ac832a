"""Request correlation IDs.

Every request gets an ID that is stamped on its log lines (through a
contextvar) and echoed in the X-Correlation-ID response header. A caller
supplied ID is kept only if it is short and log-safe; otherwise a fresh one
is generated.
"""

import re

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from storefront.utils.logging import clear_correlation_id, set_correlation_id

CORRELATION_ID_HEADER = "X-Correlation-ID"
_ACCEPTED_ID = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")


def accepted_correlation_id(value: str | None) -> str | None:
    if value and _ACCEPTED_ID.match(value):
        return value
    return None


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Binds a correlation ID to the request for its whole lifetime."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        correlation_id = set_correlation_id(
            accepted_correlation_id(request.headers.get(CORRELATION_ID_HEADER))
        )
        request.state.correlation_id = correlation_id

        try:
            response = await call_next(request)
        finally:
            clear_correlation_id()

        response.headers[CORRELATION_ID_HEADER] = correlation_id
        return response
