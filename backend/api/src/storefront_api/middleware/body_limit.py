"""Request body size limit for JSON endpoints.

A declared Content-Length above the configured limit is rejected with 413
before the body is read. Bodies sent without one (chunked transfer) are
buffered and measured instead; Starlette replays the buffered body to the
route. Raw-body endpoints (the payment webhook) are exempt: their bytes must
reach signature verification untouched.
"""

from collections.abc import Iterable

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.status import HTTP_400_BAD_REQUEST, HTTP_413_REQUEST_ENTITY_TOO_LARGE
from starlette.types import ASGIApp

from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class BodySizeLimitMiddleware(BaseHTTPMiddleware):
    """Middleware that enforces a maximum request body size."""

    def __init__(
        self,
        app: ASGIApp,
        max_body_bytes: int,
        exempt_paths: Iterable[str] = (),
    ) -> None:
        super().__init__(app)
        self.max_body_bytes = max_body_bytes
        self.exempt_paths = frozenset(exempt_paths)

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in self.exempt_paths:
            return await call_next(request)

        content_length = request.headers.get("content-length")
        if content_length is None:
            received = len(await request.body())
        else:
            try:
                received = int(content_length)
            except ValueError:
                return JSONResponse(
                    status_code=HTTP_400_BAD_REQUEST,
                    content={"success": False, "message": "Invalid Content-Length header"},
                )

        if received > self.max_body_bytes:
            logger.warning(
                "Rejected %s %s: body of %d bytes exceeds %d",
                request.method,
                request.url.path,
                received,
                self.max_body_bytes,
            )
            return JSONResponse(
                status_code=HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                content={"success": False, "message": "Request body too large"},
            )

        return await call_next(request)
