"""Auth guard for protected endpoints.

Resolves the caller's identity from the session token before a protected
handler runs. Every failure produces the same 401 response; the internal
reason only goes to the logs.
"""

from starlette.requests import Request

from storefront.models.auth import Identity
from storefront.models.errors import Unauthenticated
from storefront.services.token_service import TokenError, TokenIssuer
from storefront.utils.logging import get_logger, log_auth_event
from storefront_api.session import SessionTransport

logger = get_logger(__name__)


class AuthGuard:
    """Verifies the session token and attaches the identity to the request."""

    def __init__(self, issuer: TokenIssuer, transport: SessionTransport) -> None:
        self._issuer = issuer
        self._transport = transport

    def authenticate(self, request: Request) -> Identity:
        """Resolve the identity for a request.

        The identity is stored on ``request.state.identity`` for the rest of
        this request only.

        Raises:
            Unauthenticated: If no token is present or it fails verification.
        """
        token = self._transport.extract(request)
        if not token:
            log_auth_event(logger, "rejected", reason="missing_token", path=request.url.path)
            raise Unauthenticated()

        try:
            identity = self._issuer.verify(token)
        except TokenError as e:
            log_auth_event(logger, "rejected", reason=e.reason, path=request.url.path)
            raise Unauthenticated() from e

        request.state.identity = identity
        return identity
