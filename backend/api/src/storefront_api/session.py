"""Session transport: moves identity tokens between server and browser.

The token travels in an httpOnly cookie so page scripts cannot read it.
Non-browser clients may send the token they received in the login body as
an ``Authorization: Bearer`` header instead.
"""

from starlette.requests import Request
from starlette.responses import Response

from storefront.config import AppConfig
from storefront.models.auth import IssuedToken

BEARER_SCHEME = "bearer"


class SessionTransport:
    """Sets, reads and clears the session cookie."""

    def __init__(self, config: AppConfig) -> None:
        self.cookie_name = config.cookie_name
        self.secure = config.cookie_secure
        self.same_site = config.cookie_same_site.value

    def attach(self, response: Response, issued: IssuedToken) -> None:
        """Set the session cookie for a freshly issued token.

        The cookie lives exactly as long as the token.
        """
        max_age = int((issued.expires_at - issued.issued_at).total_seconds())
        response.set_cookie(
            key=self.cookie_name,
            value=issued.token,
            max_age=max_age,
            expires=issued.expires_at,
            path="/",
            secure=self.secure,
            httponly=True,
            samesite=self.same_site,  # type: ignore[arg-type]
        )

    def extract(self, request: Request) -> str | None:
        """Return the raw token from the request, unverified."""
        token = request.cookies.get(self.cookie_name)
        if token:
            return token

        authorization = request.headers.get("Authorization", "")
        scheme, _, credentials = authorization.partition(" ")
        if scheme.lower() == BEARER_SCHEME and credentials.strip():
            return credentials.strip()
        return None

    def clear(self, response: Response) -> None:
        """Expire the session cookie in the browser."""
        response.delete_cookie(
            key=self.cookie_name,
            path="/",
            secure=self.secure,
            httponly=True,
            samesite=self.same_site,  # type: ignore[arg-type]
        )
