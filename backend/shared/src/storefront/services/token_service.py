"""Identity token issuing and verification.

Tokens are HS256 JWTs carrying ``sub`` (user ID), ``iat`` and ``exp``.
They are stateless: nothing is stored server-side, so a token stays valid
until its expiry or until the signing secret is rotated.

Verification checks the signature over the exact token bytes before any
claim is parsed. A token whose bytes were altered in any signed position
therefore fails as InvalidSignature rather than as a parse error, and the
``alg`` header is never trusted.
"""

import datetime as dt
import logging
from collections.abc import Callable

import jwt
from jwt.algorithms import HMACAlgorithm
from jwt.utils import base64url_decode, base64url_encode

from storefront.config import AppConfig
from storefront.models.auth import Identity, IssuedToken
from storefront.models.errors import ConfigurationError

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
REQUIRED_CLAIMS = ["sub", "iat", "exp"]

Clock = Callable[[], dt.datetime]


def utc_now() -> dt.datetime:
    return dt.datetime.now(dt.UTC)


class TokenError(Exception):
    """Base class for token verification failures.

    ``reason`` is for logs and metrics only; callers answer every subclass
    with the same unauthenticated response.
    """

    reason = "invalid"


class InvalidSignature(TokenError):
    reason = "invalid_signature"


class TokenExpired(TokenError):
    reason = "expired"


class MalformedToken(TokenError):
    reason = "malformed"


class TokenIssuer:
    """Mints and validates signed, time-bounded identity tokens."""

    def __init__(
        self,
        secret: str,
        lifetime: dt.timedelta,
        clock: Clock = utc_now,
    ) -> None:
        """Initialize the issuer.

        Args:
            secret: HS256 signing secret
            lifetime: Validity window of issued tokens
            clock: Returns the current aware UTC datetime

        Raises:
            ConfigurationError: If the secret is missing or the lifetime is not positive.
        """
        if not secret:
            raise ConfigurationError("Token signing secret is not configured")
        if lifetime <= dt.timedelta(0):
            raise ConfigurationError("Token lifetime must be positive")

        self._secret = secret
        self._hmac = HMACAlgorithm(HMACAlgorithm.SHA256)
        self._key = self._hmac.prepare_key(secret)
        self._lifetime = lifetime
        self._clock = clock

    @classmethod
    def from_config(cls, config: AppConfig, clock: Clock = utc_now) -> "TokenIssuer":
        return cls(
            secret=config.jwt_secret,
            lifetime=dt.timedelta(days=config.token_lifetime_days),
            clock=clock,
        )

    @property
    def lifetime(self) -> dt.timedelta:
        return self._lifetime

    def issue(self, subject_id: str) -> IssuedToken:
        """Create a signed token for a subject.

        Args:
            subject_id: User ID to embed as the sub claim

        Returns:
            IssuedToken with the encoded token and its validity window.
        """
        if not subject_id:
            raise ValueError("subject_id is required")

        # JWT timestamps have one-second resolution
        issued_at = self._clock().replace(microsecond=0)
        expires_at = issued_at + self._lifetime

        token = jwt.encode(
            {
                "sub": subject_id,
                "iat": int(issued_at.timestamp()),
                "exp": int(expires_at.timestamp()),
            },
            self._secret,
            algorithm=ALGORITHM,
        )
        return IssuedToken(
            token=token,
            subject=subject_id,
            issued_at=issued_at,
            expires_at=expires_at,
        )

    def verify(self, token: str, now: dt.datetime | None = None) -> Identity:
        """Validate a token and return the identity it carries.

        Args:
            token: Encoded token
            now: Override for the current time (defaults to the issuer clock)

        Returns:
            Identity for the token subject.

        Raises:
            MalformedToken: If the token has no signature segment or its
                claims cannot be parsed once the signature checks out.
            InvalidSignature: If the signature does not match the token bytes.
            TokenExpired: If the current time is at or past the expiry.
        """
        if not token or "." not in token:
            raise MalformedToken()

        self._check_signature(token)

        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[ALGORITHM],
                options={"verify_exp": False, "verify_iat": False, "require": REQUIRED_CLAIMS},
            )
        except jwt.InvalidSignatureError as e:
            raise InvalidSignature() from e
        except jwt.PyJWTError as e:
            raise MalformedToken() from e

        try:
            subject = str(claims["sub"])
            issued_at = dt.datetime.fromtimestamp(int(claims["iat"]), tz=dt.UTC)
            expires_at = dt.datetime.fromtimestamp(int(claims["exp"]), tz=dt.UTC)
        except (TypeError, ValueError, OverflowError) as e:
            raise MalformedToken() from e

        current = now or self._clock()
        if current >= expires_at:
            raise TokenExpired()

        return Identity(user_id=subject, issued_at=issued_at, expires_at=expires_at)

    def _check_signature(self, token: str) -> None:
        """Compare the signature segment against an HMAC of the signing input.

        The segment must also be the canonical base64url encoding of the
        digest, otherwise trailing-bit variants of a valid signature would
        pass.
        """
        signing_input, _, signature_segment = token.rpartition(".")
        try:
            signature = base64url_decode(signature_segment)
        except ValueError as e:
            # binascii.Error subclasses ValueError
            raise InvalidSignature() from e

        canonical = base64url_encode(signature).decode("ascii")
        if canonical != signature_segment:
            raise InvalidSignature()

        if not self._hmac.verify(signing_input.encode("utf-8"), self._key, signature):
            raise InvalidSignature()
