"""Unit tests for the token issuer/verifier."""

import base64
import datetime as dt
import json

import jwt
import pytest
from jwt.algorithms import HMACAlgorithm
from jwt.utils import base64url_encode

from storefront.models.errors import ConfigurationError
from storefront.services.token_service import (
    InvalidSignature,
    MalformedToken,
    TokenError,
    TokenExpired,
    TokenIssuer,
)

SECRET = "unit-test-secret-with-enough-length-32"
ISSUED_AT = dt.datetime(2026, 3, 1, 12, 0, 0, 500000, tzinfo=dt.UTC)


@pytest.fixture
def issuer() -> TokenIssuer:
    return TokenIssuer(SECRET, dt.timedelta(days=7), clock=lambda: ISSUED_AT)


def _b64(data: dict) -> str:
    raw = json.dumps(data, separators=(",", ":")).encode()
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode()


class TestIssue:
    """Tests for token issuing."""

    def test_round_trip_returns_subject(self, issuer: TokenIssuer) -> None:
        issued = issuer.issue("U7")

        identity = issuer.verify(issued.token, now=ISSUED_AT + dt.timedelta(hours=1))

        assert identity.user_id == "U7"
        assert identity.expires_at == issued.expires_at

    def test_expiry_is_issued_at_plus_lifetime(self, issuer: TokenIssuer) -> None:
        issued = issuer.issue("U7")

        assert issued.issued_at == ISSUED_AT.replace(microsecond=0)
        assert issued.expires_at - issued.issued_at == dt.timedelta(days=7)
        assert issued.subject == "U7"

    def test_claims_are_standard_jwt(self, issuer: TokenIssuer) -> None:
        issued = issuer.issue("U7")

        claims = jwt.decode(issued.token, SECRET, algorithms=["HS256"], options={"verify_exp": False})

        assert claims["sub"] == "U7"
        assert claims["exp"] - claims["iat"] == 7 * 24 * 3600

    def test_empty_subject_rejected(self, issuer: TokenIssuer) -> None:
        with pytest.raises(ValueError):
            issuer.issue("")


class TestConstruction:
    """Tests for startup-time validation."""

    def test_missing_secret_is_configuration_error(self) -> None:
        with pytest.raises(ConfigurationError):
            TokenIssuer("", dt.timedelta(days=7))

    def test_non_positive_lifetime_is_configuration_error(self) -> None:
        with pytest.raises(ConfigurationError):
            TokenIssuer(SECRET, dt.timedelta(0))


class TestVerifyExpiry:
    """Tests for the expiry boundary."""

    def test_valid_one_second_before_expiry(self, issuer: TokenIssuer) -> None:
        issued = issuer.issue("U7")

        identity = issuer.verify(issued.token, now=issued.expires_at - dt.timedelta(seconds=1))

        assert identity.user_id == "U7"

    def test_expired_exactly_at_expiry(self, issuer: TokenIssuer) -> None:
        issued = issuer.issue("U7")

        with pytest.raises(TokenExpired):
            issuer.verify(issued.token, now=issued.expires_at)

    def test_expired_after_lifetime(self, issuer: TokenIssuer) -> None:
        issued = issuer.issue("U7")

        with pytest.raises(TokenExpired) as exc_info:
            issuer.verify(issued.token, now=ISSUED_AT + dt.timedelta(days=8))

        assert exc_info.value.reason == "expired"

    def test_uses_injected_clock_by_default(self) -> None:
        now = {"value": ISSUED_AT}
        issuer = TokenIssuer(SECRET, dt.timedelta(minutes=5), clock=lambda: now["value"])
        issued = issuer.issue("U7")

        now["value"] = ISSUED_AT + dt.timedelta(minutes=10)

        with pytest.raises(TokenExpired):
            issuer.verify(issued.token)


class TestVerifySignature:
    """Tests for signature checks on altered tokens."""

    def test_every_single_byte_mutation_is_invalid_signature(self, issuer: TokenIssuer) -> None:
        token = issuer.issue("U7").token
        now = ISSUED_AT + dt.timedelta(hours=1)

        # Separator positions included
        for position, char in enumerate(token):
            replacement = "A" if char != "A" else "B"
            mutated = token[:position] + replacement + token[position + 1 :]

            with pytest.raises(InvalidSignature):
                issuer.verify(mutated, now=now)

    def test_dropped_separator_is_invalid_signature(self, issuer: TokenIssuer) -> None:
        header, payload, signature = issuer.issue("U7").token.split(".")

        with pytest.raises(InvalidSignature):
            issuer.verify(f"{header}{payload}.{signature}", now=ISSUED_AT)

    def test_payload_mutation_is_invalid_signature(self, issuer: TokenIssuer) -> None:
        token = issuer.issue("U7").token
        header, payload, signature = token.split(".")
        claims = json.loads(base64.urlsafe_b64decode(payload + "=" * (-len(payload) % 4)))
        claims["sub"] = "U8"

        forged = ".".join([header, _b64(claims), signature])

        with pytest.raises(InvalidSignature):
            issuer.verify(forged, now=ISSUED_AT)

    def test_token_signed_with_other_secret_rejected(self, issuer: TokenIssuer) -> None:
        other = TokenIssuer("another-secret-that-is-32-chars-long!", dt.timedelta(days=7), clock=lambda: ISSUED_AT)

        with pytest.raises(InvalidSignature):
            issuer.verify(other.issue("U7").token, now=ISSUED_AT)

    def test_alg_none_token_rejected(self, issuer: TokenIssuer) -> None:
        header = _b64({"alg": "none", "typ": "JWT"})
        payload = _b64({"sub": "U7", "iat": 1, "exp": 9999999999})

        with pytest.raises(InvalidSignature):
            issuer.verify(f"{header}.{payload}.", now=ISSUED_AT)


class TestVerifyMalformed:
    """Tests for tokens that cannot be parsed."""

    @pytest.mark.parametrize("token", ["", "abc"])
    def test_no_signature_segment(self, issuer: TokenIssuer, token: str) -> None:
        with pytest.raises(MalformedToken) as exc_info:
            issuer.verify(token, now=ISSUED_AT)

        assert exc_info.value.reason == "malformed"

    @pytest.mark.parametrize("signing_input", ["a", "a.b.c"])
    def test_signed_wrong_segment_count_is_malformed(self, issuer: TokenIssuer, signing_input: str) -> None:
        hmac = HMACAlgorithm(HMACAlgorithm.SHA256)
        signature = hmac.sign(signing_input.encode(), hmac.prepare_key(SECRET))
        token = f"{signing_input}.{base64url_encode(signature).decode()}"

        with pytest.raises(MalformedToken):
            issuer.verify(token, now=ISSUED_AT)

    @pytest.mark.parametrize("token", ["a.b", "a.b.c.d"])
    def test_unsigned_wrong_segment_count_is_invalid_signature(self, issuer: TokenIssuer, token: str) -> None:
        with pytest.raises(InvalidSignature):
            issuer.verify(token, now=ISSUED_AT)

    def test_missing_exp_claim_is_malformed(self, issuer: TokenIssuer) -> None:
        token = jwt.encode({"sub": "U7", "iat": 1}, SECRET, algorithm="HS256")

        with pytest.raises(MalformedToken):
            issuer.verify(token, now=ISSUED_AT)

    def test_all_failures_share_base_class(self) -> None:
        assert issubclass(InvalidSignature, TokenError)
        assert issubclass(TokenExpired, TokenError)
        assert issubclass(MalformedToken, TokenError)
