"""Unit tests for the session cookie transport and auth guard."""

import datetime as dt

import pytest
from starlette.requests import Request
from starlette.responses import Response

from storefront.config import AppConfig
from storefront.models.enums import CookieSameSite
from storefront.models.errors import Unauthenticated
from storefront.services.token_service import TokenIssuer
from storefront_api.security import AuthGuard
from storefront_api.session import SessionTransport

SECRET = "unit-test-secret-with-enough-length-32"
NOW = dt.datetime(2026, 3, 1, 12, 0, 0, tzinfo=dt.UTC)


def _config(**overrides: object) -> AppConfig:
    values: dict[str, object] = {
        "jwt_secret": SECRET,
        "stripe_secret_key": "sk_test_x",
        "stripe_webhook_secret": "whsec_x",
    }
    values.update(overrides)
    return AppConfig.model_validate(values)


def _request(cookie: str | None = None, authorization: str | None = None) -> Request:
    headers: list[tuple[bytes, bytes]] = []
    if cookie is not None:
        headers.append((b"cookie", cookie.encode()))
    if authorization is not None:
        headers.append((b"authorization", authorization.encode()))
    return Request({"type": "http", "method": "GET", "path": "/api/v1/me", "headers": headers})


def _set_cookie_header(response: Response) -> str:
    return response.headers["set-cookie"]


class TestAttach:
    """Tests for cookie attributes."""

    def test_cookie_attributes_in_production(self) -> None:
        config = _config(environment="prod", token_lifetime_days=7)
        issued = TokenIssuer.from_config(config, clock=lambda: NOW).issue("U7")
        response = Response()

        SessionTransport(config).attach(response, issued)

        header = _set_cookie_header(response)
        assert header.startswith(f"token={issued.token};")
        assert "HttpOnly" in header
        assert "Secure" in header
        assert "samesite=lax" in header.lower()
        assert "Max-Age=604800" in header
        assert "Path=/" in header

    def test_cookie_not_secure_locally(self) -> None:
        config = _config(environment="local")
        issued = TokenIssuer.from_config(config, clock=lambda: NOW).issue("U7")
        response = Response()

        SessionTransport(config).attach(response, issued)

        assert "Secure" not in _set_cookie_header(response)

    def test_same_site_none_forces_secure_locally(self) -> None:
        config = _config(environment="local", cookie_same_site=CookieSameSite.NONE)
        issued = TokenIssuer.from_config(config, clock=lambda: NOW).issue("U7")
        response = Response()

        SessionTransport(config).attach(response, issued)

        header = _set_cookie_header(response)
        assert "Secure" in header
        assert "samesite=none" in header.lower()

    def test_cookie_lifetime_matches_token(self) -> None:
        config = _config(environment="prod", token_lifetime_days=2)
        issued = TokenIssuer.from_config(config, clock=lambda: NOW).issue("U7")
        response = Response()

        SessionTransport(config).attach(response, issued)

        assert f"Max-Age={2 * 24 * 3600}" in _set_cookie_header(response)


class TestExtractAndClear:
    """Tests for reading and clearing the session token."""

    def test_extract_reads_cookie(self) -> None:
        transport = SessionTransport(_config())

        assert transport.extract(_request(cookie="token=abc.def.ghi")) == "abc.def.ghi"

    def test_extract_falls_back_to_bearer_header(self) -> None:
        transport = SessionTransport(_config())

        assert transport.extract(_request(authorization="Bearer abc.def.ghi")) == "abc.def.ghi"

    def test_cookie_wins_over_header(self) -> None:
        transport = SessionTransport(_config())

        request = _request(cookie="token=from-cookie", authorization="Bearer from-header")

        assert transport.extract(request) == "from-cookie"

    @pytest.mark.parametrize("authorization", [None, "Basic dXNlcjpwYXNz", "Bearer ", "Bearer"])
    def test_extract_returns_none_without_token(self, authorization: str | None) -> None:
        transport = SessionTransport(_config())

        assert transport.extract(_request(authorization=authorization)) is None

    def test_clear_expires_cookie(self) -> None:
        response = Response()

        SessionTransport(_config(environment="prod")).clear(response)

        header = _set_cookie_header(response)
        assert header.startswith("token=")
        assert "Max-Age=0" in header
        assert "HttpOnly" in header


class TestAuthGuard:
    """Tests for the auth guard."""

    @pytest.fixture
    def guard(self) -> AuthGuard:
        config = _config()
        issuer = TokenIssuer.from_config(config, clock=lambda: NOW)
        return AuthGuard(issuer=issuer, transport=SessionTransport(config))

    def test_valid_cookie_attaches_identity(self, guard: AuthGuard) -> None:
        token = TokenIssuer(SECRET, dt.timedelta(days=7), clock=lambda: NOW).issue("U7").token
        request = _request(cookie=f"token={token}")

        identity = guard.authenticate(request)

        assert identity.user_id == "U7"
        assert request.state.identity == identity

    def test_missing_token_is_unauthenticated(self, guard: AuthGuard) -> None:
        with pytest.raises(Unauthenticated):
            guard.authenticate(_request())

    def test_invalid_and_expired_tokens_look_the_same(self, guard: AuthGuard) -> None:
        expired = TokenIssuer(
            SECRET, dt.timedelta(seconds=1), clock=lambda: NOW - dt.timedelta(days=1)
        ).issue("U7").token

        with pytest.raises(Unauthenticated) as bad:
            guard.authenticate(_request(cookie="token=not.a.token"))
        with pytest.raises(Unauthenticated) as old:
            guard.authenticate(_request(cookie=f"token={expired}"))

        assert bad.value.to_tool_error() == old.value.to_tool_error()

    def test_rejection_reason_is_logged(self, guard: AuthGuard, caplog: pytest.LogCaptureFixture) -> None:
        with pytest.raises(Unauthenticated):
            guard.authenticate(_request(cookie="token=garbage"))

        assert any(getattr(r, "reason", None) == "malformed" for r in caplog.records)

