"""Authentication endpoints.

Provides REST endpoints for:
- Registering an account (sets the session cookie)
- Logging in with email and password (sets the session cookie)
- Logging out (clears the session cookie)
- Reading the current user (auth required)

Register and login deliver the token twice: as an httpOnly cookie for
browsers and in the response body for other clients.
"""

from fastapi import APIRouter, Depends, Response
from starlette.concurrency import run_in_threadpool
from starlette.status import HTTP_201_CREATED

from storefront.models.auth import Identity, PublicUser
from storefront.models.errors import Unauthenticated
from storefront.services.credential_store import UserStore
from storefront.services.token_service import TokenIssuer
from storefront.utils.logging import get_logger, log_auth_event
from storefront_api.dependencies import (
    get_session_transport,
    get_token_issuer,
    get_user_store,
    require_identity,
)
from storefront_api.models.auth import (
    AuthResponse,
    CurrentUserResponse,
    LoginRequest,
    RegisterRequest,
)
from storefront_api.models.common import SuccessMessage, ToolError
from storefront_api.session import SessionTransport

logger = get_logger(__name__)

router = APIRouter(tags=["auth"])


@router.post(
    "/register",
    summary="Create an account",
    response_model=AuthResponse,
    status_code=HTTP_201_CREATED,
    responses={
        409: {"description": "Email already registered", "model": ToolError},
    },
)
async def register(
    body: RegisterRequest,
    response: Response,
    users: UserStore = Depends(get_user_store),
    issuer: TokenIssuer = Depends(get_token_issuer),
    transport: SessionTransport = Depends(get_session_transport),
) -> AuthResponse:
    # bcrypt is CPU bound
    user = await run_in_threadpool(users.create_user, body.email, body.password, body.name)

    issued = issuer.issue(user.user_id)
    transport.attach(response, issued)
    log_auth_event(logger, "register", user_id=user.user_id)

    return AuthResponse(token=issued.token, user=PublicUser.from_user(user))


@router.post(
    "/login",
    summary="Log in with email and password",
    response_model=AuthResponse,
    responses={
        401: {"description": "Invalid email or password", "model": ToolError},
    },
)
async def login(
    body: LoginRequest,
    response: Response,
    users: UserStore = Depends(get_user_store),
    issuer: TokenIssuer = Depends(get_token_issuer),
    transport: SessionTransport = Depends(get_session_transport),
) -> AuthResponse:
    """Check the credentials and start a session.

    Unknown email and wrong password produce the same 401.
    """
    user = await run_in_threadpool(users.authenticate, body.email, body.password)

    issued = issuer.issue(user.user_id)
    transport.attach(response, issued)
    log_auth_event(logger, "login", user_id=user.user_id)

    return AuthResponse(token=issued.token, user=PublicUser.from_user(user))


@router.post("/logout", summary="End the browser session", response_model=SuccessMessage)
async def logout(
    response: Response,
    transport: SessionTransport = Depends(get_session_transport),
) -> SuccessMessage:
    # Tokens are stateless; this only removes the cookie from the browser
    transport.clear(response)
    log_auth_event(logger, "logout")
    return SuccessMessage(message="Logged out")


@router.get(
    "/me",
    summary="Current user",
    response_model=CurrentUserResponse,
    responses={401: {"description": "Not authenticated", "model": ToolError}},
)
async def me(
    identity: Identity = Depends(require_identity),
    users: UserStore = Depends(get_user_store),
) -> CurrentUserResponse:
    user = await run_in_threadpool(users.get_user, identity.user_id)
    if user is None:
        # Valid token for an account that no longer exists
        log_auth_event(logger, "rejected", user_id=identity.user_id, reason="unknown_subject")
        raise Unauthenticated()
    return CurrentUserResponse(user=PublicUser.from_user(user))
