"""Authentication models for password login and identity tokens.

This module defines models for:
- User: Credential store record (never serialized with the hash)
- IssuedToken: A freshly minted identity token and its validity window
- Identity: The verified subject attached to a request
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class User(BaseModel):
    """A registered customer account.

    Stored in the users table keyed by normalized email.
    """

    model_config = ConfigDict(strict=True)

    user_id: str = Field(..., description="Stable subject identifier")
    email: str = Field(..., description="Lower-cased email address")
    name: str = Field(..., description="Display name")
    password_hash: str = Field(..., repr=False, description="bcrypt hash")
    role: str = Field(default="user", description="Authorization role")
    created_at: datetime = Field(..., description="Registration timestamp (UTC)")


class PublicUser(BaseModel):
    """User fields safe to return to clients."""

    model_config = ConfigDict(strict=True)

    user_id: str
    email: str
    name: str
    role: str

    @classmethod
    def from_user(cls, user: User) -> "PublicUser":
        return cls(user_id=user.user_id, email=user.email, name=user.name, role=user.role)


class IssuedToken(BaseModel):
    """A signed identity token as returned by the token issuer.

    In-memory only: tokens are stateless and never persisted.
    """

    model_config = ConfigDict(strict=True, frozen=True)

    token: str = Field(..., repr=False, description="Encoded JWT")
    subject: str = Field(..., description="User ID embedded as the sub claim")
    issued_at: datetime = Field(..., description="iat claim (UTC)")
    expires_at: datetime = Field(..., description="exp claim (UTC)")


class Identity(BaseModel):
    """Verified identity resolved from a session token."""

    model_config = ConfigDict(strict=True, frozen=True)

    user_id: str
    issued_at: datetime
    expires_at: datetime
