"""API models for registration, login and the current user."""

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from storefront.models.auth import PublicUser
from storefront.services.credential_store import MAX_PASSWORD_BYTES

MIN_PASSWORD_LENGTH = 8


class RegisterRequest(BaseModel):
    """Request to create an account."""

    model_config = ConfigDict(
        strict=True,
        json_schema_extra={
            "examples": [
                {"name": "Ada Lovelace", "email": "ada@example.com", "password": "correct-horse"}
            ]
        },
    )

    name: str = Field(..., min_length=1, max_length=100, description="Display name")
    email: EmailStr = Field(..., description="Login email")
    password: str = Field(..., min_length=MIN_PASSWORD_LENGTH, description="Plain-text password")

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value: str) -> str:
        if len(value.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValueError(f"password must be at most {MAX_PASSWORD_BYTES} bytes")
        return value


class LoginRequest(BaseModel):
    model_config = ConfigDict(
        strict=True,
        json_schema_extra={"examples": [{"email": "ada@example.com", "password": "correct-horse"}]},
    )

    email: EmailStr
    password: str = Field(..., min_length=1)


class AuthResponse(BaseModel):
    """Login/registration result.

    The token is also set as an httpOnly cookie; the body copy is for
    clients that send it as a Bearer header.
    """

    model_config = ConfigDict(strict=True)

    success: bool = True
    token: str = Field(..., description="Signed identity token")
    user: PublicUser


class CurrentUserResponse(BaseModel):
    model_config = ConfigDict(strict=True)

    success: bool = True
    user: PublicUser
