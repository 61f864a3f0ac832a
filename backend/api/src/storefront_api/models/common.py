"""Shared API request/response models.

HTTP/API layer concerns only; domain models are in storefront.models.
"""

from pydantic import BaseModel, ConfigDict, Field

# Re-export ToolError for convenience - this is the standard error format
from storefront.models.errors import ErrorCode, ToolError

__all__ = [
    "ErrorCode",
    "ToolError",
    "SuccessMessage",
    "HealthResponse",
]


class SuccessMessage(BaseModel):
    """Generic success response for operations without data payload."""

    model_config = ConfigDict(strict=True)

    success: bool = True
    message: str = Field(
        default="Operation completed successfully",
        description="Human-readable success message",
    )


class HealthResponse(BaseModel):
    model_config = ConfigDict(strict=True)

    status: str = Field(..., examples=["ok"])
    service: str = Field(..., examples=["storefront-api"])
    version: str
    environment: str
    timestamp: str
