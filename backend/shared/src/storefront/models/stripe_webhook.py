"""Webhook event models for verification, idempotency and auditing."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .enums import WebhookProcessingResult


class GatewayEventData(BaseModel):
    """The ``data`` envelope of a gateway event."""

    object: dict[str, Any] = Field(default_factory=dict)


class GatewayEvent(BaseModel):
    """A verified gateway event parsed from the raw request body.

    Only built after the signature over the raw bytes has been checked.
    Unknown fields are ignored so new API versions do not break parsing.
    """

    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., min_length=1, examples=["evt_1ABC123DEF456"])
    type: str = Field(..., min_length=1, examples=["checkout.session.completed"])
    created: int | None = None
    livemode: bool = False
    data: GatewayEventData = Field(default_factory=GatewayEventData)

    @property
    def object(self) -> dict[str, Any]:
        return self.data.object


class WebhookEventRecord(BaseModel):
    """Log of a received webhook event.

    Used for:
    - Idempotency: prevent processing same event twice
    - Auditing: track all webhook deliveries
    - Manual review: events that could not be reconciled
    """

    model_config = ConfigDict(strict=True)

    event_id: str = Field(
        ...,
        description="Gateway event ID (evt_xxx)",
        examples=["evt_1ABC123DEF456"],
    )
    event_type: str = Field(
        ...,
        description="Gateway event type",
        examples=["checkout.session.completed", "charge.refunded"],
    )
    received_at: datetime = Field(..., description="When the event was claimed")
    processed_at: datetime | None = Field(
        default=None,
        description="When processing finished",
    )
    payload_hash: str = Field(
        ...,
        description="SHA-256 hash of the raw payload",
        examples=["a1b2c3d4e5f6..."],
    )
    order_id: str | None = Field(
        default=None,
        description="Associated order ID",
    )
    processing_result: WebhookProcessingResult = Field(
        default=WebhookProcessingResult.PROCESSING,
    )
    error_message: str | None = Field(
        default=None,
        description="Error details if processing failed or needs review",
    )


class WebhookOutcome(BaseModel):
    """Acknowledgement returned to the gateway."""

    model_config = ConfigDict(strict=True)

    received: bool = True
    event_id: str | None = None
    event_type: str | None = None
    processing_result: WebhookProcessingResult
    message: str | None = None
