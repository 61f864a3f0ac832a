"""API models for checkout endpoints."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from storefront.models.payment import CheckoutSession


class CheckoutSessionRequest(BaseModel):
    """Request to start paying for an order.

    Only the order reference is read. The amount is derived from the stored
    order; any amount the client sends is ignored.
    """

    model_config = ConfigDict(
        strict=True,
        extra="ignore",
        json_schema_extra={"examples": [{"order_id": "ORD-1A2B3C4D5E6F"}]},
    )

    order_id: str = Field(
        ...,
        min_length=1,
        description="Order to pay for",
        examples=["ORD-1A2B3C4D5E6F"],
    )


class CheckoutSessionResponse(BaseModel):
    """Hosted checkout session the client should redirect to."""

    model_config = ConfigDict(strict=True)

    success: bool = True
    session_id: str = Field(..., description="Gateway checkout session ID")
    checkout_url: str | None = Field(..., description="Redirect URL for the hosted page")
    order_id: str
    amount_cents: int
    currency: str
    expires_at: datetime | None = None
    reused: bool = Field(default=False, description="An existing open session was returned")

    @classmethod
    def from_session(cls, session: CheckoutSession) -> "CheckoutSessionResponse":
        return cls(
            session_id=session.session_id,
            checkout_url=session.checkout_url,
            order_id=session.order_id,
            amount_cents=session.amount_cents,
            currency=session.currency,
            expires_at=session.expires_at,
            reused=session.reused,
        )
