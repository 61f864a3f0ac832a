"""Checkout session model mirroring the gateway-side record."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from .enums import CheckoutSessionStatus


class CheckoutSession(BaseModel):
    """A payment-provider checkout session bound to one order.

    The authoritative record lives at the gateway; this is the subset the
    backend reads back.
    """

    model_config = ConfigDict(strict=True)

    session_id: str = Field(
        ...,
        description="Gateway checkout session ID (cs_xxx)",
        examples=["cs_test_abc123def456"],
    )
    order_id: str = Field(..., description="Order reference from session metadata")
    user_id: str | None = Field(default=None, description="Owning user from metadata")
    amount_cents: int = Field(..., ge=0, description="amount_total in minor units")
    currency: str = Field(..., description="Lower-case ISO currency code")
    status: CheckoutSessionStatus
    checkout_url: str | None = Field(
        default=None,
        description="Hosted checkout URL for the redirect",
        examples=["https://checkout.stripe.com/c/pay/cs_test_abc123"],
    )
    expires_at: datetime | None = Field(
        default=None,
        description="When the checkout session expires",
    )
    reused: bool = Field(
        default=False,
        description="True when an existing open session was returned",
    )
