"""Order model as seen by the payment core.

Orders are owned by the order service; this core only reads them, binds a
checkout session to them and drives the payment-related status transitions.
Amounts are stored in minor currency units (cents).
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from .enums import OrderStatus


class OrderItem(BaseModel):
    """A priced line item captured when the order was placed."""

    model_config = ConfigDict(strict=True)

    product_id: str = Field(..., description="Catalog product reference")
    name: str = Field(..., description="Product name shown on the checkout page")
    quantity: int = Field(..., gt=0)
    unit_amount_cents: int = Field(..., ge=0, description="Unit price in cents")

    @property
    def subtotal_cents(self) -> int:
        return self.quantity * self.unit_amount_cents


class Order(BaseModel):
    """An order awaiting or past payment."""

    model_config = ConfigDict(strict=True)

    order_id: str = Field(..., description="Unique order ID")
    user_id: str = Field(..., description="Owning user")
    items: list[OrderItem] = Field(..., min_length=1)
    currency: str = Field(default="usd", description="ISO currency code, lower case")
    shipping_cents: int = Field(default=0, ge=0)
    tax_cents: int = Field(default=0, ge=0)
    status: OrderStatus = Field(..., description="Fulfillment state")
    checkout_session_id: str | None = Field(
        default=None,
        description="Gateway checkout session currently bound to this order",
    )
    checkout_amount_cents: int | None = Field(
        default=None,
        description="Amount the bound checkout session was created for",
    )
    previous_checkout_session_id: str | None = Field(
        default=None,
        description="Last session that was superseded or expired for this order",
    )
    payment_intent_id: str | None = Field(default=None)
    created_at: datetime = Field(..., description="Creation timestamp")
    paid_at: datetime | None = Field(default=None)

    @property
    def total_cents(self) -> int:
        """Order total computed from stored line items, shipping and tax."""
        return sum(item.subtotal_cents for item in self.items) + self.shipping_cents + self.tax_cents
