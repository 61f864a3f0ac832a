"""Payment endpoints.

Provides REST endpoints for:
- Creating a hosted checkout session for an order (auth required)

The amount charged is always taken from the stored order.
"""

from fastapi import APIRouter, Depends
from starlette.concurrency import run_in_threadpool

from storefront.models.auth import Identity
from storefront.services.checkout_service import CheckoutService
from storefront.utils.logging import get_logger
from storefront_api.dependencies import get_checkout_service, require_identity
from storefront_api.models.common import ToolError
from storefront_api.models.payments import CheckoutSessionRequest, CheckoutSessionResponse

logger = get_logger(__name__)

router = APIRouter(tags=["payments"])


@router.post(
    "/payment/checkout_session",
    summary="Create checkout session",
    description="""
Create (or reuse) a hosted checkout session for one of the caller's orders.

**Requires authentication** (session cookie or Bearer token).
**Only the order owner can pay.**

**Notes:**
- Amount is taken from the order's line items, shipping and tax (not user-provided)
- An open session for the same amount is returned again (`reused: true`)
- An open session for a different amount is expired and replaced
""",
    response_model=CheckoutSessionResponse,
    responses={
        401: {"description": "Not authenticated", "model": ToolError},
        403: {"description": "Order belongs to another user", "model": ToolError},
        404: {"description": "Order not found", "model": ToolError},
        409: {"description": "Order is not awaiting payment", "model": ToolError},
        502: {"description": "Payment provider error", "model": ToolError},
    },
)
async def create_checkout_session(
    body: CheckoutSessionRequest,
    identity: Identity = Depends(require_identity),
    checkout: CheckoutService = Depends(get_checkout_service),
) -> CheckoutSessionResponse:
    # Gateway calls block on the network; keep them off the event loop
    session = await run_in_threadpool(checkout.create_checkout_session, identity, body.order_id)
    return CheckoutSessionResponse.from_session(session)
