"""Webhook endpoints for the payment gateway.

Provides endpoints for:
- Stripe webhook events (checkout.session.completed, checkout.session.expired,
  charge.refunded)

These endpoints do NOT require session authentication: the sender is
authenticated by the signature over the raw request body.
"""

from collections.abc import Awaitable, Callable

from fastapi import APIRouter, Depends, Request, Response
from fastapi.routing import APIRoute
from starlette.concurrency import run_in_threadpool

from storefront.models.stripe_webhook import WebhookOutcome
from storefront.services.webhook_handler import WebhookHandler
from storefront.utils.logging import get_logger
from storefront_api.dependencies import get_webhook_handler
from storefront_api.models.common import ToolError

logger = get_logger(__name__)

WEBHOOK_PATH = "/payment/webhook"
SIGNATURE_HEADER = "Stripe-Signature"


class RawBodyRoute(APIRoute):
    """Route class that captures the untouched request bytes.

    The body is stored on ``request.state.raw_body`` before any handler
    logic runs, so signature checks see exactly what the sender signed.
    """

    def get_route_handler(self) -> Callable[[Request], Awaitable[Response]]:
        original_handler = super().get_route_handler()

        async def raw_body_handler(request: Request) -> Response:
            request.state.raw_body = await request.body()
            return await original_handler(request)

        return raw_body_handler


router = APIRouter(tags=["webhooks"], route_class=RawBodyRoute)


@router.post(
    WEBHOOK_PATH,
    summary="Receive Stripe webhook events",
    description="""
Endpoint for Stripe webhook events. Handles:
- checkout.session.completed: Marks the order paid
- checkout.session.expired: Releases the order's expired session
- charge.refunded: Marks a fully refunded order as refunded

**No authentication required** - signature is verified using the webhook secret.

**Idempotent**: Duplicate events (same event id) return 200 with 'duplicate' result.
Events that cannot be matched to an order return 200 with 'manual_review'.
""",
    response_model=WebhookOutcome,
    responses={
        200: {"description": "Event received and processed (or acknowledged)"},
        400: {"description": "Invalid signature or payload", "model": ToolError},
    },
)
async def handle_stripe_webhook(
    request: Request,
    handler: WebhookHandler = Depends(get_webhook_handler),
) -> WebhookOutcome:
    payload: bytes = request.state.raw_body
    signature = request.headers.get(SIGNATURE_HEADER)
    return await run_in_threadpool(handler.handle, payload, signature)
