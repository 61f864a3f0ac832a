"""Webhook handler for verifying and reconciling Stripe events.

Provides business logic for handling webhook events separate from
HTTP routing concerns. This enables:
- Unit testing without HTTP overhead
- Reuse across different transport mechanisms

Processing order for every delivery:
1. Verify the signature over the exact raw body (no side effects on failure)
2. Claim the event ID; a second delivery of a claimed event is a duplicate
3. Dispatch by event type and record the result on the claim

Events that are authentic but cannot be matched to an order are recorded
for manual review and still acknowledged, so the gateway does not keep
retrying something only an operator can fix. Unexpected failures release
the claim and propagate, so the gateway's retry can process the event.
"""

import datetime as dt
import logging
from collections.abc import Callable
from typing import Any

from storefront.models.enums import OrderStatus, WebhookProcessingResult
from storefront.models.errors import ReconciliationError
from storefront.models.stripe_webhook import GatewayEvent, WebhookOutcome
from storefront.services.event_store import ProcessedEventStore
from storefront.services.order_store import OrderStore
from storefront.services.stripe_service import StripeService
from storefront.utils.logging import log_webhook_event

logger = logging.getLogger(__name__)

# (result, order_id, message)
HandlerResult = tuple[WebhookProcessingResult, str | None, str | None]


class WebhookHandler:
    """Handler for processing Stripe webhook events.

    Drives the ``pending_payment -> paid`` transition (and refunds) with
    compare-and-swap updates on the order. Ensures idempotent processing
    through the processed-event store.
    """

    def __init__(
        self,
        gateway: StripeService,
        orders: OrderStore,
        events: ProcessedEventStore,
    ) -> None:
        self._gateway = gateway
        self._orders = orders
        self._events = events
        self._handlers: dict[str, Callable[[GatewayEvent], HandlerResult]] = {
            "checkout.session.completed": self.process_checkout_completed,
            "checkout.session.async_payment_succeeded": self.process_checkout_completed,
            "checkout.session.expired": self.process_checkout_expired,
            "charge.refunded": self.process_charge_refunded,
        }

    def handle(self, raw_body: bytes, signature_header: str | None) -> WebhookOutcome:
        """Verify, deduplicate and process one webhook delivery.

        Args:
            raw_body: Exact request body bytes
            signature_header: Stripe-Signature header value

        Returns:
            WebhookOutcome acknowledging the event.

        Raises:
            InvalidWebhookSignature: If the delivery is not authentic.
            InvalidWebhookPayload: If the signed body is not a usable event.
        """
        event = self._gateway.verify_webhook_signature(raw_body, signature_header)
        payload_hash = self._gateway.compute_payload_hash(raw_body)

        if not self._events.claim(event.id, event.type, payload_hash):
            log_webhook_event(logger, event.type, event.id, result="duplicate")
            return WebhookOutcome(
                event_id=event.id,
                event_type=event.type,
                processing_result=WebhookProcessingResult.DUPLICATE,
                message="Event already processed",
            )

        handler = self._handlers.get(event.type, self._process_unhandled)
        try:
            result, order_id, message = handler(event)
        except ReconciliationError as e:
            self._events.complete(
                event.id,
                WebhookProcessingResult.MANUAL_REVIEW,
                order_id=e.order_id,
                error_message=e.reason,
            )
            log_webhook_event(
                logger,
                event.type,
                event.id,
                order_id=e.order_id,
                session_id=event.object.get("id"),
                result="manual_review",
                error=e.reason,
            )
            return WebhookOutcome(
                event_id=event.id,
                event_type=event.type,
                processing_result=WebhookProcessingResult.MANUAL_REVIEW,
                message="Event recorded for manual review",
            )
        except Exception:
            logger.exception("Processing failed for event %s, releasing claim", event.id)
            self._events.release(event.id)
            raise

        self._events.complete(event.id, result, order_id=order_id, error_message=message)
        log_webhook_event(
            logger,
            event.type,
            event.id,
            order_id=order_id,
            result=result.value,
            error=message if result != WebhookProcessingResult.SUCCESS else None,
        )
        return WebhookOutcome(
            event_id=event.id,
            event_type=event.type,
            processing_result=result,
            message=message,
        )

    def process_checkout_completed(self, event: GatewayEvent) -> HandlerResult:
        """Mark the order bound to a paid checkout session as paid.

        Raises:
            ReconciliationError: If the session cannot be matched to its order
                or the paid amount differs from what the session was created for.
        """
        session = event.object
        session_id = session.get("id")
        metadata = session.get("metadata") or {}
        metadata_order_id = metadata.get("order_id")
        payment_status = session.get("payment_status")

        if payment_status != "paid":
            return (
                WebhookProcessingResult.SKIPPED,
                metadata_order_id,
                f"Payment status is '{payment_status}', not 'paid'",
            )

        if not session_id:
            raise ReconciliationError("Checkout session ID missing from event", metadata_order_id)

        order = self._orders.get_by_checkout_session(session_id)
        if order is None:
            raise ReconciliationError(
                f"No order bound to checkout session {session_id}", metadata_order_id
            )
        if metadata_order_id and metadata_order_id != order.order_id:
            raise ReconciliationError(
                f"Session metadata order {metadata_order_id} does not match "
                f"bound order {order.order_id}",
                order.order_id,
            )

        if order.status != OrderStatus.PENDING_PAYMENT:
            return (
                WebhookProcessingResult.SKIPPED,
                order.order_id,
                f"Order is {order.status.value}, not pending_payment",
            )

        amount_total = session.get("amount_total")
        if amount_total != order.checkout_amount_cents:
            raise ReconciliationError(
                f"Paid amount {amount_total} does not match session amount "
                f"{order.checkout_amount_cents}",
                order.order_id,
            )
        currency = str(session.get("currency") or "").lower()
        if currency != order.currency:
            raise ReconciliationError(
                f"Paid currency {currency} does not match order currency {order.currency}",
                order.order_id,
            )

        updates: dict[str, Any] = {"paid_at": dt.datetime.now(dt.UTC).isoformat()}
        payment_intent_id = session.get("payment_intent")
        if payment_intent_id:
            updates["payment_intent_id"] = payment_intent_id

        updated = self._orders.transition_status(
            order.order_id,
            OrderStatus.PENDING_PAYMENT,
            OrderStatus.PAID,
            expected={"checkout_session_id": session_id},
            updates=updates,
        )
        if updated is None:
            # Lost the race against a concurrent transition
            return (
                WebhookProcessingResult.SKIPPED,
                order.order_id,
                "Order left pending_payment before the update",
            )

        return WebhookProcessingResult.SUCCESS, order.order_id, None

    def process_checkout_expired(self, event: GatewayEvent) -> HandlerResult:
        """Forget an expired session so the next checkout creates a fresh one."""
        session_id = event.object.get("id")
        order = self._orders.get_by_checkout_session(session_id) if session_id else None
        if order is None:
            return WebhookProcessingResult.SKIPPED, None, "No order bound to this session"

        if not self._orders.clear_checkout_session(order.order_id, session_id):
            return WebhookProcessingResult.SKIPPED, order.order_id, "Session no longer bound"

        return WebhookProcessingResult.SUCCESS, order.order_id, None

    def process_charge_refunded(self, event: GatewayEvent) -> HandlerResult:
        """Move a fully refunded order from paid to refunded.

        Raises:
            ReconciliationError: If no order is known for the payment intent.
        """
        charge = event.object
        payment_intent_id = charge.get("payment_intent")
        if not payment_intent_id:
            return WebhookProcessingResult.SKIPPED, None, "No payment_intent in event"

        order = self._orders.get_by_payment_intent(payment_intent_id)
        if order is None:
            raise ReconciliationError(f"No order for payment intent {payment_intent_id}")

        if not charge.get("refunded"):
            return (
                WebhookProcessingResult.SKIPPED,
                order.order_id,
                f"Partial refund of {charge.get('amount_refunded', 0)} cents recorded",
            )

        updated = self._orders.transition_status(
            order.order_id, OrderStatus.PAID, OrderStatus.REFUNDED
        )
        if updated is None:
            return (
                WebhookProcessingResult.SKIPPED,
                order.order_id,
                f"Order is {order.status.value}, not paid",
            )

        return WebhookProcessingResult.SUCCESS, order.order_id, None

    def _process_unhandled(self, event: GatewayEvent) -> HandlerResult:
        logger.info("Unhandled webhook event type: %s", event.type)
        return WebhookProcessingResult.SKIPPED, None, f"Unhandled event type {event.type}"
