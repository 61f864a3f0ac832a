"""Stripe payment gateway adapter.

Wraps the v8+ StripeClient for checkout sessions and verifies webhook
signatures. The client is built with a bounded request timeout and without
automatic network retries: a failed checkout call is reported to the buyer
instead of being silently repeated.
"""

import datetime as dt
import hashlib
import logging
from typing import Any

import stripe
from pydantic import ValidationError
from stripe import StripeClient

from storefront.config import AppConfig
from storefront.models.enums import CheckoutSessionStatus
from storefront.models.errors import (
    InvalidWebhookPayload,
    InvalidWebhookSignature,
    PaymentGatewayError,
)
from storefront.models.order import Order
from storefront.models.payment import CheckoutSession
from storefront.models.stripe_webhook import GatewayEvent
from storefront.utils.logging import log_payment_operation

logger = logging.getLogger(__name__)


class StripeService:
    """Service for Stripe payment operations.

    Handles:
    - Checkout session creation, retrieval and expiry
    - Webhook signature validation

    Usage:
        stripe_svc = StripeService(config)
        session = stripe_svc.create_checkout_session(
            order=order,
            amount_cents=order.total_cents,
            idempotency_key="checkout-ORD-123-initial",
        )
    """

    def __init__(self, config: AppConfig, client: StripeClient | None = None) -> None:
        """Initialize the adapter.

        Args:
            config: Application configuration (keys, timeout, redirect base URL)
            client: Preconfigured client, mainly for tests
        """
        self._config = config
        self._client = client or StripeClient(
            config.stripe_secret_key,
            http_client=stripe.RequestsClient(timeout=config.gateway_timeout_seconds),
            max_network_retries=0,
        )

    def create_checkout_session(
        self,
        *,
        order: Order,
        amount_cents: int,
        idempotency_key: str,
        customer_email: str | None = None,
    ) -> CheckoutSession:
        """Create a hosted checkout session for an order.

        Args:
            order: Order being paid
            amount_cents: Expected session total, computed from the stored order
            idempotency_key: Gateway idempotency key for this attempt
            customer_email: Optional customer email for the receipt

        Returns:
            The created CheckoutSession.

        Raises:
            PaymentGatewayError: If the gateway rejects the request or is unreachable.
        """
        frontend = self._config.frontend_url.rstrip("/")
        params: dict[str, Any] = {
            "mode": "payment",
            "payment_method_types": ["card"],
            "line_items": self._line_items(order),
            "success_url": f"{frontend}/orders/{order.order_id}?session_id={{CHECKOUT_SESSION_ID}}",
            "cancel_url": f"{frontend}/orders/{order.order_id}",
            "client_reference_id": order.order_id,
            "metadata": {"order_id": order.order_id, "user_id": order.user_id},
            "payment_intent_data": {"metadata": {"order_id": order.order_id}},
        }
        if customer_email:
            params["customer_email"] = customer_email

        try:
            session = self._client.checkout.sessions.create(
                params=params,
                options={"idempotency_key": idempotency_key},
            )
        except stripe.StripeError as e:
            error_code = getattr(e, "code", None)
            log_payment_operation(
                logger,
                "create_checkout_session",
                order_id=order.order_id,
                amount_cents=amount_cents,
                error=f"{e} (code: {error_code})",
            )
            raise PaymentGatewayError(
                f"Failed to create checkout session: {e}",
                gateway_error_code=error_code,
            ) from e

        checkout = self._to_checkout_session(session)
        if checkout.amount_cents != amount_cents:
            # Line items and the stored total disagree; never send the buyer there
            self.expire_checkout_session(checkout.session_id)
            raise PaymentGatewayError(
                f"Session {checkout.session_id} total {checkout.amount_cents} "
                f"does not match order total {amount_cents}"
            )

        log_payment_operation(
            logger,
            "create_checkout_session",
            order_id=order.order_id,
            session_id=checkout.session_id,
            amount_cents=checkout.amount_cents,
            status=checkout.status.value,
        )
        return checkout

    def retrieve_checkout_session(self, session_id: str) -> CheckoutSession:
        """Fetch the current gateway-side state of a checkout session.

        Raises:
            PaymentGatewayError: If the session cannot be retrieved.
        """
        try:
            session = self._client.checkout.sessions.retrieve(session_id)
        except stripe.StripeError as e:
            error_code = getattr(e, "code", None)
            log_payment_operation(
                logger, "retrieve_checkout_session", session_id=session_id, error=str(e)
            )
            raise PaymentGatewayError(
                f"Failed to retrieve checkout session {session_id}: {e}",
                gateway_error_code=error_code,
            ) from e
        return self._to_checkout_session(session)

    def expire_checkout_session(self, session_id: str) -> None:
        """Expire an open checkout session so it can no longer be paid.

        Raises:
            PaymentGatewayError: If the gateway refuses to expire the session.
        """
        try:
            self._client.checkout.sessions.expire(session_id)
        except stripe.StripeError as e:
            error_code = getattr(e, "code", None)
            log_payment_operation(
                logger, "expire_checkout_session", session_id=session_id, error=str(e)
            )
            raise PaymentGatewayError(
                f"Failed to expire checkout session {session_id}: {e}",
                gateway_error_code=error_code,
            ) from e
        log_payment_operation(logger, "expire_checkout_session", session_id=session_id)

    def verify_webhook_signature(self, payload: bytes, signature: str | None) -> GatewayEvent:
        """Verify a webhook signature and parse the event.

        The signature is checked over the exact raw bytes; the body is only
        parsed afterwards.

        Args:
            payload: Raw request body bytes.
            signature: Stripe-Signature header value.

        Returns:
            The verified GatewayEvent.

        Raises:
            InvalidWebhookSignature: If the header is missing, stale or does not match.
            InvalidWebhookPayload: If the signed body is not a usable event.
        """
        if not signature:
            logger.warning("Webhook request without Stripe-Signature header")
            raise InvalidWebhookSignature()

        try:
            text = payload.decode("utf-8")
        except UnicodeDecodeError as e:
            logger.warning("Webhook body is not valid UTF-8")
            raise InvalidWebhookSignature() from e

        try:
            stripe.WebhookSignature.verify_header(
                text,
                signature,
                self._config.stripe_webhook_secret,
                tolerance=self._config.webhook_tolerance_seconds,
            )
        except stripe.SignatureVerificationError as e:
            logger.warning("Invalid webhook signature: %s", str(e))
            raise InvalidWebhookSignature() from e

        try:
            event = GatewayEvent.model_validate_json(payload)
        except ValidationError as e:
            logger.error("Signed webhook payload could not be parsed: %s", e.error_count())
            raise InvalidWebhookPayload() from e

        logger.info("Webhook signature verified for event: %s", event.id)
        return event

    @staticmethod
    def compute_payload_hash(payload: bytes) -> str:
        """Compute SHA-256 hash of webhook payload for the audit record.

        Args:
            payload: Raw webhook payload bytes.

        Returns:
            Hex-encoded SHA-256 hash.
        """
        return hashlib.sha256(payload).hexdigest()

    @staticmethod
    def _line_items(order: Order) -> list[dict[str, Any]]:
        items: list[dict[str, Any]] = [
            {
                "price_data": {
                    "currency": order.currency,
                    "unit_amount": item.unit_amount_cents,
                    "product_data": {
                        "name": item.name,
                        "metadata": {"product_id": item.product_id},
                    },
                },
                "quantity": item.quantity,
            }
            for item in order.items
        ]
        for name, amount in (("Shipping", order.shipping_cents), ("Tax", order.tax_cents)):
            if amount:
                items.append(
                    {
                        "price_data": {
                            "currency": order.currency,
                            "unit_amount": amount,
                            "product_data": {"name": name},
                        },
                        "quantity": 1,
                    }
                )
        return items

    @staticmethod
    def _to_checkout_session(session: Any) -> CheckoutSession:
        metadata = session.metadata or {}
        expires_at = session.expires_at
        return CheckoutSession(
            session_id=session.id,
            order_id=metadata.get("order_id", ""),
            user_id=metadata.get("user_id"),
            amount_cents=int(session.amount_total or 0),
            currency=str(session.currency or "").lower(),
            status=CheckoutSessionStatus(session.status),
            checkout_url=session.url,
            expires_at=dt.datetime.fromtimestamp(expires_at, tz=dt.UTC) if expires_at else None,
        )
