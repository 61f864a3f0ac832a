"""Checkout initiator: turns an authenticated request into a payment session.

The charged amount always comes from the stored order. At most one open
gateway session is kept per order: an open session for the same amount is
handed back again, one for a different amount is expired before a new
session is created.
"""

import logging

from storefront.models.auth import Identity
from storefront.models.enums import CheckoutSessionStatus, OrderStatus
from storefront.models.errors import Forbidden, OrderNotFound, OrderNotPayable
from storefront.models.payment import CheckoutSession
from storefront.services.order_store import OrderStore
from storefront.services.stripe_service import StripeService
from storefront.utils.logging import log_payment_operation

logger = logging.getLogger(__name__)


def idempotency_key(order_id: str, previous_session_id: str | None, amount_cents: int) -> str:
    """Gateway idempotency key for one checkout attempt.

    A retry of the same attempt maps to the same key, while superseding a
    session or changing the amount starts a new one.
    """
    return f"checkout-{order_id}-{previous_session_id or 'initial'}-{amount_cents}"


class CheckoutService:
    """Creates or reuses gateway checkout sessions for pending orders."""

    def __init__(self, orders: OrderStore, gateway: StripeService) -> None:
        self._orders = orders
        self._gateway = gateway

    def create_checkout_session(self, identity: Identity, order_id: str) -> CheckoutSession:
        """Return a payable checkout session for the caller's order.

        Args:
            identity: Verified caller
            order_id: Order to pay

        Returns:
            CheckoutSession with the redirect URL (``reused`` set when an
            existing open session was returned).

        Raises:
            OrderNotFound: If the order does not exist.
            Forbidden: If the order belongs to another user.
            OrderNotPayable: If the order is not awaiting payment.
            PaymentGatewayError: If the gateway call fails.
        """
        order = self._orders.get_order(order_id)
        if order is None:
            raise OrderNotFound(details={"order_id": order_id})
        if order.user_id != identity.user_id:
            logger.warning("User %s attempted checkout for order %s", identity.user_id, order_id)
            raise Forbidden()
        if order.status != OrderStatus.PENDING_PAYMENT:
            raise OrderNotPayable(details={"status": order.status.value})

        amount_cents = order.total_cents

        if order.checkout_session_id:
            existing = self._gateway.retrieve_checkout_session(order.checkout_session_id)
            if existing.status == CheckoutSessionStatus.COMPLETE:
                # Paid at the gateway, confirmation webhook still in flight
                raise OrderNotPayable(details={"status": "payment_in_progress"})
            if existing.status == CheckoutSessionStatus.OPEN:
                if existing.amount_cents == amount_cents:
                    log_payment_operation(
                        logger,
                        "reuse_checkout_session",
                        order_id=order_id,
                        session_id=existing.session_id,
                        amount_cents=amount_cents,
                    )
                    return existing.model_copy(update={"reused": True})
                self._gateway.expire_checkout_session(existing.session_id)
                log_payment_operation(
                    logger,
                    "supersede_checkout_session",
                    order_id=order_id,
                    session_id=existing.session_id,
                    amount_cents=existing.amount_cents,
                    new_amount_cents=amount_cents,
                )

        previous_session_id = order.checkout_session_id or order.previous_checkout_session_id
        session = self._gateway.create_checkout_session(
            order=order,
            amount_cents=amount_cents,
            idempotency_key=idempotency_key(order_id, previous_session_id, amount_cents),
        )

        if session.session_id == order.checkout_session_id:
            return session

        if not self._orders.attach_checkout_session(
            order_id, session.session_id, amount_cents, previous_session_id
        ):
            # Order was paid or cancelled while the session was being created
            self._gateway.expire_checkout_session(session.session_id)
            raise OrderNotPayable()

        return session
