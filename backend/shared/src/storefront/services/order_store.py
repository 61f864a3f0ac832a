"""Order store used by the payment core.

The order service owns orders; this module is the narrow contract the
checkout initiator and the webhook reconciler rely on. Every state change is
a single conditional update on the order item (compare-and-swap on
``status``), so two concurrent webhook deliveries can never both move an
order out of ``pending_payment``.
"""

import datetime as dt
import logging
import uuid
from typing import Any

from storefront.models.enums import OrderStatus
from storefront.models.order import Order, OrderItem
from storefront.services.dynamodb import DynamoDBService

logger = logging.getLogger(__name__)


class OrderStore:
    """DynamoDB-backed order access for checkout and reconciliation."""

    ORDERS_TABLE = "orders"
    CHECKOUT_SESSION_INDEX = "checkout-session-index"
    PAYMENT_INTENT_INDEX = "payment-intent-index"

    def __init__(self, db: DynamoDBService) -> None:
        self._db = db

    def create_order(
        self,
        user_id: str,
        items: list[OrderItem],
        *,
        currency: str = "usd",
        shipping_cents: int = 0,
        tax_cents: int = 0,
        order_id: str | None = None,
    ) -> Order:
        """Persist a new order in ``pending_payment``.

        Args:
            user_id: Owning user
            items: Priced line items
            currency: ISO currency code
            shipping_cents: Shipping charge in cents
            tax_cents: Tax in cents
            order_id: Explicit ID (generated when omitted)

        Returns:
            The stored Order.

        Raises:
            ValueError: If an order with this ID already exists.
        """
        order = Order(
            order_id=order_id or f"ORD-{uuid.uuid4().hex[:12].upper()}",
            user_id=user_id,
            items=items,
            currency=currency.lower(),
            shipping_cents=shipping_cents,
            tax_cents=tax_cents,
            status=OrderStatus.PENDING_PAYMENT,
            created_at=dt.datetime.now(dt.UTC),
        )
        created = self._db.put_item(
            self.ORDERS_TABLE,
            {
                "order_id": order.order_id,
                "user_id": order.user_id,
                "items": [item.model_dump() for item in order.items],
                "currency": order.currency,
                "shipping_cents": order.shipping_cents,
                "tax_cents": order.tax_cents,
                "status": order.status.value,
                "created_at": order.created_at.isoformat(),
            },
            condition_expression="attribute_not_exists(order_id)",
        )
        if not created:
            raise ValueError(f"Order {order.order_id} already exists")
        return order

    def get_order(self, order_id: str) -> Order | None:
        item = self._db.get_item(self.ORDERS_TABLE, {"order_id": order_id}, consistent_read=True)
        return self._item_to_order(item) if item else None

    def get_by_checkout_session(self, session_id: str) -> Order | None:
        """Resolve the order currently bound to a gateway checkout session."""
        return self._get_by_index(self.CHECKOUT_SESSION_INDEX, "checkout_session_id", session_id)

    def get_by_payment_intent(self, payment_intent_id: str) -> Order | None:
        return self._get_by_index(self.PAYMENT_INTENT_INDEX, "payment_intent_id", payment_intent_id)

    def _get_by_index(self, index_name: str, attribute: str, value: str) -> Order | None:
        items = self._db.query_by_gsi(self.ORDERS_TABLE, index_name, attribute, value)
        if not items:
            return None
        if len(items) > 1:
            logger.warning("%s=%s matches %d orders, using the first", attribute, value, len(items))
        # GSI reads are eventually consistent; re-read the base item
        return self.get_order(items[0]["order_id"])

    def attach_checkout_session(
        self,
        order_id: str,
        session_id: str,
        amount_cents: int,
        previous_session_id: str | None = None,
    ) -> bool:
        """Bind a checkout session to an order still awaiting payment.

        Args:
            order_id: Order being paid
            session_id: New gateway session
            amount_cents: Total the session was created for
            previous_session_id: Session this one supersedes, if any

        Returns:
            True if bound, False if the order left ``pending_payment`` meanwhile.
        """
        attrs = self._db.update_item(
            self.ORDERS_TABLE,
            {"order_id": order_id},
            "SET checkout_session_id = :sid, checkout_amount_cents = :amount, "
            "previous_checkout_session_id = :previous, updated_at = :now",
            {
                ":sid": session_id,
                ":amount": amount_cents,
                ":previous": previous_session_id,
                ":now": dt.datetime.now(dt.UTC).isoformat(),
                ":pending": OrderStatus.PENDING_PAYMENT.value,
            },
            {"#status": "status"},
            condition_expression="#status = :pending",
        )
        return attrs is not None

    def clear_checkout_session(self, order_id: str, session_id: str) -> bool:
        """Drop the session reference if it still points at ``session_id``."""
        attrs = self._db.update_item(
            self.ORDERS_TABLE,
            {"order_id": order_id},
            "REMOVE checkout_session_id, checkout_amount_cents "
            "SET previous_checkout_session_id = :sid, updated_at = :now",
            {
                ":sid": session_id,
                ":now": dt.datetime.now(dt.UTC).isoformat(),
                ":pending": OrderStatus.PENDING_PAYMENT.value,
            },
            {"#status": "status"},
            condition_expression="checkout_session_id = :sid AND #status = :pending",
        )
        return attrs is not None

    def transition_status(
        self,
        order_id: str,
        from_status: OrderStatus,
        to_status: OrderStatus,
        *,
        expected: dict[str, Any] | None = None,
        updates: dict[str, Any] | None = None,
    ) -> Order | None:
        """Atomically move an order from one status to another.

        The write only happens if the stored status equals ``from_status``
        and every ``expected`` attribute matches, all evaluated by DynamoDB
        in the same request.

        Args:
            order_id: Order to update
            from_status: Required current status
            to_status: New status
            expected: Extra attribute equality conditions
            updates: Extra attributes to set alongside the status

        Returns:
            The updated Order, or None if a condition did not hold.
        """
        now = dt.datetime.now(dt.UTC).isoformat()
        set_clauses = ["#status = :to_status", "updated_at = :now"]
        values: dict[str, Any] = {
            ":to_status": to_status.value,
            ":from_status": from_status.value,
            ":now": now,
        }
        names = {"#status": "status"}
        conditions = ["#status = :from_status"]

        for i, (attr, value) in enumerate((updates or {}).items()):
            names[f"#u{i}"] = attr
            values[f":u{i}"] = value
            set_clauses.append(f"#u{i} = :u{i}")

        for i, (attr, value) in enumerate((expected or {}).items()):
            names[f"#e{i}"] = attr
            values[f":e{i}"] = value
            conditions.append(f"#e{i} = :e{i}")

        attrs = self._db.update_item(
            self.ORDERS_TABLE,
            {"order_id": order_id},
            "SET " + ", ".join(set_clauses),
            values,
            names,
            condition_expression=" AND ".join(conditions),
        )
        if attrs is None:
            return None

        logger.info("Order %s transitioned %s -> %s", order_id, from_status.value, to_status.value)
        return self._item_to_order(attrs)

    @staticmethod
    def _item_to_order(item: dict[str, Any]) -> Order:
        """Convert a DynamoDB item (numbers come back as Decimal) to an Order."""

        def _int(value: Any) -> int | None:
            return int(value) if value is not None else None

        def _ts(value: Any) -> dt.datetime | None:
            return dt.datetime.fromisoformat(value) if value else None

        items = [
            OrderItem(
                product_id=str(raw["product_id"]),
                name=str(raw["name"]),
                quantity=int(raw["quantity"]),
                unit_amount_cents=int(raw["unit_amount_cents"]),
            )
            for raw in item.get("items", [])
        ]
        return Order(
            order_id=item["order_id"],
            user_id=item["user_id"],
            items=items,
            currency=item.get("currency", "usd"),
            shipping_cents=int(item.get("shipping_cents", 0)),
            tax_cents=int(item.get("tax_cents", 0)),
            status=OrderStatus(item["status"]),
            checkout_session_id=item.get("checkout_session_id"),
            checkout_amount_cents=_int(item.get("checkout_amount_cents")),
            previous_checkout_session_id=item.get("previous_checkout_session_id"),
            payment_intent_id=item.get("payment_intent_id"),
            created_at=dt.datetime.fromisoformat(item["created_at"]),
            paid_at=_ts(item.get("paid_at")),
        )
