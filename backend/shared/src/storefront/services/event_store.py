"""Processed-event store for webhook idempotency and audit.

An event is claimed with a conditional put before any side effect runs, so
of two concurrent deliveries of the same event only one proceeds. The
claim is then completed with the processing result, or released when
processing failed unexpectedly so the gateway's retry can take it again.
A claim left in ``processing`` longer than the claim timeout (a crashed
worker) can be re-taken.
"""

import datetime as dt
import logging
from typing import Any

from storefront.models.enums import WebhookProcessingResult
from storefront.models.stripe_webhook import WebhookEventRecord
from storefront.services.dynamodb import DynamoDBService

logger = logging.getLogger(__name__)

DEFAULT_CLAIM_TIMEOUT = dt.timedelta(minutes=5)


class ProcessedEventStore:
    """DynamoDB-backed record of webhook events seen by this service."""

    WEBHOOK_EVENTS_TABLE = "webhook-events"

    def __init__(
        self,
        db: DynamoDBService,
        claim_timeout: dt.timedelta = DEFAULT_CLAIM_TIMEOUT,
    ) -> None:
        self._db = db
        self._claim_timeout = claim_timeout

    def claim(self, event_id: str, event_type: str, payload_hash: str) -> bool:
        """Atomically record an event as being processed.

        Args:
            event_id: Gateway event ID
            event_type: Gateway event type
            payload_hash: SHA-256 of the raw payload

        Returns:
            True if this caller owns the event, False if it was already
            processed or is being processed elsewhere.
        """
        now = dt.datetime.now(dt.UTC)
        stale_before = now - self._claim_timeout
        return self._db.put_item(
            self.WEBHOOK_EVENTS_TABLE,
            {
                "event_id": event_id,
                "event_type": event_type,
                "payload_hash": payload_hash,
                "received_at": now.isoformat(),
                "processing_result": WebhookProcessingResult.PROCESSING.value,
            },
            condition_expression=(
                "attribute_not_exists(event_id) OR "
                "(processing_result = :processing AND received_at < :stale_before)"
            ),
            expression_attribute_values={
                ":processing": WebhookProcessingResult.PROCESSING.value,
                ":stale_before": stale_before.isoformat(),
            },
        )

    def complete(
        self,
        event_id: str,
        result: WebhookProcessingResult,
        *,
        order_id: str | None = None,
        error_message: str | None = None,
    ) -> None:
        """Record the final processing result of a claimed event."""
        update = "SET processing_result = :result, processed_at = :now"
        values: dict[str, Any] = {
            ":result": result.value,
            ":now": dt.datetime.now(dt.UTC).isoformat(),
        }
        if order_id:
            update += ", order_id = :order_id"
            values[":order_id"] = order_id
        if error_message:
            update += ", error_message = :error"
            values[":error"] = error_message

        self._db.update_item(self.WEBHOOK_EVENTS_TABLE, {"event_id": event_id}, update, values)

    def release(self, event_id: str) -> None:
        """Drop an in-flight claim so a redelivery can process the event."""
        released = self._db.delete_item(
            self.WEBHOOK_EVENTS_TABLE,
            {"event_id": event_id},
            condition_expression="processing_result = :processing",
            expression_attribute_values={":processing": WebhookProcessingResult.PROCESSING.value},
        )
        if not released:
            logger.warning("Claim for event %s was already completed, not released", event_id)

    def get(self, event_id: str) -> WebhookEventRecord | None:
        item = self._db.get_item(
            self.WEBHOOK_EVENTS_TABLE, {"event_id": event_id}, consistent_read=True
        )
        if not item:
            return None
        processed_at = item.get("processed_at")
        return WebhookEventRecord(
            event_id=item["event_id"],
            event_type=item["event_type"],
            received_at=dt.datetime.fromisoformat(item["received_at"]),
            processed_at=dt.datetime.fromisoformat(processed_at) if processed_at else None,
            payload_hash=item["payload_hash"],
            order_id=item.get("order_id"),
            processing_result=WebhookProcessingResult(item["processing_result"]),
            error_message=item.get("error_message"),
        )
