"""Thin DynamoDB access layer shared by the user, order and event stores.

Every state change in the payment core is a conditional write. A failed
condition is an expected outcome (email already registered, event already
claimed, order no longer pending), so it is reported as a return value
(``False`` / ``None``) rather than raised. Any other ClientError propagates.
"""

import logging
import os
from typing import Any

import boto3
from boto3.dynamodb.conditions import Key
from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)

CONDITIONAL_CHECK_FAILED = "ConditionalCheckFailedException"

# Module-level singleton so Lambda invocations reuse the boto3 resource
_dynamodb_service_instance: "DynamoDBService | None" = None


def get_dynamodb_service(environment: str | None = None) -> "DynamoDBService":
    """Return the process-wide DynamoDBService, creating it on first use.

    Args:
        environment: Environment name. Only used on first call.
    """
    global _dynamodb_service_instance
    if _dynamodb_service_instance is None:
        _dynamodb_service_instance = DynamoDBService(environment)
    return _dynamodb_service_instance


def reset_dynamodb_service() -> None:
    """Forget the singleton so the next call builds a fresh resource.

    Tests call this to get a resource bound to the current mock_aws context.
    """
    global _dynamodb_service_instance
    _dynamodb_service_instance = None


def _expression_kwargs(
    condition_expression: str | None,
    expression_attribute_values: dict[str, Any] | None,
    expression_attribute_names: dict[str, str] | None,
) -> dict[str, Any]:
    kwargs: dict[str, Any] = {}
    if condition_expression:
        kwargs["ConditionExpression"] = condition_expression
    if expression_attribute_values:
        kwargs["ExpressionAttributeValues"] = expression_attribute_values
    if expression_attribute_names:
        kwargs["ExpressionAttributeNames"] = expression_attribute_names
    return kwargs


class DynamoDBService:
    """Prefixed table access with conditional-write helpers.

    Table names are ``{prefix}-{table}`` where the prefix comes from
    ``DYNAMODB_TABLE_PREFIX`` or defaults to ``storefront-{environment}``.
    """

    def __init__(self, environment: str | None = None) -> None:
        self.environment = environment or os.getenv("ENVIRONMENT", "dev")
        self.name_prefix = os.getenv("DYNAMODB_TABLE_PREFIX", f"storefront-{self.environment}")
        self._dynamodb = boto3.resource("dynamodb")
        self._tables: dict[str, Any] = {}

    def table_name(self, table: str) -> str:
        return f"{self.name_prefix}-{table}"

    def _table(self, table: str) -> Any:
        if table not in self._tables:
            self._tables[table] = self._dynamodb.Table(self.table_name(table))
        return self._tables[table]

    def _conditional(self, table: str, operation: str, **kwargs: Any) -> dict[str, Any] | None:
        """Run a write; None means its ConditionExpression did not hold."""
        try:
            response: dict[str, Any] = getattr(self._table(table), operation)(**kwargs)
        except ClientError as e:
            if e.response["Error"]["Code"] != CONDITIONAL_CHECK_FAILED:
                raise
            logger.debug(
                "%s on %s rejected by condition %s",
                operation,
                self.table_name(table),
                kwargs.get("ConditionExpression"),
            )
            return None
        return response

    def get_item(
        self,
        table: str,
        key: dict[str, Any],
        consistent_read: bool = False,
    ) -> dict[str, Any] | None:
        response = self._table(table).get_item(Key=key, ConsistentRead=consistent_read)
        item: dict[str, Any] | None = response.get("Item")
        return item

    def put_item(
        self,
        table: str,
        item: dict[str, Any],
        condition_expression: str | None = None,
        expression_attribute_values: dict[str, Any] | None = None,
        expression_attribute_names: dict[str, str] | None = None,
    ) -> bool:
        """Write a whole item.

        Returns:
            False if ``condition_expression`` did not hold, True otherwise.
        """
        response = self._conditional(
            table,
            "put_item",
            Item=item,
            **_expression_kwargs(
                condition_expression, expression_attribute_values, expression_attribute_names
            ),
        )
        return response is not None

    def update_item(
        self,
        table: str,
        key: dict[str, Any],
        update_expression: str,
        expression_attribute_values: dict[str, Any],
        expression_attribute_names: dict[str, str] | None = None,
        condition_expression: str | None = None,
    ) -> dict[str, Any] | None:
        """Apply an update expression and return the item as written.

        Args:
            table: Table name without prefix
            key: Primary key
            update_expression: SET/REMOVE expression
            expression_attribute_values: Placeholder values
            expression_attribute_names: Placeholder names (reserved words such as ``status``)
            condition_expression: Guard evaluated atomically with the write

        Returns:
            All attributes after the update, or None if the condition failed.
        """
        response = self._conditional(
            table,
            "update_item",
            Key=key,
            UpdateExpression=update_expression,
            ReturnValues="ALL_NEW",
            **_expression_kwargs(
                condition_expression, expression_attribute_values, expression_attribute_names
            ),
        )
        if response is None:
            return None
        attrs: dict[str, Any] = response.get("Attributes", {})
        return attrs

    def delete_item(
        self,
        table: str,
        key: dict[str, Any],
        condition_expression: str | None = None,
        expression_attribute_values: dict[str, Any] | None = None,
    ) -> bool:
        """Delete an item; deleting a missing item without a condition succeeds."""
        response = self._conditional(
            table,
            "delete_item",
            Key=key,
            **_expression_kwargs(condition_expression, expression_attribute_values, None),
        )
        return response is not None

    def query_by_gsi(
        self,
        table: str,
        index_name: str,
        partition_key_name: str,
        partition_key_value: str,
    ) -> list[dict[str, Any]]:
        """Return every item under one GSI partition key, following pagination.

        GSI reads are eventually consistent; callers that need the current
        state re-read the base item by primary key.
        """
        kwargs: dict[str, Any] = {
            "IndexName": index_name,
            "KeyConditionExpression": Key(partition_key_name).eq(partition_key_value),
        }
        items: list[dict[str, Any]] = []
        while True:
            response = self._table(table).query(**kwargs)
            items.extend(response.get("Items", []))
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                return items
            kwargs["ExclusiveStartKey"] = last_key
