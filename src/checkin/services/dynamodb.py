"""DynamoDB service wrapper for table operations."""

import os
from typing import Any

import boto3
from botocore.exceptions import ClientError


class DynamoDBService:
    """Service for DynamoDB operations with environment-aware table names.

    Constructed explicitly and handed to the stores that need it; tests
    create one inside a moto ``mock_aws`` context.
    """

    def __init__(
        self,
        environment: str | None = None,
        region_name: str | None = None,
    ) -> None:
        """Initialize DynamoDB service.

        Args:
            environment: Environment name (dev/prod). Defaults to ENVIRONMENT env var.
            region_name: AWS region. Defaults to the boto3 session default.
        """
        self.environment = environment or os.getenv("ENVIRONMENT", "dev")
        # Allow override via DYNAMODB_TABLE_PREFIX for testing
        self.name_prefix = os.getenv(
            "DYNAMODB_TABLE_PREFIX", f"checkin-{self.environment}"
        )
        self._dynamodb = boto3.resource("dynamodb", region_name=region_name)

    def _table_name(self, table: str) -> str:
        """Get full table name with prefix."""
        return f"{self.name_prefix}-{table}"

    def _get_table(self, table: str) -> Any:
        """Get DynamoDB table resource."""
        return self._dynamodb.Table(self._table_name(table))

    def get_item(
        self,
        table: str,
        key: dict[str, Any],
    ) -> dict[str, Any] | None:
        """Get a single item by key.

        Args:
            table: Table name without prefix
            key: Primary key dict

        Returns:
            Item dict or None if not found
        """
        response = self._get_table(table).get_item(Key=key, ConsistentRead=True)
        item: dict[str, Any] | None = response.get("Item")
        return item

    def put_item(
        self,
        table: str,
        item: dict[str, Any],
        condition_expression: str | None = None,
    ) -> bool:
        """Put an item into the table.

        Args:
            table: Table name without prefix
            item: Item to store
            condition_expression: Optional condition for write

        Returns:
            True if successful, False if condition failed
        """
        try:
            kwargs: dict[str, Any] = {"Item": item}
            if condition_expression:
                kwargs["ConditionExpression"] = condition_expression

            self._get_table(table).put_item(**kwargs)
            return True
        except ClientError as e:
            if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                return False
            raise

    def update_fields(
        self,
        table: str,
        key: dict[str, Any],
        fields: dict[str, Any],
        *,
        must_exist: bool = True,
    ) -> dict[str, Any] | None:
        """Set a group of attributes on an item.

        Builds a ``SET`` expression with placeholder names so reserved
        words such as ``status`` are safe. Attributes set to None are
        removed instead.

        Args:
            table: Table name without prefix
            key: Primary key dict
            fields: Attribute name -> new value
            must_exist: Fail (return None) instead of creating a new item

        Returns:
            All attributes after the update, or None if the item did not exist
        """
        names: dict[str, str] = {}
        values: dict[str, Any] = {}
        set_parts: list[str] = []
        remove_parts: list[str] = []

        for index, (attr, value) in enumerate(fields.items()):
            names[f"#f{index}"] = attr
            if value is None:
                remove_parts.append(f"#f{index}")
            else:
                values[f":v{index}"] = value
                set_parts.append(f"#f{index} = :v{index}")

        expression = ""
        if set_parts:
            expression = "SET " + ", ".join(set_parts)
        if remove_parts:
            expression = f"{expression} REMOVE " + ", ".join(remove_parts)

        kwargs: dict[str, Any] = {
            "Key": key,
            "UpdateExpression": expression.strip(),
            "ExpressionAttributeNames": names,
            "ReturnValues": "ALL_NEW",
        }
        if values:
            kwargs["ExpressionAttributeValues"] = values
        if must_exist:
            key_attr = next(iter(key))
            names["#pk"] = key_attr
            kwargs["ConditionExpression"] = "attribute_exists(#pk)"

        try:
            response = self._get_table(table).update_item(**kwargs)
        except ClientError as e:
            if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                return None
            raise
        attrs: dict[str, Any] | None = response.get("Attributes")
        return attrs

    def query(
        self,
        table: str,
        key_condition: Any,
        index_name: str | None = None,
        limit: int | None = None,
        scan_index_forward: bool = True,
    ) -> list[dict[str, Any]]:
        """Query table or GSI, following pagination.

        Args:
            table: Table name without prefix
            key_condition: Boto3 Key condition
            index_name: GSI name (optional)
            limit: Max items to return
            scan_index_forward: Sort order (True=ascending)

        Returns:
            List of items
        """
        kwargs: dict[str, Any] = {
            "KeyConditionExpression": key_condition,
            "ScanIndexForward": scan_index_forward,
        }
        if index_name:
            kwargs["IndexName"] = index_name

        items: list[dict[str, Any]] = []
        while True:
            response = self._get_table(table).query(**kwargs)
            items.extend(response.get("Items", []))
            if limit and len(items) >= limit:
                return items[:limit]
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                return items
            kwargs["ExclusiveStartKey"] = last_key

    def scan(self, table: str) -> list[dict[str, Any]]:
        """Scan a whole table, following pagination.

        Args:
            table: Table name without prefix

        Returns:
            All items in the table
        """
        kwargs: dict[str, Any] = {}
        items: list[dict[str, Any]] = []
        while True:
            response = self._get_table(table).scan(**kwargs)
            items.extend(response.get("Items", []))
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                return items
            kwargs["ExclusiveStartKey"] = last_key
