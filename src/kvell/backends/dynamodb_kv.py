"""DynamoDB key-value storage backend.

Items are stored as ``{"k": S, "v": B, "unixtime": N}`` in a table keyed on
``k``. Expiry uses DynamoDB's attribute-based TTL on ``unixtime``, which
``initialize`` enables or disables to match the configured TTL.
"""

import asyncio
import time
from datetime import timedelta
from typing import Any, TypeVar

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from kvell.codec import decode, encode
from kvell.exceptions import BackendError, ConfigError, TableNotFoundError
from kvell.observability import Timer, emit_counter, emit_timer, get_logger
from kvell.utils.validation import validate_key, validate_ttl

logger = get_logger(__name__)

T = TypeVar("T")

KEY_ATTR = "k"
VALUE_ATTR = "v"
TTL_ATTR = "unixtime"

RESOURCE_NOT_FOUND = "ResourceNotFoundException"
CONDITIONAL_CHECK_FAILED = "ConditionalCheckFailedException"

# DescribeTimeToLive statuses treated as "on"; ENABLING is already in flight.
TTL_ON_STATUSES = {"ENABLED", "ENABLING"}
# DynamoDB rejects UpdateTimeToLive while either of these is in progress.
TTL_TRANSITIONAL_STATUSES = {"ENABLING", "DISABLING"}


def _error_code(error: ClientError) -> str | None:
    return error.response.get("Error", {}).get("Code")


class DynamoDBStore:
    """DynamoDB key-value storage backend.

    The boto3 client is thread-safe; blocking calls run in worker threads so
    one store may be shared by concurrent tasks. Writes are last-writer-wins.
    """

    def __init__(
        self,
        table_name: str | None = None,
        region: str | None = None,
        endpoint_url: str | None = None,
        aws_access_key_id: str | None = None,
        aws_secret_access_key: str | None = None,
        read_capacity_units: int = 1,
        write_capacity_units: int = 1,
        wait_for_table: bool = True,
        ttl: timedelta | int | float | None = None,
        client: Any = None,
        **kwargs: Any,
    ) -> None:
        """Initialize DynamoDB store. Call ``initialize`` before use.

        Args:
            table_name: DynamoDB table name
            region: AWS region
            endpoint_url: Custom endpoint, e.g. DynamoDB Local
            aws_access_key_id: Static credentials (used only with the secret)
            aws_secret_access_key: Static credentials (used only with the key id)
            read_capacity_units: Provisioned reads when creating the table
            write_capacity_units: Provisioned writes when creating the table
            wait_for_table: Block until a newly created table is ACTIVE
            ttl: Expiry applied on every write; zero or None disables it
            client: Pre-built boto3 DynamoDB client
            **kwargs: Ignored
        """
        if not table_name:
            raise ConfigError("DynamoDBStore requires table_name")

        self.table_name = table_name
        self.ttl = validate_ttl(ttl)
        self.read_capacity_units = read_capacity_units
        self.write_capacity_units = write_capacity_units
        self.wait_for_table = wait_for_table
        self._client = client or self._make_client(
            region, endpoint_url, aws_access_key_id, aws_secret_access_key
        )

    @staticmethod
    def _make_client(
        region: str | None,
        endpoint_url: str | None,
        aws_access_key_id: str | None,
        aws_secret_access_key: str | None,
    ) -> Any:
        kwargs: dict[str, Any] = {}
        if region:
            kwargs["region_name"] = region
        if endpoint_url:
            kwargs["endpoint_url"] = endpoint_url
        if aws_access_key_id and aws_secret_access_key:
            kwargs["aws_access_key_id"] = aws_access_key_id
            kwargs["aws_secret_access_key"] = aws_secret_access_key
        try:
            return boto3.client("dynamodb", **kwargs)
        except BotoCoreError as e:
            raise ConfigError(f"Cannot create DynamoDB client: {e}") from e

    async def _call(
        self,
        method: str,
        *,
        expected_codes: frozenset[str] = frozenset(),
        **params: Any,
    ) -> dict[str, Any]:
        """Run one client call in a worker thread, wrapping SDK errors.

        Error codes in ``expected_codes`` are still raised but not logged.
        """
        timer = Timer()
        try:
            with timer:
                return await asyncio.to_thread(getattr(self._client, method), **params)
        except (ClientError, BotoCoreError) as e:
            if not (isinstance(e, ClientError) and _error_code(e) in expected_codes):
                logger.error(
                    "DynamoDB call failed",
                    context={"method": method, "table": self.table_name},
                    error=e,
                )
                emit_counter(
                    "kvell.dynamodb.errors",
                    {"backend": "dynamodb", "table": self.table_name, "operation": method},
                )
            raise BackendError(f"DynamoDB {method} failed: {e}", cause=e) from e
        finally:
            emit_timer(
                f"kvell.dynamodb.{method}",
                timer.duration_ms,
                {"backend": "dynamodb", "table": self.table_name},
            )

    def _key(self, key: str) -> dict[str, Any]:
        return {KEY_ATTR: {"S": key}}

    def _expiry_stamp(self) -> str:
        return str(int(time.time() + self.ttl.total_seconds()))

    # Provisioning

    async def initialize(self) -> None:
        """Create the table if absent, then reconcile its TTL setting.

        Repeated calls against the same table and TTL make no changes. If the
        table's TTL is mid-transition away from the wanted setting, raises
        BackendError instead of sending an update DynamoDB would reject; call
        again once the transition settles.
        """
        if not await self._table_exists():
            await self._create_table()

        status = await self._ttl_status()
        want_enabled = bool(self.ttl)
        if (status in TTL_ON_STATUSES) == want_enabled:
            return
        if status in TTL_TRANSITIONAL_STATUSES:
            logger.warning(
                "Table TTL is changing in the opposite direction",
                context={"table": self.table_name, "status": status, "wanted": want_enabled},
            )
            raise BackendError(
                f"TTL on table {self.table_name} is {status}; "
                "retry initialize once DynamoDB finishes the change"
            )
        await self._update_ttl_setting(want_enabled)

    async def _table_exists(self) -> bool:
        try:
            await self._call(
                "describe_table",
                expected_codes=frozenset({RESOURCE_NOT_FOUND}),
                TableName=self.table_name,
            )
        except BackendError as e:
            if isinstance(e.cause, ClientError) and _error_code(e.cause) == RESOURCE_NOT_FOUND:
                return False
            raise
        return True

    async def _create_table(self) -> None:
        logger.info(
            "Creating DynamoDB table",
            context={
                "table": self.table_name,
                "read_capacity_units": self.read_capacity_units,
                "write_capacity_units": self.write_capacity_units,
            },
        )
        await self._call(
            "create_table",
            TableName=self.table_name,
            AttributeDefinitions=[{"AttributeName": KEY_ATTR, "AttributeType": "S"}],
            KeySchema=[{"AttributeName": KEY_ATTR, "KeyType": "HASH"}],
            ProvisionedThroughput={
                "ReadCapacityUnits": self.read_capacity_units,
                "WriteCapacityUnits": self.write_capacity_units,
            },
        )
        if self.wait_for_table:
            waiter = self._client.get_waiter("table_exists")
            try:
                await asyncio.to_thread(waiter.wait, TableName=self.table_name)
            except BotoCoreError as e:
                raise BackendError(f"Table {self.table_name} did not become active: {e}", cause=e) from e

    async def _ttl_status(self) -> str | None:
        result = await self._call("describe_time_to_live", TableName=self.table_name)
        description = result.get("TimeToLiveDescription", {})
        status = description.get("TimeToLiveStatus")
        attribute = description.get("AttributeName")
        if status in TTL_ON_STATUSES and attribute and attribute != TTL_ATTR:
            logger.warning(
                "Table TTL is enabled on a different attribute",
                context={"table": self.table_name, "attribute": attribute},
            )
        return status

    async def _update_ttl_setting(self, enabled: bool) -> None:
        logger.info(
            "Updating DynamoDB TTL setting",
            context={"table": self.table_name, "attribute": TTL_ATTR, "enabled": enabled},
        )
        await self._call(
            "update_time_to_live",
            TableName=self.table_name,
            TimeToLiveSpecification={"AttributeName": TTL_ATTR, "Enabled": enabled},
        )

    # Data plane

    async def set(self, key: str, value: Any) -> None:
        """Put an item. The expiry stamp is written even when TTL is off."""
        validate_key(key)
        data = encode(value)
        await self._call(
            "put_item",
            TableName=self.table_name,
            Item={
                KEY_ATTR: {"S": key},
                VALUE_ATTR: {"B": data},
                TTL_ATTR: {"N": self._expiry_stamp()},
            },
        )
        logger.debug("DynamoDB put", context={"table": self.table_name, "key": key})

    async def get(self, key: str, type_: type[T] | Any = Any) -> tuple[T | None, bool]:
        """Get a value by key.

        Items past their stamp are reported missing while TTL is on, since
        DynamoDB deletes expired items lazily.
        """
        validate_key(key)
        result = await self._call(
            "get_item",
            TableName=self.table_name,
            Key=self._key(key),
            ConsistentRead=True,
            ProjectionExpression="#v, #t",
            ExpressionAttributeNames={"#v": VALUE_ATTR, "#t": TTL_ATTR},
        )
        item = result.get("Item")
        if not item or VALUE_ATTR not in item:
            logger.debug("DynamoDB get miss", context={"table": self.table_name, "key": key})
            return None, False

        if self.ttl and TTL_ATTR in item and int(item[TTL_ATTR]["N"]) < int(time.time()):
            logger.debug("DynamoDB get expired", context={"table": self.table_name, "key": key})
            return None, False

        attribute = item[VALUE_ATTR]
        data = attribute.get("B", attribute.get("S"))
        if data is None:
            return None, False
        logger.debug("DynamoDB get hit", context={"table": self.table_name, "key": key})
        return decode(data, type_), True

    async def update_ttl(self, key: str) -> None:
        """Refresh the expiry stamp of an existing item.

        Absent keys are left absent rather than created as stamp-only items.
        """
        validate_key(key)
        if not self.ttl:
            return
        try:
            await self._call(
                "update_item",
                expected_codes=frozenset({CONDITIONAL_CHECK_FAILED}),
                TableName=self.table_name,
                Key=self._key(key),
                UpdateExpression="SET #t = :t",
                ConditionExpression="attribute_exists(#k)",
                ExpressionAttributeNames={"#t": TTL_ATTR, "#k": KEY_ATTR},
                ExpressionAttributeValues={":t": {"N": self._expiry_stamp()}},
            )
            logger.debug("DynamoDB TTL refreshed", context={"table": self.table_name, "key": key})
        except BackendError as e:
            if isinstance(e.cause, ClientError) and _error_code(e.cause) == CONDITIONAL_CHECK_FAILED:
                logger.debug("TTL refresh skipped for absent key", context={"key": key})
                return
            raise

    async def delete(self, key: str) -> None:
        """Delete a key. Absent keys are not an error."""
        validate_key(key)
        await self._call("delete_item", TableName=self.table_name, Key=self._key(key))
        logger.debug("DynamoDB delete", context={"table": self.table_name, "key": key})

    async def health(self) -> None:
        """Check that the table exists."""
        if not await self._table_exists():
            raise TableNotFoundError(f"Table {self.table_name} not found")

    async def close(self) -> None:
        """Close the client's HTTP connections."""
        await asyncio.to_thread(self._client.close)
