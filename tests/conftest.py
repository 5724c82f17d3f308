"""Pytest configuration and fixtures."""

from typing import Any

import pytest
from botocore.exceptions import ClientError


def client_error(code: str, operation: str) -> ClientError:
    """Build a botocore ClientError carrying ``code``."""
    return ClientError({"Error": {"Code": code, "Message": f"{code} raised"}}, operation)


class FakeWaiter:
    """Stands in for a boto3 waiter."""

    def __init__(self) -> None:
        self.waited_for: list[str] = []

    def wait(self, TableName: str) -> None:
        self.waited_for.append(TableName)


class FakeDynamoDBClient:
    """Dict-backed double for the low-level boto3 DynamoDB client.

    Tables survive across stores sharing the same ``tables`` dict so
    provisioning can be exercised repeatedly.
    """

    def __init__(self, tables: dict[str, dict[str, Any]] | None = None) -> None:
        self.tables = tables if tables is not None else {}
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.waiter = FakeWaiter()
        self.closed = False

    def _table(self, name: str, operation: str) -> dict[str, Any]:
        if name not in self.tables:
            raise client_error("ResourceNotFoundException", operation)
        return self.tables[name]

    def describe_table(self, **kwargs: Any) -> dict[str, Any]:
        self.calls.append(("describe_table", kwargs))
        self._table(kwargs["TableName"], "DescribeTable")
        return {"Table": {"TableName": kwargs["TableName"], "TableStatus": "ACTIVE"}}

    def create_table(self, **kwargs: Any) -> dict[str, Any]:
        self.calls.append(("create_table", kwargs))
        self.tables[kwargs["TableName"]] = {"items": {}, "ttl_status": "DISABLED", "ttl_attr": None}
        return {"TableDescription": {"TableName": kwargs["TableName"]}}

    def get_waiter(self, name: str) -> FakeWaiter:
        return self.waiter

    def describe_time_to_live(self, **kwargs: Any) -> dict[str, Any]:
        self.calls.append(("describe_time_to_live", kwargs))
        table = self._table(kwargs["TableName"], "DescribeTimeToLive")
        description: dict[str, Any] = {"TimeToLiveStatus": table["ttl_status"]}
        if table["ttl_attr"]:
            description["AttributeName"] = table["ttl_attr"]
        return {"TimeToLiveDescription": description}

    def update_time_to_live(self, **kwargs: Any) -> dict[str, Any]:
        self.calls.append(("update_time_to_live", kwargs))
        table = self._table(kwargs["TableName"], "UpdateTimeToLive")
        spec = kwargs["TimeToLiveSpecification"]
        table["ttl_status"] = "ENABLED" if spec["Enabled"] else "DISABLED"
        table["ttl_attr"] = spec["AttributeName"]
        return {"TimeToLiveSpecification": spec}

    def put_item(self, **kwargs: Any) -> dict[str, Any]:
        self.calls.append(("put_item", kwargs))
        table = self._table(kwargs["TableName"], "PutItem")
        item = kwargs["Item"]
        table["items"][item["k"]["S"]] = dict(item)
        return {}

    def get_item(self, **kwargs: Any) -> dict[str, Any]:
        self.calls.append(("get_item", kwargs))
        table = self._table(kwargs["TableName"], "GetItem")
        item = table["items"].get(kwargs["Key"]["k"]["S"])
        if item is None:
            return {}
        return {"Item": dict(item)}

    def update_item(self, **kwargs: Any) -> dict[str, Any]:
        self.calls.append(("update_item", kwargs))
        table = self._table(kwargs["TableName"], "UpdateItem")
        key = kwargs["Key"]["k"]["S"]
        item = table["items"].get(key)
        if item is None:
            if "ConditionExpression" in kwargs:
                raise client_error("ConditionalCheckFailedException", "UpdateItem")
            item = table["items"][key] = {"k": {"S": key}}
        item["unixtime"] = kwargs["ExpressionAttributeValues"][":t"]
        return {}

    def delete_item(self, **kwargs: Any) -> dict[str, Any]:
        self.calls.append(("delete_item", kwargs))
        table = self._table(kwargs["TableName"], "DeleteItem")
        table["items"].pop(kwargs["Key"]["k"]["S"], None)
        return {}

    def close(self) -> None:
        self.closed = True

    def call_names(self) -> list[str]:
        return [name for name, _ in self.calls]


class FakeRedis:
    """Dict-backed double for ``redis.asyncio.Redis``."""

    def __init__(self) -> None:
        self.data: dict[str, Any] = {}
        self.expiry: dict[str, int] = {}
        self.calls: list[tuple[str, tuple[Any, ...], dict[str, Any]]] = []
        self.closed = False

    async def set(self, key: str, value: Any, ex: int | None = None) -> bool:
        self.calls.append(("set", (key, value), {"ex": ex}))
        self.data[key] = value
        if ex is not None:
            self.expiry[key] = ex
        else:
            self.expiry.pop(key, None)
        return True

    async def get(self, key: str) -> Any:
        self.calls.append(("get", (key,), {}))
        return self.data.get(key)

    async def expire(self, key: str, seconds: int) -> bool:
        self.calls.append(("expire", (key, seconds), {}))
        if key not in self.data:
            return False
        self.expiry[key] = seconds
        return True

    async def delete(self, *keys: str) -> int:
        self.calls.append(("delete", keys, {}))
        return sum(1 for key in keys if self.data.pop(key, None) is not None)

    async def ping(self) -> bool:
        self.calls.append(("ping", (), {}))
        return True

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def make_client_error():
    """Factory for botocore ClientErrors."""
    return client_error


@pytest.fixture
def dynamodb_tables():
    """Backing tables shared by every fake DynamoDB client in a test."""
    return {}


@pytest.fixture
def make_dynamodb_client(dynamodb_tables):
    """Factory for fake DynamoDB clients over the same tables."""
    return lambda: FakeDynamoDBClient(dynamodb_tables)


@pytest.fixture
def dynamodb_client(make_dynamodb_client):
    """Fake DynamoDB client with no tables."""
    return make_dynamodb_client()


@pytest.fixture
def redis_client():
    """Fake Redis client."""
    return FakeRedis()


@pytest.fixture
def sample_config_dict():
    """Sample configuration dictionary for testing."""
    return {
        "backend": "dynamodb",
        "dynamodb": {
            "table_name": "test",
            "region": "us-west-2",
            "endpoint_url": "http://localhost:8000",
            "aws_access_key_id": "dummy",
            "aws_secret_access_key": "fake",
            "read_capacity_units": 1,
            "write_capacity_units": 1,
            "ttl": 20,
        },
        "redis": {"host": "localhost", "port": 6379, "ttl": 20},
    }
