"""Kvell - one key-value Store interface over Redis and DynamoDB."""

from kvell.backends.dynamodb_kv import DynamoDBStore
from kvell.backends.memory import MemoryStore
from kvell.backends.redis_kv import RedisStore
from kvell.config import DynamoDBConfig, MemoryConfig, RedisConfig, StoreConfig
from kvell.exceptions import (
    BackendError,
    ConfigError,
    DeserializationError,
    KvellError,
    NotFoundError,
    SerializationError,
    TableNotFoundError,
    ValidationError,
)
from kvell.observability import (
    RequestContext,
    StructuredLogger,
    Timer,
    configure_logging,
    emit_counter,
    emit_metric,
    emit_timer,
    get_logger,
    register_metric_callback,
)
from kvell.plugins import create_store, open_store, store_from_config
from kvell.protocols import Store

__version__ = "0.1.0"
__all__ = [
    # Core
    "Store",
    "create_store",
    "open_store",
    "store_from_config",
    # Backends
    "DynamoDBStore",
    "MemoryStore",
    "RedisStore",
    # Config
    "DynamoDBConfig",
    "MemoryConfig",
    "RedisConfig",
    "StoreConfig",
    # Errors
    "BackendError",
    "ConfigError",
    "DeserializationError",
    "KvellError",
    "NotFoundError",
    "SerializationError",
    "TableNotFoundError",
    "ValidationError",
    # Observability
    "RequestContext",
    "StructuredLogger",
    "Timer",
    "configure_logging",
    "emit_counter",
    "emit_metric",
    "emit_timer",
    "get_logger",
    "register_metric_callback",
]
