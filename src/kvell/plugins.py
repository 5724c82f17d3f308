"""Backend discovery via Python entry points."""

from importlib import import_module
from importlib.metadata import entry_points
from typing import Any

from kvell.config import StoreConfig
from kvell.exceptions import ConfigError
from kvell.protocols import Store

ENTRY_POINT_GROUP = "kvell.backends"

# Shipped backends, resolvable even when package metadata is unavailable.
BUILTIN_BACKENDS = {
    "memory": "kvell.backends.memory:MemoryStore",
    "redis": "kvell.backends.redis_kv:RedisStore",
    "dynamodb": "kvell.backends.dynamodb_kv:DynamoDBStore",
}


def _load(target: str) -> Any:
    module_name, _, attr = target.partition(":")
    return getattr(import_module(module_name), attr)


def discover_backends() -> dict[str, Any]:
    """Discover all registered store backends.

    Entry points in the ``kvell.backends`` group override built-ins of the
    same name.

    Returns:
        Dictionary mapping backend names to their classes
    """
    backends = {name: _load(target) for name, target in BUILTIN_BACKENDS.items()}
    for ep in entry_points(group=ENTRY_POINT_GROUP):
        backends[ep.name] = ep.load()
    return backends


def get_backend(name: str) -> Any:
    """Get a specific backend class by name.

    Args:
        name: The backend name (e.g., "memory", "redis", "dynamodb")

    Returns:
        The backend class

    Raises:
        ConfigError: If the backend is not found
    """
    backends = discover_backends()
    if name not in backends:
        available = ", ".join(sorted(backends.keys())) or "(none)"
        raise ConfigError(f"Backend '{name}' not found. Available: {available}")
    return backends[name]


def create_store(backend: str, **kwargs: Any) -> Store:
    """Create a Store instance without provisioning it.

    Args:
        backend: The backend name
        **kwargs: Backend-specific configuration

    Returns:
        A Store implementation
    """
    cls = get_backend(backend)
    return cls(**kwargs)


async def open_store(backend: str, **kwargs: Any) -> Store:
    """Create a Store and run its one-time initialization.

    If initialization fails the store is closed before the error propagates.
    """
    store = create_store(backend, **kwargs)
    try:
        await store.initialize()
    except BaseException:
        await store.close()
        raise
    return store


async def store_from_config(config: StoreConfig) -> Store:
    """Open the store selected by a configuration."""
    return await open_store(config.backend, **config.backend_settings())
