"""Store protocol for key-value storage backends."""

from typing import Any, Protocol, TypeVar, runtime_checkable

T = TypeVar("T")


@runtime_checkable
class Store(Protocol):
    """Protocol for key-value storage backends (memory, Redis, DynamoDB).

    Values are JSON-encoded by the store. Every key must be non-empty.
    """

    async def initialize(self) -> None:
        """Provision backend resources. Safe to call repeatedly."""
        ...

    async def set(self, key: str, value: Any) -> None:
        """Write a value, refreshing its expiry when a TTL is configured."""
        ...

    async def get(self, key: str, type_: type[T] | Any = Any) -> tuple[T | None, bool]:
        """Get a value by key. Returns (None, False) if not found or expired."""
        ...

    async def update_ttl(self, key: str) -> None:
        """Reset a key's expiry. No-op if TTL is disabled or the key is absent."""
        ...

    async def delete(self, key: str) -> None:
        """Delete a key. No-op if key doesn't exist."""
        ...

    async def health(self) -> None:
        """Raise if the backend is unreachable or unprovisioned."""
        ...

    async def close(self) -> None:
        """Release backend resources. Call exactly once."""
        ...
