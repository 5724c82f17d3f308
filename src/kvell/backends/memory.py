"""In-memory key-value storage."""

import asyncio
import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, TypeVar

from kvell.codec import decode, encode
from kvell.utils.validation import validate_key, validate_ttl

T = TypeVar("T")


@dataclass
class CacheEntry:
    """A stored value with optional expiration."""

    value: bytes
    expires_at: float | None = None

    def is_expired(self) -> bool:
        """Check if this entry has expired."""
        if self.expires_at is None:
            return False
        return time.time() > self.expires_at


class MemoryStore:
    """In-memory key-value store.

    Suitable for development and testing. Data is lost on restart.
    Safe for concurrent use within one event loop.
    """

    def __init__(self, ttl: timedelta | int | float | None = None, **kwargs: Any) -> None:
        """Initialize memory store.

        Args:
            ttl: Expiry applied on every write; zero or None disables it
            **kwargs: Ignored (for compatibility with other backends)
        """
        self.ttl = validate_ttl(ttl)
        self._data: dict[str, CacheEntry] = {}
        self._lock = asyncio.Lock()

    def _expires_at(self) -> float | None:
        if not self.ttl:
            return None
        return time.time() + self.ttl.total_seconds()

    async def initialize(self) -> None:
        """Nothing to provision."""

    async def set(self, key: str, value: Any) -> None:
        """Set a value, stamping expiry when a TTL is configured."""
        validate_key(key)
        data = encode(value)
        async with self._lock:
            self._data[key] = CacheEntry(value=data, expires_at=self._expires_at())

    async def get(self, key: str, type_: type[T] | Any = Any) -> tuple[T | None, bool]:
        """Get a value by key."""
        validate_key(key)
        async with self._lock:
            entry = self._data.get(key)
            if entry is None:
                return None, False
            if entry.is_expired():
                del self._data[key]
                return None, False
            data = entry.value
        return decode(data, type_), True

    async def update_ttl(self, key: str) -> None:
        """Push a live key's expiry out to now + TTL."""
        validate_key(key)
        if not self.ttl:
            return
        async with self._lock:
            entry = self._data.get(key)
            if entry is None or entry.is_expired():
                return
            entry.expires_at = self._expires_at()

    async def delete(self, key: str) -> None:
        """Delete a key."""
        validate_key(key)
        async with self._lock:
            self._data.pop(key, None)

    async def health(self) -> None:
        """Always healthy."""

    async def close(self) -> None:
        """Drop all data."""
        async with self._lock:
            self._data.clear()

    async def put_raw(self, key: str, data: bytes) -> None:
        """Store bytes without encoding. Useful for testing."""
        async with self._lock:
            self._data[key] = CacheEntry(value=data, expires_at=self._expires_at())
