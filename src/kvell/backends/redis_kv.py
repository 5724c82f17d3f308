"""Redis key-value storage backend."""

from datetime import timedelta
from typing import Any, TypeVar

import redis.asyncio as redis
from redis.exceptions import RedisError, ResponseError

from kvell.codec import decode, encode
from kvell.exceptions import BackendError, ConfigError
from kvell.observability import Timer, emit_counter, emit_timer, get_logger
from kvell.utils.validation import ttl_seconds, validate_key, validate_ttl

logger = get_logger(__name__)

T = TypeVar("T")


class RedisStore:
    """Redis key-value storage backend.

    Uses a connection pool that dials lazily. Each operation is a single
    command on a borrowed connection, so one store is safe to share between
    concurrent tasks.
    """

    def __init__(
        self,
        url: str | None = None,
        host: str = "localhost",
        port: int = 6379,
        password: str | None = None,
        db: int = 0,
        max_connections: int | None = None,
        idle_timeout: int = 240,
        ttl: timedelta | int | float | None = None,
        client: Any = None,
        **kwargs: Any,
    ) -> None:
        """Initialize Redis store.

        Args:
            url: redis:// or rediss:// URL; overrides host, port, password and db
            host: Redis host
            port: Redis port
            password: Redis password
            db: Database index
            max_connections: Pool size limit; None means unbounded
            idle_timeout: Seconds a pooled connection may sit idle before it
                is health-checked on next use
            ttl: Expiry applied on every write; zero or None disables it
            client: Pre-built ``redis.asyncio.Redis`` client
            **kwargs: Ignored
        """
        self.ttl = validate_ttl(ttl)
        self._ttl_seconds = ttl_seconds(self.ttl)
        self._pool: redis.ConnectionPool | None = None

        if client is not None:
            self._client = client
            return

        pool_kwargs: dict[str, Any] = {
            "max_connections": max_connections,
            "health_check_interval": idle_timeout,
        }
        try:
            if url:
                self._pool = redis.ConnectionPool.from_url(url, **pool_kwargs)
            else:
                self._pool = redis.ConnectionPool(
                    host=host, port=port, password=password, db=db, **pool_kwargs
                )
        except ValueError as e:
            raise ConfigError(f"Invalid Redis connection settings: {e}") from e
        self._client = redis.Redis(connection_pool=self._pool)

    async def _call(self, command: str, *args: Any, **kwargs: Any) -> Any:
        """Execute one command, wrapping client errors."""
        timer = Timer()
        try:
            with timer:
                return await getattr(self._client, command)(*args, **kwargs)
        except RedisError as e:
            logger.error("Redis command failed", context={"command": command.upper()}, error=e)
            emit_counter("kvell.redis.errors", {"backend": "redis", "operation": command})
            raise BackendError(f"Redis {command.upper()} failed: {e}", cause=e) from e
        finally:
            emit_timer(f"kvell.redis.{command}", timer.duration_ms, {"backend": "redis"})

    async def initialize(self) -> None:
        """Nothing to provision; connections are dialed on first use."""

    async def set(self, key: str, value: Any) -> None:
        """SET the value, with an EX clause when a TTL is configured."""
        validate_key(key)
        data = encode(value)
        if self._ttl_seconds:
            await self._call("set", key, data, ex=self._ttl_seconds)
        else:
            await self._call("set", key, data)
        logger.debug("Redis SET", context={"key": key, "ex": self._ttl_seconds or None})

    async def get(self, key: str, type_: type[T] | Any = Any) -> tuple[T | None, bool]:
        """GET a value, dispatching on the reply shape."""
        validate_key(key)
        reply = await self._call("get", key)
        logger.debug("Redis GET", context={"key": key, "hit": reply is not None})

        if reply is None:
            return None, False
        if isinstance(reply, (bytes, str)):
            return decode(reply, type_), True
        if isinstance(reply, ResponseError):
            raise BackendError(f"Redis GET failed: {reply}", cause=reply)
        raise BackendError(f"Redis returned undefined reply of type {type(reply).__name__}")

    async def update_ttl(self, key: str) -> None:
        """EXPIRE the key. Never touches Redis when TTL is disabled."""
        validate_key(key)
        if not self._ttl_seconds:
            return
        refreshed = await self._call("expire", key, self._ttl_seconds)
        logger.debug("Redis EXPIRE", context={"key": key, "refreshed": bool(refreshed)})

    async def delete(self, key: str) -> None:
        """DEL the key. Absent keys are not an error."""
        validate_key(key)
        await self._call("delete", key)
        logger.debug("Redis DEL", context={"key": key})

    async def health(self) -> None:
        """PING the server."""
        await self._call("ping")

    async def close(self) -> None:
        """Close the client and disconnect the pool."""
        try:
            await self._client.aclose()
            if self._pool is not None:
                await self._pool.disconnect()
        except RedisError as e:
            raise BackendError(f"Redis close failed: {e}", cause=e) from e
