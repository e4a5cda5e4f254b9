"""Redis storage adapter.

Shares one origin between processes on different hosts.
Requires the `redis` package: pip install tabauth[redis]
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .base import StorageAdapter


if TYPE_CHECKING:
    from redis.asyncio import Redis


try:
    from redis.asyncio import Redis as RedisClient

    HAS_REDIS = True
except ImportError:
    HAS_REDIS = False
    RedisClient = None  # type: ignore[assignment,misc]


def _check_redis() -> None:
    """Check if redis package is available."""
    if not HAS_REDIS:
        msg = "Redis backend requires the 'redis' package. Install with: pip install tabauth[redis]"
        raise ImportError(msg)


class RedisStorage(StorageAdapter):
    """Redis-backed storage.

    Parameters
    ----------
    redis_url : str
        Redis connection URL.
    prefix : str
        Key prefix for namespacing (default "tabauth").
    redis_client : Redis, optional
        Pre-configured Redis client (for testing with fakeredis).
    """

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379/0",
        prefix: str = "tabauth",
        *,
        redis_client: Redis | None = None,
    ) -> None:
        """Initialize the Redis storage."""
        self._prefix = prefix
        self._owns_client = redis_client is None
        if redis_client is None:
            _check_redis()
            redis_client = RedisClient.from_url(redis_url, decode_responses=True)
        self._redis: Any = redis_client

    def _key(self, key: str) -> str:
        """Build a Redis key with prefix."""
        return f"{self._prefix}:storage:{key}"

    async def get(self, key: str) -> str | None:
        """Get a value from Redis."""
        value = await self._redis.get(self._key(key))
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value  # type: ignore[no-any-return]

    async def set(self, key: str, value: str) -> None:
        """Store a value in Redis."""
        await self._redis.set(self._key(key), value)

    async def remove(self, key: str) -> None:
        """Remove a value from Redis."""
        await self._redis.delete(self._key(key))

    async def close(self) -> None:
        """Close the Redis connection if this adapter created it."""
        if self._owns_client:
            await self._redis.aclose()
