"""
Redis-backed key-value store.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager

import redis.asyncio as redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from kvjobs.exceptions import StoreUnavailable
from kvjobs.store.base import KVStore

logger = logging.getLogger(__name__)


@contextmanager
def _unavailable_on_connection_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except (RedisConnectionError, RedisTimeoutError) as e:
        raise StoreUnavailable(f"Redis {operation} failed: {e}") from e


class RedisStore(KVStore):
    """
    ``KVStore`` over a Redis server using ``redis.asyncio``.

    LPUSH/RPOP and INCR are atomic on the server, which is what makes
    concurrent workers in separate processes safe.
    """

    def __init__(self, client: redis.Redis):
        """
        Initialize the store.

        Args:
            client: An async Redis client created with ``decode_responses=True``.
        """
        self._client = client

    @classmethod
    def from_url(cls, url: str, socket_timeout: float = 5.0) -> "RedisStore":
        """
        Create a store from a ``redis://`` URL.

        Args:
            url: Redis connection URL.
            socket_timeout: Seconds to wait on connect and on each command.

        Returns:
            RedisStore: A store with its own connection pool.
        """
        client = redis.Redis.from_url(
            url,
            decode_responses=True,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
        )
        return cls(client)

    async def get(self, key: str) -> str | None:
        with _unavailable_on_connection_errors("GET"):
            return await self._client.get(key)

    async def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        with _unavailable_on_connection_errors("SET"):
            await self._client.set(key, value, ex=ttl_seconds)

    async def delete(self, key: str) -> None:
        with _unavailable_on_connection_errors("DEL"):
            await self._client.delete(key)

    async def increment(self, key: str) -> int:
        with _unavailable_on_connection_errors("INCR"):
            return int(await self._client.incr(key))

    async def expire(self, key: str, ttl_seconds: int) -> bool:
        with _unavailable_on_connection_errors("EXPIRE"):
            return bool(await self._client.expire(key, ttl_seconds))

    async def ttl(self, key: str) -> int:
        with _unavailable_on_connection_errors("TTL"):
            return int(await self._client.ttl(key))

    async def push_left(self, list_key: str, value: str) -> None:
        with _unavailable_on_connection_errors("LPUSH"):
            await self._client.lpush(list_key, value)

    async def pop_right(self, list_key: str) -> str | None:
        with _unavailable_on_connection_errors("RPOP"):
            return await self._client.rpop(list_key)

    async def list_length(self, list_key: str) -> int:
        with _unavailable_on_connection_errors("LLEN"):
            return int(await self._client.llen(list_key))

    async def ping(self) -> bool:
        try:
            with _unavailable_on_connection_errors("PING"):
                return bool(await self._client.ping())
        except StoreUnavailable as e:
            logger.warning("Redis ping failed", extra={"error": str(e)})
            return False

    async def close(self) -> None:
        await self._client.aclose()
