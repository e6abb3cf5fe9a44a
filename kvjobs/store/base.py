"""
Key-value store interface.

The queue, cache, rate limiter and session store only talk to the store
through this interface. Implementations must make ``pop_right`` and
``increment`` atomic across every client sharing the backing store; the
library relies on that and takes no locks of its own.
"""

from abc import ABC, abstractmethod

from kvjobs.constants import TTL_MISSING, TTL_NO_EXPIRY

__all__ = ["KVStore", "TTL_MISSING", "TTL_NO_EXPIRY"]


class KVStore(ABC):
    """
    Minimal async key-value store.

    Every method raises ``StoreUnavailable`` when the backing store cannot
    be reached.
    """

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Return the value stored at ``key`` or None when absent."""

    @abstractmethod
    async def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        """Store ``value`` at ``key``, replacing any previous value and TTL."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        ...

    @abstractmethod
    async def increment(self, key: str) -> int:
        """Atomically add one to the integer at ``key`` (0 when absent) and return it."""

    @abstractmethod
    async def expire(self, key: str, ttl_seconds: int) -> bool:
        """
        Set or refresh the TTL of an existing key without touching its value.

        Returns:
            False if the key does not exist.
        """

    @abstractmethod
    async def ttl(self, key: str) -> int:
        """
        Seconds until ``key`` expires.

        Returns:
            ``TTL_NO_EXPIRY`` when the key has no TTL and ``TTL_MISSING``
            when it does not exist.
        """

    @abstractmethod
    async def push_left(self, list_key: str, value: str) -> None:
        ...

    @abstractmethod
    async def pop_right(self, list_key: str) -> str | None:
        """Remove and return the oldest entry pushed with ``push_left``."""

    @abstractmethod
    async def list_length(self, list_key: str) -> int:
        ...

    @abstractmethod
    async def ping(self) -> bool:
        """Return True if the store answers, False otherwise. Never raises."""

    async def close(self) -> None:
        """Release connections held by the store."""
