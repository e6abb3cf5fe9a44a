"""
In-memory key-value store.

Reference implementation of ``KVStore`` for tests, local development and
single-process deployments. TTLs are evaluated lazily against an injectable
clock so tests can move time forward without sleeping.
"""

import math
import threading
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass

from kvjobs.constants import TTL_MISSING, TTL_NO_EXPIRY
from kvjobs.store.base import KVStore


@dataclass
class _Entry:
    value: str | deque[str]
    expires_at: float | None = None


class MemoryStore(KVStore):
    """
    Dictionary-backed store with Redis-like semantics.

    A single lock guards every operation, so pop and increment stay atomic
    for coroutines and threads sharing the instance. The store is not shared
    across processes.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        """
        Initialize the store.

        Args:
            clock: Returns the current time in seconds. Only differences
                between readings matter.
        """
        self._clock = clock
        self._data: dict[str, _Entry] = {}
        self._lock = threading.Lock()

    def _live_entry(self, key: str) -> _Entry | None:
        entry = self._data.get(key)
        if entry is None:
            return None
        if entry.expires_at is not None and entry.expires_at <= self._clock():
            del self._data[key]
            return None
        return entry

    def _string_value(self, key: str) -> str | None:
        entry = self._live_entry(key)
        if entry is None:
            return None
        if not isinstance(entry.value, str):
            raise TypeError(f"Key {key!r} holds a list, not a string")
        return entry.value

    def _list_value(self, key: str) -> deque[str] | None:
        entry = self._live_entry(key)
        if entry is None:
            return None
        if not isinstance(entry.value, deque):
            raise TypeError(f"Key {key!r} holds a string, not a list")
        return entry.value

    async def get(self, key: str) -> str | None:
        with self._lock:
            return self._string_value(key)

    async def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        if ttl_seconds is not None and ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        with self._lock:
            expires_at = None if ttl_seconds is None else self._clock() + ttl_seconds
            self._data[key] = _Entry(value=value, expires_at=expires_at)

    async def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    async def increment(self, key: str) -> int:
        with self._lock:
            entry = self._live_entry(key)
            if entry is None:
                self._data[key] = _Entry(value="1")
                return 1
            current = self._string_value(key)
            try:
                new_value = int(current) + 1
            except ValueError:
                raise ValueError(f"Value at {key!r} is not an integer") from None
            # TTL is left untouched, as with Redis INCR
            entry.value = str(new_value)
            return new_value

    async def expire(self, key: str, ttl_seconds: int) -> bool:
        with self._lock:
            entry = self._live_entry(key)
            if entry is None:
                return False
            entry.expires_at = self._clock() + ttl_seconds
            return True

    async def ttl(self, key: str) -> int:
        with self._lock:
            entry = self._live_entry(key)
            if entry is None:
                return TTL_MISSING
            if entry.expires_at is None:
                return TTL_NO_EXPIRY
            return math.ceil(entry.expires_at - self._clock())

    async def push_left(self, list_key: str, value: str) -> None:
        with self._lock:
            items = self._list_value(list_key)
            if items is None:
                items = deque()
                self._data[list_key] = _Entry(value=items)
            items.appendleft(value)

    async def pop_right(self, list_key: str) -> str | None:
        with self._lock:
            items = self._list_value(list_key)
            if not items:
                return None
            value = items.pop()
            if not items:
                # Redis drops empty lists
                del self._data[list_key]
            return value

    async def list_length(self, list_key: str) -> int:
        with self._lock:
            items = self._list_value(list_key)
            return len(items) if items else 0

    async def ping(self) -> bool:
        return True
