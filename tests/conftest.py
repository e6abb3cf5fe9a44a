"""
Pytest configuration and shared fixtures.
"""

from typing import Any

import pytest
from prometheus_client import CollectorRegistry

from kvjobs.cache import ResponseCache, SessionStore
from kvjobs.config import Settings
from kvjobs.exceptions import StoreUnavailable
from kvjobs.observability.metrics import MetricsCollector
from kvjobs.queue import JobQueue
from kvjobs.rate_limit import RateLimiter
from kvjobs.store import KVStore, MemoryStore


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, start: float = 1_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class UnavailableStore(KVStore):
    """Store whose backend is always unreachable."""

    def __init__(self) -> None:
        self.calls = 0

    def _fail(self, *args: Any, **kwargs: Any) -> Any:
        self.calls += 1
        raise StoreUnavailable("connection refused")

    async def get(self, key: str) -> str | None:
        return self._fail()

    async def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        self._fail()

    async def delete(self, key: str) -> None:
        self._fail()

    async def increment(self, key: str) -> int:
        return self._fail()

    async def expire(self, key: str, ttl_seconds: int) -> bool:
        return self._fail()

    async def ttl(self, key: str) -> int:
        return self._fail()

    async def push_left(self, list_key: str, value: str) -> None:
        self._fail()

    async def pop_right(self, list_key: str) -> str | None:
        return self._fail()

    async def list_length(self, list_key: str) -> int:
        return self._fail()

    async def ping(self) -> bool:
        return False


@pytest.fixture
def clock() -> ManualClock:
    """A manually advanced clock."""
    return ManualClock()


@pytest.fixture
def store(clock: ManualClock) -> MemoryStore:
    """In-memory store driven by the manual clock."""
    return MemoryStore(clock=clock)


@pytest.fixture
def unavailable_store() -> UnavailableStore:
    """A store that raises StoreUnavailable on every call."""
    return UnavailableStore()


@pytest.fixture
def metrics() -> MetricsCollector:
    """Metrics collector on a private registry."""
    return MetricsCollector(registry=CollectorRegistry())


@pytest.fixture
def queue(store: MemoryStore, metrics: MetricsCollector) -> JobQueue:
    """Job queue over the in-memory store."""
    return JobQueue(store, metrics=metrics)


@pytest.fixture
def cache(store: MemoryStore, metrics: MetricsCollector) -> ResponseCache:
    """Response cache over the in-memory store."""
    return ResponseCache(store, metrics=metrics)


@pytest.fixture
def limiter(store: MemoryStore, metrics: MetricsCollector) -> RateLimiter:
    """Rate limiter over the in-memory store."""
    return RateLimiter(store, metrics=metrics)


@pytest.fixture
def sessions(store: MemoryStore) -> SessionStore:
    """Session store over the in-memory store."""
    return SessionStore(store)


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings."""
    return Settings(
        redis_url=None,
        log_level="DEBUG",
        log_format="console",
        worker_poll_interval_seconds=0.01,
    )

