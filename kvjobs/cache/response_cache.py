"""
Cache-aside response cache.

Used to avoid repeating expensive idempotent calls within a TTL. The cache
is an optimization only: when the store is unreachable, values are computed
directly and not cached.
"""

import inspect
import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from pydantic import TypeAdapter, ValidationError
from pydantic_core import PydanticSerializationError, to_json

from kvjobs.constants import SPAN_CACHE_COMPUTE, CacheTTL
from kvjobs.exceptions import StoreUnavailable
from kvjobs.observability.metrics import MetricsCollector, get_metrics
from kvjobs.observability.tracing import get_tracer
from kvjobs.store.base import KVStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

Compute = Callable[[], T | Awaitable[T]]


async def _call(compute: Compute[T]) -> T:
    value = compute()
    if inspect.isawaitable(value):
        value = await value
    return value


class ResponseCache:
    """
    Get-or-compute wrapper over the key-value store.

    Values are stored as JSON. Pass ``response_type`` to ``get_or_compute``
    to have cached values validated back into that type (a pydantic model,
    a dataclass, ``list[Model]``...); otherwise hits return decoded JSON.
    """

    def __init__(self, store: KVStore, metrics: MetricsCollector | None = None):
        self._store = store
        self._metrics = metrics or get_metrics()

    async def get_or_compute(
        self,
        key: str,
        compute: Compute[T],
        ttl_seconds: int = CacheTTL.MEDIUM,
        response_type: type[T] | None = None,
    ) -> T:
        """
        Return the cached value for ``key``, computing and storing it on a miss.

        Args:
            key: Deterministic cache key, see ``generate_cache_key``.
            compute: Produces the value on a miss. Called at most once per
                call. May be a coroutine function. Its exceptions propagate.
            ttl_seconds: Lifetime of a stored value, usually a ``CacheTTL``.
            response_type: Type to validate cached JSON into.

        Returns:
            The cached or freshly computed value.
        """
        try:
            cached = await self._store.get(key)
        except StoreUnavailable as e:
            self._metrics.record_cache("fallback")
            logger.warning(
                "Cache unavailable, computing directly",
                extra={"key": key, "error": str(e)}
            )
            return await _call(compute)

        if cached is not None:
            try:
                value = self._decode(cached, response_type)
            except (ValueError, ValidationError) as e:
                logger.warning(
                    "Discarding unreadable cache entry",
                    extra={"key": key, "error": str(e)}
                )
            else:
                self._metrics.record_cache("hit")
                logger.debug("Cache hit", extra={"key": key})
                return value

        self._metrics.record_cache("miss")
        logger.debug("Cache miss", extra={"key": key})

        with get_tracer().start_as_current_span(SPAN_CACHE_COMPUTE) as span:
            span.set_attribute("cache_key", key)
            value = await _call(compute)

        try:
            encoded = to_json(value).decode("utf-8")
        except PydanticSerializationError as e:
            logger.warning(
                "Computed value is not serializable, returning uncached value",
                extra={"key": key, "error": str(e)}
            )
            return value

        # Misses return what a later hit will, not the raw computed object
        value = self._decode(encoded, response_type)

        try:
            await self._store.set(key, encoded, ttl_seconds=int(ttl_seconds))
        except StoreUnavailable as e:
            logger.warning(
                "Cache write failed, returning uncached value",
                extra={"key": key, "error": str(e)}
            )

        return value

    async def invalidate(self, key: str) -> None:
        """Drop a cached value. Store failures are logged, not raised."""
        try:
            await self._store.delete(key)
        except StoreUnavailable as e:
            logger.warning(
                "Cache invalidation failed",
                extra={"key": key, "error": str(e)}
            )

    @staticmethod
    def _decode(raw: str, response_type: type[Any] | None) -> Any:
        if response_type is None:
            return json.loads(raw)
        return TypeAdapter(response_type).validate_json(raw)
