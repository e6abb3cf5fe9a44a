"""
Fixed-window rate limiting over the key-value store.

Each ``(scope, identifier)`` pair gets a counter whose TTL marks the end of
the current window. The first request in a window creates the counter and
starts the clock; the window resets entirely when the key expires. Up to
twice the limit can get through around a window boundary, which is accepted.

The limiter fails open: if the store cannot be reached, requests are
allowed. Blocking legitimate traffic because of a store outage is worse
than briefly not enforcing the limit.
"""

import logging

from kvjobs.config import Settings, get_settings
from kvjobs.constants import RATE_LIMIT_KEY_PREFIX, TTL_NO_EXPIRY, RateLimitScope
from kvjobs.exceptions import StoreUnavailable
from kvjobs.observability.metrics import MetricsCollector, get_metrics
from kvjobs.store.base import KVStore
from kvjobs.types.rate_limit import RateLimitResult

logger = logging.getLogger(__name__)

# Returned when the store is down
FAIL_OPEN_RESULT = RateLimitResult(allowed=True, remaining=1, reset_seconds=0)


def rate_limit_key(scope: RateLimitScope | str, identifier: str) -> str:
    """Store key of the counter for ``scope`` and ``identifier``."""
    return f"{RATE_LIMIT_KEY_PREFIX}:{RateLimitScope(scope).value}:{identifier}"


class RateLimiter:
    """
    Store-backed fixed-window rate limiter.

    Safe to share between processes: the counter lives in the store and is
    advanced with its atomic increment.
    """

    def __init__(
        self,
        store: KVStore,
        metrics: MetricsCollector | None = None,
        settings: Settings | None = None,
    ):
        """
        Initialize the rate limiter.

        Args:
            store: The shared key-value store.
            metrics: Metrics collector. Defaults to the process-wide one.
            settings: Source of the default limit and window used by
                ``check_request``.
        """
        settings = settings or get_settings()
        self._store = store
        self._metrics = metrics or get_metrics()
        self.default_limit = settings.rate_limit_requests
        self.default_window_seconds = settings.rate_limit_window_seconds

    async def check(
        self,
        limit: int,
        window_seconds: int,
        scope: RateLimitScope | str,
        identifier: str,
    ) -> RateLimitResult:
        """
        Count a request and decide whether it is allowed.

        Args:
            limit: Maximum requests per window.
            window_seconds: Window length.
            scope: What the limit applies to (IP, user or global).
            identifier: The IP address, user ID, or any fixed name for
                global limits.

        Returns:
            RateLimitResult with the decision, the requests left in the
            window and the seconds until it resets.
        """
        scope = RateLimitScope(scope)
        key = rate_limit_key(scope, identifier)

        try:
            raw = await self._store.get(key)
            count = int(raw) if raw is not None else 0

            if count >= limit:
                reset = await self._ensure_window(key, window_seconds)
                self._metrics.record_rate_limit(scope.value, "denied")
                logger.info(
                    "Rate limit exceeded",
                    extra={"key": key, "limit": limit, "reset": reset}
                )
                return RateLimitResult(allowed=False, remaining=0, reset_seconds=reset)

            new_count = await self._store.increment(key)
            if new_count == 1:
                # First request of a fresh window starts the clock
                await self._store.expire(key, window_seconds)
                reset = window_seconds
            else:
                reset = await self._ensure_window(key, window_seconds)

        except StoreUnavailable as e:
            self._metrics.record_rate_limit(scope.value, "fail_open")
            logger.warning(
                "Rate limit store unavailable, allowing request",
                extra={"key": key, "error": str(e)}
            )
            return FAIL_OPEN_RESULT

        self._metrics.record_rate_limit(scope.value, "allowed")
        return RateLimitResult(
            allowed=True,
            remaining=max(limit - new_count, 0),
            reset_seconds=reset,
        )

    async def check_request(
        self,
        scope: RateLimitScope | str,
        identifier: str,
    ) -> RateLimitResult:
        """``check`` with the configured default limit and window."""
        return await self.check(
            self.default_limit, self.default_window_seconds, scope, identifier
        )

    async def reset(self, scope: RateLimitScope | str, identifier: str) -> None:
        """Discard the current window for ``scope`` and ``identifier``."""
        await self._store.delete(rate_limit_key(scope, identifier))

    async def _ensure_window(self, key: str, window_seconds: int) -> int:
        """
        Seconds left in the window at ``key``, never negative.

        A counter left without an expiry (its opening ``expire`` failed)
        would never reset, so it is given a fresh window here.
        """
        reset = await self._store.ttl(key)
        if reset == TTL_NO_EXPIRY:
            logger.warning("Rate limit window had no expiry, restarting it", extra={"key": key})
            await self._store.expire(key, window_seconds)
            return window_seconds
        return max(reset, 0)
