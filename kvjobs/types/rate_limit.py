"""
Rate limiter type definitions.
"""

from dataclasses import dataclass

from kvjobs.constants import (
    HEADER_RATE_LIMIT,
    HEADER_RATE_REMAINING,
    HEADER_RATE_RESET,
    HEADER_RETRY_AFTER,
)


@dataclass(frozen=True)
class RateLimitResult:
    """
    Outcome of a rate limit check.

    Attributes:
        allowed: Whether the request may proceed.
        remaining: Requests left in the current window.
        reset_seconds: Seconds until the window resets, as reported by the
            store's TTL for the window key.
    """

    allowed: bool
    remaining: int
    reset_seconds: int

    def headers(self, limit: int) -> dict[str, str]:
        """
        Render the conventional rate limit response headers.

        Args:
            limit: The limit the check was performed with.

        Returns:
            Header name to value mapping. ``Retry-After`` is only present
            when the request was denied.
        """
        headers = {
            HEADER_RATE_LIMIT: str(limit),
            HEADER_RATE_REMAINING: str(self.remaining),
            HEADER_RATE_RESET: str(self.reset_seconds),
        }
        if not self.allowed:
            headers[HEADER_RETRY_AFTER] = str(self.reset_seconds)
        return headers
