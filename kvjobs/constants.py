"""
Application constants.
Centralized location for all constant values used across the library.
"""

from enum import IntEnum, StrEnum


class JobStatus(StrEnum):
    """
    Job lifecycle states.

    State transitions:
    - PENDING -> PROCESSING (claimed by a worker)
    - PROCESSING -> COMPLETED (handler returned)
    - PROCESSING -> FAILED (handler raised)

    COMPLETED and FAILED are terminal.
    """

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


ALLOWED_TRANSITIONS: dict[JobStatus, frozenset[JobStatus]] = {
    JobStatus.PENDING: frozenset({JobStatus.PROCESSING}),
    JobStatus.PROCESSING: frozenset({JobStatus.COMPLETED, JobStatus.FAILED}),
    JobStatus.COMPLETED: frozenset(),
    JobStatus.FAILED: frozenset(),
}

TERMINAL_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.FAILED})


class RateLimitScope(StrEnum):
    """What a rate limit window is counted against."""

    IP = "ip"
    USER = "user"
    GLOBAL = "global"


class CacheTTL(IntEnum):
    """Cache lifetimes in seconds, picked by how volatile the data is."""

    SHORT = 60 * 5
    MEDIUM = 60 * 60
    LONG = 60 * 60 * 24
    WEEK = 60 * 60 * 24 * 7


# Store key namespaces
DEFAULT_QUEUE_KEY = "job_queue"
JOB_KEY_PREFIX = "job"
RATE_LIMIT_KEY_PREFIX = "ratelimit"
SESSION_KEY_PREFIX = "session"

# ttl() sentinels, same values Redis returns
TTL_NO_EXPIRY = -1
TTL_MISSING = -2

# Rate limit response headers
HEADER_RATE_LIMIT = "X-RateLimit-Limit"
HEADER_RATE_REMAINING = "X-RateLimit-Remaining"
HEADER_RATE_RESET = "X-RateLimit-Reset"
HEADER_RETRY_AFTER = "Retry-After"

# Metrics names
METRIC_QUEUE_DEPTH = "job_queue_depth"
METRIC_JOBS_ENQUEUED = "jobs_enqueued_total"
METRIC_JOBS_COMPLETED = "jobs_completed_total"
METRIC_JOB_DURATION = "job_duration_seconds"
METRIC_JOBS_PUSHED_BACK = "jobs_pushed_back_total"
METRIC_CACHE_REQUESTS = "cache_requests_total"
METRIC_RATE_LIMIT_DECISIONS = "rate_limit_decisions_total"

# Trace span names
SPAN_ENQUEUE_JOB = "enqueue_job"
SPAN_EXECUTE_JOB = "execute_job"
SPAN_CACHE_COMPUTE = "cache_compute"
