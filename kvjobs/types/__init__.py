"""
Type definitions for the library.
Contains the job record model and the rate limiter result type.
"""

from kvjobs.types.job import (
    Job,
    JobHandler,
    new_job_id,
    now_ms,
)
from kvjobs.types.rate_limit import RateLimitResult

__all__ = [
    # Job types
    "Job",
    "JobHandler",
    "new_job_id",
    "now_ms",
    # Rate limit types
    "RateLimitResult",
]
