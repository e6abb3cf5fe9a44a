"""
Job-related type definitions.
"""

import secrets
import time
from collections.abc import Awaitable, Callable
from typing import Any

from pydantic import BaseModel, model_validator

from kvjobs.constants import TERMINAL_STATUSES, JobStatus


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def new_job_id() -> str:
    """
    Generate a job ID.

    The millisecond prefix keeps IDs roughly time-ordered for humans; the
    random suffix is what makes them unique across concurrent producers.
    """
    return f"job_{now_ms()}_{secrets.token_hex(6)}"


class Job(BaseModel):
    """
    A unit of deferred work.

    The record stored under ``job:<id>`` is the source of truth for a job's
    state. ``result`` is only set once the job is COMPLETED and ``error``
    only once it is FAILED. A ``None`` result is a legitimate handler return
    value, so presence is tracked through ``model_fields_set`` rather than
    by comparing against ``None``.
    """

    id: str
    type: str
    payload: Any = None
    status: JobStatus = JobStatus.PENDING
    created_at: int
    updated_at: int
    result: Any = None
    error: str | None = None

    @model_validator(mode="after")
    def _check_outcome_fields(self) -> "Job":
        if self.updated_at < self.created_at:
            raise ValueError("updated_at must not precede created_at")
        if self.status == JobStatus.COMPLETED:
            if self.error is not None:
                raise ValueError("completed job cannot carry an error")
            if not self.has_result:
                raise ValueError("completed job must carry a result")
        elif self.status == JobStatus.FAILED:
            if self.has_result:
                raise ValueError("failed job cannot carry a result")
            if self.error is None:
                raise ValueError("failed job must carry an error")
        elif self.has_result or self.error is not None:
            raise ValueError(f"{self.status} job cannot carry a result or error")
        return self

    @property
    def has_result(self) -> bool:
        """Whether a result was recorded, including an explicit ``None``."""
        return "result" in self.model_fields_set

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def to_json(self) -> str:
        """Serialize, leaving out outcome fields that were never set."""
        return self.model_dump_json(exclude_unset=True)

    @classmethod
    def from_json(cls, raw: str | bytes) -> "Job":
        return cls.model_validate_json(raw)


# Handlers receive the full job record and return its result.
# Raising marks the job FAILED.
JobHandler = Callable[[Job], Any | Awaitable[Any]]
