"""
FIFO job queue over a key-value store.

Job records live under ``job:<id>`` and are the source of truth. The FIFO
list only carries job IDs: producers push on the left, workers pop from the
right. A popped ID is owned by the worker that popped it, which is the only
writer of that record until it reaches a terminal state.
"""

import inspect
import logging
import time
from collections.abc import Collection
from typing import Any

from pydantic_core import PydanticSerializationError

from kvjobs.constants import (
    ALLOWED_TRANSITIONS,
    DEFAULT_QUEUE_KEY,
    JOB_KEY_PREFIX,
    SPAN_ENQUEUE_JOB,
    SPAN_EXECUTE_JOB,
    JobStatus,
)
from kvjobs.exceptions import InvalidTransitionError, JobNotFoundError
from kvjobs.observability.metrics import MetricsCollector, get_metrics
from kvjobs.observability.tracing import get_tracer
from kvjobs.store.base import KVStore
from kvjobs.types.job import Job, JobHandler, new_job_id, now_ms

logger = logging.getLogger(__name__)

_IMMUTABLE_FIELDS = frozenset({"id", "created_at"})


def job_key(job_id: str) -> str:
    """Store key of a job record."""
    return f"{JOB_KEY_PREFIX}:{job_id}"


class JobQueue:
    """
    Durable work queue with per-job state tracking.

    Implements:
    - Enqueue (record first, then the list entry)
    - Claim via the store's atomic pop, with type filtering at claim time
    - PENDING -> PROCESSING -> COMPLETED/FAILED transitions

    Ordering: jobs whose type a worker does not support are pushed back
    onto the list, so FIFO order only holds among jobs sharing a worker's
    supported-type set when no workers with disjoint type sets compete.

    Failed jobs are never retried; callers re-enqueue if they want another
    attempt. A worker that dies mid-handler leaves its job in PROCESSING.
    """

    def __init__(
        self,
        store: KVStore,
        queue_key: str = DEFAULT_QUEUE_KEY,
        metrics: MetricsCollector | None = None,
    ):
        """
        Initialize the queue.

        Args:
            store: The shared key-value store.
            queue_key: Key of the FIFO list.
            metrics: Metrics collector. Defaults to the process-wide one.
        """
        self._store = store
        self._queue_key = queue_key
        self._metrics = metrics or get_metrics()

    @property
    def queue_key(self) -> str:
        return self._queue_key

    async def enqueue(self, job_type: str, payload: Any = None) -> str:
        """
        Create a PENDING job and put it on the queue.

        Store failures propagate to the caller.

        Args:
            job_type: Handler selector for the job.
            payload: JSON-serializable data for the handler.

        Returns:
            The new job's ID. Does not wait for processing.
        """
        now = now_ms()
        job = Job(
            id=new_job_id(),
            type=job_type,
            payload=payload,
            status=JobStatus.PENDING,
            created_at=now,
            updated_at=now,
        )

        with get_tracer().start_as_current_span(SPAN_ENQUEUE_JOB) as span:
            span.set_attribute("job_id", job.id)
            span.set_attribute("job_type", job_type)

            await self._save(job)
            await self._store.push_left(self._queue_key, job.id)

        self._metrics.record_job_enqueued(job_type)
        logger.info(
            "Enqueued job",
            extra={"job_id": job.id, "job_type": job_type}
        )
        return job.id

    async def get_job(self, job_id: str) -> Job | None:
        """
        Get a job by ID.

        Args:
            job_id: The job ID.

        Returns:
            The Job or None if not found.
        """
        raw = await self._store.get(job_key(job_id))
        if raw is None:
            return None
        return Job.from_json(raw)

    async def update_job(self, job_id: str, **changes: Any) -> Job:
        """
        Apply changes to a stored job and refresh ``updated_at``.

        Args:
            job_id: The job ID.
            **changes: Field values to overwrite. ``id`` and ``created_at``
                cannot be changed.

        Returns:
            The updated job.

        Raises:
            JobNotFoundError: If no record exists.
            InvalidTransitionError: If ``status`` changes in a way the state
                machine does not allow.
        """
        job = await self.get_job(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return await self._apply(job, **changes)

    async def claim_next(
        self,
        supported_types: Collection[str],
        handler: JobHandler,
    ) -> bool:
        """
        Claim the oldest queued job and run it.

        Never blocks waiting for work; callers poll.

        Args:
            supported_types: Job types this worker can process.
            handler: Called with the PROCESSING job. Its return value is
                stored as the result; an exception marks the job FAILED.
                May be a coroutine function.

        Returns:
            True if a job was claimed and processed, whatever the outcome.
            False if the queue was empty, the popped job was pushed back
            for a type mismatch, or the popped entry was stale.
        """
        job_id = await self._store.pop_right(self._queue_key)
        if job_id is None:
            return False

        job = await self.get_job(job_id)
        if job is None:
            logger.warning(
                "Dropping queue entry without a job record",
                extra={"job_id": job_id}
            )
            return False

        if job.status != JobStatus.PENDING:
            logger.info(
                "Dropping stale queue entry",
                extra={"job_id": job_id, "status": job.status.value}
            )
            return False

        if job.type not in supported_types:
            # Not atomic with the pop; other workers may reorder around it
            await self._store.push_left(self._queue_key, job_id)
            self._metrics.record_push_back(job.type)
            logger.debug(
                "Pushed back job of unsupported type",
                extra={"job_id": job_id, "job_type": job.type}
            )
            return False

        job = await self._apply(job, status=JobStatus.PROCESSING)
        await self._execute(job, handler)
        return True

    async def queue_depth(self) -> int:
        """Number of entries on the FIFO list, stale ones included."""
        depth = await self._store.list_length(self._queue_key)
        self._metrics.update_queue_depth(self._queue_key, depth)
        return depth

    async def _execute(self, job: Job, handler: JobHandler) -> None:
        start_time = time.monotonic()

        with get_tracer().start_as_current_span(SPAN_EXECUTE_JOB) as span:
            span.set_attribute("job_id", job.id)
            span.set_attribute("job_type", job.type)

            logger.info(
                "Executing job",
                extra={"job_id": job.id, "job_type": job.type}
            )

            try:
                result = handler(job)
                if inspect.isawaitable(result):
                    result = await result
            except Exception as e:
                await self._fail(job, str(e) or type(e).__name__, start_time)
                return

        try:
            await self._apply(job, status=JobStatus.COMPLETED, result=result)
        except PydanticSerializationError as e:
            await self._fail(job, f"Result is not serializable: {e}", start_time)
            return

        duration = time.monotonic() - start_time
        self._metrics.record_job_completed(
            job_type=job.type,
            status=JobStatus.COMPLETED.value,
            duration_seconds=duration,
        )
        logger.info(
            "Job completed successfully",
            extra={"job_id": job.id, "duration": f"{duration:.2f}s"}
        )

    async def _fail(self, job: Job, error: str, start_time: float) -> None:
        await self._apply(job, status=JobStatus.FAILED, error=error)

        duration = time.monotonic() - start_time
        self._metrics.record_job_completed(
            job_type=job.type,
            status=JobStatus.FAILED.value,
            duration_seconds=duration,
        )
        logger.warning(
            "Job failed",
            extra={"job_id": job.id, "job_type": job.type, "error": error}
        )

    async def _apply(self, job: Job, **changes: Any) -> Job:
        immutable = _IMMUTABLE_FIELDS.intersection(changes)
        if immutable:
            raise ValueError(f"Cannot change {', '.join(sorted(immutable))}")

        if "status" in changes:
            requested = JobStatus(changes["status"])
            if requested not in ALLOWED_TRANSITIONS[job.status]:
                raise InvalidTransitionError(job.id, job.status.value, requested.value)

        data = job.model_dump(exclude_unset=True)
        data.update(changes)
        data["updated_at"] = max(now_ms(), job.created_at)

        updated = Job.model_validate(data)
        await self._save(updated)
        return updated

    async def _save(self, job: Job) -> None:
        await self._store.set(job_key(job.id), job.to_json())
