"""
Unit tests for the job queue.
"""

import asyncio

import pytest
from pydantic import ValidationError

from kvjobs.constants import JobStatus
from kvjobs.exceptions import InvalidTransitionError, JobNotFoundError, StoreUnavailable
from kvjobs.observability.metrics import MetricsCollector
from kvjobs.queue import JobQueue, job_key
from kvjobs.store import MemoryStore
from kvjobs.types.job import Job


class TestEnqueue:
    """Tests for JobQueue.enqueue."""

    async def test_enqueue_creates_pending_record(self, queue: JobQueue):
        """Test that enqueue persists a PENDING job."""
        payload = {"resume_id": 42, "tags": ["a", "b"]}

        job_id = await queue.enqueue("resume_analysis", payload)
        job = await queue.get_job(job_id)

        assert job is not None
        assert job.id == job_id
        assert job.type == "resume_analysis"
        assert job.payload == payload
        assert job.status == JobStatus.PENDING
        assert job.created_at == job.updated_at
        assert job.has_result is False
        assert job.error is None

    async def test_enqueue_pushes_id_onto_queue(self, queue: JobQueue, store: MemoryStore):
        """Test that the FIFO list holds the job ID."""
        job_id = await queue.enqueue("echo", {})

        assert await queue.queue_depth() == 1
        assert await store.pop_right(queue.queue_key) == job_id

    async def test_enqueue_ids_are_unique(self, queue: JobQueue):
        """Test that many enqueues never reuse an ID."""
        ids = await asyncio.gather(*(queue.enqueue("echo", i) for i in range(200)))

        assert len(set(ids)) == 200

    async def test_enqueue_propagates_store_failure(self, unavailable_store, metrics):
        """Test that store outages surface to the producer."""
        queue = JobQueue(unavailable_store, metrics=metrics)

        with pytest.raises(StoreUnavailable):
            await queue.enqueue("echo", {})

    async def test_enqueue_records_metric(self, queue: JobQueue, metrics: MetricsCollector):
        """Test the enqueue counter."""
        await queue.enqueue("echo", {})
        await queue.enqueue("echo", {})

        value = metrics.registry.get_sample_value(
            "jobs_enqueued_total", {"job_type": "echo"}
        )
        assert value == 2


class TestClaimNext:
    """Tests for JobQueue.claim_next."""

    async def test_empty_queue_returns_false(self, queue: JobQueue):
        """Test that an empty queue is not an error."""
        calls = []

        claimed = await queue.claim_next({"echo"}, calls.append)

        assert claimed is False
        assert calls == []

    async def test_round_trip_completes_job(self, queue: JobQueue):
        """Test enqueue -> claim -> COMPLETED with the handler's result."""
        payload = {"text": "hello", "nested": {"n": [1, 2, 3]}}
        job_id = await queue.enqueue("echo", payload)
        seen: list[Job] = []

        def handler(job: Job) -> dict:
            seen.append(job)
            return {"echo": job.payload}

        claimed = await queue.claim_next({"echo"}, handler)
        job = await queue.get_job(job_id)

        assert claimed is True
        assert len(seen) == 1
        assert seen[0].id == job_id
        assert seen[0].payload == payload
        assert seen[0].status == JobStatus.PROCESSING
        assert job.status == JobStatus.COMPLETED
        assert job.result == {"echo": payload}
        assert job.error is None
        assert job.updated_at >= job.created_at

    async def test_async_handler(self, queue: JobQueue):
        """Test that coroutine handlers are awaited."""
        job_id = await queue.enqueue("echo", 5)

        async def handler(job: Job) -> int:
            await asyncio.sleep(0)
            return job.payload * 2

        assert await queue.claim_next({"echo"}, handler) is True
        job = await queue.get_job(job_id)
        assert job.result == 10

    async def test_none_result_is_recorded(self, queue: JobQueue):
        """Test that a None result is stored as present."""
        job_id = await queue.enqueue("noop", None)

        await queue.claim_next({"noop"}, lambda job: None)
        job = await queue.get_job(job_id)

        assert job.status == JobStatus.COMPLETED
        assert job.has_result is True
        assert job.result is None

    async def test_handler_exception_fails_job(self, queue: JobQueue, metrics: MetricsCollector):
        """Test that a raising handler marks the job FAILED and still counts as claimed."""
        job_id = await queue.enqueue("flaky", {})

        def handler(job: Job) -> None:
            raise RuntimeError("upstream timed out")

        claimed = await queue.claim_next({"flaky"}, handler)
        job = await queue.get_job(job_id)

        assert claimed is True
        assert job.status == JobStatus.FAILED
        assert job.error == "upstream timed out"
        assert job.has_result is False
        assert metrics.registry.get_sample_value(
            "jobs_completed_total", {"job_type": "flaky", "status": "failed"}
        ) == 1

    async def test_exception_without_message_uses_class_name(self, queue: JobQueue):
        """Test the error text for exceptions with an empty message."""
        job_id = await queue.enqueue("flaky", {})

        def handler(job: Job) -> None:
            raise KeyError()

        await queue.claim_next({"flaky"}, handler)
        job = await queue.get_job(job_id)

        assert job.error == "KeyError"

    async def test_failed_job_is_not_retried(self, queue: JobQueue):
        """Test that a failed job does not return to the queue."""
        await queue.enqueue("flaky", {})
        calls = []

        def handler(job: Job) -> None:
            calls.append(job.id)
            raise ValueError("bad input")

        assert await queue.claim_next({"flaky"}, handler) is True
        assert await queue.claim_next({"flaky"}, handler) is False
        assert len(calls) == 1
        assert await queue.queue_depth() == 0

    async def test_unserializable_result_fails_job(self, queue: JobQueue):
        """Test that a result that cannot be stored marks the job FAILED."""
        job_id = await queue.enqueue("echo", {})

        await queue.claim_next({"echo"}, lambda job: object())
        job = await queue.get_job(job_id)

        assert job.status == JobStatus.FAILED
        assert "not serializable" in job.error

    async def test_type_mismatch_pushes_back(self, queue: JobQueue, metrics: MetricsCollector):
        """Test that an unsupported type is left PENDING on the queue."""
        job_id = await queue.enqueue("A", {})
        calls = []

        claimed = await queue.claim_next({"B"}, calls.append)
        job = await queue.get_job(job_id)

        assert claimed is False
        assert calls == []
        assert job.status == JobStatus.PENDING
        assert await queue.queue_depth() == 1
        assert metrics.registry.get_sample_value(
            "jobs_pushed_back_total", {"job_type": "A"}
        ) == 1

    async def test_pushed_back_job_claimable_by_other_worker(self, queue: JobQueue):
        """Test that another worker picks up a pushed-back job."""
        job_id = await queue.enqueue("A", {"x": 1})

        assert await queue.claim_next({"B"}, lambda job: None) is False
        assert await queue.claim_next({"A"}, lambda job: "done") is True

        job = await queue.get_job(job_id)
        assert job.status == JobStatus.COMPLETED
        assert job.result == "done"

    async def test_fifo_order_for_single_type(self, queue: JobQueue):
        """Test that jobs of one type are claimed oldest first."""
        ids = [await queue.enqueue("echo", i) for i in range(5)]
        order: list[str] = []

        for _ in ids:
            await queue.claim_next({"echo"}, lambda job: order.append(job.id))

        assert order == ids

    async def test_no_double_claim(self, queue: JobQueue):
        """Test that concurrent claimers of a single job run it once."""
        await queue.enqueue("echo", {})
        calls = []

        async def handler(job: Job) -> str:
            calls.append(job.id)
            await asyncio.sleep(0)
            return "ok"

        results = await asyncio.gather(
            *(queue.claim_next({"echo"}, handler) for _ in range(20))
        )

        assert len(calls) == 1
        assert results.count(True) == 1

    async def test_terminal_job_cannot_be_reclaimed(self, queue: JobQueue, store: MemoryStore):
        """Test that a stale queue entry for a finished job is dropped."""
        job_id = await queue.enqueue("echo", {})
        await queue.claim_next({"echo"}, lambda job: 1)

        # A duplicate reference, e.g. from a manual re-push
        await store.push_left(queue.queue_key, job_id)
        calls = []

        claimed = await queue.claim_next({"echo"}, calls.append)
        job = await queue.get_job(job_id)

        assert claimed is False
        assert calls == []
        assert job.status == JobStatus.COMPLETED
        assert job.result == 1
        assert await queue.queue_depth() == 0

    async def test_entry_without_record_is_dropped(self, queue: JobQueue, store: MemoryStore):
        """Test that an ID whose record is gone is skipped."""
        job_id = await queue.enqueue("echo", {})
        await store.delete(job_key(job_id))

        assert await queue.claim_next({"echo"}, lambda job: 1) is False
        assert await queue.queue_depth() == 0

    async def test_claim_propagates_store_failure(self, unavailable_store, metrics):
        """Test that claim surfaces store outages."""
        queue = JobQueue(unavailable_store, metrics=metrics)

        with pytest.raises(StoreUnavailable):
            await queue.claim_next({"echo"}, lambda job: None)


class TestGetAndUpdateJob:
    """Tests for get_job and update_job."""

    async def test_get_missing_job(self, queue: JobQueue):
        """Test that unknown IDs return None."""
        assert await queue.get_job("job_0_missing") is None

    async def test_update_job_refreshes_timestamp(self, queue: JobQueue):
        """Test a valid transition through update_job."""
        job_id = await queue.enqueue("echo", {})

        job = await queue.update_job(job_id, status=JobStatus.PROCESSING)

        assert job.status == JobStatus.PROCESSING
        assert job.updated_at >= job.created_at
        assert (await queue.get_job(job_id)).status == JobStatus.PROCESSING

    async def test_update_missing_job(self, queue: JobQueue):
        """Test that updating an unknown job raises."""
        with pytest.raises(JobNotFoundError):
            await queue.update_job("job_0_missing", status=JobStatus.PROCESSING)

    async def test_update_rejects_skipping_processing(self, queue: JobQueue):
        """Test that PENDING cannot jump straight to COMPLETED."""
        job_id = await queue.enqueue("echo", {})

        with pytest.raises(InvalidTransitionError):
            await queue.update_job(job_id, status=JobStatus.COMPLETED, result=1)

    async def test_update_rejects_leaving_terminal_state(self, queue: JobQueue):
        """Test that terminal jobs stay terminal."""
        job_id = await queue.enqueue("echo", {})
        await queue.claim_next({"echo"}, lambda job: 1)

        with pytest.raises(InvalidTransitionError):
            await queue.update_job(job_id, status=JobStatus.PENDING)

    async def test_update_rejects_id_change(self, queue: JobQueue):
        """Test that a job's ID is immutable."""
        job_id = await queue.enqueue("echo", {})

        with pytest.raises(ValueError):
            await queue.update_job(job_id, id="job_1_other")

    async def test_update_rejects_completion_without_result(self, queue: JobQueue):
        """Test that a job cannot be completed with neither result nor error."""
        job_id = await queue.enqueue("echo", {})
        await queue.update_job(job_id, status=JobStatus.PROCESSING)

        with pytest.raises(ValidationError):
            await queue.update_job(job_id, status=JobStatus.COMPLETED)

        job = await queue.get_job(job_id)
        assert job.status == JobStatus.PROCESSING
        assert job.has_result is False
