"""
Worker process for executing jobs.

The worker polls the queue, claims jobs whose type it has a handler for,
and runs them. Failed jobs are recorded as FAILED and not retried.
"""

import asyncio
import logging
import os
import signal

from kvjobs.config import Settings, get_settings
from kvjobs.exceptions import StoreUnavailable
from kvjobs.observability.logging import bind_context, clear_context, setup_logging
from kvjobs.observability.tracing import setup_tracing
from kvjobs.queue.job_queue import JobQueue
from kvjobs.store.connection import create_store
from kvjobs.worker.handlers import HandlerRegistry, register_builtin_handlers

logger = logging.getLogger(__name__)


class Worker:
    """
    Job worker that polls for and executes jobs.

    Features:
    - Claims through the store's atomic pop, so any number of workers can
      share one queue
    - Dispatch by job type through a HandlerRegistry
    - Backs off when the queue is empty or the store is unreachable
    - Graceful shutdown: the job in flight finishes before the loop exits
    """

    def __init__(
        self,
        queue: JobQueue,
        registry: HandlerRegistry,
        worker_id: str | None = None,
        poll_interval: float | None = None,
    ):
        """
        Initialize the worker.

        Args:
            queue: The job queue to claim from.
            registry: Handlers for the job types this worker processes.
            worker_id: Worker identifier for logs. Defaults to hostname + PID.
            poll_interval: Seconds between polls when nothing was claimed.
        """
        settings = get_settings()

        self.worker_id = worker_id or settings.worker_id or f"{os.uname().nodename}-{os.getpid()}"
        self.poll_interval = poll_interval or settings.worker_poll_interval_seconds

        self._queue = queue
        self._registry = registry
        self._running = False
        self._stop_event = asyncio.Event()

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Run the polling loop until ``stop`` is called."""
        bind_context(worker_id=self.worker_id)
        logger.info(
            "Worker starting",
            extra={"job_types": sorted(self._registry.supported_types())}
        )

        self._running = True
        self._stop_event.clear()

        try:
            while self._running:
                try:
                    claimed = await self.run_once()
                    if not claimed:
                        await self._idle()

                except StoreUnavailable as e:
                    logger.warning(f"Store unavailable, backing off: {e}")
                    await self._idle()

                except Exception as e:
                    logger.exception(f"Error in worker loop: {e}")
                    await self._idle()
        finally:
            self._running = False
            logger.info("Worker stopped")
            clear_context()

    async def stop(self) -> None:
        """Stop the worker gracefully."""
        logger.info("Worker stopping")
        self._running = False
        self._stop_event.set()

    async def run_once(self) -> bool:
        """
        Attempt a single claim.

        Returns:
            True if a job was claimed and processed.
        """
        return await self._queue.claim_next(
            self._registry.supported_types(),
            self._registry.dispatch,
        )

    async def _idle(self) -> None:
        """Sleep for the poll interval, waking early on stop."""
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=self.poll_interval)
        except asyncio.TimeoutError:
            pass


async def run_async(settings: Settings | None = None) -> None:
    """Run the worker asynchronously."""
    settings = settings or get_settings()
    setup_logging(settings)
    setup_tracing(settings)

    store = create_store(settings)
    queue = JobQueue(store, queue_key=settings.queue_key)
    registry = HandlerRegistry()
    register_builtin_handlers(registry)

    worker = Worker(queue, registry)

    # Handle shutdown signals
    loop = asyncio.get_running_loop()

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(
            sig,
            lambda: asyncio.create_task(worker.stop())
        )

    try:
        await worker.start()
    finally:
        await store.close()


def run() -> None:
    """Run the worker."""
    asyncio.run(run_async())


if __name__ == "__main__":
    run()
