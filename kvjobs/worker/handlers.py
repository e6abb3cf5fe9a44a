"""
Job handler registry.

Maps job type strings to handler functions so a worker can claim every
type it knows about and dispatch each job to the right handler.
"""

import asyncio
import inspect
import logging
from collections.abc import Callable
from typing import Any

from kvjobs.exceptions import UnknownJobTypeError
from kvjobs.types.job import Job, JobHandler

logger = logging.getLogger(__name__)


class HandlerRegistry:
    """
    Table of job type -> handler.

    Example:
        registry = HandlerRegistry()

        @registry.register("resume_analysis")
        async def analyse(job: Job) -> dict:
            ...

        await queue.claim_next(registry.supported_types(), registry.dispatch)
    """

    def __init__(self) -> None:
        self._handlers: dict[str, JobHandler] = {}

    def register(self, job_type: str) -> Callable[[JobHandler], JobHandler]:
        """
        Decorator to register a job handler.

        Registering a type twice replaces the earlier handler.

        Args:
            job_type: The job type this handler processes.

        Returns:
            Decorator function.
        """
        def decorator(handler: JobHandler) -> JobHandler:
            if job_type in self._handlers:
                logger.warning(f"Replacing handler for job type: {job_type}")
            self._handlers[job_type] = handler
            logger.debug(f"Registered handler for job type: {job_type}")
            return handler
        return decorator

    def get_handler(self, job_type: str) -> JobHandler | None:
        """
        Get the handler for a job type.

        Args:
            job_type: The job type.

        Returns:
            The handler function or None if not found.
        """
        return self._handlers.get(job_type)

    def list_handlers(self) -> list[str]:
        """List all registered job types."""
        return list(self._handlers.keys())

    def supported_types(self) -> frozenset[str]:
        return frozenset(self._handlers)

    async def dispatch(self, job: Job) -> Any:
        """
        Run the handler registered for ``job.type``.

        Raises:
            UnknownJobTypeError: If no handler is registered.
        """
        handler = self.get_handler(job.type)
        if handler is None:
            raise UnknownJobTypeError(job.type)

        result = handler(job)
        if inspect.isawaitable(result):
            result = await result
        return result


# ============================================================================
# Built-in job handlers
# ============================================================================


async def handle_echo(job: Job) -> Any:
    """Return the payload unchanged. Useful for smoke-testing a deployment."""
    logger.info("Echo job executing", extra={"job_id": job.id})
    return {"echo": job.payload}


async def handle_sleep(job: Job) -> Any:
    """
    Sleep for a while, then succeed.

    Payload should contain:
    - duration_seconds: How long to sleep (default 1)
    """
    payload = job.payload if isinstance(job.payload, dict) else {}
    duration = payload.get("duration_seconds", 1)

    logger.info(
        "Sleep job starting",
        extra={"job_id": job.id, "duration": duration}
    )
    await asyncio.sleep(duration)
    return {"slept_for": duration}


def register_builtin_handlers(registry: HandlerRegistry) -> None:
    """Register the ``echo`` and ``sleep`` handlers."""
    registry.register("echo")(handle_echo)
    registry.register("sleep")(handle_sleep)
