"""
Job queue module.
"""

from kvjobs.queue.job_queue import JobQueue, job_key

__all__ = [
    "JobQueue",
    "job_key",
]
