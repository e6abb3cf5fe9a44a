"""
Exception hierarchy for the library.
"""


class KVJobsError(Exception):
    """Base class for all library errors."""


class StoreUnavailable(KVJobsError):
    """The key-value store could not be reached."""


class JobNotFoundError(KVJobsError):
    """No record exists for the requested job ID."""

    def __init__(self, job_id: str):
        super().__init__(f"Job {job_id} not found")
        self.job_id = job_id


class InvalidTransitionError(KVJobsError):
    """A job status change the state machine does not allow."""

    def __init__(self, job_id: str, current: str, requested: str):
        super().__init__(
            f"Job {job_id} cannot move from {current} to {requested}"
        )
        self.job_id = job_id
        self.current = current
        self.requested = requested


class UnknownJobTypeError(KVJobsError):
    """No handler is registered for a job's type."""

    def __init__(self, job_type: str):
        super().__init__(f"No handler registered for job type: {job_type}")
        self.job_type = job_type
