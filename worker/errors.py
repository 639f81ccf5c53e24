"""
Exceptions raised by the job queue.

Processor failures are NOT in this list — those are caught by the executor
and recorded on the job as status=failed + error_message.
"""


class JobQueueError(Exception):
    """Base class for every error the job queue raises to its callers."""


class QueueFullError(JobQueueError):
    """The pending queue is at capacity; the submission was rejected."""

    def __init__(self, message: str = "queue is full"):
        super().__init__(message)


class QueueClosedError(JobQueueError):
    """The queue has been shut down and no longer accepts jobs."""

    def __init__(self, message: str = "queue is shut down"):
        super().__init__(message)


class JobNotFoundError(JobQueueError, KeyError):
    """No job with this id exists in the store."""

    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"job not found: {job_id}")

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message
        return self.args[0]


class DuplicateJobError(JobQueueError):
    """A job with this id is already in the store."""

    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"job already exists: {job_id}")


class InvalidTransitionError(JobQueueError):
    """A lifecycle change that the state machine does not allow."""

    def __init__(self, job_id: str, current: str, target: str):
        self.job_id = job_id
        self.current = current
        self.target = target
        super().__init__(f"job {job_id}: cannot move from {current} to {target}")


class ShutdownTimeoutError(JobQueueError, TimeoutError):
    """Workers were still busy when the shutdown deadline passed."""

    def __init__(self, timeout: float, still_running: int):
        self.timeout = timeout
        self.still_running = still_running
        super().__init__(
            f"shutdown timeout exceeded after {timeout}s "
            f"({still_running} worker(s) still running)"
        )
