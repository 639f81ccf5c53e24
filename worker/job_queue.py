"""
JobQueue — the public face of the in-memory job system.

    enqueue()    → record the job, hand it to the pending queue (never blocks)
    get_job()    → copy of one job
    list_jobs()  → one page of copies, optionally filtered by status
    get_stats()  → counts per status
    shutdown()   → stop workers, wait for in-flight jobs (bounded by a timeout)

Data flow:

    caller ──enqueue──> JobStore (QUEUED) ──put_nowait──> pending queue
                                                              │
                          JobStore <──mark_*── WorkerPool <───┘
                              ▲
    caller ──get_job/list_jobs┘

Backpressure: the pending queue is bounded. When it is full, enqueue()
does NOT wait — it marks the job FAILED ("queue is full") and raises
QueueFullError. The caller never receives that job's id, so the failed
record is only visible through list_jobs()/get_stats().

Each JobQueue owns its own store, queue and workers; several can coexist
in one process (the tests rely on this).
"""

import logging
import queue
import threading
import uuid
from datetime import datetime, timezone
from typing import Callable, Optional

from models.enums import JobStatus
from models.job import Job
from worker.errors import QueueClosedError, QueueFullError, ShutdownTimeoutError
from worker.executor import JobExecutor, ProcessFunc
from worker.pool import WorkerPool
from worker.store import JobStore

logger = logging.getLogger(__name__)

DEFAULT_WORKERS = 5
DEFAULT_CAPACITY = 100


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_job_id() -> str:
    return str(uuid.uuid4())


class JobQueue:

    def __init__(
        self,
        processor: ProcessFunc,
        workers: int = DEFAULT_WORKERS,
        capacity: int = DEFAULT_CAPACITY,
        poll_interval: float = 0.5,
        clock: Callable[[], datetime] = _utcnow,
        id_factory: Callable[[], str] = _new_job_id,
    ):
        if capacity < 1:
            raise ValueError(f"queue capacity must be at least 1, got {capacity}")

        self._store = JobStore()
        self._pending: "queue.Queue[Job]" = queue.Queue(maxsize=capacity)
        self._capacity = capacity
        self._clock = clock
        self._id_factory = id_factory

        # Set on shutdown. Processors receive it and are expected to check it;
        # nothing interrupts a processor that ignores it.
        self._cancel_event = threading.Event()
        self._closed = False
        self._shutdown_lock = threading.Lock()

        executor = JobExecutor(self._store, processor, self._cancel_event, clock)
        self._pool = WorkerPool(self._pending, executor, workers, poll_interval)
        self._pool.start()

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def workers(self) -> int:
        return self._pool.size

    @property
    def closed(self) -> bool:
        return self._closed

    def pending_count(self) -> int:
        """Jobs waiting in the pending queue (not yet claimed by a worker)."""
        return self._pending.qsize()

    def enqueue(self, payload: Optional[dict] = None) -> str:
        """
        Submit a job and return its id.

        Raises:
            QueueFullError: the pending queue is at capacity. The job is
                recorded as FAILED but its id is not returned.
            QueueClosedError: shutdown() has been called. Nothing is recorded.
        """
        if self._closed:
            raise QueueClosedError()

        job = Job(
            id=self._id_factory(),
            queued_at=self._clock(),
            payload=dict(payload or {}),
        )
        self._store.put(job)

        try:
            self._pending.put_nowait(job)
        except queue.Full:
            self._store.mark_rejected(job.id, "queue is full", self._clock())
            logger.warning(f"Job {job.id} rejected: queue is full (capacity {self._capacity})")
            raise QueueFullError()

        logger.info(f"Job {job.id} queued with payload {job.payload}")
        return job.id

    def get_job(self, job_id: str) -> Job:
        """Return a copy of the job. Raises JobNotFoundError for unknown ids."""
        return self._store.get(job_id)

    def list_jobs(
        self,
        status: Optional[JobStatus] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Job]:
        """Newest first. Offsets past the end give an empty list."""
        return self._store.list(status, limit, offset)

    def get_stats(self) -> dict[str, int]:
        return self._store.stats()

    def shutdown(self, timeout: float = 10.0) -> None:
        """
        Stop pulling new jobs and wait for the workers to finish.

        In-flight jobs are allowed to complete. Jobs still waiting in the
        pending queue stay QUEUED. Calling this again is a no-op.

        Raises:
            ShutdownTimeoutError: workers were still running after `timeout`
                seconds. Their jobs keep running detached and will still
                reach a terminal state in the store.
        """
        with self._shutdown_lock:
            if self._closed:
                return
            self._closed = True

        logger.info(f"Shutting down job queue (timeout {timeout}s)...")
        # Stop pulling BEFORE cancelling, so a worker whose job returns early
        # on cancellation cannot grab another job from the pending queue.
        self._pool.request_stop()
        self._cancel_event.set()
        if not self._pool.stop(timeout):
            raise ShutdownTimeoutError(timeout, self._pool.alive_count())
        logger.info("Job queue shut down")

    def __enter__(self) -> "JobQueue":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown()
