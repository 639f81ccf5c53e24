"""
Job executor — runs a single job inside a worker thread.

Each worker thread calls executor.execute(job, worker_id), and this method
handles the full lifecycle:

    1. Mark the job PROCESSING in the store (sets started_at)
    2. Call the processor — OUTSIDE the store lock, so a slow job never
       blocks readers or the other workers
    3. On success: mark COMPLETED, attach processing_time_ms to the result
    4. On failure: mark FAILED with the exception message

A job that reaches step 2 always ends COMPLETED or FAILED. Processor
exceptions, a missing result, a result that is not a mapping and a
result the store cannot copy all become a failed job, and the worker goes
straight back to waiting. Only BaseExceptions that are not Exceptions
(KeyboardInterrupt, SystemExit) propagate.
"""

import logging
import threading
import time
from datetime import datetime
from typing import Callable, Mapping

from models.job import Job
from worker.errors import JobQueueError
from worker.store import JobStore

logger = logging.getLogger(__name__)

# (cancel_event, job) -> result dict. The event is set when the queue shuts down.
ProcessFunc = Callable[[threading.Event, Job], dict]


class JobExecutor:

    def __init__(
        self,
        store: JobStore,
        processor: ProcessFunc,
        cancel_event: threading.Event,
        clock: Callable[[], datetime],
    ):
        self._store = store
        self._processor = processor
        self._cancel_event = cancel_event
        self._clock = clock

    def execute(self, job: Job, worker_id: int = 0) -> Job:
        """
        Execute a single job. Called by WorkerPool from a worker thread.

        Returns a copy of the job in its terminal state
        (for logging/tests, the store holds the real record).
        """
        # ── Step 1: Mark PROCESSING ─────────────────────────────
        claimed = self._store.mark_processing(job.id, self._clock())
        start_time = time.monotonic()
        logger.info(f"[worker-{worker_id}] Job {job.id} started")

        # ── Step 2: Run the processor (no lock held) ────────────
        try:
            result = self._processor(self._cancel_event, claimed)
        except Exception as e:
            # ── Step 3a: Mark FAILED ────────────────────────────
            return self._fail(job.id, worker_id, str(e) or type(e).__name__)

        elapsed = time.monotonic() - start_time

        if result is None:
            return self._fail(job.id, worker_id, "processor returned no result")
        if not isinstance(result, Mapping):
            return self._fail(
                job.id, worker_id,
                f"processor returned {type(result).__name__}, expected a mapping",
            )

        # ── Step 3b: Mark COMPLETED ─────────────────────────────
        try:
            done = self._store.mark_completed(
                job.id,
                {**result, "processing_time_ms": int(elapsed * 1000)},
                self._clock(),
            )
        except JobQueueError:
            raise
        except Exception as e:
            # the result could not be stored (e.g. it cannot be copied)
            return self._fail(job.id, worker_id, f"could not record result: {e}")

        logger.info(f"[worker-{worker_id}] Job {job.id} completed in {elapsed:.3f}s")
        return done

    def _fail(self, job_id: str, worker_id: int, message: str) -> Job:
        logger.error(f"[worker-{worker_id}] Job {job_id} failed: {message}")
        return self._store.mark_failed(job_id, message, self._clock())
