"""
Worker pool — N long-lived threads pulling jobs from the pending queue.

Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                      WorkerPool                          │
    │                                                          │
    │   pending queue.Queue (bounded, FIFO)                    │
    │   ┌───┬───┬───┬───┬───┐                                  │
    │   │ J │ J │ J │   │   │ ── get(timeout) ──┐              │
    │   └───┴───┴───┴───┴───┘                   │              │
    │                                           ▼              │
    │   ┌──────────┐ ┌──────────┐ ┌──────────┐ ┌──────────┐    │
    │   │worker-0  │ │worker-1  │ │worker-2  │ │worker-N  │    │
    │   │execute() │ │execute() │ │(waiting) │ │(waiting) │    │
    │   └──────────┘ └──────────┘ └──────────┘ └──────────┘    │
    └──────────────────────────────────────────────────────────┘

Each queue item is handed to exactly one get() caller, so no two workers
ever run the same job. Jobs leave the queue in FIFO order, but with more
than one worker they can finish in any order.

The get() timeout is what lets a worker notice the stop event: a worker
waiting on an empty queue re-checks it every poll_interval seconds. Once
stop is requested, no further jobs are pulled; a job already in execute()
runs to completion.
"""

import logging
import queue
import threading
import time

from models.job import Job
from worker.executor import JobExecutor

logger = logging.getLogger(__name__)


class WorkerPool:

    def __init__(
        self,
        pending: "queue.Queue[Job]",
        executor: JobExecutor,
        size: int,
        poll_interval: float = 0.5,
    ):
        if size < 1:
            raise ValueError(f"worker pool size must be at least 1, got {size}")
        self._pending = pending
        self._executor = executor
        self._size = size
        self._poll_interval = poll_interval
        self._stop_event = threading.Event()
        self._threads: list[threading.Thread] = []

    @property
    def size(self) -> int:
        return self._size

    def start(self) -> None:
        """Start the worker threads. The pool is never resized afterwards."""
        if self._threads:
            return
        for worker_id in range(self._size):
            thread = threading.Thread(
                target=self._worker_loop,
                args=(worker_id,),
                name=f"job-worker-{worker_id}",
                daemon=True,
            )
            thread.start()
            self._threads.append(thread)
        logger.info(f"Worker pool started with {self._size} threads")

    def request_stop(self) -> None:
        """Workers finish their current job (if any) and pull nothing more."""
        self._stop_event.set()

    def stop(self, timeout: float) -> bool:
        """
        Ask every worker to exit, then wait up to `timeout` seconds in total.

        Returns True if all workers exited, False if some are still busy
        (their in-flight jobs keep running in the background).
        """
        self.request_stop()
        deadline = time.monotonic() + timeout
        for thread in self._threads:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            thread.join(remaining)

        alive = self.alive_count()
        if alive:
            logger.warning(f"Worker pool stop timed out, {alive} worker(s) still running")
            return False
        logger.info("Worker pool stopped")
        return True

    def alive_count(self) -> int:
        return sum(1 for t in self._threads if t.is_alive())

    def _worker_loop(self, worker_id: int) -> None:
        """
        Pull jobs until stop is requested.

        get() blocks for up to poll_interval seconds, then we loop around
        and check the stop event again.
        """
        while not self._stop_event.is_set():
            try:
                job = self._pending.get(timeout=self._poll_interval)
            except queue.Empty:
                continue

            try:
                self._executor.execute(job, worker_id)
            except Exception as e:
                # Store-level errors only (e.g. an invalid transition);
                # processor errors are already recorded on the job.
                logger.error(f"[worker-{worker_id}] Unhandled worker exception: {e}", exc_info=True)
            finally:
                self._pending.task_done()

        logger.debug(f"[worker-{worker_id}] exiting")
