"""
Job store — the authoritative in-memory table of every job ever submitted.

Thread safety:
- One lock guards the dict. Every read AND every write takes it.
- Callers never see the live Job objects: get() and list() return deep
  copies made while the lock is still held, so mutating a returned job
  (or its result dict) cannot change what other threads observe.
- The lifecycle mutators (mark_*) are the only way to change a stored job,
  and each one checks the state machine before touching anything:

      QUEUED ──mark_processing──> PROCESSING ──mark_completed──> COMPLETED
        │                              └────────mark_failed────> FAILED
        └──────────mark_rejected─────────────────────────────────> FAILED

Nothing is ever evicted. The table grows for the life of the process.
"""

import copy
import threading
from datetime import datetime
from typing import Optional

from models.enums import JobStatus
from models.job import Job
from worker.errors import DuplicateJobError, InvalidTransitionError, JobNotFoundError


class JobStore:

    def __init__(self):
        self._jobs: dict[str, Job] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)

    def put(self, job: Job) -> None:
        """Insert a new job. Ids are never reused, so an existing id is an error."""
        with self._lock:
            if job.id in self._jobs:
                raise DuplicateJobError(job.id)
            self._jobs[job.id] = copy.deepcopy(job)

    def get(self, job_id: str) -> Job:
        """Return a copy of the job, or raise JobNotFoundError."""
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                raise JobNotFoundError(job_id)
            return copy.deepcopy(job)

    def list(
        self,
        status: Optional[JobStatus] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Job]:
        """
        Return one page of jobs, newest first.

        dicts keep insertion order and jobs are inserted at submission time,
        so reversing the dict gives queued_at descending without a sort.
        No cap is applied to `limit` here; the API layer normalizes it.
        """
        limit = max(limit, 0)
        offset = max(offset, 0)
        if limit == 0:
            return []

        page: list[Job] = []
        skipped = 0
        with self._lock:
            for job in reversed(self._jobs.values()):
                if status is not None and job.status != status:
                    continue
                if skipped < offset:
                    skipped += 1
                    continue
                page.append(copy.deepcopy(job))
                if len(page) >= limit:
                    break
        return page

    def stats(self) -> dict[str, int]:
        """Counts per status plus the total. A snapshot, not a live view."""
        counts = {"total": 0, **{s.value: 0 for s in JobStatus}}
        with self._lock:
            for job in self._jobs.values():
                counts[job.status.value] += 1
            counts["total"] = len(self._jobs)
        return counts

    # ── Lifecycle transitions ───────────────────────────────────

    def mark_processing(self, job_id: str, started_at: datetime) -> Job:
        with self._lock:
            job = self._require(job_id, JobStatus.QUEUED, JobStatus.PROCESSING)
            job.status = JobStatus.PROCESSING
            job.started_at = started_at
            return copy.deepcopy(job)

    def mark_completed(self, job_id: str, result: dict, completed_at: datetime) -> Job:
        if result is None:
            raise ValueError("a completed job must carry a result")
        stored = copy.deepcopy(result)
        with self._lock:
            job = self._require(job_id, JobStatus.PROCESSING, JobStatus.COMPLETED)
            job.status = JobStatus.COMPLETED
            job.result = stored
            job.completed_at = completed_at
            return copy.deepcopy(job)

    def mark_failed(self, job_id: str, error_message: str, completed_at: datetime) -> Job:
        if not error_message:
            raise ValueError("a failed job must carry an error message")
        with self._lock:
            job = self._require(job_id, JobStatus.PROCESSING, JobStatus.FAILED)
            job.status = JobStatus.FAILED
            job.error_message = error_message
            job.completed_at = completed_at
            return copy.deepcopy(job)

    def mark_rejected(self, job_id: str, error_message: str, completed_at: datetime) -> Job:
        """Fail a job that never reached a worker (the pending queue refused it)."""
        if not error_message:
            raise ValueError("a failed job must carry an error message")
        with self._lock:
            job = self._require(job_id, JobStatus.QUEUED, JobStatus.FAILED)
            job.status = JobStatus.FAILED
            job.error_message = error_message
            job.completed_at = completed_at
            return copy.deepcopy(job)

    def _require(self, job_id: str, expected: JobStatus, target: JobStatus) -> Job:
        # caller holds the lock
        job = self._jobs.get(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        if job.status != expected:
            raise InvalidTransitionError(job_id, job.status.value, target.value)
        return job
