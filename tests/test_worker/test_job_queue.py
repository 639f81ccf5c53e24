"""
Tests for JobQueue — real worker threads, small in-process processors.

Processors that need to hold a worker busy wait on the `release` event
from conftest.py, which is always set at teardown so no thread hangs.
"""

import threading
import time
from datetime import datetime, timezone

import pytest

from models.enums import JobStatus
from worker.errors import (
    DuplicateJobError,
    JobNotFoundError,
    QueueClosedError,
    QueueFullError,
    ShutdownTimeoutError,
)
from worker.job_queue import JobQueue


def _terminal(queue, job_id):
    return queue.get_job(job_id).is_terminal


def test_enqueue_returns_id_and_job_is_visible(make_queue, release):
    queue = make_queue(lambda cancel, job: release.wait(5) and {"ok": True}, workers=1)

    job_id = queue.enqueue({"date": "2024-01-15", "device_id": "phone"})

    assert job_id
    job = queue.get_job(job_id)
    assert job.status in (JobStatus.QUEUED, JobStatus.PROCESSING)
    assert job.payload == {"date": "2024-01-15", "device_id": "phone"}
    assert job.completed_at is None
    assert job.result is None
    assert job.error_message is None


def test_ids_are_unique(make_queue):
    queue = make_queue()
    ids = {queue.enqueue({"n": i}) for i in range(50)}
    assert len(ids) == 50


def test_job_completes(make_queue, wait_until):
    queue = make_queue(lambda cancel, job: {"x": 1})
    job_id = queue.enqueue({"date": "2024-01-15"})

    assert wait_until(lambda: _terminal(queue, job_id))
    job = queue.get_job(job_id)
    assert job.status == JobStatus.COMPLETED
    assert job.result["x"] == 1
    assert "processing_time_ms" in job.result
    assert job.error_message is None
    assert job.queued_at <= job.started_at <= job.completed_at


def test_failed_job_has_message_and_no_result(make_queue, wait_until):
    def processor(cancel, job):
        raise LookupError("no locations found for date 2024-01-15")

    queue = make_queue(processor)
    job_id = queue.enqueue({"date": "2024-01-15"})

    assert wait_until(lambda: _terminal(queue, job_id))
    job = queue.get_job(job_id)
    assert job.status == JobStatus.FAILED
    assert job.error_message == "no locations found for date 2024-01-15"
    assert job.result is None
    assert job.started_at is not None


def test_terminal_state_never_changes(make_queue, wait_until):
    queue = make_queue(lambda cancel, job: {"x": 1})
    job_id = queue.enqueue({})
    assert wait_until(lambda: _terminal(queue, job_id))

    first = queue.get_job(job_id)
    time.sleep(0.05)
    second = queue.get_job(job_id)
    assert first.status == second.status == JobStatus.COMPLETED
    assert first.completed_at == second.completed_at
    assert first.result == second.result


def test_worker_survives_processor_failure(make_queue, wait_until):
    def processor(cancel, job):
        if job.payload["fail"]:
            raise RuntimeError("boom")
        return {"ok": True}

    queue = make_queue(processor, workers=1)
    bad = queue.enqueue({"fail": True})
    good = queue.enqueue({"fail": False})

    assert wait_until(lambda: _terminal(queue, good))
    assert queue.get_job(bad).status == JobStatus.FAILED
    assert queue.get_job(good).status == JobStatus.COMPLETED


def test_worker_survives_non_mapping_result(make_queue, wait_until):
    def processor(cancel, job):
        if job.payload["bad"]:
            return ["not", "a", "mapping"]
        return {"ok": True}

    queue = make_queue(processor, workers=1)
    bad = queue.enqueue({"bad": True})
    good = queue.enqueue({"bad": False})

    assert wait_until(lambda: _terminal(queue, bad) and _terminal(queue, good))
    assert queue.get_job(bad).status == JobStatus.FAILED
    assert queue.get_job(bad).error_message == "processor returned list, expected a mapping"
    assert queue.get_job(good).status == JobStatus.COMPLETED


def test_get_unknown_job_raises(make_queue):
    queue = make_queue()
    with pytest.raises(JobNotFoundError):
        queue.get_job("00000000-0000-0000-0000-000000000000")


def test_returned_jobs_are_copies(make_queue, wait_until):
    queue = make_queue(lambda cancel, job: {"x": 1})
    job_id = queue.enqueue({"date": "2024-01-15"})
    assert wait_until(lambda: _terminal(queue, job_id))

    job = queue.get_job(job_id)
    job.result["x"] = 42
    job.status = JobStatus.FAILED

    listed = queue.list_jobs()[0]
    listed.payload["date"] = "tampered"

    fresh = queue.get_job(job_id)
    assert fresh.result["x"] == 1
    assert fresh.status == JobStatus.COMPLETED
    assert fresh.payload["date"] == "2024-01-15"


def test_list_jobs_pagination(make_queue):
    queue = make_queue()
    for i in range(15):
        queue.enqueue({"n": i})

    assert len(queue.list_jobs(limit=10, offset=0)) == 10
    assert len(queue.list_jobs(limit=10, offset=10)) == 5
    assert queue.list_jobs(limit=10, offset=1000) == []


def test_list_jobs_filters_by_status(make_queue, wait_until):
    def processor(cancel, job):
        if job.payload["fail"]:
            raise RuntimeError("boom")
        return {"ok": True}

    queue = make_queue(processor)
    ids = [queue.enqueue({"fail": i % 2 == 0}) for i in range(6)]
    assert wait_until(lambda: all(_terminal(queue, j) for j in ids))

    failed = queue.list_jobs(JobStatus.FAILED)
    completed = queue.list_jobs(JobStatus.COMPLETED)
    assert len(failed) == 3
    assert len(completed) == 3
    assert all(j.status == JobStatus.FAILED for j in failed)


def test_concurrent_submissions_each_processed_once(make_queue, wait_until):
    """K jobs from several threads → exactly K processor calls, one per job."""
    calls: list[str] = []
    lock = threading.Lock()

    def processor(cancel, job):
        with lock:
            calls.append(job.id)
        time.sleep(0.001)
        return {"ok": True}

    queue = make_queue(processor, workers=4, capacity=100)
    submitted: list[str] = []
    submit_lock = threading.Lock()

    def submitter():
        for _ in range(10):
            job_id = queue.enqueue({})
            with submit_lock:
                submitted.append(job_id)

    threads = [threading.Thread(target=submitter) for _ in range(5)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert wait_until(lambda: queue.get_stats()["completed"] == 50, timeout=5.0)
    assert len(calls) == 50
    assert sorted(calls) == sorted(submitted)
    assert queue.get_stats() == {
        "total": 50, "queued": 0, "processing": 0, "completed": 50, "failed": 0,
    }


def test_full_queue_rejects_and_orphans_the_job(make_queue, release, wait_until):
    queue = make_queue(lambda cancel, job: release.wait(5) and {"ok": True}, workers=1, capacity=2)

    busy = queue.enqueue({"n": 0})
    assert wait_until(lambda: queue.get_job(busy).status == JobStatus.PROCESSING)

    accepted = [queue.enqueue({"n": 1}), queue.enqueue({"n": 2})]
    with pytest.raises(QueueFullError, match="queue is full"):
        queue.enqueue({"n": 3})

    # The rejected job exists (failed) but its id was never handed out
    rejected = queue.list_jobs(JobStatus.FAILED)
    assert len(rejected) == 1
    orphan = rejected[0]
    assert orphan.id not in [busy, *accepted]
    assert orphan.error_message == "queue is full"
    assert orphan.started_at is None
    assert orphan.completed_at is not None
    assert orphan.payload == {"n": 3}

    release.set()
    assert wait_until(lambda: all(_terminal(queue, j) for j in [busy, *accepted]))
    assert queue.get_stats()["completed"] == 3


def test_end_to_end_single_worker(make_queue, wait_until):
    """1 worker, 50ms jobs, 3 submissions → all completed shortly after 150ms."""

    def processor(cancel, job):
        time.sleep(0.05)
        return {"X": 1}

    queue = make_queue(processor, workers=1)
    ids = [queue.enqueue({"n": i}) for i in range(3)]

    assert wait_until(lambda: queue.get_stats()["completed"] == 3, timeout=1.0)
    for job_id in ids:
        job = queue.get_job(job_id)
        assert job.status == JobStatus.COMPLETED
        assert job.result["X"] == 1
    assert queue.get_stats()["completed"] == 3


def test_single_worker_runs_jobs_in_fifo_order(make_queue, wait_until):
    order = []
    queue = make_queue(lambda cancel, job: order.append(job.payload["n"]) or {"ok": True}, workers=1)
    for i in range(5):
        queue.enqueue({"n": i})

    assert wait_until(lambda: len(order) == 5)
    assert order == [0, 1, 2, 3, 4]


# ── Shutdown ────────────────────────────────────────────────────

def test_shutdown_twice_is_safe(make_queue):
    queue = make_queue()
    queue.shutdown(timeout=1.0)
    queue.shutdown(timeout=1.0)
    assert queue.closed


def test_enqueue_after_shutdown_is_rejected(make_queue):
    queue = make_queue()
    queue.shutdown(timeout=1.0)

    with pytest.raises(QueueClosedError):
        queue.enqueue({})
    assert queue.get_stats()["total"] == 0


def test_shutdown_waits_for_in_flight_job(make_queue, wait_until):
    def processor(cancel, job):
        time.sleep(0.1)
        return {"ok": True}

    queue = make_queue(processor, workers=1)
    job_id = queue.enqueue({})
    assert wait_until(lambda: queue.get_job(job_id).status == JobStatus.PROCESSING)

    queue.shutdown(timeout=2.0)
    assert queue.get_job(job_id).status == JobStatus.COMPLETED


def test_shutdown_sets_cancel_event(make_queue, wait_until):
    def processor(cancel, job):
        cancelled = cancel.wait(5)
        return {"cancelled": cancelled}

    queue = make_queue(processor, workers=1)
    job_id = queue.enqueue({})
    assert wait_until(lambda: queue.get_job(job_id).status == JobStatus.PROCESSING)

    queue.shutdown(timeout=2.0)
    assert queue.get_job(job_id).result["cancelled"] is True


def test_pending_jobs_stay_queued_after_shutdown(make_queue, wait_until):
    def processor(cancel, job):
        cancel.wait(5)
        return {"ok": True}

    queue = make_queue(processor, workers=1)
    first = queue.enqueue({"n": 1})
    assert wait_until(lambda: queue.get_job(first).status == JobStatus.PROCESSING)
    second = queue.enqueue({"n": 2})

    queue.shutdown(timeout=2.0)

    assert queue.get_job(first).status == JobStatus.COMPLETED
    assert queue.get_job(second).status == JobStatus.QUEUED
    assert queue.pending_count() == 1


def test_shutdown_timeout_leaves_job_running(make_queue, release, wait_until):
    queue = make_queue(lambda cancel, job: release.wait(5) and {"ok": True}, workers=1)
    job_id = queue.enqueue({})
    assert wait_until(lambda: queue.get_job(job_id).status == JobStatus.PROCESSING)

    with pytest.raises(ShutdownTimeoutError) as exc_info:
        queue.shutdown(timeout=0.1)
    assert exc_info.value.still_running == 1
    assert isinstance(exc_info.value, TimeoutError)

    # Not cancelled retroactively: the job is still in flight...
    assert queue.get_job(job_id).status == JobStatus.PROCESSING

    # ...and finishes on its own once the processor returns
    release.set()
    assert wait_until(lambda: _terminal(queue, job_id))
    assert queue.get_job(job_id).status == JobStatus.COMPLETED

    # A second call returns promptly without error
    queue.shutdown(timeout=0.1)


def test_context_manager_shuts_down():
    with JobQueue(lambda cancel, job: {"ok": True}, workers=1, poll_interval=0.01) as queue:
        queue.enqueue({})
    assert queue.closed


# ── Construction ────────────────────────────────────────────────

def test_queues_are_independent(make_queue, wait_until):
    a = make_queue(lambda cancel, job: {"queue": "a"})
    b = make_queue(lambda cancel, job: {"queue": "b"})

    job_a = a.enqueue({})
    assert wait_until(lambda: _terminal(a, job_a))

    assert b.get_stats()["total"] == 0
    with pytest.raises(JobNotFoundError):
        b.get_job(job_a)


def test_injected_clock_and_ids(make_queue):
    fixed = datetime(2024, 1, 15, 8, 0, tzinfo=timezone.utc)
    ids = iter(["job-a", "job-b"])
    queue = make_queue(clock=lambda: fixed, id_factory=lambda: next(ids))

    assert queue.enqueue({}) == "job-a"
    assert queue.get_job("job-a").queued_at == fixed


def test_reused_id_is_rejected(make_queue):
    queue = make_queue(id_factory=lambda: "same-id")
    queue.enqueue({})
    with pytest.raises(DuplicateJobError):
        queue.enqueue({})


def test_defaults():
    queue = JobQueue(lambda cancel, job: {"ok": True}, poll_interval=0.01)
    try:
        assert queue.workers == 5
        assert queue.capacity == 100
    finally:
        queue.shutdown(timeout=1.0)


@pytest.mark.parametrize("kwargs", [{"workers": 0}, {"capacity": 0}])
def test_invalid_sizes_are_rejected(kwargs):
    with pytest.raises(ValueError):
        JobQueue(lambda cancel, job: {"ok": True}, **kwargs)
