"""
Job status endpoints.

GET /jobs/          → List jobs with status filter + limit/offset pagination
GET /jobs/stats     → Counts per status
GET /jobs/{job_id}  → Full status of one job

The API layer is intentionally thin: it reads copies from the JobQueue and
shapes them into responses. Pagination limits are normalized HERE, not in
the queue (missing/0 → LIST_DEFAULT_LIMIT, anything larger than
LIST_MAX_LIMIT is capped).
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from api.dependencies import get_queue
from api.schemas.job import JobListResponse, JobResponse, JobStats, JobSummary
from config.settings import settings
from models.enums import JobStatus
from worker.errors import JobNotFoundError
from worker.job_queue import JobQueue

router = APIRouter(prefix="/jobs", tags=["jobs"])


def normalize_limit(limit: int) -> int:
    if limit <= 0:
        return settings.LIST_DEFAULT_LIMIT
    return min(limit, settings.LIST_MAX_LIMIT)


@router.get("/", response_model=JobListResponse)
async def list_jobs(
    status: Optional[JobStatus] = Query(None, description="Filter by job status"),
    limit: int = Query(0, ge=0, description="Jobs per page (0 = default)"),
    offset: int = Query(0, ge=0, description="Jobs to skip"),
    queue: JobQueue = Depends(get_queue),
) -> JobListResponse:
    """
    List jobs, newest first.

    total_count is the number of jobs matching the filter, so a client
    can tell "150 jobs total, showing 50".
    """
    limit = normalize_limit(limit)
    jobs = queue.list_jobs(status, limit, offset)

    stats = queue.get_stats()
    total = stats[status.value] if status else stats["total"]

    return JobListResponse(
        jobs=[JobSummary.from_job(j) for j in jobs],
        total_count=total,
        limit=limit,
        offset=offset,
    )


@router.get("/stats", response_model=JobStats)
async def get_job_stats(
    queue: JobQueue = Depends(get_queue),
) -> JobStats:
    return JobStats(**queue.get_stats())


@router.get("/{job_id}", response_model=JobResponse)
async def get_job_status(
    job_id: str,
    queue: JobQueue = Depends(get_queue),
) -> JobResponse:
    """Get a single job by its id."""
    try:
        job = queue.get_job(job_id)
    except JobNotFoundError:
        raise HTTPException(status_code=404, detail=f"Job {job_id} not found")
    return JobResponse.from_job(job)
