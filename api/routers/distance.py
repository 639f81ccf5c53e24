"""
Distance calculation submission.

POST /distance/jobs → queue a distance-from-home calculation for one day

The endpoint only enqueues. The calculation itself (database fetch,
haversine metrics, CSV report) runs later on a worker thread; poll
GET /jobs/{job_id} for the outcome.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from api.dependencies import get_queue
from api.schemas.job import DistanceJobCreate, DistanceJobAccepted
from worker.errors import QueueClosedError, QueueFullError
from worker.job_queue import JobQueue

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/distance", tags=["distance"])


@router.post("/jobs", response_model=DistanceJobAccepted, status_code=202)
async def calculate_distance_from_home(
    job_in: DistanceJobCreate,
    queue: JobQueue = Depends(get_queue),
) -> DistanceJobAccepted:
    """
    Submit a distance calculation job.

    Returns 202 with the job id. Returns 503 when the pending queue is
    full (the submission is dropped, retry later) or the service is
    shutting down.
    """
    logger.info(f"Received distance calculation request (date={job_in.date}, device_id={job_in.device_id})")

    try:
        job_id = queue.enqueue(job_in.to_payload())
    except (QueueFullError, QueueClosedError) as e:
        logger.error(f"Failed to enqueue job: {e}")
        raise HTTPException(status_code=503, detail=f"failed to enqueue job: {e}")

    job = queue.get_job(job_id)
    return DistanceJobAccepted(
        job_id=job.id,
        status="queued",
        queued_at=job.queued_at,
    )
