"""
Pydantic schemas for the /distance and /jobs endpoints.

These are NOT the in-memory Job record — they define the HTTP API contract:
- DistanceJobCreate: what the user sends to start a calculation (request body)
- DistanceJobAccepted: what POST /distance/jobs returns
- JobResponse: full status of one job (GET /jobs/{id})
- JobSummary / JobListResponse: paginated job history
- JobStats: counts per status

FastAPI validates incoming data against these automatically.
If someone sends date="15/01/2024", FastAPI returns a 422 before our code runs.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from jobs.locations import parse_date
from models.job import Job


class DistanceJobCreate(BaseModel):
    """Request body for POST /distance/jobs."""

    date: str = Field(
        ...,
        description="Calendar day to analyse (UTC), YYYY-MM-DD",
        examples=["2024-01-15"],
    )
    device_id: Optional[str] = Field(
        default=None,
        max_length=100,
        description="Only use locations from this device (all devices if omitted)",
    )

    @field_validator("date")
    @classmethod
    def _validate_date(cls, value: str) -> str:
        parse_date(value)  # raises ValueError → 422
        return value

    def to_payload(self) -> dict:
        return {"date": self.date, "device_id": self.device_id or ""}


class DistanceJobAccepted(BaseModel):
    """Response body for POST /distance/jobs."""

    job_id: str
    status: str
    queued_at: datetime


class JobResult(BaseModel):
    csv_path: str
    total_distance_km: float
    max_distance_km: float
    min_distance_km: float
    total_locations: int
    date: str
    device_id: str
    processing_time_ms: int


class JobResponse(BaseModel):
    """Response body for GET /jobs/{job_id}."""

    job_id: str
    status: str
    queued_at: datetime
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    error_message: Optional[str] = None
    result: Optional[JobResult] = None

    @classmethod
    def from_job(cls, job: Job) -> "JobResponse":
        result = None
        if job.result is not None:
            result = JobResult(
                csv_path=job.result.get("csv_path", ""),
                total_distance_km=job.result.get("total_distance_km", 0.0),
                max_distance_km=job.result.get("max_distance_km", 0.0),
                min_distance_km=job.result.get("min_distance_km", 0.0),
                total_locations=job.result.get("total_locations", 0),
                date=job.payload.get("date", ""),
                device_id=job.payload.get("device_id", ""),
                processing_time_ms=job.result.get("processing_time_ms", 0),
            )
        return cls(
            job_id=job.id,
            status=job.status.value,
            queued_at=job.queued_at,
            started_at=job.started_at,
            completed_at=job.completed_at,
            error_message=job.error_message or None,
            result=result,
        )


class JobSummary(BaseModel):
    """One row of GET /jobs/."""

    job_id: str
    status: str
    date: str
    device_id: str
    queued_at: datetime
    completed_at: Optional[datetime] = None

    @classmethod
    def from_job(cls, job: Job) -> "JobSummary":
        return cls(
            job_id=job.id,
            status=job.status.value,
            date=job.payload.get("date", ""),
            device_id=job.payload.get("device_id", ""),
            queued_at=job.queued_at,
            completed_at=job.completed_at,
        )


class JobListResponse(BaseModel):
    """Paginated list of jobs — returned by GET /jobs/."""

    jobs: list[JobSummary]
    total_count: int   # jobs matching the filter (ignoring pagination)
    limit: int
    offset: int


class JobStats(BaseModel):
    """Job counts — returned by GET /jobs/stats."""

    total: int
    queued: int
    processing: int
    completed: int
    failed: int
