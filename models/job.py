"""
In-memory job record.

Jobs are NOT persisted — they live in the JobStore for the lifetime of the
process. The record is a plain dataclass so the store can hand out deep
copies without dragging an ORM session along.

Key design decisions:
- String UUID id: generated at submission, the only handle callers get back
- payload dict: opaque to the queue; the distance processor reads
  {"date": "YYYY-MM-DD", "device_id": "..."} from it
- result dict: opaque to the queue; the executor only adds processing_time_ms
- Timestamps at every lifecycle stage: queued_at <= started_at <= completed_at
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from models.enums import JobStatus


@dataclass
class Job:
    id: str
    queued_at: datetime
    payload: dict = field(default_factory=dict)
    status: JobStatus = JobStatus.QUEUED

    # ── Lifecycle timestamps ────────────────────────────────────
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    # ── Outcome (exactly one is set once the job is terminal) ───
    result: Optional[dict] = None
    error_message: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def __repr__(self) -> str:
        return f"<Job {self.id} {self.status.value}>"
