"""
Shared enumerations used across the entire project.

Using Python enums (inheriting from str) means:
- They serialize to JSON automatically ("queued", not "JobStatus.QUEUED")
- They work as FastAPI query parameters
- Typos become immediate errors instead of silent bugs

Lifecycle:
    QUEUED → PROCESSING → COMPLETED
                        → FAILED
    QUEUED → FAILED      (only when the pending queue rejects the job)
"""

import enum


class JobStatus(str, enum.Enum):
    QUEUED = "queued"            # submitted, waiting in the pending queue
    PROCESSING = "processing"    # a worker thread is executing it
    COMPLETED = "completed"      # finished successfully, result attached
    FAILED = "failed"            # processor raised, or the queue was full

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)
