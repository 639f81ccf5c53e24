"""
FastAPI dependency injection.

How this works:
- An endpoint declares `queue: JobQueue = Depends(get_queue)`
- FastAPI calls get_queue() before the endpoint runs
- Tests swap these out via app.dependency_overrides, so endpoints can be
  exercised against an in-memory database and a queue with a fake processor
"""

from typing import AsyncGenerator

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from models.base import AsyncSessionLocal
from worker.job_queue import JobQueue


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yields an async database session, auto-closes when the request ends."""
    async with AsyncSessionLocal() as session:
        yield session


async def get_queue(request: Request) -> JobQueue:
    """Returns the job queue created during startup."""
    return request.app.state.queue
