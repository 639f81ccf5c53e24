"""
Shared test fixtures.

These replace real infrastructure with lightweight in-memory alternatives:
- PostgreSQL → SQLite in memory (sync for the repository, aiosqlite for /readyz)
- Distance processor → small in-process functions with counters and events
- HTTP server → httpx.AsyncClient with ASGI transport (no network)

This means tests:
- Run without Docker
- Run quickly (workers poll every 10ms instead of 500ms)
- Are fully isolated (each test gets its own queue and database)
"""

import threading
import time
from datetime import datetime, timezone

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from models.base import Base
from models.location import Location
from api.main import create_app
from api.dependencies import get_db, get_queue
from worker.errors import ShutdownTimeoutError
from worker.job_queue import JobQueue

TEST_POLL_INTERVAL = 0.01


def _wait_until(predicate, timeout: float = 2.0, interval: float = 0.005) -> bool:
    """Poll predicate() until it is truthy or timeout seconds pass."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return bool(predicate())


@pytest.fixture
def wait_until():
    return _wait_until


def echo_processor(cancel, job) -> dict:
    """Completes immediately, echoing the payload back."""
    return {"echo": dict(job.payload)}


@pytest.fixture
def make_queue():
    """
    Factory for JobQueues with a fast poll interval.

    Every queue created through it is shut down after the test, so no
    worker threads leak between tests.
    """
    created: list[JobQueue] = []

    def _make(processor=echo_processor, **kwargs) -> JobQueue:
        kwargs.setdefault("workers", 2)
        kwargs.setdefault("poll_interval", TEST_POLL_INTERVAL)
        q = JobQueue(processor, **kwargs)
        created.append(q)
        return q

    yield _make

    for q in created:
        try:
            q.shutdown(timeout=2.0)
        except ShutdownTimeoutError:
            pass


@pytest.fixture
def release():
    """An event that blocking processors wait on; always set at teardown."""
    event = threading.Event()
    yield event
    event.set()


# ── Database ────────────────────────────────────────────────────

@pytest.fixture
def sync_session_factory():
    """
    In-memory SQLite shared by every session (StaticPool keeps ONE connection,
    otherwise each new session would see an empty database).
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield sessionmaker(engine)
    engine.dispose()


@pytest.fixture
def add_location(sync_session_factory):
    """Insert a Location row: add_location("2024-01-15 08:00", 40.7, -74.0, device_id="phone")"""

    def _add(created_at: str, latitude: float, longitude: float, **kwargs) -> Location:
        session = sync_session_factory()
        try:
            row = Location(
                created_at=datetime.strptime(created_at, "%Y-%m-%d %H:%M").replace(tzinfo=timezone.utc),
                latitude=latitude,
                longitude=longitude,
                **kwargs,
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            session.expunge(row)
            return row
        finally:
            session.close()

    return _add


@pytest_asyncio.fixture
async def async_session():
    """Async session on a fresh in-memory database (for the readiness check)."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    factory = async_sessionmaker(engine, expire_on_commit=False)
    async with factory() as session:
        yield session
    await engine.dispose()


# ── HTTP ────────────────────────────────────────────────────────

@pytest.fixture
def api_queue(make_queue):
    return make_queue(echo_processor, workers=2, capacity=10)


@pytest_asyncio.fixture
async def client(api_queue, async_session):
    """
    Create a test HTTP client that talks directly to the FastAPI app.

    ASGITransport does not run the lifespan, so the real queue (with the
    database-backed distance processor) is never built; dependency_overrides
    hands the endpoints the test queue and the SQLite session instead.
    """
    app = create_app()

    async def override_get_db():
        yield async_session

    async def override_get_queue():
        return api_queue

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_queue] = override_get_queue

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
