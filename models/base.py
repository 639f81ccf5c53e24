"""
SQLAlchemy engine and session factories.

Two separate engines exist because:
- FastAPI is async → the readiness check uses asyncpg + async sessions
- Worker threads are sync → the distance processor uses psycopg2 + sync sessions

You CANNOT use an async session inside a thread (it would block the event loop),
and you CANNOT use a sync session inside an async handler (it would block the server).

The locations table is owned by the OwnTracks recorder; this service only reads it.
Jobs themselves never touch the database.
"""

from sqlalchemy.orm import DeclarativeBase, sessionmaker
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker
from sqlalchemy import create_engine

from config.settings import settings


class Base(DeclarativeBase):
    """Base class for all ORM models. SQLAlchemy uses this to track table metadata."""
    pass


# ── Async engine (for FastAPI) ──────────────────────────────────
async_engine = create_async_engine(settings.database_url, echo=False, pool_pre_ping=True)
AsyncSessionLocal = async_sessionmaker(async_engine, expire_on_commit=False)

# ── Sync engine (for worker threads) ────────────────────────────
# Pool sized above WORKER_POOL_SIZE so every worker can hold a connection.
sync_engine = create_engine(
    settings.sync_database_url,
    echo=False,
    pool_size=settings.WORKER_POOL_SIZE,
    max_overflow=5,
    pool_recycle=300,
    pool_pre_ping=True,
)
SyncSessionLocal = sessionmaker(sync_engine)
