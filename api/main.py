"""
FastAPI application factory.

This file:
1. Creates the FastAPI app
2. Runs startup logic (tracing, then the job queue and its worker threads)
3. Registers all routers (distance, jobs, health, downloads)
4. Runs shutdown logic (drain the worker pool, close connections)

The job queue lives INSIDE the API process: submitted jobs are held in
memory and executed by the queue's worker threads. Restarting the process
forgets every job.

To run:  uvicorn api.main:app --host 0.0.0.0 --port 8080
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from starlette.concurrency import run_in_threadpool

from config.settings import settings
from models.base import async_engine, sync_engine, SyncSessionLocal
from api.routers import distance, jobs, health, downloads
from jobs.distance import DistanceJob
from jobs.locations import LocationRepository
from telemetry.tracing import init_tracer
from worker.errors import ShutdownTimeoutError
from worker.job_queue import JobQueue

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def build_queue() -> JobQueue:
    """Wire the distance processor into a JobQueue sized from settings."""
    processor = DistanceJob(
        repository=LocationRepository(SyncSessionLocal),
        home_latitude=settings.HOME_LATITUDE,
        home_longitude=settings.HOME_LONGITUDE,
        csv_output_path=settings.CSV_OUTPUT_PATH,
    )
    return JobQueue(
        processor,
        workers=settings.WORKER_POOL_SIZE,
        capacity=settings.QUEUE_CAPACITY,
        poll_interval=settings.WORKER_POLL_INTERVAL,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Runs on startup (before yield) and shutdown (after yield).

    Startup:
    - Installs the OpenTelemetry tracer provider (when OTEL_ENABLED)
    - Starts the job queue (worker threads begin waiting for jobs)

    Shutdown:
    - Stops the workers, waiting up to SHUTDOWN_TIMEOUT for in-flight jobs
    - Disposes both DB engines (closes connection pools)
    - Flushes and shuts down the tracer provider
    """
    # ── Startup ─────────────────────────────────────────────────
    logger.info(
        f"Starting {settings.SERVICE_NAME} ({settings.ENVIRONMENT}) — "
        f"home=({settings.HOME_LATITUDE}, {settings.HOME_LONGITUDE}), "
        f"db={settings.POSTGRES_HOST}:{settings.POSTGRES_PORT}/{settings.POSTGRES_DB}"
    )
    shutdown_tracer = init_tracer(settings)
    app.state.queue = build_queue()
    logger.info(
        f"API ready — {settings.WORKER_POOL_SIZE} workers, "
        f"queue capacity {settings.QUEUE_CAPACITY}"
    )

    yield  # app is running and serving requests between startup and shutdown

    # ── Shutdown ────────────────────────────────────────────────
    # shutdown() blocks while workers drain; keep it off the event loop
    try:
        await run_in_threadpool(app.state.queue.shutdown, settings.SHUTDOWN_TIMEOUT)
    except ShutdownTimeoutError as e:
        logger.error(f"Failed to shut down job queue cleanly: {e}")

    await async_engine.dispose()
    sync_engine.dispose()
    await run_in_threadpool(shutdown_tracer)
    logger.info("Service shutdown complete")


def create_app() -> FastAPI:
    """Factory function that builds and configures the FastAPI application."""
    app = FastAPI(
        title="Distance Worker",
        description="Asynchronous distance-from-home calculations over OwnTracks location history",
        version="1.0.0",
        lifespan=lifespan,
    )

    # Each router adds its endpoints to the app
    app.include_router(health.router)
    app.include_router(distance.router)
    app.include_router(jobs.router)
    app.include_router(downloads.router)

    if settings.OTEL_ENABLED:
        # spans for every request except the health checks
        FastAPIInstrumentor.instrument_app(app, excluded_urls="healthz,readyz")

    return app


# This is what uvicorn imports: `uvicorn api.main:app`
app = create_app()
