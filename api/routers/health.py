"""
Health check endpoints.

GET /healthz → liveness: the process is up (no dependencies checked)
GET /readyz  → readiness: the locations database answers SELECT 1

Container orchestrators (k8s) restart on failed liveness and stop routing
traffic on failed readiness.
"""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_db
from config.settings import settings

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/healthz")
async def liveness() -> dict:
    return {"status": "healthy", "service": settings.SERVICE_NAME}


@router.get("/readyz")
async def readiness(db: AsyncSession = Depends(get_db)):
    """Check that Postgres is reachable."""
    try:
        await db.execute(text("SELECT 1"))
    except Exception as e:
        logger.warning(f"Readiness check failed: database unhealthy: {e}")
        return JSONResponse(
            status_code=503,
            content={
                "status": "not_ready",
                "reason": "database_unavailable",
                "error": str(e),
            },
        )

    return {"status": "ready", "service": settings.SERVICE_NAME, "database": "connected"}
