"""
ReWear Backend — Health Check Route
=====================================

What:  Liveness/readiness probe for Docker and load balancers.
How:   Runs `SELECT 1` against the database.
       healthy   → HTTP 200
       unhealthy → HTTP 503 (database unreachable)
"""

import logging
import time

from fastapi import APIRouter, Response
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from rewear import __version__
from rewear.schemas.common import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
@router.get("/api/health", response_model=HealthResponse, include_in_schema=False)
async def health_check(response: Response) -> HealthResponse:
    """Probe the database and report aggregate status with uptime."""
    db_status = "connected"
    overall = "healthy"

    try:
        from rewear.database import engine
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))
        response.status_code = 503

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
