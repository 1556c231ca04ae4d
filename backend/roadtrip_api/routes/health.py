"""
Road Trip Planner Backend — Health Check Route
===============================================

What:  GET /health liveness probe (no auth, not rate limited).
Why:   Docker and load balancers poll it to decide whether to route traffic.
How:   Runs SELECT 1 on a pooled session and reports uptime.

Status levels:
    - healthy:   the database answered
    - unhealthy: the database did not; still HTTP 200 so the probe can
                 read the body, monitoring alerts on `status`
"""

import logging
import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from roadtrip_api import __version__
from roadtrip_api.database import get_db_session
from roadtrip_api.schemas.common import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(db: AsyncSession = Depends(get_db_session)) -> HealthResponse:
    db_status = "connected"
    overall = "healthy"
    try:
        await db.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))

    return HealthResponse(
        status=overall,
        message="Road Trip Planner API is running",
        version=__version__,
        database=db_status,
        uptime_seconds=round(time.time() - _start_time, 2),
        timestamp=datetime.now(timezone.utc),
    )
