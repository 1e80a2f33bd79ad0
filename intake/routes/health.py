# intake/routes/health.py
from __future__ import annotations

import time
from typing import Any, Dict

import psutil
from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from intake import __version__
from intake.core.config import settings
from intake.core.logging import get_structlog_logger
from intake.db import session as db_session
from intake.services import redis as redis_service
from intake.services.consent import isoformat_utc
from intake.services.request_context import utcnow

logger = get_structlog_logger(__name__)

router = APIRouter(tags=["health"])


class HealthCheckResponse(BaseModel):
    status: str
    service: str
    environment: str
    version: str
    timestamp: str
    uptime: float
    checks: Dict[str, Dict[str, Any]]


def _timestamp() -> str:
    return isoformat_utc(utcnow())


@router.get("/health", response_model=HealthCheckResponse)
async def health_check():
    """Dependency health: database is critical, redis only degrades."""
    checks = {
        "database": await db_session.health_check(),
        "redis": await redis_service.health_check(),
    }

    overall_status = "healthy"
    if checks["database"].get("status") != "healthy":
        overall_status = "unhealthy"
    elif checks["redis"].get("status") != "healthy":
        overall_status = "degraded"

    process = psutil.Process()
    response = HealthCheckResponse(
        status=overall_status,
        service="lead_intake",
        environment=settings.environment,
        version=__version__,
        timestamp=_timestamp(),
        uptime=time.time() - process.create_time(),
        checks=checks,
    )

    if overall_status == "healthy":
        logger.info("health.check", status=overall_status)
    else:
        logger.warning("health.check", status=overall_status, checks=checks)

    return response


@router.get("/health/live", status_code=status.HTTP_200_OK)
async def liveness_probe():
    """Simple liveness probe for containers."""
    return {
        "status": "alive",
        "timestamp": _timestamp(),
    }


@router.get("/health/ready")
async def readiness_probe():
    """Ready when the database answers."""
    database = await db_session.health_check()
    is_ready = database.get("status") == "healthy"

    return JSONResponse(
        status_code=status.HTTP_200_OK if is_ready else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "ready" if is_ready else "not_ready",
            "timestamp": _timestamp(),
            "checks": {"database": database.get("status", "unknown")},
        },
    )
