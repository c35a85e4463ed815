"""
Health and Monitoring Router.

Public, unauthenticated endpoints for uptime checks and operators.

Endpoints Provided:
- `/`: banner confirming the backend is up.
- `/healthcheck`: lightweight liveness check.
- `/monitoring/detailed`: component status for the database, the price cache
  and the burner-account cleanup scheduler.

Graceful Degradation: the detailed check reports each component separately,
so a failing component marks the service "degraded" instead of failing the
request.
"""

from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends

from core.database import get_database_info
from core.logging_config import get_logger
from services.cleanup_scheduler import CleanupScheduler
from services.price_service import PriceService

from .dependencies import get_cleanup_scheduler, get_price_service

logger = get_logger(__name__)

SERVICE_NAME = "Slacker API"
VERSION = "1.0.0"

health_router = APIRouter(tags=["Health & Monitoring"])

monitoring_router = APIRouter(prefix="/monitoring", tags=["Health & Monitoring"])


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@health_router.get("/")
async def root() -> Dict[str, str]:
    return {"message": "Slacker Backend is running", "status": "OK"}


@health_router.get("/healthcheck")
async def health_check() -> Dict[str, Any]:
    """
    Basic health check endpoint

    Returns:
        Dict with status, timestamp, and version info
    """
    logger.debug("Health check requested")
    return {
        "status": "healthy",
        "timestamp": _now(),
        "version": VERSION,
        "service": SERVICE_NAME,
    }


@monitoring_router.get("/detailed")
async def detailed_health_check(
    prices: PriceService = Depends(get_price_service),
    scheduler: CleanupScheduler = Depends(get_cleanup_scheduler),
) -> Dict[str, Any]:
    """Detailed health check with component status"""
    logger.info("Detailed health check requested")

    health_status = {
        "status": "healthy",
        "timestamp": _now(),
        "version": VERSION,
        "service": SERVICE_NAME,
        "components": {},
    }

    db_info = await get_database_info()
    if db_info["connection_healthy"]:
        health_status["components"]["database"] = {"status": "healthy", "info": db_info}
    else:
        health_status["components"]["database"] = {"status": "unhealthy", "info": db_info}
        health_status["status"] = "degraded"

    health_status["components"]["price_cache"] = {
        "status": "healthy",
        "stats": await prices.stats(),
    }

    scheduler_status = scheduler.status()
    health_status["components"]["cleanup_scheduler"] = {
        "status": "healthy" if scheduler_status["last_error"] is None else "degraded",
        **scheduler_status,
    }
    if scheduler_status["last_error"] is not None:
        health_status["status"] = "degraded"

    return health_status
