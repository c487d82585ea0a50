"""
Health check routes for load balancers and container orchestrators
"""
import platform
import time
from datetime import datetime

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from core.config import Settings
from core.database import Database, get_database
from core.dependencies import get_settings
from schemas.common import ok

router = APIRouter()

STARTED_AT = time.time()


def _base_health(settings: Settings) -> dict:
    return {
        "status": "healthy",
        "timestamp": datetime.utcnow().isoformat(),
        "uptime": time.time() - STARTED_AT,
        "environment": settings.environment,
        "version": settings.version,
    }


@router.get("")
async def health_check(settings: Settings = Depends(get_settings)):
    """Basic health check"""
    return ok("Server is healthy", _base_health(settings))


@router.get("/detailed")
async def detailed_health_check(
    settings: Settings = Depends(get_settings),
    database: Database = Depends(get_database),
):
    """Health check including the database; answers 503 when a dependency is down"""
    db_healthy = await database.is_healthy()
    data = _base_health(settings)
    data.update(
        {
            "status": "healthy" if db_healthy else "unhealthy",
            "services": {"database": "healthy" if db_healthy else "unhealthy", "server": "healthy"},
            "system": {"platform": platform.platform(), "pythonVersion": platform.python_version()},
        }
    )
    return JSONResponse(
        status_code=200 if db_healthy else 503,
        content={
            "success": db_healthy,
            "message": "All services are healthy" if db_healthy else "Some services are unhealthy",
            "data": data,
            "error": None if db_healthy else "SERVICE_UNAVAILABLE",
        },
    )


@router.get("/ready")
async def readiness_check(database: Database = Depends(get_database)):
    ready = await database.is_healthy()
    return JSONResponse(
        status_code=200 if ready else 503,
        content={
            "success": ready,
            "message": "Service is ready" if ready else "Service is not ready",
            "data": {"ready": ready},
            "error": None if ready else "SERVICE_UNAVAILABLE",
        },
    )


@router.get("/live")
async def liveness_check():
    return ok("Service is alive", {"alive": True})
