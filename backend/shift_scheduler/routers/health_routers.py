# backend/shift_scheduler/routers/health_routers.py
"""
Health check endpoint for load balancers and monitoring.

Reports database pool health. Exempt from API key authentication.
"""

from typing import Any, Dict

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from ..constants import APPLICATION_NAME, APPLICATION_VERSION
from ..dependencies import AsyncDatabaseDep
from ..utils.time_utils import utc_now

router = APIRouter(tags=["health"])


@router.get("/health", response_model=Dict[str, Any])
async def health_check(db: AsyncDatabaseDep) -> JSONResponse:
    """Quick health check; 503 when the database pool is unhealthy."""
    database = await db.health_check()
    healthy = database["status"] == "healthy"
    body = {
        "status": "healthy" if healthy else "degraded",
        "service": APPLICATION_NAME,
        "version": APPLICATION_VERSION,
        "timestamp": utc_now().isoformat(),
        "database": {
            "status": database["status"],
            "response_time_ms": database["response_time_ms"],
            "failed_connections": database["failed_connections"],
        },
    }
    return JSONResponse(status_code=200 if healthy else 503, content=body)
