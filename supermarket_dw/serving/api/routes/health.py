"""
Health Check Endpoints

Liveness and readiness checks plus a database round-trip check.
"""

from datetime import datetime
from typing import Any, Dict

from fastapi import APIRouter, Response
from pydantic import BaseModel

from supermarket_dw.config import get_settings
from supermarket_dw.database.connection import check_database_health

settings = get_settings()
router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response"""
    status: str
    version: str
    environment: str
    timestamp: datetime
    checks: Dict[str, Any]


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Report application status and database connectivity"""
    db_health = await check_database_health()
    status = "healthy" if db_health.get("status") == "healthy" else "degraded"

    return HealthResponse(
        status=status,
        version=settings.version,
        environment=settings.app_env,
        timestamp=datetime.utcnow(),
        checks={"database": db_health},
    )


@router.get("/health/live")
async def liveness_check() -> Dict[str, str]:
    """Returns 200 while the process is running."""
    return {"status": "alive"}


@router.get("/health/ready")
async def readiness_check(response: Response) -> Dict[str, str]:
    """Returns 200 once the warehouse store answers, 503 otherwise."""
    db_health = await check_database_health()

    if db_health.get("status") != "healthy":
        response.status_code = 503
        return {"status": "not_ready", "reason": "database_unavailable"}

    return {"status": "ready"}
