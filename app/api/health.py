"""
Health check endpoints.
"""
from datetime import datetime, timezone
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import text

from app.core.config import settings
from app.core.database import get_db
from app.core.monitoring import health_check_services, metrics_collector
from app.schemas.common import HealthCheck, DetailedHealthCheck, ApiResponse
from app.core.logging import get_logger

logger = get_logger(__name__)
health_router = APIRouter()


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@health_router.get("/", response_model=ApiResponse[HealthCheck])
async def health_check():
    """Basic health check endpoint."""
    return ApiResponse(
        success=True,
        data=HealthCheck(
            status="healthy",
            timestamp=_now(),
            version="1.0.0",
            environment=settings.environment,
        )
    )


@health_router.get("/detailed", response_model=ApiResponse[DetailedHealthCheck])
async def detailed_health_check(db: AsyncSession = Depends(get_db)):
    """Detailed health check with service statuses."""
    services = {}

    try:
        await db.execute(text("SELECT 1"))
        services["database"] = {
            "status": "healthy",
            "message": "Database connection successful"
        }
    except Exception as e:
        logger.error("Database health check failed", error=str(e))
        raise HTTPException(status_code=503, detail="Service unhealthy")

    services["generation_service"] = {
        "status": "configured",
        "url": settings.generation_service_url,
        "api_key": bool(settings.generation_service_api_key),
    }
    services["application"] = metrics_collector.get_app_info()

    return ApiResponse(
        success=True,
        data=DetailedHealthCheck(
            status="healthy",
            timestamp=_now(),
            version="1.0.0",
            environment=settings.environment,
            services=services,
        )
    )


@health_router.get("/readiness")
async def readiness_check():
    """Kubernetes readiness probe endpoint."""
    health_info = await health_check_services()

    if health_info["services"].get("database", {}).get("status") != "healthy":
        raise HTTPException(status_code=503, detail="Critical services are not available")

    return {
        "status": "ready",
        "message": "Application is ready to serve requests"
    }


@health_router.get("/liveness")
async def liveness_check():
    """Kubernetes liveness probe endpoint."""
    return {
        "status": "alive",
        "message": "Application process is alive"
    }
