# Health check endpoint for system monitoring

from datetime import datetime, timezone

from fastapi import APIRouter, status

from core.database import get_db_health
from core.utils.response import Response
from jobs.membership_tier_tasks import membership_tier_task_manager

router = APIRouter(prefix="/health", tags=["health"])


class HealthStatus:
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


@router.get("")
async def health_check():
    """
    Returns 200 when the database answers, 503 otherwise
    """
    db_health = await get_db_health()
    healthy = db_health.get("status") == HealthStatus.HEALTHY

    data = {
        "status": HealthStatus.HEALTHY if healthy else HealthStatus.UNHEALTHY,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "service": "offers-engine",
        "database": db_health,
        "tier_job_running": membership_tier_task_manager.is_running,
    }
    if healthy:
        return Response.success(data=data, message="Service is healthy")
    return Response.error(
        message="Service is unhealthy",
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        data=data
    )
