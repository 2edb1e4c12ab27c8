"""
Liveness and database health.
"""

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from review_dashboard.api.deps import RegistryDep
from review_dashboard.utils.datetime_utils import DateTimeHelper

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(registry: RegistryDep):
    database = await registry.database.check_database_health()
    healthy = database["status"] == "healthy"
    return JSONResponse(
        status_code=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "success": healthy,
            "status": "healthy" if healthy else "unhealthy",
            "version": registry.settings.VERSION,
            "environment": registry.settings.ENVIRONMENT,
            "timestamp": DateTimeHelper.now().isoformat(),
            "checks": {
                "database": database,
                "hostaway": {"configured": registry.hostaway_client.is_configured},
                "googlePlaces": {"configured": registry.google_client.is_configured},
            },
        },
    )
