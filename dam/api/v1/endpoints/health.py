"""Health check endpoint for monitoring."""
from fastapi import APIRouter, Depends, Response, status

from dam.schemas.health import HealthCheckResponse
from dam.core.dependencies import get_health_service
from dam.services.health import HealthCheckService

router = APIRouter()


@router.get(
    "/health",
    response_model=HealthCheckResponse,
    summary="Comprehensive Health Check",
    description="Database and refresh-token cache status"
)
async def health_check(
    response: Response,
    health_service: HealthCheckService = Depends(get_health_service)
):
    """
    Returns 200 while the database is reachable (a down cache only marks the
    service degraded) and 503 when it is not.
    """
    result = await health_service.get_comprehensive_health()
    if result.status == "unhealthy":
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return result
