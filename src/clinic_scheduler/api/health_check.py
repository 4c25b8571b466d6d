"""Health check API endpoints."""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from loguru import logger

from clinic_scheduler.api.dependencies import service
from clinic_scheduler.services.health_check_service import HealthCheckResult, HealthCheckService, ServerState

router = APIRouter(tags=["System"])


@router.get("/health-check", response_model=HealthCheckResult)
def health_check(health_service: HealthCheckService = Depends(service(HealthCheckService))) -> HealthCheckResult | JSONResponse:
    """
    Health check endpoint.

    Returns 200 while the database is reachable (possibly degraded) and 503 otherwise.
    """
    logger.debug("Health check requested")
    result = health_service.perform_health_check()
    if result.server_state == ServerState.ERROR:
        return JSONResponse(status_code=503, content=result.model_dump(mode="json"))
    return result
