from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from school_common.envelope import error_response, success_response

from api_gateway.config import Settings, get_settings
from api_gateway.dependencies import get_health_checker
from api_gateway.services.health import HealthChecker

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(settings: Settings = Depends(get_settings)) -> JSONResponse:
    return success_response({"status": "OK", "service": settings.app_name, "version": settings.version})


@router.get("/health/services")
async def services_health(checker: HealthChecker = Depends(get_health_checker)) -> JSONResponse:
    statuses = await checker.check_all()
    unhealthy = [status.service for status in statuses if status.status != "healthy"]
    if unhealthy:
        return error_response(
            503,
            f"Unhealthy services: {', '.join(unhealthy)}",
            code="SERVICES_UNHEALTHY",
        )
    return success_response(
        {
            "gateway": "healthy",
            "services": [status.model_dump(by_alias=True, exclude_none=True) for status in statuses],
        }
    )
