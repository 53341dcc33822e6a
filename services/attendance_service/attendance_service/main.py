from typing import Optional

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from school_common.envelope import success_response
from school_common.handlers import install_exception_handlers
from school_common.logging import configure_logging

from attendance_service.config import Settings, get_settings
from attendance_service.repository import AttendanceRepository, InMemoryAttendanceRepository
from attendance_service.routers import attendance


def create_app(settings: Optional[Settings] = None, repository: Optional[AttendanceRepository] = None) -> FastAPI:
    settings = settings or get_settings()
    app = FastAPI(title=settings.app_name)
    app.state.repository = repository or InMemoryAttendanceRepository()
    install_exception_handlers(app)
    app.include_router(attendance.router, prefix=settings.api_prefix)

    @app.get("/health", tags=["health"])
    async def health() -> JSONResponse:
        return success_response({"status": "healthy", "service": settings.app_name})

    return app


settings = get_settings()
configure_logging(settings.log_level)

app = create_app(settings)
