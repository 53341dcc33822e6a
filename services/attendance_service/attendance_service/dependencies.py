from fastapi import Depends, Request

from school_common.context import Identity
from school_common.dependencies import ensure_role, require_identity

from attendance_service.config import Settings, get_settings
from attendance_service.repository import AttendanceRepository


def get_repository(request: Request) -> AttendanceRepository:
    repository = getattr(request.app.state, "repository", None)
    if repository is None:
        raise RuntimeError("Attendance repository is not initialized")
    return repository


def require_attendance_taker(
    identity: Identity = Depends(require_identity),
    settings: Settings = Depends(get_settings),
) -> Identity:
    ensure_role(identity, settings.attendance_taker_roles, "Insufficient permissions to mark attendance")
    return identity
