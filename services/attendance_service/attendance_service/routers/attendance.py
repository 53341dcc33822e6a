import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from school_common.context import Identity
from school_common.dependencies import require_identity, require_school_id
from school_common.envelope import success_response
from school_common.errors import ConflictFailure, NotFoundFailure
from school_common.validation import validated

from attendance_service.config import Settings, get_settings
from attendance_service.dependencies import get_repository, require_attendance_taker
from attendance_service.repository import AttendanceRecord, AttendanceRepository
from attendance_service.schemas import (
    ClassAttendanceRequest,
    MarkAttendanceRequest,
    StudentAttendanceRequest,
    UpdateAttendanceRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/attendance", tags=["attendance"])


@router.post("/mark")
async def mark_attendance(
    school_id: str = Depends(require_school_id),
    identity: Identity = Depends(require_attendance_taker),
    payload: MarkAttendanceRequest = Depends(validated(MarkAttendanceRequest)),
    repository: AttendanceRepository = Depends(get_repository),
) -> JSONResponse:
    body = payload.body
    if await repository.exists_for_section(school_id, body.section_id, body.attendance_date):
        raise ConflictFailure("Attendance already marked for this date")
    records = [
        AttendanceRecord(
            school_id=school_id,
            student_id=item.student_id,
            class_id=body.class_id,
            section_id=body.section_id,
            attendance_date=body.attendance_date,
            status=item.status.value,
            notes=item.notes,
            attendance_taker_id=identity.user_id,
        )
        for item in body.attendance_records
    ]
    created = await repository.create_many(records)
    logger.info("Marked attendance for %d students in section %s (school %s)", created, body.section_id, school_id)
    return success_response(
        {
            "recordsCreated": created,
            "classId": body.class_id,
            "sectionId": body.section_id,
            "attendanceDate": body.attendance_date.isoformat(),
            "attendanceTaker": identity.user_id,
        },
        status_code=201,
    )


@router.get("/class/{classId}/section/{sectionId}")
async def get_class_attendance(
    school_id: str = Depends(require_school_id),
    _: Identity = Depends(require_identity),
    payload: ClassAttendanceRequest = Depends(validated(ClassAttendanceRequest)),
    repository: AttendanceRepository = Depends(get_repository),
) -> JSONResponse:
    records = await repository.list_for_section(
        school_id,
        payload.params.class_id,
        payload.params.section_id,
        attendance_date=payload.query.date,
    )
    return success_response([record.to_dict() for record in records])


@router.get("/student/{studentId}")
async def get_student_attendance(
    school_id: str = Depends(require_school_id),
    _: Identity = Depends(require_identity),
    payload: StudentAttendanceRequest = Depends(validated(StudentAttendanceRequest)),
    repository: AttendanceRepository = Depends(get_repository),
    settings: Settings = Depends(get_settings),
) -> JSONResponse:
    query = payload.query
    records = await repository.list_for_student(
        school_id,
        payload.params.student_id,
        start_date=query.start_date,
        end_date=query.end_date,
        limit=query.limit or settings.student_history_default_limit,
        offset=query.offset or 0,
    )
    return success_response([record.to_dict() for record in records])


@router.put("/record/{recordId}")
async def update_attendance_record(
    school_id: str = Depends(require_school_id),
    _: Identity = Depends(require_attendance_taker),
    payload: UpdateAttendanceRequest = Depends(validated(UpdateAttendanceRequest)),
    repository: AttendanceRepository = Depends(get_repository),
) -> JSONResponse:
    updated = await repository.update(
        school_id,
        payload.params.record_id,
        status=payload.body.status.value,
        notes=payload.body.notes,
    )
    if updated is None:
        raise NotFoundFailure("Attendance record not found")
    return success_response(updated.to_dict())
