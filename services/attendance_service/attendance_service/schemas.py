from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import Field

from school_common.validation import IsoDate, RequestSchema


class AttendanceStatus(str, Enum):
    PRESENT = "PRESENT"
    ABSENT = "ABSENT"
    LATE = "LATE"
    EXCUSED = "EXCUSED"
    MEDICAL_LEAVE = "MEDICAL_LEAVE"


class AttendanceRecordInput(RequestSchema):
    student_id: str = Field(min_length=1)
    status: AttendanceStatus
    notes: Optional[str] = None


class MarkAttendanceBody(RequestSchema):
    class_id: str = Field(min_length=1)
    section_id: str = Field(min_length=1)
    attendance_date: IsoDate
    attendance_records: List[AttendanceRecordInput] = Field(min_length=1)


class MarkAttendanceRequest(RequestSchema):
    body: MarkAttendanceBody


class SectionParams(RequestSchema):
    class_id: str = Field(min_length=1)
    section_id: str = Field(min_length=1)


class ClassAttendanceQuery(RequestSchema):
    date: Optional[IsoDate] = None


class ClassAttendanceRequest(RequestSchema):
    params: SectionParams
    query: ClassAttendanceQuery = Field(default_factory=ClassAttendanceQuery)


class StudentParams(RequestSchema):
    student_id: str = Field(min_length=1)


class StudentAttendanceQuery(RequestSchema):
    start_date: Optional[IsoDate] = None
    end_date: Optional[IsoDate] = None
    limit: Optional[int] = Field(default=None, ge=1, le=100)
    offset: Optional[int] = Field(default=None, ge=0)


class StudentAttendanceRequest(RequestSchema):
    params: StudentParams
    query: StudentAttendanceQuery = Field(default_factory=StudentAttendanceQuery)


class RecordParams(RequestSchema):
    record_id: str = Field(min_length=1)


class UpdateAttendanceBody(RequestSchema):
    status: AttendanceStatus
    notes: Optional[str] = None


class UpdateAttendanceRequest(RequestSchema):
    params: RecordParams
    body: UpdateAttendanceBody
