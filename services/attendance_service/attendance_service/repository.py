"""
Persistence port for attendance records.

The relational store lives outside this service; routes only see the
``AttendanceRepository`` protocol. ``InMemoryAttendanceRepository`` backs
local runs and tests.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional, Protocol


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class AttendanceRecord:
    school_id: str
    student_id: str
    class_id: str
    section_id: str
    attendance_date: date
    status: str
    attendance_taker_id: str
    notes: Optional[str] = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "studentId": self.student_id,
            "classId": self.class_id,
            "sectionId": self.section_id,
            "attendanceDate": self.attendance_date.isoformat(),
            "status": self.status,
            "notes": self.notes,
            "attendanceTakerId": self.attendance_taker_id,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }


class AttendanceRepository(Protocol):
    async def exists_for_section(self, school_id: str, section_id: str, attendance_date: date) -> bool: ...

    async def create_many(self, records: List[AttendanceRecord]) -> int: ...

    async def list_for_section(
        self, school_id: str, class_id: str, section_id: str, attendance_date: Optional[date] = None
    ) -> List[AttendanceRecord]: ...

    async def list_for_student(
        self,
        school_id: str,
        student_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[AttendanceRecord]: ...

    async def update(
        self, school_id: str, record_id: str, status: str, notes: Optional[str]
    ) -> Optional[AttendanceRecord]: ...


class InMemoryAttendanceRepository:
    def __init__(self) -> None:
        self._records: Dict[str, AttendanceRecord] = {}

    async def exists_for_section(self, school_id: str, section_id: str, attendance_date: date) -> bool:
        return any(
            r.school_id == school_id and r.section_id == section_id and r.attendance_date == attendance_date
            for r in self._records.values()
        )

    async def create_many(self, records: List[AttendanceRecord]) -> int:
        for record in records:
            self._records[record.id] = record
        return len(records)

    async def list_for_section(
        self, school_id: str, class_id: str, section_id: str, attendance_date: Optional[date] = None
    ) -> List[AttendanceRecord]:
        return [
            r
            for r in self._records.values()
            if r.school_id == school_id
            and r.class_id == class_id
            and r.section_id == section_id
            and (attendance_date is None or r.attendance_date == attendance_date)
        ]

    async def list_for_student(
        self,
        school_id: str,
        student_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[AttendanceRecord]:
        matches = sorted(
            (
                r
                for r in self._records.values()
                if r.school_id == school_id
                and r.student_id == student_id
                and (start_date is None or r.attendance_date >= start_date)
                and (end_date is None or r.attendance_date <= end_date)
            ),
            key=lambda r: r.attendance_date,
            reverse=True,
        )
        return matches[offset : offset + limit]

    async def update(
        self, school_id: str, record_id: str, status: str, notes: Optional[str]
    ) -> Optional[AttendanceRecord]:
        current = self._records.get(record_id)
        if current is None or current.school_id != school_id:
            return None
        updated = replace(current, status=status, notes=notes, updated_at=_now())
        self._records[record_id] = updated
        return updated
