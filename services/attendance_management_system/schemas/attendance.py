from datetime import date, datetime
from typing import Dict, List, Optional
from pydantic import Field
from services.attendance_management_system.models.attendance import AttendanceStatus
from shared.schemas import CamelModel


class AttendanceMarkRequest(CamelModel):
    class_section_id: Optional[str] = Field(
        default=None,
        description="Defaults to the teacher's own class."
    )
    date: date
    statuses: Dict[str, AttendanceStatus] = Field(
        default_factory=dict,
        description="Students left out are marked present unless mark_all says otherwise."
    )
    mark_all: Optional[AttendanceStatus] = Field(
        default=None,
        description="Reset every student to this status before applying `statuses`."
    )


class DraftStudent(CamelModel):
    student_id: str
    name: str
    roll_no: Optional[str] = None
    status: AttendanceStatus


class AttendanceDraftOut(CamelModel):
    session_id: Optional[str] = None
    class_section_id: str
    date: date
    students: List[DraftStudent]
    present_count: int
    absent_count: int


class AttendanceSessionOut(CamelModel):
    id: str
    class_section_id: str
    class_section_name: str
    teacher_id: str
    date: date
    present_count: int
    absent_count: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class AttendanceRecordOut(CamelModel):
    id: str
    session_id: str
    student_id: str
    status: AttendanceStatus
    date: date
    class_section_id: str
    teacher_id: str


class SessionDetailOut(CamelModel):
    session: AttendanceSessionOut
    records: List[AttendanceRecordOut]


class StudentAttendanceSummary(CamelModel):
    present: int = 0
    absent: int = 0
    total: int = 0
    percentage: int = 0


class StudentAttendanceOut(CamelModel):
    student_id: str
    summary: StudentAttendanceSummary
    records: List[AttendanceRecordOut]


class ClassAttendanceStats(CamelModel):
    class_section_id: str
    class_section_name: str
    total_sessions: int = 0
    average_attendance: float = 0.0
    last_updated: Optional[date] = None
    sessions_last_7_days: int = 0
