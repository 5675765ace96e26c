# services/attendance_management_system/models/attendance.py
from datetime import date, datetime
from typing import Optional
from pydantic import Field
from shared.document_store import DocumentModel
import enum

ATTENDANCE_SESSIONS = "attendanceSessions"
ATTENDANCE_RECORDS = "attendance"


class AttendanceStatus(str, enum.Enum):
    PRESENT = "present"
    ABSENT = "absent"


class AttendanceSession(DocumentModel):
    """One per class-section per day; the counts mirror its child records."""

    class_section_id: str
    class_section_name: str = ""
    teacher_id: str
    date: date
    present_count: int = Field(0, ge=0)
    absent_count: int = Field(0, ge=0)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def total(self) -> int:
        return self.present_count + self.absent_count

    @property
    def percentage(self) -> float:
        return self.present_count / self.total * 100 if self.total > 0 else 0.0


class AttendanceRecord(DocumentModel):
    session_id: str
    student_id: str
    status: AttendanceStatus
    date: date
    class_section_id: str
    teacher_id: str
    created_at: Optional[datetime] = None
