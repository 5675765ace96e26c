from datetime import date
from typing import Dict, Iterable, List, Optional, Tuple

from services.attendance_management_system.models.attendance import AttendanceRecord, AttendanceStatus
from services.user_management.models.users import SchoolUser
from shared.errors import ValidationFailure


class AttendanceDraft:
    """
    The statuses a teacher is editing for one class and day, before submission.

    Every student on the current roster starts out present; records already
    saved for the day override that default. Records for students who have
    since left the class are dropped.
    """

    def __init__(
        self,
        class_section_id: str,
        on: date,
        students: Iterable[SchoolUser],
        existing_records: Iterable[AttendanceRecord] = (),
        session_id: Optional[str] = None,
    ):
        self.class_section_id = class_section_id
        self.date = on
        self.session_id = session_id
        self.students: List[SchoolUser] = list(students)
        self.statuses: Dict[str, AttendanceStatus] = {
            student.id: AttendanceStatus.PRESENT for student in self.students
        }
        for record in existing_records:
            if record.student_id in self.statuses:
                self.statuses[record.student_id] = record.status

    def mark(self, student_id: str, status: AttendanceStatus):
        if student_id not in self.statuses:
            raise ValidationFailure(f"Student {student_id} is not in this class")
        self.statuses[student_id] = AttendanceStatus(status)

    def mark_all(self, status: AttendanceStatus):
        for student_id in self.statuses:
            self.statuses[student_id] = AttendanceStatus(status)

    def mark_all_present(self):
        self.mark_all(AttendanceStatus.PRESENT)

    def mark_all_absent(self):
        self.mark_all(AttendanceStatus.ABSENT)

    def counts(self) -> Tuple[int, int]:
        present = sum(1 for status in self.statuses.values() if status == AttendanceStatus.PRESENT)
        return present, len(self.statuses) - present
