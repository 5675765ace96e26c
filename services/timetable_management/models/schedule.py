# services/timetable_management/models/schedule.py
from datetime import datetime
from typing import List, Optional
from pydantic import Field, field_validator
from shared.document_store import DocumentModel
from shared.schemas import CamelModel

SCHEDULES = "schedules"

WEEK_DAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]
DAY_START = "08:00"
LAST_MINUTE = 23 * 60 + 59

# Blank grid the principal starts from: eight periods with two short breaks and lunch.
DEFAULT_PERIOD_TIMES = [
    ("08:00", "08:45"),
    ("08:45", "09:30"),
    ("09:45", "10:30"),
    ("10:30", "11:15"),
    ("11:30", "12:15"),
    ("12:15", "13:00"),
    ("13:30", "14:15"),
    ("14:15", "15:00"),
]


def time_to_minutes(value: str) -> int:
    hours, sep, minutes = value.strip().partition(":")
    if not sep or not hours.isdigit() or not minutes.isdigit() or len(minutes) != 2:
        raise ValueError(f"'{value}' is not an HH:MM time")
    if int(hours) > 23 or int(minutes) > 59:
        raise ValueError(f"'{value}' is not an HH:MM time")
    return int(hours) * 60 + int(minutes)


def minutes_to_time(total: int) -> str:
    return f"{total // 60:02d}:{total % 60:02d}"


class Period(CamelModel):
    id: Optional[str] = None
    start_time: str
    end_time: str
    subject: str = ""
    teacher_id: str = ""
    teacher_name: str = ""

    @field_validator("start_time", "end_time")
    @classmethod
    def zero_padded(cls, value: str) -> str:
        # Older documents hold unpadded hours such as "9:45".
        return minutes_to_time(time_to_minutes(value))


class ScheduleDay(CamelModel):
    day: str
    periods: List[Period] = []


class ClassSchedule(DocumentModel):
    class_section_id: str
    class_section_name: str = ""
    days: List[ScheduleDay] = Field(default_factory=list, alias="schedule")
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
