# services/timetable_management/schemas/schedule.py
from datetime import datetime
from typing import List, Optional
from pydantic import Field
from services.timetable_management.models.schedule import ScheduleDay
from shared.schemas import CamelModel


class PeriodIn(CamelModel):
    """Period as submitted; times are checked when the days are parsed."""

    id: Optional[str] = None
    start_time: str
    end_time: str
    subject: str = ""
    teacher_id: str = ""
    teacher_name: str = ""


class ScheduleDayIn(CamelModel):
    day: str
    periods: List[PeriodIn] = []


class ScheduleCreate(CamelModel):
    class_section_id: str
    days: Optional[List[ScheduleDayIn]] = Field(
        default=None,
        description="Six weekdays, Monday to Saturday. Omit to start from the blank template."
    )


class ScheduleUpdate(CamelModel):
    days: List[ScheduleDayIn]


class ScheduleOut(CamelModel):
    id: str
    class_section_id: str
    class_section_name: str
    days: List[ScheduleDay] = Field(alias="schedule")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ProjectedPeriod(CamelModel):
    start_time: str
    end_time: str
    subject: str
    class_name: str
    class_section_id: str
    source_schedule_id: str


class TeacherDay(CamelModel):
    day: str
    periods: List[ProjectedPeriod] = []


class TeacherWeeklyView(CamelModel):
    teacher_id: str
    days: List[TeacherDay]


class TeacherScheduleOut(TeacherWeeklyView):
    teacher_name: str
    today: Optional[TeacherDay] = None
