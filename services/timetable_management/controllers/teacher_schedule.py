# services/timetable_management/controllers/teacher_schedule.py
"""
Per-teacher weekly timetable derived from the class schedules.

The view has no owning document, so it is never stored: every call rebuilds it
from the full schedule set and cannot go stale.
"""
from typing import Iterable, Optional

from services.timetable_management.models.schedule import ClassSchedule, WEEK_DAYS
from services.timetable_management.schemas.schedule import ProjectedPeriod, TeacherDay, TeacherWeeklyView


def project_for_teacher(teacher_id: str, all_schedules: Iterable[ClassSchedule]) -> TeacherWeeklyView:
    buckets = {day: TeacherDay(day=day) for day in WEEK_DAYS}

    for schedule in all_schedules:
        for schedule_day in schedule.days:
            bucket = buckets.get(schedule_day.day)
            if bucket is None:
                continue
            for period in schedule_day.periods:
                if period.teacher_id != teacher_id:
                    continue
                bucket.periods.append(ProjectedPeriod(
                    start_time=period.start_time,
                    end_time=period.end_time,
                    subject=period.subject,
                    class_name=schedule.class_section_name,
                    class_section_id=schedule.class_section_id,
                    source_schedule_id=schedule.id or "",
                ))

    # "HH:MM" is zero-padded, so string order is time order
    for bucket in buckets.values():
        bucket.periods.sort(key=lambda p: p.start_time)

    return TeacherWeeklyView(teacher_id=teacher_id, days=[buckets[day] for day in WEEK_DAYS])


def periods_for_day(view: TeacherWeeklyView, day: Optional[str]) -> TeacherDay:
    for bucket in view.days:
        if bucket.day == day:
            return bucket
    return TeacherDay(day=day or "")
