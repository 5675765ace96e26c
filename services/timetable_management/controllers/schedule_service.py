from datetime import date, datetime, timezone
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from pydantic import ValidationError

from services.timetable_management.models.schedule import (
    ClassSchedule,
    Period,
    ScheduleDay,
    SCHEDULES,
    WEEK_DAYS,
    DAY_START,
    DEFAULT_PERIOD_TIMES,
    LAST_MINUTE,
    minutes_to_time,
    time_to_minutes,
)
from services.timetable_management.schemas.schedule import (
    ScheduleCreate,
    ScheduleDayIn,
    ScheduleUpdate,
    ScheduleOut,
    TeacherScheduleOut,
)
from services.timetable_management.controllers.teacher_schedule import project_for_teacher, periods_for_day
from services.user_management.models.users import SchoolUserRole
from services.user_management.controllers.school_service import get_class_section, get_teacher, get_user
from shared.app_logger import get_logger
from shared.auth import get_current_user, require_role
from shared.document_store import DocumentStore, decode, encode, get_store
from shared.errors import NotFound, UnauthorizedAccess, ValidationFailure

router = APIRouter(prefix="/schedules", tags=["Timetable"])
log = get_logger("timetable")


def _now() -> datetime:
    return datetime.now(timezone.utc)


# --- DRAFT HELPERS (no store access) ---
def default_schedule_days() -> List[ScheduleDay]:
    return [
        ScheduleDay(
            day=day,
            periods=[
                Period(id=f"{day}-{index}", start_time=start, end_time=end)
                for index, (start, end) in enumerate(DEFAULT_PERIOD_TIMES)
            ],
        )
        for day in WEEK_DAYS
    ]


def _check_day_index(days: List[ScheduleDay], day_index: int):
    if not 0 <= day_index < len(days):
        raise ValidationFailure(f"Day index {day_index} is out of range")


def add_period(days: List[ScheduleDay], day_index: int) -> List[ScheduleDay]:
    """
    Append a blank period to one day. It starts when the day's last period
    ends (or at the start of the school day) and lasts one hour.
    """
    _check_day_index(days, day_index)
    updated = [day.model_copy(deep=True) for day in days]
    target = updated[day_index]

    start_time = target.periods[-1].end_time if target.periods else DAY_START
    end_minutes = min(time_to_minutes(start_time) + 60, LAST_MINUTE)
    target.periods.append(Period(
        id=f"{target.day}-{len(target.periods)}",
        start_time=start_time,
        end_time=minutes_to_time(end_minutes),
    ))
    return updated


def remove_period(days: List[ScheduleDay], day_index: int, period_index: int) -> List[ScheduleDay]:
    _check_day_index(days, day_index)
    if not 0 <= period_index < len(days[day_index].periods):
        raise ValidationFailure(f"Period index {period_index} is out of range")
    updated = [day.model_copy(deep=True) for day in days]
    del updated[day_index].periods[period_index]
    return updated


def validate_days(days: List[ScheduleDay]):
    if [day.day for day in days] != WEEK_DAYS:
        raise ValidationFailure("A schedule must list Monday to Saturday, in order")


def parse_days(days: List[ScheduleDayIn]) -> List[ScheduleDay]:
    try:
        return [ScheduleDay.model_validate(day.model_dump()) for day in days]
    except ValidationError as exc:
        raise ValidationFailure("Period times must be HH:MM between 00:00 and 23:59") from exc


async def assign_teacher_names(store: DocumentStore, days: List[ScheduleDay]) -> List[ScheduleDay]:
    """Refresh each period's teacherName snapshot from the teacher's user document."""
    names = {}
    for day in days:
        for period in day.periods:
            if not period.teacher_id:
                period.teacher_name = ""
                continue
            if period.teacher_id not in names:
                teacher = await get_user(store, period.teacher_id)
                names[period.teacher_id] = teacher.name if teacher else None
            # Unknown teachers keep the name the caller sent
            if names[period.teacher_id]:
                period.teacher_name = names[period.teacher_id]
    return days


# --- REPOSITORY ---
async def create_schedule(
    store: DocumentStore,
    class_section_id: str,
    class_section_name: str,
    days: List[ScheduleDay],
    created_by: Optional[str] = None,
) -> str:
    validate_days(days)
    days = await assign_teacher_names(store, days)
    now = _now()
    schedule = ClassSchedule(
        class_section_id=class_section_id,
        class_section_name=class_section_name,
        days=days,
        created_by=created_by,
        created_at=now,
        updated_at=now,
    )
    schedule_id = await store.add(SCHEDULES, encode(schedule))
    log.info("Created schedule %s for class %s", schedule_id, class_section_name)
    return schedule_id


async def get_schedule(store: DocumentStore, schedule_id: str) -> ClassSchedule:
    doc = await store.get(SCHEDULES, schedule_id)
    if not doc:
        raise NotFound("Schedule not found")
    return decode(ClassSchedule, SCHEDULES, doc)


async def update_schedule(store: DocumentStore, schedule_id: str, days: List[ScheduleDay]) -> ClassSchedule:
    await get_schedule(store, schedule_id)
    validate_days(days)
    days = await assign_teacher_names(store, days)
    await store.update(SCHEDULES, schedule_id, {
        "schedule": [day.model_dump(mode="json", by_alias=True) for day in days],
        "updatedAt": _now().isoformat(),
    })
    log.info("Replaced timetable of schedule %s", schedule_id)
    return await get_schedule(store, schedule_id)


async def list_schedules(store: DocumentStore) -> List[ClassSchedule]:
    docs = await store.find(SCHEDULES, order_by="classSectionName")
    return [decode(ClassSchedule, SCHEDULES, doc) for doc in docs]


async def get_schedules_for_class(store: DocumentStore, class_section_id: str) -> List[ClassSchedule]:
    docs = await store.find(SCHEDULES, where={"classSectionId": class_section_id})
    return [decode(ClassSchedule, SCHEDULES, doc) for doc in docs]


def weekday_name(day: date) -> Optional[str]:
    index = day.weekday()
    return WEEK_DAYS[index] if index < len(WEEK_DAYS) else None


# --- CREATE SCHEDULE ---
@router.post("", response_model=ScheduleOut, status_code=status.HTTP_201_CREATED)
async def create_class_schedule(
    payload: ScheduleCreate,
    store: DocumentStore = Depends(get_store),
    current_user: dict = Depends(get_current_user)
):
    require_role(current_user, SchoolUserRole.PRINCIPAL, detail="Only the principal can create schedules")
    class_section = await get_class_section(store, payload.class_section_id)
    days = parse_days(payload.days) if payload.days is not None else default_schedule_days()

    schedule_id = await create_schedule(
        store, payload.class_section_id, class_section.name, days, created_by=current_user["user_id"]
    )
    return await get_schedule(store, schedule_id)


# --- LIST SCHEDULES ---
@router.get("", response_model=List[ScheduleOut])
async def list_class_schedules(
    store: DocumentStore = Depends(get_store),
    current_user: dict = Depends(get_current_user)
):
    require_role(current_user, SchoolUserRole.PRINCIPAL)
    return await list_schedules(store)


# --- BLANK TEMPLATE ---
@router.get("/template", response_model=List[ScheduleDay])
async def schedule_template(current_user: dict = Depends(get_current_user)):
    return default_schedule_days()


# --- TEACHER'S OWN TIMETABLE ---
@router.get("/me", response_model=TeacherScheduleOut)
async def my_teaching_schedule(
    on: Optional[date] = Query(None, description="Day used for the 'today' card; defaults to today"),
    store: DocumentStore = Depends(get_store),
    current_user: dict = Depends(get_current_user)
):
    require_role(current_user, SchoolUserRole.TEACHER, detail="Only teachers have a teaching schedule")
    teacher = await get_teacher(store, current_user["user_id"])
    view = project_for_teacher(current_user["user_id"], await list_schedules(store))
    return TeacherScheduleOut(
        teacher_id=view.teacher_id,
        teacher_name=teacher.name,
        days=view.days,
        today=periods_for_day(view, weekday_name(on or date.today())),
    )


# --- CLASS TIMETABLE ---
@router.get("/class/{class_section_id}", response_model=List[ScheduleOut])
async def class_schedule(
    class_section_id: str,
    store: DocumentStore = Depends(get_store),
    current_user: dict = Depends(get_current_user)
):
    if current_user["role"] == SchoolUserRole.STUDENT and current_user["class_section_id"] != class_section_id:
        raise UnauthorizedAccess("Students can only view their own class timetable")
    return await get_schedules_for_class(store, class_section_id)


# --- ANY TEACHER'S TIMETABLE ---
@router.get("/teachers/{teacher_id}", response_model=TeacherScheduleOut)
async def teacher_schedule(
    teacher_id: str,
    store: DocumentStore = Depends(get_store),
    current_user: dict = Depends(get_current_user)
):
    require_role(current_user, SchoolUserRole.PRINCIPAL)
    teacher = await get_teacher(store, teacher_id)
    view = project_for_teacher(teacher_id, await list_schedules(store))
    return TeacherScheduleOut(teacher_id=teacher_id, teacher_name=teacher.name, days=view.days)


# --- GET SCHEDULE ---
@router.get("/{schedule_id}", response_model=ScheduleOut)
async def read_schedule(
    schedule_id: str,
    store: DocumentStore = Depends(get_store),
    current_user: dict = Depends(get_current_user)
):
    schedule = await get_schedule(store, schedule_id)
    if current_user["role"] == SchoolUserRole.STUDENT and current_user["class_section_id"] != schedule.class_section_id:
        raise UnauthorizedAccess("Students can only view their own class timetable")
    return schedule


# --- REPLACE SCHEDULE ---
@router.put("/{schedule_id}", response_model=ScheduleOut)
async def replace_schedule(
    schedule_id: str,
    payload: ScheduleUpdate,
    store: DocumentStore = Depends(get_store),
    current_user: dict = Depends(get_current_user)
):
    require_role(current_user, SchoolUserRole.PRINCIPAL, detail="Only the principal can edit schedules")
    return await update_schedule(store, schedule_id, parse_days(payload.days))
