from typing import Dict, Iterable, List, Optional, Tuple
from datetime import date, datetime, timedelta, timezone
import math
import os
import tempfile

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import FileResponse
from starlette.background import BackgroundTask
from sqlalchemy.exc import SQLAlchemyError

from services.user_management.models.users import SchoolUserRole
from services.user_management.controllers.school_service import get_class_section, get_class_students
from services.attendance_management_system.models.attendance import (
    AttendanceRecord,
    AttendanceSession,
    AttendanceStatus,
    ATTENDANCE_RECORDS,
    ATTENDANCE_SESSIONS,
)
from services.attendance_management_system.schemas.attendance import (
    AttendanceMarkRequest,
    AttendanceDraftOut,
    AttendanceSessionOut,
    ClassAttendanceStats,
    DraftStudent,
    SessionDetailOut,
    StudentAttendanceOut,
    StudentAttendanceSummary,
)
from services.attendance_management_system.controllers.attendance_draft import AttendanceDraft
from services.attendance_management_system.controllers.attendance_report import build_attendance_workbook
from shared.app_logger import get_logger
from shared.auth import get_current_user, require_role
from shared.document_store import DocumentStore, decode, encode, get_store
from shared.errors import NotFound, PartialWriteFailure, UnauthorizedAccess, ValidationFailure

router = APIRouter(prefix="/attendance", tags=["Attendance Management"])
log = get_logger("attendance")


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _sessions(docs) -> List[AttendanceSession]:
    return [decode(AttendanceSession, ATTENDANCE_SESSIONS, doc) for doc in docs]


def _records(docs) -> List[AttendanceRecord]:
    return [decode(AttendanceRecord, ATTENDANCE_RECORDS, doc) for doc in docs]


# --- READS ---
async def get_session(store: DocumentStore, session_id: str) -> AttendanceSession:
    doc = await store.get(ATTENDANCE_SESSIONS, session_id)
    if not doc:
        raise NotFound("Attendance session not found")
    return decode(AttendanceSession, ATTENDANCE_SESSIONS, doc)


async def find_session(store: DocumentStore, class_section_id: str, on: date) -> Optional[AttendanceSession]:
    docs = await store.find(
        ATTENDANCE_SESSIONS,
        where={"classSectionId": class_section_id},
        between=("date", on, on + timedelta(days=1)),
    )
    return _sessions(docs)[0] if docs else None


async def get_sessions_for_teacher(store: DocumentStore, teacher_id: str) -> List[AttendanceSession]:
    docs = await store.find(ATTENDANCE_SESSIONS, where={"teacherId": teacher_id}, order_by="date", descending=True)
    return _sessions(docs)


async def get_sessions_for_class(store: DocumentStore, class_section_id: str) -> List[AttendanceSession]:
    docs = await store.find(
        ATTENDANCE_SESSIONS, where={"classSectionId": class_section_id}, order_by="date", descending=True
    )
    return _sessions(docs)


async def get_all_sessions(store: DocumentStore) -> List[AttendanceSession]:
    return _sessions(await store.find(ATTENDANCE_SESSIONS, order_by="date", descending=True))


async def get_records_for_session(store: DocumentStore, session_id: str) -> List[AttendanceRecord]:
    return _records(await store.find(ATTENDANCE_RECORDS, where={"sessionId": session_id}))


async def get_records_for_student(store: DocumentStore, student_id: str) -> List[AttendanceRecord]:
    return _records(await store.find(ATTENDANCE_RECORDS, where={"studentId": student_id}, order_by="date"))


async def get_records_for_class(
    store: DocumentStore, class_section_id: str, from_date: date, to_date: date
) -> List[AttendanceRecord]:
    docs = await store.find(
        ATTENDANCE_RECORDS,
        where={"classSectionId": class_section_id},
        between=("date", from_date, to_date + timedelta(days=1)),
        order_by="date",
    )
    return _records(docs)


async def load_draft(store: DocumentStore, class_section_id: str, on: date) -> AttendanceDraft:
    students = await get_class_students(store, class_section_id)
    session = await find_session(store, class_section_id, on)
    existing = await get_records_for_session(store, session.id) if session else []
    return AttendanceDraft(class_section_id, on, students, existing, session_id=session.id if session else None)


# --- WRITES ---
def count_statuses(statuses: Dict[str, AttendanceStatus]) -> Tuple[int, int]:
    present = sum(1 for value in statuses.values() if AttendanceStatus(value) == AttendanceStatus.PRESENT)
    return present, len(statuses) - present


async def mark_attendance(
    store: DocumentStore,
    teacher_id: str,
    class_section_id: str,
    class_section_name: str,
    on: date,
    statuses: Dict[str, AttendanceStatus],
) -> AttendanceSession:
    """
    Record one day's attendance for a class.

    The first call for a (class, day) creates the session; later calls update
    its counts and replace its whole record set, so each student keeps exactly
    one record. Session write and record replacement share one transaction.
    """
    if not statuses:
        raise ValidationFailure("There are no students to mark attendance for")

    present_count, absent_count = count_statuses(statuses)
    now = _now()

    try:
        async with store.atomic():
            existing = await find_session(store, class_section_id, on)
            if existing:
                session_id = existing.id
                await store.update(ATTENDANCE_SESSIONS, session_id, {
                    "presentCount": present_count,
                    "absentCount": absent_count,
                    "teacherId": teacher_id,
                    "updatedAt": now.isoformat(),
                })
            else:
                session_id = await store.add(ATTENDANCE_SESSIONS, encode(AttendanceSession(
                    class_section_id=class_section_id,
                    class_section_name=class_section_name,
                    teacher_id=teacher_id,
                    date=on,
                    present_count=present_count,
                    absent_count=absent_count,
                    created_at=now,
                    updated_at=now,
                )))

            records = [
                encode(AttendanceRecord(
                    session_id=session_id,
                    student_id=student_id,
                    status=student_status,
                    date=on,
                    class_section_id=class_section_id,
                    teacher_id=teacher_id,
                    created_at=now,
                ))
                for student_id, student_status in statuses.items()
            ]
            await store.replace_children(ATTENDANCE_RECORDS, "sessionId", session_id, records)
    except SQLAlchemyError as exc:
        log.exception("Saving attendance for class %s on %s failed", class_section_id, on)
        raise PartialWriteFailure(f"Attendance for {on.isoformat()} could not be saved. Please resubmit.") from exc

    log.info(
        "%s attendance for class %s on %s: %d present, %d absent",
        "Updated" if existing else "Marked", class_section_id, on, present_count, absent_count,
    )
    return await get_session(store, session_id)


async def delete_session(store: DocumentStore, session_id: str):
    await get_session(store, session_id)
    try:
        async with store.atomic():
            removed = await store.delete_where(ATTENDANCE_RECORDS, {"sessionId": session_id})
            await store.delete(ATTENDANCE_SESSIONS, session_id)
    except SQLAlchemyError as exc:
        log.exception("Deleting attendance session %s failed", session_id)
        raise PartialWriteFailure("Attendance session could not be deleted. Please retry.") from exc
    log.info("Deleted attendance session %s with %d records", session_id, removed)


# --- AGGREGATES ---
def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def student_attendance_summary(records: Iterable[AttendanceRecord]) -> StudentAttendanceSummary:
    records = list(records)
    present = sum(1 for r in records if r.status == AttendanceStatus.PRESENT)
    absent = sum(1 for r in records if r.status == AttendanceStatus.ABSENT)
    total = present + absent
    return StudentAttendanceSummary(
        present=present,
        absent=absent,
        total=total,
        percentage=round_half_up(present / total * 100) if total > 0 else 0,
    )


def compute_class_attendance_stats(
    sessions: Iterable[AttendanceSession], today: Optional[date] = None
) -> List[ClassAttendanceStats]:
    """
    Per-class attendance summary. Sessions are folded in ascending date order
    (ties by id) so the running average does not depend on store order.
    """
    today = today or date.today()
    week_ago = today - timedelta(days=7)
    stats: Dict[str, ClassAttendanceStats] = {}

    for session in sorted(sessions, key=lambda s: (s.date, s.id or "")):
        class_stats = stats.get(session.class_section_id)
        if class_stats is None:
            class_stats = stats[session.class_section_id] = ClassAttendanceStats(
                class_section_id=session.class_section_id,
                class_section_name=session.class_section_name,
            )

        class_stats.total_sessions += 1
        n = class_stats.total_sessions
        class_stats.average_attendance = (class_stats.average_attendance * (n - 1) + session.percentage) / n

        if not class_stats.last_updated or session.date > class_stats.last_updated:
            class_stats.last_updated = session.date
        if session.date >= week_ago:
            class_stats.sessions_last_7_days += 1

    return sorted(stats.values(), key=lambda s: s.class_section_name)


def _check_session_access(session: AttendanceSession, current_user: dict):
    if current_user["role"] == SchoolUserRole.PRINCIPAL:
        return
    if current_user["role"] != SchoolUserRole.TEACHER or session.teacher_id != current_user["user_id"]:
        raise UnauthorizedAccess("This attendance session belongs to another teacher")


def _teacher_class(current_user: dict, class_section_id: Optional[str]) -> str:
    own_class = current_user.get("class_section_id")
    if not class_section_id:
        class_section_id = own_class
    if not class_section_id:
        raise ValidationFailure("You are not assigned to a class")
    if own_class and class_section_id != own_class:
        raise UnauthorizedAccess("You can only mark attendance for your own class")
    return class_section_id


def _draft_out(draft: AttendanceDraft) -> AttendanceDraftOut:
    present, absent = draft.counts()
    return AttendanceDraftOut(
        session_id=draft.session_id,
        class_section_id=draft.class_section_id,
        date=draft.date,
        students=[
            DraftStudent(
                student_id=student.id,
                name=student.name,
                roll_no=student.roll_no,
                status=draft.statuses[student.id],
            )
            for student in draft.students
        ],
        present_count=present,
        absent_count=absent,
    )


# --- LOAD THE DAY'S ATTENDANCE SHEET ---
@router.get("/draft", response_model=AttendanceDraftOut)
async def attendance_draft(
    on: date = Query(..., alias="date"),
    class_section_id: Optional[str] = None,
    store: DocumentStore = Depends(get_store),
    current_user: dict = Depends(get_current_user)
):
    require_role(current_user, SchoolUserRole.TEACHER, detail="Only teachers can mark attendance")
    class_section_id = _teacher_class(current_user, class_section_id)
    await get_class_section(store, class_section_id)
    return _draft_out(await load_draft(store, class_section_id, on))


# --- TAKE DAILY ATTENDANCE BY CLASS-TEACHER ---
@router.post("/mark", response_model=AttendanceSessionOut)
async def record_daily_attendance(
    payload: AttendanceMarkRequest,
    store: DocumentStore = Depends(get_store),
    current_user: dict = Depends(get_current_user)
):
    """
    Record daily attendance for a class.
    Only students with non-present status need to be included in `statuses`.
    All other students will be automatically marked as present.
    """
    require_role(current_user, SchoolUserRole.TEACHER, detail="Only teachers are allowed to record attendance")
    class_section_id = _teacher_class(current_user, payload.class_section_id)
    class_section = await get_class_section(store, class_section_id)

    students = await get_class_students(store, class_section_id)
    if not students:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No students found in this class"
        )

    draft = AttendanceDraft(class_section_id, payload.date, students)
    if payload.mark_all:
        draft.mark_all(payload.mark_all)
    for student_id, student_status in payload.statuses.items():
        draft.mark(student_id, student_status)

    return await mark_attendance(
        store,
        teacher_id=current_user["user_id"],
        class_section_id=class_section_id,
        class_section_name=class_section.name,
        on=payload.date,
        statuses=draft.statuses,
    )


# --- LIST SESSIONS ---
@router.get("/sessions", response_model=List[AttendanceSessionOut])
async def list_sessions(
    class_section_id: Optional[str] = None,
    store: DocumentStore = Depends(get_store),
    current_user: dict = Depends(get_current_user)
):
    require_role(current_user, SchoolUserRole.PRINCIPAL, SchoolUserRole.TEACHER)
    if current_user["role"] == SchoolUserRole.TEACHER:
        sessions = await get_sessions_for_teacher(store, current_user["user_id"])
        if class_section_id:
            sessions = [s for s in sessions if s.class_section_id == class_section_id]
        return sessions
    if class_section_id:
        return await get_sessions_for_class(store, class_section_id)
    return await get_all_sessions(store)


# --- PER-CLASS STATISTICS ---
@router.get("/stats/classes", response_model=List[ClassAttendanceStats])
async def class_attendance_stats(
    store: DocumentStore = Depends(get_store),
    current_user: dict = Depends(get_current_user)
):
    require_role(current_user, SchoolUserRole.PRINCIPAL)
    return compute_class_attendance_stats(await get_all_sessions(store))


# --- SESSION WITH RECORDS ---
@router.get("/sessions/{session_id}", response_model=SessionDetailOut)
async def read_session(
    session_id: str,
    store: DocumentStore = Depends(get_store),
    current_user: dict = Depends(get_current_user)
):
    session = await get_session(store, session_id)
    _check_session_access(session, current_user)
    return SessionDetailOut(session=session, records=await get_records_for_session(store, session_id))


# --- DELETE SESSION ---
@router.delete("/sessions/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_session(
    session_id: str,
    store: DocumentStore = Depends(get_store),
    current_user: dict = Depends(get_current_user)
):
    require_role(current_user, SchoolUserRole.TEACHER, detail="Only teachers can delete attendance")
    session = await get_session(store, session_id)
    _check_session_access(session, current_user)
    await delete_session(store, session_id)


# --- STUDENT ATTENDANCE ---
@router.get("/students/{student_id}", response_model=StudentAttendanceOut)
async def student_attendance(
    student_id: str,
    store: DocumentStore = Depends(get_store),
    current_user: dict = Depends(get_current_user)
):
    if current_user["role"] == SchoolUserRole.STUDENT and current_user["user_id"] != student_id:
        raise UnauthorizedAccess("Students can only view their own attendance")
    records = await get_records_for_student(store, student_id)
    return StudentAttendanceOut(
        student_id=student_id,
        summary=student_attendance_summary(records),
        records=records,
    )


# --- EXCEL EXPORT ---
@router.get("/export-excel")
async def export_attendance_excel(
    class_section_id: str,
    from_date: Optional[date] = None,
    to_date: Optional[date] = None,
    store: DocumentStore = Depends(get_store),
    current_user: dict = Depends(get_current_user)
):
    require_role(current_user, SchoolUserRole.PRINCIPAL, SchoolUserRole.TEACHER)
    if current_user["role"] == SchoolUserRole.TEACHER:
        class_section_id = _teacher_class(current_user, class_section_id)
    to_date = to_date or date.today()
    from_date = from_date or to_date - timedelta(days=30)
    if from_date > to_date:
        raise ValidationFailure("from_date must not be after to_date")

    class_section = await get_class_section(store, class_section_id)
    students = await get_class_students(store, class_section_id)
    if not students:
        raise NotFound("No students found for this class")
    records = await get_records_for_class(store, class_section_id, from_date, to_date)

    wb = build_attendance_workbook(class_section.name, students, records)
    with tempfile.NamedTemporaryFile(delete=False, suffix=".xlsx") as tmp:
        wb.save(tmp.name)
        tmp_path = tmp.name

    filename = f"attendance_{class_section.name}_{from_date.isoformat()}_{to_date.isoformat()}.xlsx".replace(" ", "_")
    log.info("Exported attendance for class %s (%s to %s)", class_section_id, from_date, to_date)
    return FileResponse(
        tmp_path,
        filename=filename,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        background=BackgroundTask(os.remove, tmp_path),
    )
