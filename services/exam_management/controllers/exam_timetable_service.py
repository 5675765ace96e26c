from datetime import date, datetime, timezone
from typing import List, Optional
from fastapi import APIRouter, Depends, status

from services.user_management.models.users import SchoolUserRole
from services.user_management.controllers.school_service import get_class_section
from services.timetable_management.models.schedule import time_to_minutes
from services.exam_management.models.exam_timetable import ExamEntry, ExamTimetable, EXAM_TIMETABLES
from services.exam_management.schemas.exam_timetable import (
    ExamTimetableCreate,
    ExamTimetableOut,
    ExamTimetableUpdate,
)
from shared.app_logger import get_logger
from shared.auth import get_current_user, require_role
from shared.document_store import DocumentStore, decode, encode, get_store
from shared.errors import NotFound, UnauthorizedAccess, ValidationFailure

router = APIRouter(prefix="/exam-timetables", tags=["Exam Timetable"])
log = get_logger("exam_timetables")


def _now() -> datetime:
    return datetime.now(timezone.utc)


def validate_exam_entries(entries: List[ExamEntry]) -> List[ExamEntry]:
    if not entries:
        raise ValidationFailure("Please add at least one exam entry")

    cleaned = []
    for number, entry in enumerate(entries, start=1):
        fields = [entry.subject, entry.date, entry.start_time, entry.end_time]
        if not all(value and value.strip() for value in fields):
            raise ValidationFailure(f"Please fill all fields for exam entry #{number}")
        try:
            date.fromisoformat(entry.date.strip())
            time_to_minutes(entry.start_time.strip())
            time_to_minutes(entry.end_time.strip())
        except ValueError:
            raise ValidationFailure(f"Exam entry #{number} has an invalid date or time")
        cleaned.append(ExamEntry(
            subject=entry.subject.strip(),
            date=entry.date.strip(),
            start_time=entry.start_time.strip(),
            end_time=entry.end_time.strip(),
        ))
    return cleaned


# --- REPOSITORY ---
async def create_exam_timetable(
    store: DocumentStore, exam_name: str, class_section_id: str, entries: List[ExamEntry]
) -> ExamTimetable:
    if not exam_name or not exam_name.strip():
        raise ValidationFailure("Please enter the exam name")
    if not class_section_id:
        raise ValidationFailure("Please select a class")
    entries = validate_exam_entries(entries)
    class_section = await get_class_section(store, class_section_id)

    now = _now()
    timetable_id = await store.add(EXAM_TIMETABLES, encode(ExamTimetable(
        exam_name=exam_name.strip(),
        class_section_id=class_section_id,
        class_section_name=class_section.name,
        exam_entries=entries,
        created_at=now,
        updated_at=now,
    )))
    log.info("Created exam timetable %s for class %s", timetable_id, class_section.name)
    return await get_exam_timetable(store, timetable_id)


async def get_exam_timetable(store: DocumentStore, timetable_id: str) -> ExamTimetable:
    doc = await store.get(EXAM_TIMETABLES, timetable_id)
    if not doc:
        raise NotFound("Exam timetable not found")
    return decode(ExamTimetable, EXAM_TIMETABLES, doc)


async def list_exam_timetables(store: DocumentStore, class_section_id: Optional[str] = None) -> List[ExamTimetable]:
    where = {"classSectionId": class_section_id} if class_section_id else None
    docs = await store.find(EXAM_TIMETABLES, where=where, order_by="createdAt", descending=True)
    return [decode(ExamTimetable, EXAM_TIMETABLES, doc) for doc in docs]


async def update_exam_timetable(
    store: DocumentStore, timetable_id: str, exam_name: str, entries: List[ExamEntry]
) -> ExamTimetable:
    await get_exam_timetable(store, timetable_id)
    if not exam_name or not exam_name.strip():
        raise ValidationFailure("Please enter the exam name")
    entries = validate_exam_entries(entries)
    await store.update(EXAM_TIMETABLES, timetable_id, {
        "examName": exam_name.strip(),
        "examEntries": [entry.model_dump(mode="json", by_alias=True) for entry in entries],
        "updatedAt": _now().isoformat(),
    })
    log.info("Updated exam timetable %s", timetable_id)
    return await get_exam_timetable(store, timetable_id)


async def delete_exam_timetable(store: DocumentStore, timetable_id: str):
    if not await store.delete(EXAM_TIMETABLES, timetable_id):
        raise NotFound("Exam timetable not found")
    log.info("Deleted exam timetable %s", timetable_id)


# --- CREATE ---
@router.post("", response_model=ExamTimetableOut, status_code=status.HTTP_201_CREATED)
async def create_timetable(
    payload: ExamTimetableCreate,
    store: DocumentStore = Depends(get_store),
    current_user: dict = Depends(get_current_user)
):
    require_role(current_user, SchoolUserRole.PRINCIPAL, detail="Only the principal can publish exam timetables")
    return await create_exam_timetable(store, payload.exam_name, payload.class_section_id, payload.exam_entries)


# --- LIST ---
@router.get("", response_model=List[ExamTimetableOut])
async def list_timetables(
    class_section_id: Optional[str] = None,
    store: DocumentStore = Depends(get_store),
    current_user: dict = Depends(get_current_user)
):
    if current_user["role"] == SchoolUserRole.STUDENT:
        if class_section_id and class_section_id != current_user["class_section_id"]:
            raise UnauthorizedAccess("Students can only view their own class exam timetable")
        class_section_id = current_user["class_section_id"]
        if not class_section_id:
            return []
    return await list_exam_timetables(store, class_section_id)


# --- CLASS LISTING ---
@router.get("/class/{class_section_id}", response_model=List[ExamTimetableOut])
async def class_timetables(
    class_section_id: str,
    store: DocumentStore = Depends(get_store),
    current_user: dict = Depends(get_current_user)
):
    if current_user["role"] == SchoolUserRole.STUDENT and current_user["class_section_id"] != class_section_id:
        raise UnauthorizedAccess("Students can only view their own class exam timetable")
    return await list_exam_timetables(store, class_section_id)


# --- GET ---
@router.get("/{timetable_id}", response_model=ExamTimetableOut)
async def read_timetable(
    timetable_id: str,
    store: DocumentStore = Depends(get_store),
    current_user: dict = Depends(get_current_user)
):
    timetable = await get_exam_timetable(store, timetable_id)
    if current_user["role"] == SchoolUserRole.STUDENT and current_user["class_section_id"] != timetable.class_section_id:
        raise UnauthorizedAccess("Students can only view their own class exam timetable")
    return timetable


# --- UPDATE ---
@router.put("/{timetable_id}", response_model=ExamTimetableOut)
async def edit_timetable(
    timetable_id: str,
    payload: ExamTimetableUpdate,
    store: DocumentStore = Depends(get_store),
    current_user: dict = Depends(get_current_user)
):
    require_role(current_user, SchoolUserRole.PRINCIPAL, detail="Only the principal can edit exam timetables")
    return await update_exam_timetable(store, timetable_id, payload.exam_name, payload.exam_entries)


# --- DELETE ---
@router.delete("/{timetable_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_timetable(
    timetable_id: str,
    store: DocumentStore = Depends(get_store),
    current_user: dict = Depends(get_current_user)
):
    require_role(current_user, SchoolUserRole.PRINCIPAL, detail="Only the principal can delete exam timetables")
    await delete_exam_timetable(store, timetable_id)
