from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union
import math
import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.exc import SQLAlchemyError

from services.user_management.models.users import SchoolUser, SchoolUserRole
from services.user_management.controllers.school_service import get_class_section, get_class_students, get_user
from services.exam_management.models.exam import Exam, MarkEntry, EXAMS
from services.exam_management.schemas.exam import (
    ClassSubjectPerformance,
    DraftMarkEntry,
    ExamCreate,
    ExamDraftOut,
    ExamOut,
    ExamSummaryOut,
    ExamUpdate,
    StudentPerformanceOut,
)
from services.exam_management.controllers.marks_stats import (
    compute_class_subject_averages,
    compute_exam_stats,
    compute_student_subject_averages,
    student_exam_results,
    subject_average_list,
)
from shared.app_logger import get_logger
from shared.auth import get_current_user, require_role
from shared.document_store import DocumentStore, decode, encode, get_store
from shared.errors import NotFound, PartialWriteFailure, UnauthorizedAccess, ValidationFailure

router = APIRouter(prefix="/exams", tags=["Exams & Marks"])
log = get_logger("exams")

Number = Union[int, float]


def _now() -> datetime:
    return datetime.now(timezone.utc)


# --- VALIDATION ---
def _require(value: Optional[str], message: str) -> str:
    if not value or not str(value).strip():
        raise ValidationFailure(message)
    return str(value).strip()


def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _tidy(number: float) -> Number:
    return int(number) if number.is_integer() else number


def parse_max_marks(value: Any) -> int:
    number = _as_number(value)
    if number is None or number <= 0 or not number.is_integer():
        raise ValidationFailure("Maximum marks must be a positive whole number")
    return int(number)


def validate_marks(student_ids: List[str], marks: Dict[str, Any], max_marks: int) -> Dict[str, Number]:
    """
    Check a marks sheet against the exam's roster. Every student needs a mark,
    and every mark must be a number between 0 and `max_marks`.
    """
    unknown = set(marks) - set(student_ids)
    if unknown:
        raise ValidationFailure(f"Student {sorted(unknown)[0]} is not in this class")

    if any(marks.get(student_id) in (None, "") for student_id in student_ids):
        raise ValidationFailure("Please enter marks for all students")

    validated = {}
    for student_id in student_ids:
        number = _as_number(marks[student_id])
        if number is None or not 0 <= number <= max_marks:
            raise ValidationFailure(f"Marks must be between 0 and {max_marks}")
        validated[student_id] = _tidy(number)
    return validated


# --- READS ---
def _exams(docs) -> List[Exam]:
    return [decode(Exam, EXAMS, doc) for doc in docs]


async def get_exam(store: DocumentStore, exam_id: str) -> Exam:
    doc = await store.get(EXAMS, exam_id)
    if not doc:
        raise NotFound("Exam not found")
    return decode(Exam, EXAMS, doc)


async def get_exams_for_teacher(store: DocumentStore, teacher_id: str) -> List[Exam]:
    return _exams(await store.find(EXAMS, where={"teacherId": teacher_id}, order_by="createdAt", descending=True))


async def get_exams_for_class(store: DocumentStore, class_section_id: str) -> List[Exam]:
    docs = await store.find(
        EXAMS, where={"classSectionId": class_section_id}, order_by="createdAt", descending=True
    )
    return _exams(docs)


async def get_all_exams(store: DocumentStore) -> List[Exam]:
    return _exams(await store.find(EXAMS, order_by="createdAt", descending=True))


# --- WRITES ---
async def create_exam(
    store: DocumentStore,
    teacher: SchoolUser,
    name: str,
    subject: str,
    class_section_id: str,
    max_marks: Any,
    marks: Dict[str, Any],
) -> Exam:
    """
    Record an exam for a class. The class roster at this moment, ordered by
    roll number, is copied into the exam together with each student's mark.
    """
    class_section_id = _require(class_section_id, "Please select a class")
    name = _require(name, "Please enter the exam name")
    subject = _require(subject, "Please enter the subject")
    max_marks = parse_max_marks(max_marks)

    class_section = await get_class_section(store, class_section_id)
    students = await get_class_students(store, class_section_id)
    if not students:
        raise ValidationFailure("No students found in this class")
    validated = validate_marks([student.id for student in students], marks, max_marks)

    now = _now()
    exam_id = str(uuid.uuid4())
    exam = Exam(
        id=exam_id,
        name=name,
        subject=subject,
        class_section_id=class_section_id,
        class_section_name=class_section.name,
        teacher_id=teacher.id,
        teacher_name=teacher.name,
        max_marks=max_marks,
        marks=[
            MarkEntry(
                student_id=student.id,
                student_name=student.name,
                roll_no=student.roll_no,
                marks=validated[student.id],
            )
            for student in students
        ],
        created_at=now,
        updated_at=now,
    )
    try:
        await store.set(EXAMS, exam_id, encode(exam))
    except SQLAlchemyError as exc:
        log.exception("Saving exam %s for class %s failed", name, class_section_id)
        raise PartialWriteFailure("The exam could not be saved. Please resubmit.") from exc

    log.info("Created exam %s (%s) for class %s with %d marks", exam_id, subject, class_section.name, len(students))
    return await get_exam(store, exam_id)


async def update_exam(
    store: DocumentStore,
    exam_id: str,
    name: str,
    max_marks: Any,
    marks: Dict[str, Any],
) -> Exam:
    """Overwrite name, maximum marks and every mark; the roster snapshot stays as it was."""
    exam = await get_exam(store, exam_id)
    name = _require(name, "Please enter the exam name")
    max_marks = parse_max_marks(max_marks)
    validated = validate_marks([entry.student_id for entry in exam.marks], marks, max_marks)

    entries = [entry.model_copy(update={"marks": validated[entry.student_id]}) for entry in exam.marks]
    try:
        await store.update(EXAMS, exam_id, {
            "name": name,
            "maxMarks": max_marks,
            "marks": [entry.model_dump(mode="json", by_alias=True) for entry in entries],
            "updatedAt": _now().isoformat(),
        })
    except SQLAlchemyError as exc:
        log.exception("Updating exam %s failed", exam_id)
        raise PartialWriteFailure("The exam could not be updated. Please resubmit.") from exc

    log.info("Updated exam %s", exam_id)
    return await get_exam(store, exam_id)


def _exam_out(exam: Exam) -> ExamOut:
    return ExamOut.model_validate({**exam.model_dump(), "stats": compute_exam_stats(exam)})


def _exam_summary(exam: Exam) -> ExamSummaryOut:
    return ExamSummaryOut.model_validate({**exam.model_dump(), "stats": compute_exam_stats(exam)})


def _check_exam_owner(exam: Exam, current_user: dict):
    if current_user["role"] != SchoolUserRole.TEACHER or exam.teacher_id != current_user["user_id"]:
        raise UnauthorizedAccess("Only the teacher who created this exam can change it")


# --- BLANK MARKS SHEET ---
@router.get("/draft", response_model=ExamDraftOut)
async def exam_marks_draft(
    class_section_id: str,
    store: DocumentStore = Depends(get_store),
    current_user: dict = Depends(get_current_user)
):
    require_role(current_user, SchoolUserRole.TEACHER, detail="Only teachers can enter marks")
    class_section = await get_class_section(store, class_section_id)
    students = await get_class_students(store, class_section_id)
    return ExamDraftOut(
        class_section_id=class_section_id,
        class_section_name=class_section.name,
        entries=[
            DraftMarkEntry(student_id=student.id, student_name=student.name, roll_no=student.roll_no)
            for student in students
        ],
    )


# --- CREATE EXAM ---
@router.post("", response_model=ExamOut, status_code=status.HTTP_201_CREATED)
async def create_class_exam(
    payload: ExamCreate,
    store: DocumentStore = Depends(get_store),
    current_user: dict = Depends(get_current_user)
):
    require_role(current_user, SchoolUserRole.TEACHER, detail="Only teachers can record exams")
    teacher = await get_user(store, current_user["user_id"])
    if not teacher:
        raise NotFound("Teacher not found")

    exam = await create_exam(
        store,
        teacher=teacher,
        name=payload.name,
        subject=payload.subject,
        class_section_id=payload.class_section_id,
        max_marks=payload.max_marks,
        marks=payload.marks,
    )
    return _exam_out(exam)


# --- LIST EXAMS ---
@router.get("", response_model=List[ExamSummaryOut])
async def list_exams(
    class_section_id: Optional[str] = None,
    store: DocumentStore = Depends(get_store),
    current_user: dict = Depends(get_current_user)
):
    role = current_user["role"]
    if role == SchoolUserRole.TEACHER:
        exams = await get_exams_for_teacher(store, current_user["user_id"])
        if class_section_id:
            exams = [exam for exam in exams if exam.class_section_id == class_section_id]
    elif role == SchoolUserRole.PRINCIPAL:
        exams = await get_exams_for_class(store, class_section_id) if class_section_id else await get_all_exams(store)
    else:
        own_class = current_user.get("class_section_id")
        exams = await get_exams_for_class(store, own_class) if own_class else []
        exams = [exam for exam in exams if any(e.student_id == current_user["user_id"] for e in exam.marks)]
    return [_exam_summary(exam) for exam in exams]


# --- SUBJECT PERFORMANCE PER CLASS ---
@router.get("/subject-performance", response_model=List[ClassSubjectPerformance])
async def subject_performance(
    class_section_id: Optional[str] = None,
    store: DocumentStore = Depends(get_store),
    current_user: dict = Depends(get_current_user)
):
    require_role(current_user, SchoolUserRole.PRINCIPAL)
    exams = await get_exams_for_class(store, class_section_id) if class_section_id else await get_all_exams(store)
    return compute_class_subject_averages(exams)


# --- STUDENT PERFORMANCE ---
@router.get("/students/{student_id}/performance", response_model=StudentPerformanceOut)
async def student_performance(
    student_id: str,
    store: DocumentStore = Depends(get_store),
    current_user: dict = Depends(get_current_user)
):
    if current_user["role"] == SchoolUserRole.STUDENT and current_user["user_id"] != student_id:
        raise UnauthorizedAccess("Students can only view their own marks")
    exams = await get_all_exams(store)
    return StudentPerformanceOut(
        student_id=student_id,
        results=student_exam_results(student_id, exams),
        subject_averages=subject_average_list(compute_student_subject_averages(student_id, exams)),
    )


# --- EXAM DETAIL ---
@router.get("/{exam_id}", response_model=ExamOut)
async def read_exam(
    exam_id: str,
    store: DocumentStore = Depends(get_store),
    current_user: dict = Depends(get_current_user)
):
    require_role(current_user, SchoolUserRole.PRINCIPAL, SchoolUserRole.TEACHER)
    exam = await get_exam(store, exam_id)
    if current_user["role"] == SchoolUserRole.TEACHER and exam.teacher_id != current_user["user_id"]:
        raise UnauthorizedAccess("This exam belongs to another teacher")
    return _exam_out(exam)


# --- UPDATE EXAM ---
@router.put("/{exam_id}", response_model=ExamOut)
async def edit_exam(
    exam_id: str,
    payload: ExamUpdate,
    store: DocumentStore = Depends(get_store),
    current_user: dict = Depends(get_current_user)
):
    require_role(current_user, SchoolUserRole.TEACHER, detail="Only teachers can edit exams")
    _check_exam_owner(await get_exam(store, exam_id), current_user)
    return _exam_out(await update_exam(store, exam_id, payload.name, payload.max_marks, payload.marks))
