from typing import List, Optional
from fastapi import APIRouter, Depends

from services.user_management.models.users import SchoolUser, SchoolUserRole, USERS, roll_number_key
from services.user_management.models.classes import ClassSection, CLASS_SECTIONS
from services.user_management.schemas.users import StudentOut, SchoolTeacherOut
from services.user_management.schemas.classes import ClassSectionOut
from shared.auth import get_current_user, require_role
from shared.document_store import DocumentStore, decode, get_store
from shared.errors import NotFound

router = APIRouter(prefix="/users", tags=["School Roster"])


async def get_user(store: DocumentStore, user_id: str) -> Optional[SchoolUser]:
    doc = await store.get(USERS, user_id)
    return decode(SchoolUser, USERS, doc) if doc else None


async def get_teacher(store: DocumentStore, teacher_id: str) -> SchoolUser:
    teacher = await get_user(store, teacher_id)
    if not teacher or teacher.role != SchoolUserRole.TEACHER:
        raise NotFound("Teacher not found")
    return teacher


async def get_class_section(store: DocumentStore, class_section_id: str) -> ClassSection:
    doc = await store.get(CLASS_SECTIONS, class_section_id)
    if not doc:
        raise NotFound("Class not found")
    return decode(ClassSection, CLASS_SECTIONS, doc)


async def get_class_students(store: DocumentStore, class_section_id: str) -> List[SchoolUser]:
    """Students enrolled in a class-section, ordered by roll number."""
    docs = await store.find(
        USERS, where={"role": SchoolUserRole.STUDENT, "classSectionId": class_section_id}
    )
    students = [decode(SchoolUser, USERS, doc) for doc in docs]
    students.sort(key=roll_number_key)
    return students


async def get_teachers(store: DocumentStore) -> List[SchoolUser]:
    docs = await store.find(USERS, where={"role": SchoolUserRole.TEACHER}, order_by="name")
    return [decode(SchoolUser, USERS, doc) for doc in docs]


# --- LIST CLASS SECTIONS ---
@router.get("/class-sections", response_model=List[ClassSectionOut])
async def list_class_sections(
    store: DocumentStore = Depends(get_store),
    current_user: dict = Depends(get_current_user)
):
    docs = await store.find(CLASS_SECTIONS, order_by="name")
    return [decode(ClassSection, CLASS_SECTIONS, doc) for doc in docs]


# --- CLASS ROSTER ---
@router.get("/class-sections/{class_section_id}/students", response_model=List[StudentOut])
async def list_class_students(
    class_section_id: str,
    store: DocumentStore = Depends(get_store),
    current_user: dict = Depends(get_current_user)
):
    require_role(current_user, SchoolUserRole.PRINCIPAL, SchoolUserRole.TEACHER)
    await get_class_section(store, class_section_id)
    return await get_class_students(store, class_section_id)


# --- TEACHERS ---
@router.get("/teachers", response_model=List[SchoolTeacherOut])
async def list_teachers(
    store: DocumentStore = Depends(get_store),
    current_user: dict = Depends(get_current_user)
):
    require_role(current_user, SchoolUserRole.PRINCIPAL)
    return await get_teachers(store)
