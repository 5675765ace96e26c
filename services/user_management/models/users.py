# services/user_management/models/users.py
from typing import Optional
from pydantic import Field
from shared.document_store import DocumentModel
import enum

USERS = "users"


class SchoolUserRole(str, enum.Enum):
    PRINCIPAL = "principal"
    TEACHER = "teacher"
    STUDENT = "student"


class SchoolUser(DocumentModel):
    name: str = Field(min_length=1)
    email: Optional[str] = None
    role: SchoolUserRole
    class_section_id: Optional[str] = None    # homeroom class for teachers, enrolled class for students
    class_section_name: Optional[str] = None
    roll_no: Optional[str] = None
    subject: Optional[str] = None              # teachers only


def roll_number_key(student: SchoolUser):
    """Numeric roll numbers first, in numeric order; anything else after."""
    try:
        return (0, int(student.roll_no), student.name)
    except (TypeError, ValueError):
        return (1, 0, student.name)
