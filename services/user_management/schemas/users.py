from typing import Optional
from shared.schemas import CamelModel


class StudentOut(CamelModel):
    id: str
    name: str
    roll_no: Optional[str] = None
    class_section_id: Optional[str] = None
    class_section_name: Optional[str] = None


class SchoolTeacherOut(CamelModel):
    id: str
    name: str
    email: Optional[str] = None    # as stored; the sign-in service owns the address
    subject: Optional[str] = None
