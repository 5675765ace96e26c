# services/exam_management/models/exam.py
from datetime import datetime
from typing import List, Optional, Union
from pydantic import Field
from shared.document_store import DocumentModel
from shared.schemas import CamelModel

EXAMS = "exams"


class MarkEntry(CamelModel):
    student_id: str
    student_name: str = ""
    roll_no: Optional[str] = ""
    marks: Union[int, float]


class Exam(DocumentModel):
    """An administered exam; `marks` is the roster snapshot and the only copy of the scores."""

    name: str
    subject: str
    class_section_id: str
    class_section_name: str = ""
    teacher_id: str
    teacher_name: str = ""
    max_marks: int = Field(gt=0)
    marks: List[MarkEntry] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
