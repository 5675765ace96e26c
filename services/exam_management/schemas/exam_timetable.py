from datetime import datetime
from typing import List, Optional
from services.exam_management.models.exam_timetable import ExamEntry
from shared.schemas import CamelModel


class ExamTimetableCreate(CamelModel):
    exam_name: str = ""
    class_section_id: str = ""
    exam_entries: List[ExamEntry] = []


class ExamTimetableUpdate(CamelModel):
    exam_name: str = ""
    exam_entries: List[ExamEntry] = []


class ExamTimetableOut(CamelModel):
    id: str
    exam_name: str
    class_section_id: str
    class_section_name: str
    exam_entries: List[ExamEntry]
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
