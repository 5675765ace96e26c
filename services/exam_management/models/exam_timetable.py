# services/exam_management/models/exam_timetable.py
from datetime import datetime
from typing import List, Optional
from shared.document_store import DocumentModel
from shared.schemas import CamelModel

EXAM_TIMETABLES = "examTimetables"


class ExamEntry(CamelModel):
    subject: str = ""
    date: str = ""          # ISO date
    start_time: str = ""
    end_time: str = ""


class ExamTimetable(DocumentModel):
    exam_name: str
    class_section_id: str
    class_section_name: str = ""
    exam_entries: List[ExamEntry] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
