from datetime import datetime
from typing import Any, Dict, List, Optional, Union
from pydantic import Field
from services.exam_management.models.exam import MarkEntry
from shared.schemas import CamelModel


class ExamCreate(CamelModel):
    name: str = ""
    subject: str = ""
    class_section_id: str = ""
    max_marks: Any = 100
    marks: Dict[str, Any] = Field(
        default_factory=dict,
        description="Marks keyed by student id; every student in the class needs one."
    )


class ExamUpdate(CamelModel):
    name: str = ""
    max_marks: Any = 100
    marks: Dict[str, Any] = Field(default_factory=dict)


class DraftMarkEntry(CamelModel):
    student_id: str
    student_name: str
    roll_no: Optional[str] = None
    marks: Optional[Union[int, float]] = None


class ExamDraftOut(CamelModel):
    class_section_id: str
    class_section_name: str
    entries: List[DraftMarkEntry]


class ExamStats(CamelModel):
    average: float = 0.0          # mean mark as a fraction of maxMarks
    average_marks: float = 0.0    # raw mean mark, two decimals
    highest: Union[int, float] = 0
    lowest: Union[int, float] = 0
    pass_rate: float = 0.0        # fraction of students at or above the pass mark
    pass_count: int = 0
    total_students: int = 0


class ExamSummaryOut(CamelModel):
    id: str
    name: str
    subject: str
    class_section_id: str
    class_section_name: str
    teacher_id: str
    teacher_name: str
    max_marks: int
    created_at: Optional[datetime] = None
    stats: ExamStats


class ExamOut(ExamSummaryOut):
    marks: List[MarkEntry]


class SubjectAverage(CamelModel):
    subject: str
    average: float


class ClassSubjectPerformance(CamelModel):
    class_section_id: str
    class_section_name: str
    subjects: List[SubjectAverage]


class StudentExamResult(CamelModel):
    exam_id: str
    name: str
    subject: str
    class_section_name: str
    teacher_name: str
    max_marks: int
    marks: Union[int, float]
    percentage: float
    performance: str
    percentile_rank: float
    created_at: Optional[datetime] = None


class StudentPerformanceOut(CamelModel):
    student_id: str
    results: List[StudentExamResult]
    subject_averages: List[SubjectAverage]
