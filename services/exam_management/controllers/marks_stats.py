"""
Aggregates over exam documents. Everything here is pure: callers load the
exams and pass them in.
"""
from collections import defaultdict
from statistics import mean
from typing import Dict, Iterable, List, Optional

from services.exam_management.models.exam import Exam
from services.exam_management.schemas.exam import (
    ClassSubjectPerformance,
    ExamStats,
    StudentExamResult,
    SubjectAverage,
)

PASS_THRESHOLD = 0.33


def passed(marks: float, max_marks: float) -> bool:
    return marks / max_marks >= PASS_THRESHOLD


def exam_percentage(exam: Exam) -> float:
    """Mean mark of the exam as a percentage of maxMarks."""
    if not exam.marks or not exam.max_marks:
        return 0.0
    return mean(entry.marks for entry in exam.marks) / exam.max_marks * 100


def compute_exam_stats(exam: Exam) -> ExamStats:
    if not exam.marks:
        return ExamStats()

    scores = [entry.marks for entry in exam.marks]
    average_marks = mean(scores)
    pass_count = sum(1 for score in scores if passed(score, exam.max_marks))
    return ExamStats(
        average=average_marks / exam.max_marks,
        average_marks=round(average_marks, 2),
        highest=max(scores),
        lowest=min(scores),
        pass_rate=pass_count / len(scores),
        pass_count=pass_count,
        total_students=len(scores),
    )


def compute_subject_averages(exams: Iterable[Exam]) -> Dict[str, float]:
    """
    Per subject, the mean of each exam's own average percentage. An exam with
    two students weighs the same as one with forty.
    """
    per_subject: Dict[str, List[float]] = defaultdict(list)
    for exam in exams:
        # An exam without marks counts as 0%
        per_subject[exam.subject].append(exam_percentage(exam))
    return {subject: mean(values) for subject, values in per_subject.items()}


def compute_class_subject_averages(exams: Iterable[Exam]) -> List[ClassSubjectPerformance]:
    by_class: Dict[str, List[Exam]] = defaultdict(list)
    names: Dict[str, str] = {}
    for exam in exams:
        by_class[exam.class_section_id].append(exam)
        names.setdefault(exam.class_section_id, exam.class_section_name)

    performance = [
        ClassSubjectPerformance(
            class_section_id=class_section_id,
            class_section_name=names[class_section_id],
            subjects=subject_average_list(compute_subject_averages(class_exams)),
        )
        for class_section_id, class_exams in by_class.items()
    ]
    return sorted(performance, key=lambda p: p.class_section_name)


def _student_mark(exam: Exam, student_id: str) -> Optional[float]:
    for entry in exam.marks:
        if entry.student_id == student_id:
            return entry.marks
    return None


def compute_student_subject_averages(student_id: str, exams: Iterable[Exam]) -> Dict[str, float]:
    """Per subject, the plain mean of the student's own percentages."""
    per_subject: Dict[str, List[float]] = defaultdict(list)
    for exam in exams:
        score = _student_mark(exam, student_id)
        if score is not None:
            per_subject[exam.subject].append(score / exam.max_marks * 100)
    return {subject: mean(values) for subject, values in per_subject.items()}


def performance_label(percentage: float) -> str:
    if percentage >= 85:
        return "Excellent"
    if percentage >= 70:
        return "Good"
    if percentage >= 50:
        return "Average"
    return "Needs Improvement"


def percentile_rank(exam: Exam, score: float) -> float:
    scores = [entry.marks for entry in exam.marks]
    if not scores:
        return 0.0
    below = sum(1 for s in scores if s < score)
    equal = sum(1 for s in scores if s == score)
    return (below + 0.5 * equal) / len(scores) * 100


def student_exam_results(student_id: str, exams: Iterable[Exam]) -> List[StudentExamResult]:
    results = []
    for exam in exams:
        score = _student_mark(exam, student_id)
        if score is None:
            continue
        percentage = score / exam.max_marks * 100
        results.append(StudentExamResult(
            exam_id=exam.id,
            name=exam.name,
            subject=exam.subject,
            class_section_name=exam.class_section_name,
            teacher_name=exam.teacher_name,
            max_marks=exam.max_marks,
            marks=score,
            percentage=round(percentage, 2),
            performance=performance_label(percentage),
            percentile_rank=round(percentile_rank(exam, score), 2),
            created_at=exam.created_at,
        ))
    return results


def subject_average_list(averages: Dict[str, float]) -> List[SubjectAverage]:
    return [SubjectAverage(subject=subject, average=round(value, 2)) for subject, value in sorted(averages.items())]
