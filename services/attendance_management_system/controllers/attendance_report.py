from typing import Iterable, List
import openpyxl
from openpyxl.styles import Font, Alignment
from openpyxl.chart import PieChart, Reference

from services.attendance_management_system.models.attendance import AttendanceRecord, AttendanceStatus
from services.user_management.models.users import SchoolUser

BASE_HEADERS = ["Roll No.", "Student Name", "Total Days", "Present", "Absent", "Attendance %"]
STATUS_LABELS = {AttendanceStatus.PRESENT: "P", AttendanceStatus.ABSENT: "A"}


def build_attendance_workbook(
    class_name: str,
    students: List[SchoolUser],
    records: Iterable[AttendanceRecord],
) -> openpyxl.Workbook:
    """One row per student, one column per marked day, then a class summary and pie chart."""
    # Map: {(student_id, date): status}
    attendance_map = {(record.student_id, record.date): record.status for record in records}
    all_dates = sorted({day for _, day in attendance_map})

    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = "Attendance Report"

    ws.append([f"Class {class_name}"])
    ws["A1"].font = Font(bold=True, size=12)

    date_headers = [d.strftime("%d-%b") for d in all_dates]
    ws.append(BASE_HEADERS + date_headers)
    for cell in ws[2]:
        cell.font = Font(bold=True)
        cell.alignment = Alignment(horizontal="center")

    total_days = len(all_dates)
    class_present = 0
    class_absent = 0

    for student in students:
        statuses = [attendance_map.get((student.id, day)) for day in all_dates]
        present = statuses.count(AttendanceStatus.PRESENT)
        absent = statuses.count(AttendanceStatus.ABSENT)
        perc = (present / total_days) * 100 if total_days else 0

        row = [student.roll_no or "", student.name, total_days, present, absent, f"{perc:.1f}%"]
        row.extend(STATUS_LABELS.get(status, "N/A") for status in statuses)
        ws.append(row)

        class_present += present
        class_absent += absent

    # Summary block below the student rows
    summary_row_start = ws.max_row + 2
    ws[f"A{summary_row_start}"] = "Class Summary"
    ws[f"A{summary_row_start}"].font = Font(bold=True)

    summary = [
        ("Total Students", len(students)),
        ("Total Days", total_days),
        ("Total Present", class_present),
        ("Total Absent", class_absent),
    ]
    for offset, (label, value) in enumerate(summary, start=1):
        ws[f"A{summary_row_start + offset}"] = label
        ws[f"B{summary_row_start + offset}"] = value

    chart = PieChart()
    labels = Reference(ws, min_col=1, min_row=summary_row_start + 3, max_row=summary_row_start + 4)
    data = Reference(ws, min_col=2, min_row=summary_row_start + 3, max_row=summary_row_start + 4)
    chart.add_data(data, titles_from_data=False)
    chart.set_categories(labels)
    chart.title = "Class Attendance Distribution"
    ws.add_chart(chart, f"E{summary_row_start + 1}")

    return wb
