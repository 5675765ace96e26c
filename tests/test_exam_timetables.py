# tests/test_exam_timetables.py
import pytest

from tests.conftest import CLASS_5A, CLASS_6B

pytestmark = pytest.mark.anyio

ENTRIES = [
    {"subject": "Mathematics", "date": "2024-03-18", "startTime": "09:00", "endTime": "12:00"},
    {"subject": "Science", "date": "2024-03-20", "startTime": "9:00", "endTime": "12:00"},
]


async def test_principal_manages_exam_timetables(client, principal, auth):
    r = await client.post("/exam-timetables", json={
        "examName": " Mid-Term ", "classSectionId": CLASS_5A, "examEntries": ENTRIES,
    }, headers=principal)
    assert r.status_code == 201, r.text
    timetable = r.json()
    assert timetable["examName"] == "Mid-Term"
    assert timetable["classSectionName"] == "5-A"
    assert [e["subject"] for e in timetable["examEntries"]] == ["Mathematics", "Science"]

    r = await client.put(f"/exam-timetables/{timetable['id']}", json={
        "examName": "Mid-Term Exams", "examEntries": ENTRIES[:1],
    }, headers=principal)
    assert r.status_code == 200
    assert r.json()["examName"] == "Mid-Term Exams"
    assert len(r.json()["examEntries"]) == 1

    student = auth("s-1", "student", CLASS_5A)
    r = await client.get(f"/exam-timetables/class/{CLASS_5A}", headers=student)
    assert [t["id"] for t in r.json()] == [timetable["id"]]
    r = await client.get("/exam-timetables", headers=student)
    assert len(r.json()) == 1
    r = await client.get(f"/exam-timetables/class/{CLASS_6B}", headers=student)
    assert r.status_code == 403

    r = await client.delete(f"/exam-timetables/{timetable['id']}", headers=principal)
    assert r.status_code == 204
    r = await client.get(f"/exam-timetables/{timetable['id']}", headers=principal)
    assert r.status_code == 404
    r = await client.delete(f"/exam-timetables/{timetable['id']}", headers=principal)
    assert r.status_code == 404


@pytest.mark.parametrize("payload,detail", [
    ({"examName": "", "classSectionId": CLASS_5A, "examEntries": ENTRIES}, "Please enter the exam name"),
    ({"examName": "Finals", "classSectionId": "", "examEntries": ENTRIES}, "Please select a class"),
    ({"examName": "Finals", "classSectionId": CLASS_5A, "examEntries": []}, "Please add at least one exam entry"),
    (
        {"examName": "Finals", "classSectionId": CLASS_5A, "examEntries": [ENTRIES[0], {**ENTRIES[1], "subject": " "}]},
        "Please fill all fields for exam entry #2",
    ),
    (
        {"examName": "Finals", "classSectionId": CLASS_5A, "examEntries": [{**ENTRIES[0], "date": "18/03/2024"}]},
        "Exam entry #1 has an invalid date or time",
    ),
])
async def test_exam_timetable_validation(client, principal, payload, detail):
    r = await client.post("/exam-timetables", json=payload, headers=principal)
    assert r.status_code == 400
    assert r.json()["detail"] == detail


async def test_only_the_principal_writes(client, teacher):
    r = await client.post("/exam-timetables", json={
        "examName": "Finals", "classSectionId": CLASS_5A, "examEntries": ENTRIES,
    }, headers=teacher)
    assert r.status_code == 403
