# tests/test_schedule_service.py
import pytest

from services.timetable_management.controllers.schedule_service import (
    add_period,
    default_schedule_days,
    remove_period,
    validate_days,
)
from services.timetable_management.models.schedule import Period, ScheduleDay, WEEK_DAYS
from shared.errors import ValidationFailure
from tests.conftest import CLASS_5A, CLASS_6B, STUDENTS_5A, TEACHER_1, TEACHER_2


def _empty_week():
    return [ScheduleDay(day=day) for day in WEEK_DAYS]


def test_default_template_has_eight_periods_per_day():
    days = default_schedule_days()
    assert [d.day for d in days] == WEEK_DAYS
    assert all(len(d.periods) == 8 for d in days)
    assert days[0].periods[0].start_time == "08:00"
    assert days[0].periods[-1].end_time == "15:00"


def test_add_period_starts_the_day_at_eight():
    days = add_period(_empty_week(), 0)
    period = days[0].periods[0]
    assert (period.start_time, period.end_time) == ("08:00", "09:00")
    assert period.subject == "" and period.teacher_id == ""


def test_add_period_follows_the_last_period():
    days = _empty_week()
    days[2].periods.append(Period(start_time="09:45", end_time="10:30"))
    updated = add_period(days, 2)
    assert [(p.start_time, p.end_time) for p in updated[2].periods] == [("09:45", "10:30"), ("10:30", "11:30")]
    # input is left untouched
    assert len(days[2].periods) == 1


def test_add_period_never_runs_past_midnight():
    days = _empty_week()
    days[0].periods.append(Period(start_time="22:00", end_time="23:30"))
    period = add_period(days, 0)[0].periods[-1]
    assert (period.start_time, period.end_time) == ("23:30", "23:59")


def test_add_and_remove_reject_bad_indexes():
    with pytest.raises(ValidationFailure):
        add_period(_empty_week(), 6)
    with pytest.raises(ValidationFailure):
        remove_period(_empty_week(), 0, 0)


def test_remove_period():
    days = default_schedule_days()
    updated = remove_period(days, 1, 0)
    assert len(updated[1].periods) == 7
    assert updated[1].periods[0].start_time == "08:45"
    assert len(days[1].periods) == 8


def test_validate_days_requires_monday_to_saturday():
    validate_days(_empty_week())
    with pytest.raises(ValidationFailure):
        validate_days(_empty_week()[:5])
    with pytest.raises(ValidationFailure):
        validate_days(list(reversed(_empty_week())))


def test_unpadded_times_are_normalised():
    period = Period(start_time="9:45", end_time="10:30")
    assert period.start_time == "09:45"
    with pytest.raises(ValueError):
        Period(start_time="25:00", end_time="26:00")


def _week_with(day_index, periods):
    week = [{"day": day, "periods": []} for day in WEEK_DAYS]
    week[day_index]["periods"] = periods
    return week


@pytest.mark.anyio
async def test_schedule_lifecycle_and_teacher_projection(client, principal, teacher, auth):
    monday = _week_with(0, [
        {"startTime": "08:00", "endTime": "08:45", "subject": "Math", "teacherId": TEACHER_1, "teacherName": "stale"},
    ])
    r = await client.post("/schedules", json={"classSectionId": CLASS_5A, "days": monday}, headers=principal)
    assert r.status_code == 201, r.text
    created = r.json()
    assert created["classSectionName"] == "5-A"
    assert created["schedule"][0]["periods"][0]["teacherName"] == "Anita Rao"

    r = await client.get("/schedules/me", params={"on": "2024-03-04"}, headers=teacher)
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["teacherName"] == "Anita Rao"
    assert body["today"]["day"] == "Monday"
    assert body["today"]["periods"][0]["className"] == "5-A"
    assert body["today"]["periods"][0]["sourceScheduleId"] == created["id"]

    # Move the period to Tuesday and hand it to another teacher
    tuesday = _week_with(1, [
        {"startTime": "09:00", "endTime": "10:00", "subject": "Science", "teacherId": TEACHER_2},
    ])
    r = await client.put(f"/schedules/{created['id']}", json={"days": tuesday}, headers=principal)
    assert r.status_code == 200, r.text
    assert r.json()["schedule"][1]["periods"][0]["teacherName"] == "Vikram Shah"

    r = await client.get("/schedules/me", headers=teacher)
    assert all(d["periods"] == [] for d in r.json()["days"])

    r = await client.get(f"/schedules/teachers/{TEACHER_2}", headers=principal)
    assert r.status_code == 200
    assert r.json()["days"][1]["periods"][0]["subject"] == "Science"

    student = auth(STUDENTS_5A[0], "student", CLASS_5A)
    r = await client.get(f"/schedules/class/{CLASS_5A}", headers=student)
    assert r.status_code == 200
    assert len(r.json()) == 1
    r = await client.get(f"/schedules/class/{CLASS_6B}", headers=student)
    assert r.status_code == 403


@pytest.mark.anyio
async def test_schedule_writes_are_checked(client, principal, teacher):
    r = await client.post("/schedules", json={"classSectionId": CLASS_5A}, headers=teacher)
    assert r.status_code == 403

    r = await client.post("/schedules", json={"classSectionId": "no-such-class"}, headers=principal)
    assert r.status_code == 404

    r = await client.post("/schedules", json={"classSectionId": CLASS_5A, "days": []}, headers=principal)
    assert r.status_code == 400

    r = await client.post("/schedules", json={"classSectionId": CLASS_6B}, headers=principal)
    assert r.status_code == 201
    assert len(r.json()["schedule"][5]["periods"]) == 8

    r = await client.get("/schedules/does-not-exist", headers=principal)
    assert r.status_code == 404
    assert r.json()["detail"] == "Schedule not found"


@pytest.mark.anyio
async def test_bad_period_times_are_a_validation_failure(client, principal):
    bad = _week_with(0, [{"startTime": "25:00", "endTime": "26:00", "subject": "Math"}])
    r = await client.post("/schedules", json={"classSectionId": CLASS_5A, "days": bad}, headers=principal)
    assert r.status_code == 400
    assert r.json()["detail"] == "Period times must be HH:MM between 00:00 and 23:59"

    r = await client.post("/schedules", json={"classSectionId": CLASS_5A}, headers=principal)
    schedule_id = r.json()["id"]
    r = await client.put(f"/schedules/{schedule_id}", json={"days": bad}, headers=principal)
    assert r.status_code == 400

    padded = _week_with(0, [{"startTime": "9:45", "endTime": "10:30", "subject": "Math"}])
    r = await client.put(f"/schedules/{schedule_id}", json={"days": padded}, headers=principal)
    assert r.status_code == 200
    assert r.json()["schedule"][0]["periods"][0]["startTime"] == "09:45"
