# tests/test_roster.py
import pytest

from services.user_management.models.users import USERS
from shared.document_store import DocumentStore
from tests.conftest import CLASS_5A, STUDENTS_5A, TEACHER_2

pytestmark = pytest.mark.anyio


async def test_health(client):
    r = await client.get("/")
    assert r.status_code == 200


async def test_class_roster_is_in_roll_order(client, teacher, auth):
    r = await client.get(f"/users/class-sections/{CLASS_5A}/students", headers=teacher)
    assert r.status_code == 200
    assert [s["id"] for s in r.json()] == STUDENTS_5A
    assert r.json()[0]["rollNo"] == "1"

    r = await client.get(f"/users/class-sections/{CLASS_5A}/students", headers=auth("s-1", "student", CLASS_5A))
    assert r.status_code == 403


async def test_class_sections_and_teachers(client, principal, teacher):
    r = await client.get("/users/class-sections", headers=teacher)
    assert [(c["name"], c["class"], c["section"]) for c in r.json()] == [("5-A", "5", "A"), ("6-B", "6", "B")]

    r = await client.get("/users/teachers", headers=principal)
    assert [t["name"] for t in r.json()] == ["Anita Rao", "Vikram Shah"]
    assert r.json()[0]["email"] == "anita@school.test"
    r = await client.get("/users/teachers", headers=teacher)
    assert r.status_code == 403


async def test_requests_need_a_token(client):
    r = await client.get("/users/class-sections")
    assert r.status_code == 401
    r = await client.get("/users/class-sections", headers={"Authorization": "Bearer not-a-token"})
    assert r.status_code == 401


async def test_teacher_list_returns_stored_email_as_is(client, principal, session_factory):
    async with session_factory() as session:
        await DocumentStore(session).update(USERS, TEACHER_2, {"email": "vikram at school"})

    r = await client.get("/users/teachers", headers=principal)
    assert r.status_code == 200
    assert r.json()[1]["email"] == "vikram at school"
