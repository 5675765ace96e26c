# tests/test_document_store.py
from datetime import date

import pytest
from sqlalchemy.exc import SQLAlchemyError

from services.user_management.models.users import SchoolUser, USERS
from shared.document_store import DocumentStore, decode
from shared.errors import MalformedDocument, NotFound

pytestmark = pytest.mark.anyio


async def test_add_get_and_update(store: DocumentStore):
    doc_id = await store.add("notes", {"title": "first", "count": 1})
    assert await store.get("notes", doc_id) == {"id": doc_id, "title": "first", "count": 1}

    await store.update("notes", doc_id, {"count": 2})
    doc = await store.get("notes", doc_id)
    assert doc["count"] == 2
    assert doc["title"] == "first"

    assert await store.get("notes", "missing") is None
    with pytest.raises(NotFound):
        await store.update("notes", "missing", {"count": 3})


async def test_set_overwrites_whole_document(store: DocumentStore):
    await store.set("notes", "n1", {"title": "a", "extra": True})
    await store.set("notes", "n1", {"title": "b"})
    assert await store.get("notes", "n1") == {"id": "n1", "title": "b"}


async def test_find_filters_range_and_order(store: DocumentStore):
    for day, cls in [("2024-03-04", "5A"), ("2024-03-01", "5A"), ("2024-03-02", "6B"), ("2024-03-08", "5A")]:
        await store.add("sessions", {"date": day, "classSectionId": cls})

    in_5a = await store.find("sessions", where={"classSectionId": "5A"}, order_by="date")
    assert [d["date"] for d in in_5a] == ["2024-03-01", "2024-03-04", "2024-03-08"]

    first_week = await store.find(
        "sessions",
        where={"classSectionId": "5A"},
        between=("date", date(2024, 3, 1), date(2024, 3, 8)),
        order_by="date",
        descending=True,
    )
    assert [d["date"] for d in first_week] == ["2024-03-04", "2024-03-01"]

    # Collections are separate namespaces
    assert await store.find("other") == []


async def test_delete_and_delete_where(store: DocumentStore):
    keep = await store.add("records", {"sessionId": "a"})
    await store.add("records", {"sessionId": "b"})
    await store.add("records", {"sessionId": "b"})

    assert await store.delete_where("records", {"sessionId": "b"}) == 2
    assert [d["id"] for d in await store.find("records")] == [keep]

    assert await store.delete("records", keep) is True
    assert await store.delete("records", keep) is False


async def test_replace_children_swaps_whole_set(store: DocumentStore):
    await store.replace_children("records", "sessionId", "s1", [{"studentId": "x"}, {"studentId": "y"}])
    await store.add("records", {"sessionId": "s2", "studentId": "z"})

    await store.replace_children("records", "sessionId", "s1", [{"studentId": "y"}])

    children = await store.find("records", where={"sessionId": "s1"})
    assert [c["studentId"] for c in children] == ["y"]
    assert len(await store.find("records", where={"sessionId": "s2"})) == 1


async def test_atomic_rolls_back_every_write(store: DocumentStore):
    await store.add("notes", {"title": "kept"})

    with pytest.raises(SQLAlchemyError):
        async with store.atomic():
            await store.add("notes", {"title": "dropped"})
            await store.replace_children("records", "sessionId", "s1", [{"studentId": "x"}])
            raise SQLAlchemyError("disk full")

    assert [d["title"] for d in await store.find("notes")] == ["kept"]
    assert await store.find("records") == []


async def test_decode_rejects_malformed_document(store: DocumentStore):
    await store.set(USERS, "u1", {"name": "Nobody", "role": "janitor"})
    with pytest.raises(MalformedDocument) as exc:
        decode(SchoolUser, USERS, await store.get(USERS, "u1"))
    assert exc.value.status_code == 500
    assert exc.value.doc_id == "u1"
