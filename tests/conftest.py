# tests/conftest.py
"""
In-process fixtures: every test gets its own in-memory SQLite database, a
seeded school (two classes, a principal, two teachers, six students) and an
httpx client talking to the app over ASGI.
"""
import os

os.environ.setdefault("SECRET_KEY", "test-secret")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from create_db import init_models
from main import app
from services.user_management.models.classes import ClassSection, CLASS_SECTIONS
from services.user_management.models.users import SchoolUser, SchoolUserRole, USERS
from shared.auth import create_access_token
from shared.db import get_db
from shared.document_store import DocumentStore, encode

CLASS_5A = "class-5a"
CLASS_6B = "class-6b"
PRINCIPAL = "principal-1"
TEACHER_1 = "teacher-1"
TEACHER_2 = "teacher-2"
STUDENTS_5A = ["s-1", "s-2", "s-3", "s-4", "s-5"]
STUDENT_6B = "s-6b-1"


# Make anyio run on asyncio (so our async fixtures work everywhere)
@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await init_models(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


async def seed_school(store: DocumentStore):
    await store.set(CLASS_SECTIONS, CLASS_5A, encode(ClassSection(name="5-A", class_name="5", section="A")))
    await store.set(CLASS_SECTIONS, CLASS_6B, encode(ClassSection(name="6-B", class_name="6", section="B")))

    users = [
        (PRINCIPAL, SchoolUser(name="Meera Iyer", email="principal@school.test", role=SchoolUserRole.PRINCIPAL)),
        (TEACHER_1, SchoolUser(
            name="Anita Rao", email="anita@school.test", role=SchoolUserRole.TEACHER,
            class_section_id=CLASS_5A, class_section_name="5-A", subject="Mathematics",
        )),
        (TEACHER_2, SchoolUser(
            name="Vikram Shah", email="vikram@school.test", role=SchoolUserRole.TEACHER,
            class_section_id=CLASS_6B, class_section_name="6-B", subject="Science",
        )),
        (STUDENT_6B, SchoolUser(
            name="Farah Khan", role=SchoolUserRole.STUDENT,
            class_section_id=CLASS_6B, class_section_name="6-B", roll_no="1",
        )),
    ]
    # Inserted out of roll order on purpose
    names = ["Aarav", "Bela", "Chirag", "Diya", "Eshan"]
    for roll in (3, 1, 5, 2, 4):
        users.append((STUDENTS_5A[roll - 1], SchoolUser(
            name=names[roll - 1], role=SchoolUserRole.STUDENT,
            class_section_id=CLASS_5A, class_section_name="5-A", roll_no=str(roll),
        )))
    for user_id, user in users:
        await store.set(USERS, user_id, encode(user))


@pytest.fixture
async def store(session_factory):
    async with session_factory() as session:
        yield DocumentStore(session)


@pytest.fixture
async def school(session_factory):
    async with session_factory() as session:
        await seed_school(DocumentStore(session))


@pytest.fixture
def auth():
    def _headers(user_id: str, role: str, class_section_id: str = None) -> dict:
        token = create_access_token({
            "sub": f"{user_id}@school.test",
            "user_id": user_id,
            "role": role,
            "class_section_id": class_section_id,
        })
        return {"Authorization": f"Bearer {token}"}
    return _headers


@pytest.fixture
def principal(auth):
    return auth(PRINCIPAL, "principal")


@pytest.fixture
def teacher(auth):
    return auth(TEACHER_1, "teacher", CLASS_5A)


@pytest.fixture
def other_teacher(auth):
    return auth(TEACHER_2, "teacher", CLASS_6B)


@pytest.fixture
async def client(session_factory, school):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as ac:
        yield ac
    app.dependency_overrides.pop(get_db, None)
