# backend/tests/conftest.py
"""
Pytest configuration for the messaging core.

Tests run against a throwaway SQLite file database unless TEST_DATABASE_URL
points somewhere else. The environment is set BEFORE any admitlink import so
the engine and settings pick it up.
"""

import os
import tempfile

_TEST_DB_DIR = tempfile.mkdtemp(prefix="admitlink-tests-")
TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL") or f"sqlite:///{_TEST_DB_DIR}/test.db"

# CRITICAL: never inherit a real DATABASE_URL from the shell
os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ["BROADCAST_URL"] = "memory://"
os.environ["CREATE_SCHEMA"] = "true"
os.environ["STRICT_CONVERSATION_JOIN"] = "false"

from contextlib import asynccontextmanager
import json
from typing import Any, Callable, Dict, List, Optional, Tuple

from fastapi.testclient import TestClient
import pytest
from sqlalchemy.orm import Session

from admitlink.auth import create_access_token
from admitlink.core.enums import RoleName
from admitlink.database import Base, SessionLocal, engine, get_db, init_schema
from admitlink.main import app
from admitlink.models import Application, StudentProfile, UniversityProfile, User
from admitlink.services.realtime.fanout import RoomFanOut


def _validate_test_database_url(database_url: str) -> None:
    """Refuse anything that does not look like a test database."""
    if database_url.startswith("sqlite"):
        return
    name = database_url.rsplit("/", 1)[-1].lower()
    if "test" not in name:
        raise RuntimeError(
            f"CRITICAL: refusing to run tests against non-test database '{name}'. "
            "Point TEST_DATABASE_URL at a database whose name contains 'test'."
        )


_validate_test_database_url(TEST_DATABASE_URL)


@pytest.fixture(scope="session", autouse=True)
def _schema():
    init_schema(engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db():
    """Fresh session per test; every table is emptied afterwards."""
    session = SessionLocal()

    yield session

    session.rollback()
    session.close()

    cleanup_db = SessionLocal()
    try:
        # Children first to respect foreign keys
        for table in reversed(Base.metadata.sorted_tables):
            cleanup_db.execute(table.delete())
        cleanup_db.commit()
    finally:
        cleanup_db.close()


@pytest.fixture
def client(db: Session):
    """Test client sharing the test session; the lifespan wires an in-memory fan-out."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# ============================================================================
# Factories
# ============================================================================


def _create_user(db: Session, role: str, email: str, is_blocked: bool = False) -> User:
    user = User(email=email, role=role, is_blocked=is_blocked)
    db.add(user)
    db.flush()
    if role == RoleName.STUDENT.value:
        db.add(StudentProfile(user_id=user.id))
    elif role == RoleName.UNIVERSITY.value:
        db.add(UniversityProfile(user_id=user.id))
    db.commit()
    return user


@pytest.fixture
def make_user(db: Session) -> Callable[..., User]:
    counter = {"n": 0}

    def factory(
        role: str = "student", email: Optional[str] = None, is_blocked: bool = False
    ) -> User:
        counter["n"] += 1
        email = email or f"user{counter['n']}.{role}@example.com"
        return _create_user(db, role, email, is_blocked)

    return factory


@pytest.fixture
def make_application(db: Session) -> Callable[..., Application]:
    """Link a student and a university through the relationship ledger."""

    def factory(student: User, university: User, status: str = "pending") -> Application:
        student_profile = db.query(StudentProfile).filter_by(user_id=student.id).one()
        university_profile = db.query(UniversityProfile).filter_by(user_id=university.id).one()
        application = Application(
            from_student=student_profile.id,
            to_university=university_profile.id,
            status=status,
        )
        db.add(application)
        db.commit()
        return application

    return factory


@pytest.fixture
def test_student(db: Session) -> User:
    return _create_user(db, RoleName.STUDENT.value, "test.student@example.com")


@pytest.fixture
def test_university(db: Session) -> User:
    return _create_user(db, RoleName.UNIVERSITY.value, "admissions@test-university.example.com")


@pytest.fixture
def other_student(db: Session) -> User:
    return _create_user(db, RoleName.STUDENT.value, "other.student@example.com")


@pytest.fixture
def test_admin(db: Session) -> User:
    return _create_user(db, RoleName.ADMIN.value, "admin@example.com")


@pytest.fixture
def linked_pair(test_student: User, test_university: User, make_application):
    """Student and university with one application between them."""
    application = make_application(test_student, test_university)
    return test_student, test_university, application


def token_for(user: User) -> str:
    return create_access_token(user.id, user.role)


@pytest.fixture
def make_token() -> Callable[[User], str]:
    return token_for


@pytest.fixture
def auth_headers_student(test_student: User) -> dict:
    """Get auth headers for test student."""
    return {"Authorization": f"Bearer {token_for(test_student)}"}


@pytest.fixture
def auth_headers_university(test_university: User) -> dict:
    """Get auth headers for test university."""
    return {"Authorization": f"Bearer {token_for(test_university)}"}


@pytest.fixture
def auth_headers_admin(test_admin: User) -> dict:
    return {"Authorization": f"Bearer {token_for(test_admin)}"}


# ============================================================================
# Realtime helpers
# ============================================================================


class RecordingTransport:
    """Room transport that keeps every published frame, decoded."""

    def __init__(self) -> None:
        self.published: List[Tuple[str, Dict[str, Any]]] = []

    async def publish(self, room: str, message: str) -> None:
        self.published.append((room, json.loads(message)))

    @asynccontextmanager
    async def subscribe(self, room: str):
        async def messages():
            return
            yield

        yield messages()

    def frames_for(self, room: str) -> List[Dict[str, Any]]:
        return [frame for published_room, frame in self.published if published_room == room]

    def events(self) -> List[Tuple[str, str]]:
        return [(room, frame["event"]) for room, frame in self.published]


@pytest.fixture
def recording_transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def recording_fanout(recording_transport: RecordingTransport) -> RoomFanOut:
    return RoomFanOut(recording_transport)
