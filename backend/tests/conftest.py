"""Shared test fixtures for the crew scheduler backend tests."""

import os
import sys
from datetime import timedelta

import pytest

# Ensure backend is on the path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))
os.environ.setdefault("DATABASE_URL", "sqlite:///test.db")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("STATUS_SWEEP_ENABLED", "false")

from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlmodel import Session, create_engine

from app.api.v1.auth import router as auth_router
from app.api.v1.engineers import router as engineers_router
from app.api.v1.tasks import router as tasks_router
from app.db.database import create_db_and_tables, get_session
from app.engines.intervals import utcnow
from app.errors import register_exception_handlers
from app.lifecycle.manager import TaskLifecycleManager
from app.models.task import Task
from app.models.user import User
from app.security.passwords import hash_password
from app.security.tokens import create_access_token


@pytest.fixture
def db_engine(tmp_path):
    """Fresh SQLite database per test."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'scheduler.db'}",
        connect_args={"check_same_thread": False},
    )
    create_db_and_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def lifecycle(db_engine):
    return TaskLifecycleManager(db_engine)


@pytest.fixture
def client(db_engine, lifecycle):
    """Test app with the API routers, bound to the per-test database (no middleware)."""
    test_app = FastAPI()
    register_exception_handlers(test_app)
    test_app.include_router(auth_router)
    test_app.include_router(engineers_router)
    test_app.include_router(tasks_router)

    def _session():
        with Session(db_engine) as session:
            yield session

    test_app.dependency_overrides[get_session] = _session
    test_app.state.task_lifecycle = lifecycle
    return TestClient(test_app)


@pytest.fixture
def make_user(db_engine):
    """Factory: persist a user and return it (detached)."""
    counter = {"n": 0}

    def _make(role: str = "ENGINEER", username: str | None = None, name: str | None = None,
              password: str = "secret123") -> User:
        counter["n"] += 1
        n = counter["n"]
        user = User(
            username=username or f"{role.lower()}{n}",
            name=name or f"{role.title()} {n}",
            password_hash=hash_password(password),
            role=role,
        )
        with Session(db_engine) as session:
            session.add(user)
            session.commit()
            session.refresh(user)
            session.expunge(user)
        return user

    return _make


@pytest.fixture
def make_task(db_engine):
    """Factory: persist a task directly (bypassing the API) and return it."""

    def _make(slots, assigned_to=(), status: str = "ACTIVE", project: str = "Seeded project",
              created_by_id: str = "seed") -> Task:
        task = Task(
            project=project,
            time_slots=[
                {"startDateTime": start.isoformat(), "endDateTime": end.isoformat()}
                for start, end in slots
            ],
            assigned_to=list(assigned_to),
            contact_no="555-0100",
            status=status,
            created_by_id=created_by_id,
        )
        with Session(db_engine) as session:
            session.add(task)
            session.commit()
            session.refresh(task)
            session.expunge(task)
        return task

    return _make


def auth_header(user) -> dict:
    token = create_access_token(user_id=user.id, username=user.username, name=user.name, role=user.role)
    return {"Authorization": f"Bearer {token}"}


def slot_json(start, end) -> dict:
    return {"startDateTime": start.isoformat(), "endDateTime": end.isoformat()}


def hours_from_now(hours: float):
    return utcnow() + timedelta(hours=hours)
