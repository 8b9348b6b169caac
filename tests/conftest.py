# tests/conftest.py

from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session

from taskmanager.config import Settings
from taskmanager.db.config import create_db_engine
from taskmanager.db.init import init_db
from taskmanager.models import Reminder, Task, User
from taskmanager.services.container import build_services

from .fakes import FakeEmailTransport, FakeRealtime, FixedClock, first_choice

NOW = datetime(2026, 3, 10, 12, 0, 0)


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        database_url="sqlite://",
        jwt_secret="test-secret",
        schedulers_enabled=False,
        timezone="UTC",
    )


@pytest.fixture()
def engine():
    """Fresh in-memory database per test."""
    engine = create_db_engine("sqlite://")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def clock() -> FixedClock:
    return FixedClock(NOW)


@pytest.fixture()
def transport() -> FakeEmailTransport:
    return FakeEmailTransport()


@pytest.fixture()
def realtime() -> FakeRealtime:
    return FakeRealtime()


@pytest.fixture()
def services(settings, engine, transport, realtime, clock):
    return build_services(
        settings, engine, transport=transport, realtime=realtime, chooser=first_choice, clock=clock
    )


@pytest.fixture()
def make_user(engine):
    def _make(email: str = "owner@example.com", **fields) -> User:
        user = User(email=email, name="Owner", password_hash="x", **fields)
        with Session(engine, expire_on_commit=False) as session:
            session.add(user)
            session.commit()
            session.refresh(user)
        return user

    return _make


@pytest.fixture()
def make_task(engine):
    def _make(user: User, reminders=(), **fields) -> Task:
        fields.setdefault("title", "Write quarterly report")
        fields.setdefault("due_date", NOW + timedelta(days=2))
        fields.setdefault("type", "work")
        task = Task(user_id=user.id, **fields)
        task.reminders = [Reminder(**r) for r in reminders]
        with Session(engine, expire_on_commit=False) as session:
            session.add(task)
            session.commit()
            session.refresh(task)
        return task

    return _make


@pytest.fixture()
def client(settings, engine, services):
    from taskmanager.main import create_app

    app = create_app(settings=settings, engine=engine, services=services)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def auth(client):
    """Register a user and return its id and bearer headers."""
    response = client.post(
        "/auth/register",
        json={"email": "api@example.com", "password": "secret123", "name": "Api User"},
    )
    assert response.status_code == 201
    body = response.json()
    return {"user_id": body["user_id"], "headers": {"Authorization": f"Bearer {body['token']}"}}
