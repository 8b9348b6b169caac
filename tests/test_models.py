# tests/test_models.py

from datetime import timedelta

import pytest
from sqlalchemy import DateTime
from sqlmodel import Session

from taskmanager.models import NotificationLog, Reminder, Task, User

from .conftest import NOW


@pytest.mark.parametrize("model", [Task, Reminder, User, NotificationLog])
def test_timestamps_are_stored_as_naive_utc(model):
    columns = [c for c in model.__table__.columns if isinstance(c.type, DateTime)]

    assert columns
    assert all(type(c.type) is DateTime and c.type.timezone is False for c in columns)


def test_naive_timestamps_round_trip(engine, make_user, make_task):
    user = make_user()
    task = make_task(user, reminders=[{"time": NOW + timedelta(hours=1)}], completed_at=NOW)

    with Session(engine) as session:
        stored = session.get(Task, task.id)
        assert stored.due_date == NOW + timedelta(days=2)
        assert stored.completed_at == NOW
        assert stored.due_date.tzinfo is None
        assert stored.reminders[0].time == NOW + timedelta(hours=1)
