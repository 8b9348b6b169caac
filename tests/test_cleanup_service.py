# tests/test_cleanup_service.py

import asyncio
from datetime import timedelta

from sqlmodel import Session, select

from taskmanager.models import Reminder

from .conftest import NOW


def test_old_completed_tasks_are_deleted(services, make_user, make_task):
    user = make_user()
    old = make_task(user, status="completed", completed_at=NOW - timedelta(days=31))
    recent = make_task(user, status="completed", completed_at=NOW - timedelta(days=10))
    pending = make_task(user, due_date=NOW - timedelta(days=60))

    result = services.cleanup.run_cleanup_now()

    assert result["success"]
    assert result["deleted_count"] == 1
    assert result["timestamp"] == NOW
    assert services.store.get_task(old.id) is None
    assert services.store.get_task(recent.id) is not None
    assert services.store.get_task(pending.id) is not None


def test_cleanup_is_idempotent(services, make_user, make_task):
    user = make_user()
    make_task(user, status="completed", completed_at=NOW - timedelta(days=45))

    assert services.cleanup.run_cleanup_now()["deleted_count"] == 1
    assert services.cleanup.run_cleanup_now()["deleted_count"] == 0


def test_cleanup_removes_reminders_of_deleted_tasks(services, engine, make_user, make_task):
    user = make_user()
    task = make_task(
        user,
        status="completed",
        completed_at=NOW - timedelta(days=40),
        due_date=NOW - timedelta(days=41),
        reminders=[{"time": NOW - timedelta(days=42)}],
    )

    services.cleanup.run_cleanup_now()

    assert services.store.get_task(task.id) is None
    with Session(engine) as session:
        assert session.exec(select(Reminder).where(Reminder.task_id == task.id)).all() == []


def test_cleanup_never_raises(services, monkeypatch):
    def broken(cutoff, user_id=None):
        raise RuntimeError("disk full")

    monkeypatch.setattr(services.store, "delete_completed_before", broken)

    result = services.cleanup.run_cleanup_now()

    assert result == {"success": False, "error": "disk full", "timestamp": NOW}


def test_cleanup_prunes_old_notification_logs(services):
    services.log_store.append(channel="email", recipient="a@example.com", message="old", status="sent",
                              created_at=NOW - timedelta(days=91))
    kept = services.log_store.append(channel="email", recipient="a@example.com", message="new", status="sent",
                                     created_at=NOW - timedelta(days=5))

    result = services.cleanup.run_cleanup_now()

    assert result["pruned_logs"] == 1
    assert kept is not None
    assert services.cleanup.run_cleanup_now()["pruned_logs"] == 0


def test_cleanup_by_criteria_is_owner_scoped(services, make_user, make_task):
    alice = make_user(email="alice@example.com")
    bob = make_user(email="bob@example.com")
    mine = make_task(alice, status="completed", completed_at=NOW - timedelta(days=8))
    theirs = make_task(bob, status="completed", completed_at=NOW - timedelta(days=8))

    result = services.cleanup.cleanup_by_criteria(7, user_id=alice.id)

    assert result["deleted_count"] == 1
    assert result["criteria"] == {"older_than_days": 7, "user_id": alice.id}
    assert services.store.get_task(mine.id) is None
    assert services.store.get_task(theirs.id) is not None


def test_get_stats_splits_at_retention(services, make_user, make_task):
    user = make_user()
    make_task(user, status="completed", completed_at=NOW - timedelta(days=31))
    make_task(user, status="completed", completed_at=NOW - timedelta(days=2))
    make_task(user, status="completed", completed_at=NOW - timedelta(days=1))
    make_task(user)

    assert services.cleanup.get_stats() == {
        "old_completed_count": 1,
        "total_completed_count": 3,
        "recent_completed_count": 2,
    }


async def test_daily_loop_starts_and_stops(services):
    services.cleanup.start()
    await asyncio.sleep(0)

    assert services.cleanup.get_status()["running"] is True
    await services.cleanup.stop()
    assert services.cleanup.get_status()["running"] is False
