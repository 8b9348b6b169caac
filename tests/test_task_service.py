# tests/test_task_service.py

from datetime import datetime, timedelta, timezone

import pytest
from sqlmodel import Session

from taskmanager.errors import NotFound, ReminderValidationError
from taskmanager.schemas.task import CustomNotifications, ReminderCreate, TaskCreate, TaskUpdate
from taskmanager.services.task_service import TaskService
from taskmanager.utils.time import utcnow


@pytest.fixture()
def service(engine):
    with Session(engine, expire_on_commit=False) as session:
        yield TaskService(session)


@pytest.fixture()
def owner(make_user):
    return make_user()


def future(**kwargs) -> datetime:
    return utcnow() + timedelta(**kwargs)


def test_create_with_reminders(service, owner):
    task = service.create(owner.id, TaskCreate(
        title="Dentist",
        due_date=future(days=3),
        type="appointment",
        reminders=[
            ReminderCreate(time=future(days=2), message={"push": "Dentist tomorrow"}),
            ReminderCreate(time=future(days=1)),
        ],
    ))

    assert task.id is not None
    assert [r.message for r in task.reminders] == [None, {"push": "Dentist tomorrow"}]
    assert all(r.sent is False for r in task.reminders)


def test_create_normalises_aware_datetimes(service, owner):
    due = datetime(2030, 1, 1, 12, 0, tzinfo=timezone(timedelta(hours=-5)))

    task = service.create(owner.id, TaskCreate(title="Call", due_date=due))

    assert task.due_date == datetime(2030, 1, 1, 17, 0)


@pytest.mark.parametrize("offset", [timedelta(0), timedelta(hours=1)])
def test_reminder_must_precede_due_date(service, owner, offset):
    due = future(days=1)

    with pytest.raises(ReminderValidationError):
        service.create(owner.id, TaskCreate(title="Late", due_date=due, reminders=[ReminderCreate(time=due + offset)]))
    with pytest.raises(ReminderValidationError):
        service.create(owner.id, TaskCreate(title="Late", due_date=due, reminder_time=due + offset))


def test_update_rechecks_existing_reminders_against_new_due_date(service, owner):
    task = service.create(owner.id, TaskCreate(
        title="Report", due_date=future(days=5), reminders=[ReminderCreate(time=future(days=4))]
    ))

    with pytest.raises(ReminderValidationError):
        service.update(task.id, owner.id, TaskUpdate(due_date=future(days=3)))


def test_status_transitions_maintain_completed_at(service, owner):
    task = service.create(owner.id, TaskCreate(title="Laundry", due_date=future(days=1)))

    completed = service.update(task.id, owner.id, TaskUpdate(status="completed"))
    assert completed.completed_at is not None

    reopened = service.update(task.id, owner.id, TaskUpdate(status="in-progress"))
    assert reopened.completed_at is None

    assert service.complete(task.id, owner.id).completed_at is not None


def test_changing_legacy_reminder_resets_sent_flag(service, owner):
    task = service.create(owner.id, TaskCreate(title="Pay", due_date=future(days=2), reminder_time=future(days=1)))
    task.reminder_sent = True
    service.session.add(task)
    service.session.commit()

    updated = service.update(task.id, owner.id, TaskUpdate(reminder_time=future(hours=12)))

    assert updated.reminder_sent is False


def test_add_and_remove_reminder(service, owner):
    task = service.create(owner.id, TaskCreate(title="Gym", due_date=future(days=2)))

    task = service.add_reminder(task.id, owner.id, ReminderCreate(time=future(days=1)))
    assert len(task.reminders) == 1

    with pytest.raises(ReminderValidationError):
        service.add_reminder(task.id, owner.id, ReminderCreate(time=future(days=3)))

    task = service.remove_reminder(task.id, owner.id, task.reminders[0].id)
    assert task.reminders == []

    with pytest.raises(NotFound):
        service.remove_reminder(task.id, owner.id, "missing")


def test_other_users_cannot_see_tasks(service, owner, make_user):
    intruder = make_user(email="intruder@example.com")
    task = service.create(owner.id, TaskCreate(title="Private", due_date=future(days=1)))

    assert service.get_by_id(task.id, intruder.id) is None
    assert service.update(task.id, intruder.id, TaskUpdate(title="x")) is None
    assert service.delete(task.id, intruder.id) is False


def test_list_filters_and_paginates(service, owner):
    for i in range(5):
        service.create(owner.id, TaskCreate(title=f"Task {i}", due_date=future(days=i + 1), priority="high" if i % 2 else "low"))

    tasks, total = service.list_for_user(owner.id, priority="high", page=1, limit=1)
    assert total == 2
    assert [t.title for t in tasks] == ["Task 1"]

    tasks, total = service.list_for_user(owner.id, search="task 4")
    assert total == 1


def test_update_custom_notifications(service, owner):
    task = service.create(owner.id, TaskCreate(title="Call mum", due_date=future(days=1)))

    updated = service.update_custom_notifications(
        task.id, owner.id, CustomNotifications.model_validate({"email": {"enabled": False}})
    )

    assert updated.custom_notifications["email"]["enabled"] is False


def test_dashboard_stats_and_countdown(service, owner):
    service.create(owner.id, TaskCreate(title="Soon", due_date=future(hours=3)))
    service.create(owner.id, TaskCreate(title="Later", due_date=future(days=5)))
    done = service.create(owner.id, TaskCreate(title="Done", due_date=future(days=1)))
    service.complete(done.id, owner.id)

    stats = service.dashboard_stats(owner.id)
    assert (stats.total_tasks, stats.completed_tasks, stats.pending_tasks) == (3, 1, 2)
    assert (stats.due_today, stats.upcoming_tasks, stats.overdue_tasks) == (1, 1, 0)

    countdown = service.countdown(owner.id)
    assert [c.title for c in countdown] == ["Soon", "Later"]
    assert countdown[0].time_remaining_seconds > 0
