# tests/test_message_generator.py

from datetime import datetime, timedelta

import pytest

from taskmanager.services.message_generator import (
    MessageGenerator,
    format_overdue_duration,
    format_time_until,
)

from .fakes import FixedClock, first_choice

NOW = datetime(2026, 3, 10, 12, 0, 0)


@pytest.fixture()
def generator() -> MessageGenerator:
    return MessageGenerator(chooser=first_choice, clock=FixedClock(NOW))


def make_task(**fields):
    task = {
        "title": "Ship release",
        "type": "work",
        "priority": "medium",
        "due_date": NOW + timedelta(days=1, hours=3),
    }
    task.update(fields)
    return task


def test_format_time_until_breakdowns():
    assert format_time_until(NOW + timedelta(days=2, hours=5), NOW) == "2 days, 5 hours"
    assert format_time_until(NOW + timedelta(hours=1, minutes=30), NOW) == "1 hour, 30 minutes"
    assert format_time_until(NOW + timedelta(minutes=4), NOW) == "4 minutes"
    assert format_time_until(NOW - timedelta(minutes=1), NOW) == "Overdue"


def test_format_overdue_duration_clamps_future_dates():
    assert format_overdue_duration(NOW - timedelta(days=1, hours=2), NOW) == "1 day and 2 hours"
    assert format_overdue_duration(NOW - timedelta(hours=5), NOW) == "5 hours"
    assert format_overdue_duration(NOW + timedelta(hours=1), NOW) == "Not overdue"


def test_push_reminder_includes_icon_and_priority_prefix(generator):
    assert generator.generate_reminder_message(make_task(), "push") == "💼 Work Reminder"
    assert generator.generate_reminder_message(make_task(priority="urgent"), "push") == "💼 🚨 URGENT Work Reminder"


def test_full_reminder_has_due_and_remaining_sections(generator):
    text = generator.generate_reminder_message(make_task(tags=["q1", "release"], priority="high"))

    assert text.startswith("💼 ⚡ HIGH PRIORITY Work Reminder")
    assert 'Time to focus on your work task: "Ship release"' in text
    assert "Time Remaining: 1 day, 3 hours" in text
    assert "Priority: HIGH" in text
    assert "Tags: q1, release" in text


def test_full_reminder_omits_missing_optional_sections(generator):
    text = generator.generate_reminder_message({"title": "No dates"})

    assert "Due Date" not in text
    assert "Tags" not in text
    assert "Description" not in text
    assert "Priority: MEDIUM" in text


def test_overdue_message_reports_overdue_by(generator):
    task = make_task(due_date=NOW - timedelta(days=3, hours=1))

    assert generator.generate_overdue_message(task, "push") == "💼 🚨 Work Task Overdue"
    assert "Overdue By: 3 days and 1 hour" in generator.generate_overdue_message(task)


def test_completion_message_formats(generator):
    task = make_task(type="meeting")

    assert generator.generate_completion_message(task, "push") == "🤝 ✅ Meeting Completed"
    assert generator.generate_completion_message(task, "short").endswith(
        'Congratulations! "Ship release" has been completed successfully! 🎉'
    )


@pytest.mark.parametrize("task_type", [None, "", "gardening", "WORK"])
def test_unknown_types_fall_back_to_other(generator, task_type):
    task = make_task(type=task_type)

    for event in ("reminder", "overdue", "completion"):
        for message_type in ("short", "full", "push"):
            assert generator.generate(event, task, message_type)
    assert generator.generate_reminder_message(task, "push") == "📝 Task Reminder"


def test_every_known_type_renders(generator):
    for task_type in generator.get_available_task_types():
        task = make_task(type=task_type)
        assert generator.generate_reminder_message(task)
        assert generator.generate_overdue_message(task)
        assert generator.generate_completion_message(task)


def test_random_chooser_only_changes_wording():
    task = make_task()
    generator = MessageGenerator(clock=FixedClock(NOW))

    assert generator.generate_reminder_message(task, "push") == "💼 Work Reminder"
