"""Task service: CRUD, reminders and dashboard views over a request-scoped session."""
from sqlalchemy import func, or_
from sqlmodel import Session, select
from typing import List, Optional, Tuple
from datetime import datetime, timedelta

from taskmanager.errors import NotFound, ReminderValidationError
from taskmanager.models import Reminder, Task
from taskmanager.schemas.task import (
    CustomNotifications,
    DashboardStats,
    ReminderCreate,
    TaskCountdown,
    TaskCreate,
    TaskUpdate,
)
from taskmanager.utils.time import to_naive_utc, utcnow


def validate_reminder_times(due_date: datetime, reminder_time: Optional[datetime], reminders) -> None:
    """Every reminder, legacy or listed, must fall strictly before the due date."""
    if reminder_time is not None and reminder_time >= due_date:
        raise ReminderValidationError("Reminder time must be before due date")
    for reminder in reminders:
        if to_naive_utc(reminder.time) >= due_date:
            raise ReminderValidationError("All reminder times must be before due date")


def _build_reminder(data: ReminderCreate) -> Reminder:
    return Reminder(
        time=to_naive_utc(data.time),
        message=data.message.model_dump(exclude_none=True) if data.message else None,
    )


class TaskService:
    """Service class for task CRUD operations scoped to one owner."""

    def __init__(self, session: Session):
        self.session = session

    def create(self, user_id: str, data: TaskCreate) -> Task:
        """Create a task with its reminders."""
        due_date = to_naive_utc(data.due_date)
        reminder_time = to_naive_utc(data.reminder_time)
        validate_reminder_times(due_date, reminder_time, data.reminders)

        now = utcnow()
        task = Task(
            user_id=user_id,
            title=data.title,
            description=data.description,
            due_date=due_date,
            reminder_time=reminder_time,
            priority=data.priority,
            type=data.type,
            tags=data.tags,
            custom_notifications=(
                data.custom_notifications.model_dump(exclude_none=True) if data.custom_notifications else {}
            ),
            created_at=now,
            updated_at=now,
        )
        task.reminders = [_build_reminder(r) for r in data.reminders]

        self.session.add(task)
        self.session.commit()
        self.session.refresh(task)
        return task

    def list_for_user(
        self,
        user_id: str,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[Task], int]:
        """Get a page of a user's tasks ordered by due date, plus the total match count."""
        statement = select(Task).where(Task.user_id == user_id)

        if status:
            statement = statement.where(Task.status == status)
        if priority:
            statement = statement.where(Task.priority == priority)
        if search:
            search_pattern = f"%{search}%"
            statement = statement.where(
                or_(Task.title.ilike(search_pattern), Task.description.ilike(search_pattern))
            )

        total = self.session.exec(select(func.count()).select_from(statement.subquery())).one()
        statement = statement.order_by(Task.due_date.asc()).offset((page - 1) * limit).limit(limit)
        return list(self.session.exec(statement).all()), total

    def get_by_id(self, task_id: int, user_id: str) -> Optional[Task]:
        """Get a specific task by ID, ensuring user ownership."""
        statement = select(Task).where(Task.id == task_id).where(Task.user_id == user_id)
        return self.session.exec(statement).first()

    def update(self, task_id: int, user_id: str, data: TaskUpdate) -> Optional[Task]:
        """Apply a partial update, ensuring user ownership."""
        task = self.get_by_id(task_id, user_id)
        if not task:
            return None

        fields = data.model_dump(exclude_unset=True)
        due_date = to_naive_utc(data.due_date) if data.due_date is not None else task.due_date
        reminder_time = to_naive_utc(data.reminder_time) if "reminder_time" in fields else task.reminder_time
        reminders = data.reminders if data.reminders is not None else task.reminders
        validate_reminder_times(due_date, reminder_time, reminders)

        for name in ("title", "description", "priority", "type", "tags"):
            if name in fields:
                setattr(task, name, fields[name])

        task.due_date = due_date
        if "reminder_time" in fields and reminder_time != task.reminder_time:
            task.reminder_time = reminder_time
            task.reminder_sent = False
        if data.reminders is not None:
            task.reminders = [_build_reminder(r) for r in data.reminders]
        if data.custom_notifications is not None:
            task.custom_notifications = data.custom_notifications.model_dump(exclude_none=True)

        now = utcnow()
        if data.status is not None:
            task.set_status(data.status, now)
        task.updated_at = now

        self.session.add(task)
        self.session.commit()
        self.session.refresh(task)
        return task

    def delete(self, task_id: int, user_id: str) -> bool:
        """Delete a task, ensuring user ownership."""
        task = self.get_by_id(task_id, user_id)
        if not task:
            return False

        self.session.delete(task)
        self.session.commit()
        return True

    def complete(self, task_id: int, user_id: str) -> Optional[Task]:
        task = self.get_by_id(task_id, user_id)
        if not task:
            return None

        task.mark_complete(utcnow())
        self.session.add(task)
        self.session.commit()
        self.session.refresh(task)
        return task

    def add_reminder(self, task_id: int, user_id: str, data: ReminderCreate) -> Optional[Task]:
        task = self.get_by_id(task_id, user_id)
        if not task:
            return None

        validate_reminder_times(task.due_date, None, [data])
        task.reminders.append(_build_reminder(data))
        task.updated_at = utcnow()
        self.session.add(task)
        self.session.commit()
        self.session.refresh(task)
        return task

    def remove_reminder(self, task_id: int, user_id: str, reminder_id: str) -> Optional[Task]:
        task = self.get_by_id(task_id, user_id)
        if not task:
            return None

        reminder = next((r for r in task.reminders if r.id == reminder_id), None)
        if reminder is None:
            raise NotFound(f"Reminder {reminder_id} not found")

        task.reminders.remove(reminder)
        task.updated_at = utcnow()
        self.session.add(task)
        self.session.commit()
        self.session.refresh(task)
        return task

    def update_custom_notifications(
        self, task_id: int, user_id: str, settings: CustomNotifications
    ) -> Optional[Task]:
        task = self.get_by_id(task_id, user_id)
        if not task:
            return None

        task.custom_notifications = settings.model_dump(exclude_none=True)
        task.updated_at = utcnow()
        self.session.add(task)
        self.session.commit()
        self.session.refresh(task)
        return task

    def dashboard_stats(self, user_id: str, now: Optional[datetime] = None) -> DashboardStats:
        now = now or utcnow()
        tomorrow = now + timedelta(days=1)

        def count(*conditions) -> int:
            statement = select(func.count()).select_from(Task).where(Task.user_id == user_id, *conditions)
            return self.session.exec(statement).one()

        return DashboardStats(
            total_tasks=count(),
            completed_tasks=count(Task.status == "completed"),
            pending_tasks=count(Task.status == "pending"),
            overdue_tasks=count(Task.status == "pending", Task.due_date < now),
            due_today=count(Task.status == "pending", Task.due_date >= now, Task.due_date <= tomorrow),
            upcoming_tasks=count(Task.status == "pending", Task.due_date > tomorrow),
        )

    def countdown(self, user_id: str, limit: int = 20, now: Optional[datetime] = None) -> List[TaskCountdown]:
        """Pending tasks nearest their due date first, with seconds remaining."""
        now = now or utcnow()
        statement = (
            select(Task)
            .where(Task.user_id == user_id, Task.status == "pending")
            .order_by(Task.due_date.asc())
            .limit(limit)
        )
        return [
            TaskCountdown(
                id=task.id,
                title=task.title,
                due_date=task.due_date,
                time_remaining_seconds=max(0, int((task.due_date - now).total_seconds())),
                is_overdue=task.due_date < now,
                status=task.status,
                priority=task.priority,
            )
            for task in self.session.exec(statement).all()
        ]
