"""
Scheduler-facing task store.

Every method opens its own short ``Session`` against the engine, so the
scanner and the cleanup job never share a unit of work.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import delete, func, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from taskmanager.errors import StoreQueryFailed
from taskmanager.models import Reminder, Task, User

logger = logging.getLogger(__name__)


@dataclass
class DueReminder:
    """One reminder that is due in the current scan window."""

    task: Task
    reminder: Optional[Reminder] = None  # None for the legacy reminder_time field

    @property
    def is_legacy(self) -> bool:
        return self.reminder is None

    @property
    def key(self) -> str:
        return f"{self.task.id}:{self.reminder.id if self.reminder else 'legacy'}"


class TaskStore:
    """Queries and conditional updates used by the reminder scanner and cleanup job."""

    def __init__(self, engine: Engine):
        self.engine = engine

    def _session(self) -> Session:
        return Session(self.engine, expire_on_commit=False)

    def find_due_reminders(self, window_start: datetime, window_end: datetime) -> List[DueReminder]:
        """Unsent reminders of pending tasks whose time falls inside the window, one row per reminder."""
        statement = (
            select(Reminder, Task)
            .join(Task, Reminder.task_id == Task.id)
            .where(
                Task.status == "pending",
                Reminder.sent == False,  # noqa: E712
                Reminder.time >= window_start,
                Reminder.time <= window_end,
            )
            .order_by(Reminder.time)
        )
        try:
            with self._session() as session:
                rows = session.exec(statement).all()
                return [DueReminder(task=task, reminder=reminder) for reminder, task in rows]
        except SQLAlchemyError as e:
            raise StoreQueryFailed(f"due reminder query failed: {e}") from e

    def find_legacy_reminders(self, window_start: datetime, window_end: datetime) -> List[DueReminder]:
        """Pending tasks whose legacy ``reminder_time`` is due and not yet sent."""
        statement = (
            select(Task)
            .where(
                Task.status == "pending",
                Task.reminder_sent == False,  # noqa: E712
                Task.reminder_time.is_not(None),
                Task.reminder_time >= window_start,
                Task.reminder_time <= window_end,
            )
            .order_by(Task.reminder_time)
        )
        try:
            with self._session() as session:
                return [DueReminder(task=task) for task in session.exec(statement).all()]
        except SQLAlchemyError as e:
            raise StoreQueryFailed(f"legacy reminder query failed: {e}") from e

    def find_overdue_tasks(self, now: datetime) -> List[Task]:
        statement = (
            select(Task)
            .where(Task.status == "pending", Task.due_date < now)
            .order_by(Task.due_date)
        )
        try:
            with self._session() as session:
                return list(session.exec(statement).all())
        except SQLAlchemyError as e:
            raise StoreQueryFailed(f"overdue query failed: {e}") from e

    def get_task(self, task_id: int, user_id: Optional[str] = None) -> Optional[Task]:
        statement = select(Task).where(Task.id == task_id)
        if user_id is not None:
            statement = statement.where(Task.user_id == user_id)
        with self._session() as session:
            return session.exec(statement).first()

    def get_user(self, user_id: str) -> Optional[User]:
        with self._session() as session:
            return session.get(User, user_id)

    def mark_reminder_sent(self, reminder_id: str, sent_at: datetime) -> bool:
        """Flip ``sent`` false -> true. Returns False if it was already sent or is gone."""
        with self._session() as session:
            result = session.execute(
                update(Reminder)
                .where(Reminder.id == reminder_id, Reminder.sent == False)  # noqa: E712
                .values(sent=True, sent_at=sent_at)
            )
            session.commit()
            return result.rowcount == 1

    def mark_legacy_reminder_sent(self, task_id: int, sent_at: datetime) -> bool:
        with self._session() as session:
            result = session.execute(
                update(Task)
                .where(Task.id == task_id, Task.reminder_sent == False)  # noqa: E712
                .values(reminder_sent=True, updated_at=sent_at)
            )
            session.commit()
            return result.rowcount == 1

    def delete_completed_before(self, cutoff: datetime, user_id: Optional[str] = None) -> int:
        """Delete completed tasks whose ``completed_at`` is older than ``cutoff``."""
        with self._session() as session:
            # Reminders go first so the delete does not depend on FK cascade support
            task_ids = select(Task.id).where(Task.status == "completed", Task.completed_at < cutoff)
            if user_id is not None:
                task_ids = task_ids.where(Task.user_id == user_id)
            session.execute(delete(Reminder).where(Reminder.task_id.in_(task_ids)))

            statement = delete(Task).where(Task.status == "completed", Task.completed_at < cutoff)
            if user_id is not None:
                statement = statement.where(Task.user_id == user_id)
            result = session.execute(statement)
            session.commit()
            return result.rowcount or 0

    def completed_counts(self, cutoff: datetime) -> Dict[str, int]:
        """Counts of completed tasks split at ``cutoff``."""
        with self._session() as session:
            total = session.exec(
                select(func.count()).select_from(Task).where(Task.status == "completed")
            ).one()
            old = session.exec(
                select(func.count()).select_from(Task).where(
                    Task.status == "completed", Task.completed_at < cutoff
                )
            ).one()
            recent = session.exec(
                select(func.count()).select_from(Task).where(
                    Task.status == "completed", Task.completed_at >= cutoff
                )
            ).one()
        return {
            "old_completed_count": old,
            "total_completed_count": total,
            "recent_completed_count": recent,
        }
