"""Task and Reminder models for SQLModel."""
from sqlmodel import SQLModel, Field, Relationship
from sqlalchemy import Column, DateTime, ForeignKey, Integer, JSON, String
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, List, Optional
import uuid

from taskmanager.utils.time import utcnow

if TYPE_CHECKING:
    from taskmanager.models.user import User

TASK_PRIORITIES = ("low", "medium", "high", "urgent")
TASK_STATUSES = ("pending", "in-progress", "completed", "cancelled")
TASK_TYPES = (
    "work", "personal", "health", "finance", "education",
    "shopping", "meeting", "deadline", "appointment",
    "project", "exercise", "social", "travel", "maintenance", "other",
)


class Task(SQLModel, table=True):
    """Task entity with a due date, a legacy single reminder and a list of reminders."""

    id: int | None = Field(default=None, primary_key=True)
    user_id: str = Field(
        sa_column=Column(String, ForeignKey("user.id", ondelete="CASCADE"), index=True, nullable=False)
    )
    title: str = Field(max_length=200, min_length=1)
    description: str | None = Field(default=None, max_length=1000)
    due_date: datetime = Field(index=True, sa_type=DateTime)

    # Legacy single reminder, kept for tasks created before the reminders list
    reminder_time: Optional[datetime] = Field(default=None, index=True, sa_type=DateTime)
    reminder_sent: bool = Field(default=False)

    priority: str = Field(default="medium", max_length=20)  # low, medium, high, urgent
    status: str = Field(default="pending", max_length=20, index=True)
    type: str = Field(default="other", max_length=30)
    tags: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    custom_notifications: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    completed_at: Optional[datetime] = Field(default=None, index=True, sa_type=DateTime)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)

    # Relationships
    user: "User" = Relationship(back_populates="tasks")
    reminders: List["Reminder"] = Relationship(
        back_populates="task",
        sa_relationship_kwargs={
            "cascade": "all, delete-orphan",
            "order_by": "Reminder.time",
            "lazy": "selectin",
        },
    )

    @property
    def is_overdue(self) -> bool:
        return self.status == "pending" and self.due_date < utcnow()

    @property
    def time_remaining_seconds(self) -> int:
        return max(0, int((self.due_date - utcnow()).total_seconds()))

    def mark_complete(self, now: Optional[datetime] = None) -> None:
        """Move to ``completed`` and stamp ``completed_at``."""
        self.set_status("completed", now)

    def set_status(self, status: str, now: Optional[datetime] = None) -> None:
        """Change status keeping ``completed_at`` set only while completed."""
        now = now or utcnow()
        if status == "completed":
            if self.status != "completed" or self.completed_at is None:
                self.completed_at = now
        else:
            self.completed_at = None
        self.status = status
        self.updated_at = now


class Reminder(SQLModel, table=True):
    """A scheduled reminder on a task with its own optional message bundle."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex, primary_key=True, max_length=32)
    task_id: int = Field(
        sa_column=Column(Integer, ForeignKey("task.id", ondelete="CASCADE"), index=True, nullable=False)
    )
    time: datetime = Field(index=True, sa_type=DateTime)
    message: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON))
    sent: bool = Field(default=False, index=True)
    sent_at: Optional[datetime] = Field(default=None, sa_type=DateTime)

    task: Optional[Task] = Relationship(back_populates="reminders")
