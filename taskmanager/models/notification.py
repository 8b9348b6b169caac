"""Notification audit log model for SQLModel."""
from sqlmodel import SQLModel, Field
from sqlalchemy import DateTime
from datetime import datetime
from typing import Optional

from taskmanager.utils.time import utcnow


class NotificationLog(SQLModel, table=True):
    """Append-only record of a single dispatch attempt on one channel."""

    __tablename__ = "notification_logs"

    id: Optional[int] = Field(default=None, primary_key=True)
    # No foreign keys: log rows outlive the tasks and users they mention
    user_id: Optional[str] = Field(default=None, index=True, max_length=64)
    task_id: Optional[int] = Field(default=None, index=True)
    channel: str = Field(max_length=20)  # email, push
    event: Optional[str] = Field(default=None, max_length=20, index=True)  # reminder, overdue, completion, custom
    recipient: str = Field(max_length=255)
    message: str = Field(max_length=500)
    status: str = Field(max_length=20)  # sent, failed
    external_id: Optional[str] = Field(default=None, max_length=255)
    error: Optional[str] = Field(default=None, max_length=1000)
    created_at: datetime = Field(default_factory=utcnow, index=True, sa_type=DateTime)
