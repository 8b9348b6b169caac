"""User model for SQLModel."""
from sqlmodel import SQLModel, Field, Relationship
from sqlalchemy import DateTime
from datetime import datetime
from typing import TYPE_CHECKING
import uuid

from taskmanager.utils.time import utcnow

if TYPE_CHECKING:
    from taskmanager.models.task import Task


class User(SQLModel, table=True):
    """User entity for authentication, task ownership and notification preferences."""

    id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        primary_key=True,
        index=True
    )
    email: str = Field(unique=True, index=True, max_length=255)
    name: str | None = Field(default=None, max_length=255)
    password_hash: str = Field(max_length=255)

    # Notification channel preferences
    notify_email: bool = Field(default=True)
    notify_push: bool = Field(default=True)
    timezone: str = Field(default="UTC", max_length=64)

    last_login: datetime | None = Field(default=None, sa_type=DateTime)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)

    # Relationships
    tasks: list["Task"] = Relationship(
        back_populates="user",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"}
    )
