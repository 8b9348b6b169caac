"""SQLModel tables."""
from taskmanager.models.user import User
from taskmanager.models.task import Task, Reminder, TASK_PRIORITIES, TASK_STATUSES, TASK_TYPES
from taskmanager.models.notification import NotificationLog

__all__ = [
    "User",
    "Task",
    "Reminder",
    "NotificationLog",
    "TASK_PRIORITIES",
    "TASK_STATUSES",
    "TASK_TYPES",
]
