"""Task, reminder and notification-override schemas."""
from pydantic import BaseModel, Field
from datetime import datetime
from typing import Any, Dict, Optional, List

PRIORITY_PATTERN = r"^(low|medium|high|urgent)$"
STATUS_PATTERN = r"^(pending|in-progress|completed|cancelled)$"
TYPE_PATTERN = (
    r"^(work|personal|health|finance|education|shopping|meeting|deadline|"
    r"appointment|project|exercise|social|travel|maintenance|other)$"
)


class EmailMessage(BaseModel):
    """Email subject/body override."""
    subject: Optional[str] = Field(None, max_length=100)
    body: Optional[str] = Field(None, max_length=1000)


class CustomMessages(BaseModel):
    """Free-text overrides per lifecycle event."""
    enabled: bool = True
    reminder_message: Optional[str] = Field(None, max_length=500)
    overdue_message: Optional[str] = Field(None, max_length=500)
    completion_message: Optional[str] = Field(None, max_length=500)


class ReminderMessage(BaseModel):
    """Custom message bundle attached to a single reminder."""
    email: Optional[EmailMessage] = None
    push: Optional[str] = Field(None, max_length=100)
    custom: Optional[CustomMessages] = None


class EmailNotificationSettings(BaseModel):
    enabled: Optional[bool] = None  # None inherits the user's preference
    template: str = Field(default="enhanced", pattern=r"^(basic|enhanced|premium)$")
    subject: Optional[str] = Field(None, max_length=100)
    body: Optional[str] = Field(None, max_length=1000)


class PushNotificationSettings(BaseModel):
    enabled: Optional[bool] = None  # None inherits the user's preference
    message: Optional[str] = Field(None, max_length=150)


class CustomNotifications(BaseModel):
    """Task-level channel switches and message overrides."""
    email: EmailNotificationSettings = Field(default_factory=EmailNotificationSettings)
    custom: CustomMessages = Field(default_factory=CustomMessages)
    push: PushNotificationSettings = Field(default_factory=PushNotificationSettings)


class ReminderCreate(BaseModel):
    """Schema for adding a reminder to a task."""
    time: datetime
    message: Optional[ReminderMessage] = None


class ReminderResponse(BaseModel):
    id: str
    time: datetime
    message: Optional[Dict[str, Any]] = None
    sent: bool
    sent_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TaskCreate(BaseModel):
    """Schema for creating a task."""
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    due_date: datetime
    reminder_time: Optional[datetime] = None  # legacy single reminder
    priority: str = Field(default="medium", pattern=PRIORITY_PATTERN)
    type: str = Field(default="other", pattern=TYPE_PATTERN)
    tags: List[str] = Field(default_factory=list, max_length=10)
    reminders: List[ReminderCreate] = Field(default_factory=list)
    custom_notifications: Optional[CustomNotifications] = None


class TaskUpdate(BaseModel):
    """Schema for updating a task; omitted fields are left untouched."""
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    due_date: Optional[datetime] = None
    reminder_time: Optional[datetime] = None
    priority: Optional[str] = Field(None, pattern=PRIORITY_PATTERN)
    status: Optional[str] = Field(None, pattern=STATUS_PATTERN)
    type: Optional[str] = Field(None, pattern=TYPE_PATTERN)
    tags: Optional[List[str]] = Field(None, max_length=10)
    reminders: Optional[List[ReminderCreate]] = None
    custom_notifications: Optional[CustomNotifications] = None


class TaskResponse(BaseModel):
    """Schema for task API responses."""
    id: int
    user_id: str
    title: str
    description: Optional[str]
    due_date: datetime
    reminder_time: Optional[datetime] = None
    reminder_sent: bool = False
    priority: str
    status: str
    type: str
    tags: List[str] = []
    custom_notifications: Dict[str, Any] = {}
    reminders: List[ReminderResponse] = []
    completed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    is_overdue: bool = False
    time_remaining_seconds: int = 0

    class Config:
        from_attributes = True


class TaskCountdown(BaseModel):
    id: int
    title: str
    due_date: datetime
    time_remaining_seconds: int
    is_overdue: bool
    status: str
    priority: str


class DashboardStats(BaseModel):
    total_tasks: int = 0
    completed_tasks: int = 0
    pending_tasks: int = 0
    overdue_tasks: int = 0
    due_today: int = 0
    upcoming_tasks: int = 0
