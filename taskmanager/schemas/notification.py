"""Notification endpoint schemas."""
from pydantic import BaseModel, EmailStr, Field


class EmailTestRequest(BaseModel):
    email: EmailStr
    subject: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1)


class TaskEmailRequest(BaseModel):
    email: EmailStr
    task_id: int
    email_type: str = Field(..., pattern=r"^(reminder|overdue|completion)$")
    custom_message: str | None = None


class CustomNotificationRequest(BaseModel):
    email: EmailStr
    subject: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1)
