"""Authentication schemas."""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field


class TokenResponse(BaseModel):
    """Response containing JWT token after sign in."""
    token: str
    user_id: str
    email: str


class RegisterRequest(BaseModel):
    """Register request body."""
    email: EmailStr
    password: str = Field(..., min_length=6)
    name: str = Field(..., min_length=1, max_length=255)


class LoginRequest(BaseModel):
    """Login request body."""
    email: EmailStr
    password: str


class NotificationPreferences(BaseModel):
    email: bool = True
    push: bool = True


class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    timezone: Optional[str] = Field(None, max_length=64)
    notification_preferences: Optional[NotificationPreferences] = None


class ProfileResponse(BaseModel):
    id: str
    email: str
    name: Optional[str]
    timezone: str
    notification_preferences: NotificationPreferences
    last_login: Optional[datetime] = None
    created_at: datetime
