"""Application configuration loaded from environment variables."""
import os
from functools import lru_cache
from typing import List, Optional

import pytz
from dotenv import load_dotenv
from pydantic import BaseModel

# Load environment variables from a local .env file when present
load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings(BaseModel):
    """Runtime settings for the API, the schedulers and the notification channels."""

    database_url: str = "sqlite:///./taskmanager.db"
    environment: str = "development"
    frontend_url: Optional[str] = None

    # Authentication
    jwt_secret: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"
    jwt_expire_days: int = 7

    # Gmail SMTP
    gmail_user: Optional[str] = None
    gmail_app_password: Optional[str] = None
    gmail_from_name: str = "ToDo App"
    gmail_reply_to: Optional[str] = None
    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 587

    # Schedulers
    schedulers_enabled: bool = True
    reminder_scan_interval_seconds: int = 300
    reminder_lookahead_minutes: int = 5
    cleanup_retention_days: int = 30
    cleanup_hour: int = 2
    notification_log_retention_days: int = 90
    timezone: str = "UTC"

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the process environment."""
        return cls(
            database_url=os.environ.get("DATABASE_URL", "sqlite:///./taskmanager.db"),
            environment=os.environ.get("ENVIRONMENT", "development"),
            frontend_url=os.environ.get("FRONTEND_URL"),
            jwt_secret=os.environ.get("JWT_SECRET", "change-me-in-production"),
            jwt_expire_days=int(os.environ.get("JWT_EXPIRE_DAYS", "7")),
            gmail_user=os.environ.get("GMAIL_USER"),
            gmail_app_password=os.environ.get("GMAIL_APP_PASSWORD"),
            gmail_from_name=os.environ.get("GMAIL_FROM_NAME", "ToDo App"),
            gmail_reply_to=os.environ.get("GMAIL_REPLY_TO"),
            smtp_host=os.environ.get("SMTP_HOST", "smtp.gmail.com"),
            smtp_port=int(os.environ.get("SMTP_PORT", "587")),
            schedulers_enabled=_env_bool("SCHEDULERS_ENABLED", True),
            reminder_scan_interval_seconds=int(os.environ.get("REMINDER_SCAN_INTERVAL_SECONDS", "300")),
            reminder_lookahead_minutes=int(os.environ.get("REMINDER_LOOKAHEAD_MINUTES", "5")),
            cleanup_retention_days=int(os.environ.get("CLEANUP_RETENTION_DAYS", "30")),
            cleanup_hour=int(os.environ.get("CLEANUP_HOUR", "2")),
            notification_log_retention_days=int(os.environ.get("NOTIFICATION_LOG_RETENTION_DAYS", "90")),
            timezone=os.environ.get("TIMEZONE", "UTC"),
        )

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def tz(self):
        """Resolve the configured timezone, falling back to UTC for unknown names."""
        try:
            return pytz.timezone(self.timezone)
        except pytz.UnknownTimeZoneError:
            return pytz.utc

    @property
    def allowed_origins(self) -> List[str]:
        origins = [
            "http://localhost:3000",
            "http://127.0.0.1:3000",
            "http://localhost:5173",
        ]
        if self.frontend_url and self.frontend_url not in origins:
            origins.append(self.frontend_url)
        return origins


@lru_cache()
def get_settings() -> Settings:
    """Return the process-wide settings, read once from the environment."""
    return Settings.from_env()
