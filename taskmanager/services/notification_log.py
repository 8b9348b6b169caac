"""Append-only audit sink for notification dispatch attempts."""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, func
from sqlalchemy.engine import Engine
from sqlmodel import Session, select

from taskmanager.models import NotificationLog

logger = logging.getLogger(__name__)


class NotificationLogStore:
    """Writes and queries ``NotificationLog`` rows."""

    def __init__(self, engine: Engine):
        self.engine = engine

    def append(
        self,
        channel: str,
        recipient: str,
        message: str,
        status: str,
        user_id: Optional[str] = None,
        task_id: Optional[int] = None,
        event: Optional[str] = None,
        external_id: Optional[str] = None,
        error: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> Optional[NotificationLog]:
        """Append one row. Failures are logged and swallowed."""
        record = NotificationLog(
            user_id=user_id,
            task_id=task_id,
            channel=channel,
            event=event,
            recipient=recipient[:255],
            message=(message or "")[:500],
            status=status,
            external_id=external_id,
            error=error[:1000] if error else None,
        )
        if created_at is not None:
            record.created_at = created_at
        try:
            with Session(self.engine, expire_on_commit=False) as session:
                session.add(record)
                session.commit()
                session.refresh(record)
            return record
        except Exception as e:
            logger.error(f"Failed to log notification for task {task_id}: {e}")
            return None

    def has_event_since(self, task_id: int, event: str, since: datetime) -> bool:
        """Whether any attempt for ``event`` on ``task_id`` was logged at or after ``since``."""
        statement = (
            select(NotificationLog.id)
            .where(
                NotificationLog.task_id == task_id,
                NotificationLog.event == event,
                NotificationLog.created_at >= since,
            )
            .limit(1)
        )
        with Session(self.engine) as session:
            return session.exec(statement).first() is not None

    def list_for_task(self, task_id: int) -> List[NotificationLog]:
        statement = select(NotificationLog).where(NotificationLog.task_id == task_id).order_by(NotificationLog.id)
        with Session(self.engine) as session:
            return list(session.exec(statement).all())

    def stats_for_user(self, user_id: str, since: datetime) -> List[Dict[str, Any]]:
        """Counts per (channel, status) for ``user_id`` since ``since``."""
        statement = (
            select(NotificationLog.channel, NotificationLog.status, func.count())
            .where(NotificationLog.user_id == user_id, NotificationLog.created_at >= since)
            .group_by(NotificationLog.channel, NotificationLog.status)
            .order_by(NotificationLog.channel, NotificationLog.status)
        )
        with Session(self.engine) as session:
            return [
                {"type": channel, "status": status, "count": count}
                for channel, status, count in session.exec(statement).all()
            ]

    def prune_before(self, cutoff: datetime) -> int:
        with Session(self.engine) as session:
            result = session.execute(delete(NotificationLog).where(NotificationLog.created_at < cutoff))
            session.commit()
            return result.rowcount or 0
