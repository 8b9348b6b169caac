"""
Notification Service.

Delivers task notifications over email (SMTP) and push (websocket) and
appends one audit row per channel attempt. Channel failures are returned as
results, never raised, so batch callers can carry on with the next item.
"""

import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from taskmanager.errors import ChannelUnavailable, DispatchFailed, NotConfigured, NotificationError
from taskmanager.models import Reminder, Task, User
from taskmanager.schemas.task import CustomNotifications, ReminderMessage
from taskmanager.services.message_generator import MessageGenerator
from taskmanager.services.notification_log import NotificationLogStore
from taskmanager.utils.metrics import MetricsCollector
from taskmanager.utils.time import utcnow

logger = logging.getLogger(__name__)

# Completion emails are only sent for these task types
IMPORTANT_COMPLETION_TYPES = ("work", "deadline", "project", "meeting", "appointment")


@dataclass
class ChannelResult:
    """Outcome of one channel attempt."""

    channel: str
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None
    error_code: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


@dataclass
class DispatchReport:
    """Per-channel results for one task event."""

    event: str
    task_id: Optional[int] = None
    results: List[ChannelResult] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """True unless every attempted channel failed."""
        return not self.results or any(r.success for r in self.results)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": self.event,
            "task_id": self.task_id,
            "success": self.success,
            "notifications": [r.to_dict() for r in self.results],
        }


@dataclass
class MessageContent:
    subject: str
    body: str
    push_title: str
    push_body: str


class NotificationService:
    """Dispatches email and push notifications and records every attempt."""

    def __init__(
        self,
        email_transport,
        realtime,
        log_store: NotificationLogStore,
        message_generator: MessageGenerator,
        metrics: Optional[MetricsCollector] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.email_transport = email_transport
        self.realtime = realtime
        self.log_store = log_store
        self.messages = message_generator
        self.metrics = metrics or MetricsCollector()
        self.clock = clock

    # ------------------------------------------------------------------
    # Channel primitives
    # ------------------------------------------------------------------

    def _record(self, result: ChannelResult, **log_fields) -> ChannelResult:
        self.log_store.append(
            channel=result.channel,
            status="sent" if result.success else "failed",
            external_id=result.message_id,
            error=result.error,
            created_at=self.clock(),
            **log_fields,
        )
        if result.success:
            self.metrics.notification_delivered()
        else:
            self.metrics.notification_failed()
        return result

    async def send_email(
        self,
        recipient: str,
        subject: str,
        body: str,
        task_id: Optional[int] = None,
        user_id: Optional[str] = None,
        event: Optional[str] = None,
        summary: Optional[str] = None,
        priority: str = "normal",
    ) -> ChannelResult:
        """Send one email and log the attempt. Never raises."""
        log_fields = {
            "recipient": recipient,
            "message": summary or subject,
            "user_id": user_id,
            "task_id": task_id,
            "event": event,
        }

        if self.email_transport is None or not self.email_transport.is_configured:
            error = NotConfigured("Gmail service not configured")
            logger.warning(f"Email to {recipient} not sent: {error.message}")
            return self._record(
                ChannelResult("email", False, error=error.message, error_code=error.code), **log_fields
            )

        try:
            sent = await self.email_transport.send(to=recipient, subject=subject, text=body, priority=priority)
        except NotificationError as e:
            logger.error(f"Email to {recipient} failed: {e.message}")
            return self._record(ChannelResult("email", False, error=e.message, error_code=e.code), **log_fields)
        except Exception as e:
            error = DispatchFailed(str(e))
            logger.error(f"Email to {recipient} failed: {error.message}")
            return self._record(
                ChannelResult("email", False, error=error.message, error_code=error.code), **log_fields
            )

        logger.info(f"Email sent to {recipient}: {sent.get('message_id')}")
        return self._record(ChannelResult("email", True, message_id=sent.get("message_id")), **log_fields)

    async def send_push(
        self,
        user_id: str,
        title: str,
        body: str,
        task_id: Optional[int] = None,
        event: Optional[str] = None,
        summary: Optional[str] = None,
    ) -> ChannelResult:
        """Emit a ``notification`` event to one user's live connections and log the attempt."""
        log_fields = {
            "recipient": f"user-{user_id}",
            "message": summary or title,
            "user_id": user_id,
            "task_id": task_id,
            "event": event,
        }

        if self.realtime is None:
            error = ChannelUnavailable("Realtime channel not configured")
            logger.warning(f"Push to user {user_id} not sent: {error.message}")
            return self._record(ChannelResult("push", False, error=error.message, error_code=error.code), **log_fields)

        try:
            await self.realtime.emit(user_id, "notification", {
                "type": f"task_{event}" if event else "notification",
                "title": title,
                "message": body,
                "task_id": task_id,
            })
        except Exception as e:
            error = DispatchFailed(str(e))
            logger.error(f"Push notification to user {user_id} failed: {error.message}")
            return self._record(
                ChannelResult("push", False, error=error.message, error_code=error.code), **log_fields
            )

        logger.info(f"Push notification sent to user {user_id}")
        return self._record(ChannelResult("push", True), **log_fields)

    # ------------------------------------------------------------------
    # Channel selection and message resolution
    # ------------------------------------------------------------------

    def enabled_channels(self, task: Task, user: Optional[User]) -> Dict[str, bool]:
        """Task-level switches win; otherwise the user's preferences apply."""
        overrides = CustomNotifications.model_validate(task.custom_notifications or {})
        user_email = user.notify_email if user is not None else True
        user_push = user.notify_push if user is not None else True
        return {
            "email": overrides.email.enabled if overrides.email.enabled is not None else user_email,
            "push": overrides.push.enabled if overrides.push.enabled is not None else user_push,
        }

    def resolve_content(self, event: str, task: Task, reminder: Optional[Reminder] = None) -> MessageContent:
        """
        Pick the text for ``event``: the reminder's own bundle first, then the
        task's ``custom_notifications``, then generated messages.
        """
        bundle = ReminderMessage.model_validate(reminder.message) if reminder is not None and reminder.message else None
        overrides = CustomNotifications.model_validate(task.custom_notifications or {})
        custom_key = f"{event}_message"

        custom_text = None
        if bundle is not None and bundle.custom is not None and bundle.custom.enabled:
            custom_text = getattr(bundle.custom, custom_key, None)
        if not custom_text and overrides.custom.enabled:
            custom_text = getattr(overrides.custom, custom_key, None)

        subject = None
        body = None
        push_title = None
        if bundle is not None:
            if bundle.email is not None:
                subject = bundle.email.subject
                body = bundle.email.body
            push_title = bundle.push
        if event == "reminder":
            subject = subject or overrides.email.subject
            body = body or custom_text or overrides.email.body
        else:
            body = body or custom_text
        push_title = push_title or overrides.push.message

        generated_title = self.messages.generate(event, task, "push")
        return MessageContent(
            subject=subject or generated_title,
            body=body or self.messages.generate(event, task, "full"),
            push_title=push_title or generated_title,
            push_body=custom_text or self.messages.generate(event, task, "short"),
        )

    # ------------------------------------------------------------------
    # Task events
    # ------------------------------------------------------------------

    async def send_enhanced_task_event(
        self,
        event_type: str,
        recipient: Optional[str],
        task: Task,
        message: str,
        user_id: Optional[str] = None,
        user: Optional[User] = None,
        content: Optional[MessageContent] = None,
        email_allowed: bool = True,
    ) -> DispatchReport:
        """
        Send ``event_type`` for ``task`` on every enabled channel.

        Channels are attempted independently: a failed push does not stop the
        email and vice versa.
        """
        user_id = user_id or (user.id if user is not None else task.user_id)
        content = content or MessageContent(
            subject=self.messages.generate(event_type, task, "push"),
            body=message,
            push_title=self.messages.generate(event_type, task, "push"),
            push_body=self.messages.generate(event_type, task, "short"),
        )
        channels = self.enabled_channels(task, user)
        summary = f"{event_type}: {task.title}"
        report = DispatchReport(event=event_type, task_id=task.id)

        if channels["push"] and user_id:
            report.results.append(await self.send_push(
                user_id, content.push_title, content.push_body, task.id, event=event_type, summary=summary
            ))

        if channels["email"] and email_allowed and recipient:
            report.results.append(await self.send_email(
                recipient,
                content.subject,
                message or content.body,
                task_id=task.id,
                user_id=user_id,
                event=event_type,
                summary=summary,
                priority="urgent" if task.priority == "urgent" else "high" if task.priority == "high" else "normal",
            ))

        logger.info(
            f"Sent {len(report.results)} {event_type} notification(s) for task {task.id}: "
            f"{sum(1 for r in report.results if r.success)} succeeded"
        )
        return report

    async def send_task_reminder(self, task: Task, user: User, reminder: Optional[Reminder] = None) -> DispatchReport:
        content = self.resolve_content("reminder", task, reminder)
        report = await self.send_enhanced_task_event(
            "reminder", user.email, task, content.body, user=user, content=content
        )
        if report.results and report.success:
            self.metrics.reminder_sent()
        return report

    async def send_overdue_alert(self, task: Task, user: User) -> DispatchReport:
        content = self.resolve_content("overdue", task)
        report = await self.send_enhanced_task_event(
            "overdue", user.email, task, content.body, user=user, content=content
        )
        if report.results:
            self.metrics.overdue_alert()
        return report

    async def send_task_completion(self, task: Task, user: User) -> DispatchReport:
        content = self.resolve_content("completion", task)
        return await self.send_enhanced_task_event(
            "completion",
            user.email,
            task,
            content.body,
            user=user,
            content=content,
            email_allowed=task.type in IMPORTANT_COMPLETION_TYPES,
        )

    async def send_custom_notification(
        self, user_id: str, subject: str, body: str, email: str
    ) -> Dict[str, Any]:
        result = await self.send_email(email, subject, body, user_id=user_id, event="custom")
        return {"success": result.success, "results": {"email": result.to_dict()}, "timestamp": self.clock()}

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def get_service_status(self) -> Dict[str, Any]:
        email_status = (
            self.email_transport.status()
            if self.email_transport is not None
            else {"service": "Gmail SMTP", "configured": False}
        )
        push_status = self.realtime.status() if self.realtime is not None else {"service": "WebSocket", "configured": False}
        return {"email": email_status, "push": push_status}

    async def test_email_connection(self) -> Dict[str, Any]:
        if self.email_transport is None or not self.email_transport.is_configured:
            raise NotConfigured("Gmail service not configured")
        try:
            await self.email_transport.verify_connection()
        except Exception as e:
            return {"success": False, "message": str(e)}
        return {"success": True, "message": "Gmail SMTP connection verified successfully"}
