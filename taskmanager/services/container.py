"""Explicit wiring of the notification and scheduling services."""
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.engine import Engine

from taskmanager.config import Settings
from taskmanager.services.cleanup_service import CleanupService
from taskmanager.services.email_transport import SmtpEmailTransport
from taskmanager.services.message_generator import Chooser, MessageGenerator
from taskmanager.services.notification_log import NotificationLogStore
from taskmanager.services.notification_service import NotificationService
from taskmanager.services.realtime import ConnectionManager
from taskmanager.services.reminder_scanner import ReminderScanner
from taskmanager.services.task_store import TaskStore
from taskmanager.utils.metrics import MetricsCollector
from taskmanager.utils.time import utcnow


@dataclass
class Services:
    settings: Settings
    metrics: MetricsCollector
    store: TaskStore
    log_store: NotificationLogStore
    realtime: ConnectionManager
    messages: MessageGenerator
    notifier: NotificationService
    scanner: ReminderScanner
    cleanup: CleanupService

    def start_schedulers(self):
        self.scanner.start()
        self.cleanup.start()

    async def stop_schedulers(self):
        await self.cleanup.stop()
        await self.scanner.stop()


def build_services(
    settings: Settings,
    engine: Engine,
    transport=None,
    realtime: Optional[ConnectionManager] = None,
    chooser: Optional[Chooser] = None,
    clock: Callable[[], datetime] = utcnow,
) -> Services:
    """Construct the service graph once; tests pass fakes for the transport, hub, chooser and clock."""
    tz = settings.tz
    metrics = MetricsCollector()
    store = TaskStore(engine)
    log_store = NotificationLogStore(engine)
    realtime = realtime if realtime is not None else ConnectionManager()
    transport = transport if transport is not None else SmtpEmailTransport(settings)
    messages = MessageGenerator(chooser=chooser, clock=clock, tz=tz)

    notifier = NotificationService(transport, realtime, log_store, messages, metrics=metrics, clock=clock)
    scanner = ReminderScanner(
        store,
        notifier,
        log_store,
        realtime=realtime,
        lookahead_minutes=settings.reminder_lookahead_minutes,
        interval_seconds=settings.reminder_scan_interval_seconds,
        tz=tz,
        clock=clock,
        metrics=metrics,
    )
    cleanup = CleanupService(
        store,
        log_store,
        retention_days=settings.cleanup_retention_days,
        log_retention_days=settings.notification_log_retention_days,
        cleanup_hour=settings.cleanup_hour,
        tz=tz,
        clock=clock,
        metrics=metrics,
    )
    return Services(
        settings=settings,
        metrics=metrics,
        store=store,
        log_store=log_store,
        realtime=realtime,
        messages=messages,
        notifier=notifier,
        scanner=scanner,
        cleanup=cleanup,
    )
