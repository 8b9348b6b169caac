"""
Reminder Scanner.

Periodically finds reminders that fall due within the look-ahead window,
dispatches them on the owner's enabled channels and marks them sent. The
same pass sends at most one overdue alert per task per local calendar day.

Per reminder the lifecycle is: pending (sent=false) -> dispatch attempted ->
sent (sent=true, sent_at=now). There is no retry state; a failed dispatch is
recorded in the notification log and the reminder is still marked sent.
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional

import pytz

from taskmanager.errors import NotFound, StoreQueryFailed
from taskmanager.services.notification_log import NotificationLogStore
from taskmanager.services.notification_service import NotificationService
from taskmanager.services.task_store import DueReminder, TaskStore
from taskmanager.utils.logger import get_logger
from taskmanager.utils.metrics import MetricsCollector
from taskmanager.utils.time import start_of_local_day, utcnow

logger = logging.getLogger(__name__)
scan_log = get_logger("taskmanager.reminder_scanner")


class ReminderScanner:
    """Scans for due reminders and overdue tasks and dispatches notifications."""

    def __init__(
        self,
        store: TaskStore,
        notifier: NotificationService,
        log_store: NotificationLogStore,
        realtime=None,
        lookahead_minutes: int = 5,
        interval_seconds: float = 300,
        tz=pytz.utc,
        clock: Callable[[], datetime] = utcnow,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.store = store
        self.notifier = notifier
        self.log_store = log_store
        self.realtime = realtime
        self.lookahead = timedelta(minutes=lookahead_minutes)
        self.interval_seconds = interval_seconds
        self.tz = tz
        self.clock = clock
        self.metrics = metrics or MetricsCollector()

        self._lock = asyncio.Lock()
        self._runner: Optional[asyncio.Task] = None
        self._window_end: Optional[datetime] = None
        self.last_run: Optional[datetime] = None
        self.last_result: Optional[Dict[str, Any]] = None

    @property
    def is_running(self) -> bool:
        return self._runner is not None and not self._runner.done()

    @property
    def scan_in_progress(self) -> bool:
        return self._lock.locked()

    # ------------------------------------------------------------------
    # Scan
    # ------------------------------------------------------------------

    async def scan(self) -> Dict[str, Any]:
        """
        Run one scan.

        Only one scan runs at a time; a call made while another scan holds
        the lock returns immediately with ``skipped=True``.

        Returns:
            Dict with ``success``, ``processed``, ``failed`` and ``timestamp``,
            plus ``error`` when the reminder queries failed
        """
        if self._lock.locked():
            logger.info("Reminder scan already in progress, skipping")
            return {"success": True, "skipped": True, "processed": 0, "failed": 0, "timestamp": self.clock()}

        async with self._lock:
            with self.metrics.timed("scan_seconds"):
                result = await self._scan()
            self.metrics.increment_counter("scans_total")
            self.last_run = result["timestamp"]
            self.last_result = result
            return result

    async def _scan(self) -> Dict[str, Any]:
        now = self.clock()
        window_end = now + self.lookahead
        # Continue from where the previous window ended so nothing falls between scans
        window_start = now
        if self._window_end is not None and self._window_end < now:
            window_start = self._window_end

        try:
            due = self.store.find_due_reminders(window_start, window_end)
            due.extend(self.store.find_legacy_reminders(window_start, window_end))
        except StoreQueryFailed as e:
            logger.error(f"Reminder scan aborted: {e}")
            return {"success": False, "processed": 0, "failed": 0, "error": str(e), "timestamp": now}
        self._window_end = window_end

        if due:
            logger.info(f"Found {len(due)} reminder(s) due before {window_end.isoformat()}")

        processed = 0
        failed = 0
        for item in due:
            try:
                outcome = await self._process_reminder(item, now)
            except Exception as e:
                logger.exception(f"Error processing reminder {item.key}: {e}")
                failed += 1
                continue
            if outcome is None:
                continue
            if outcome:
                processed += 1
            else:
                failed += 1

        overdue = await self._sweep_overdue(now)

        return {
            "success": True,
            "processed": processed,
            "failed": failed,
            "overdue_alerts": overdue.get("alerted", 0),
            "timestamp": now,
        }

    async def _process_reminder(self, item: DueReminder, now: datetime) -> Optional[bool]:
        """
        Dispatch one due reminder and mark it sent.

        Returns None when the owner no longer exists, otherwise whether at
        least one attempted channel succeeded.
        """
        task = item.task
        user = self.store.get_user(task.user_id)
        if user is None:
            logger.warning(f"Skipping reminder {item.key}: user {task.user_id} not found")
            return None

        report = await self.notifier.send_task_reminder(task, user, item.reminder)

        if item.is_legacy:
            self.store.mark_legacy_reminder_sent(task.id, now)
        else:
            self.store.mark_reminder_sent(item.reminder.id, now)

        if self.realtime is not None:
            await self.realtime.emit(user.id, "task-reminder-sent", {
                "task_id": task.id,
                "reminder_id": item.reminder.id if item.reminder else None,
                "title": task.title,
                "sent_at": now.isoformat(),
            })

        logger.info(f"Reminder {item.key} processed for user {user.id}")
        return report.success

    # ------------------------------------------------------------------
    # Overdue sweep
    # ------------------------------------------------------------------

    async def sweep_overdue(self) -> Dict[str, Any]:
        """
        Alert on pending tasks past their due date.

        A task is alerted at most once per local calendar day: any overdue
        row in the notification log since local midnight suppresses it.
        Shares the scan lock, so it is skipped while a scan is running.
        """
        if self._lock.locked():
            logger.info("Reminder scan in progress, skipping overdue sweep")
            return {"success": True, "skipped": True, "alerted": 0, "timestamp": self.clock()}

        async with self._lock:
            return await self._sweep_overdue(self.clock())

    async def _sweep_overdue(self, now: datetime) -> Dict[str, Any]:
        try:
            tasks = self.store.find_overdue_tasks(now)
        except StoreQueryFailed as e:
            logger.error(f"Overdue sweep aborted: {e}")
            return {"success": False, "alerted": 0, "error": str(e), "timestamp": now}

        since = start_of_local_day(now, self.tz)
        alerted = 0
        for task in tasks:
            try:
                if self.log_store.has_event_since(task.id, "overdue", since):
                    continue

                user = self.store.get_user(task.user_id)
                if user is None:
                    logger.warning(f"Skipping overdue alert for task {task.id}: user {task.user_id} not found")
                    continue

                report = await self.notifier.send_overdue_alert(task, user)
                if not report.results:
                    continue

                alerted += 1
                if self.realtime is not None:
                    await self.realtime.emit(user.id, "task-overdue", {
                        "task_id": task.id,
                        "title": task.title,
                        "due_date": task.due_date.isoformat(),
                    })
            except Exception as e:
                logger.exception(f"Error sending overdue alert for task {task.id}: {e}")

        if alerted:
            logger.info(f"Sent overdue alerts for {alerted} task(s)")
        return {"success": True, "alerted": alerted, "timestamp": now}

    # ------------------------------------------------------------------
    # Manual trigger
    # ------------------------------------------------------------------

    async def trigger_test_reminder(self, task_id: int, user_id: str) -> Dict[str, Any]:
        """Send a reminder for one task now, leaving its sent flags untouched."""
        task = self.store.get_task(task_id, user_id)
        if task is None:
            raise NotFound(f"Task {task_id} not found")
        user = self.store.get_user(user_id)
        if user is None:
            raise NotFound(f"User {user_id} not found")

        report = await self.notifier.send_task_reminder(task, user)
        return {**report.to_dict(), "timestamp": self.clock()}

    # ------------------------------------------------------------------
    # Periodic loop
    # ------------------------------------------------------------------

    def start(self):
        """Start the periodic scan loop on the running event loop."""
        if self.is_running:
            return
        self._runner = asyncio.create_task(self._run_loop())
        logger.info(f"Reminder scanner started (every {self.interval_seconds}s)")

    async def stop(self):
        if self._runner is None:
            return
        self._runner.cancel()
        try:
            await self._runner
        except asyncio.CancelledError:
            pass
        self._runner = None
        logger.info("Reminder scanner stopped")

    async def _run_loop(self):
        interval = max(1.0, float(self.interval_seconds))
        loop = asyncio.get_running_loop()
        next_run = loop.time()
        while True:
            try:
                result = await self.scan()
                scan_log.info("Reminder scan finished", **result)
            except Exception as e:
                scan_log.exception("Reminder scan loop iteration failed", error=str(e))
            # Fixed rate: a slow scan shortens the following sleep
            next_run = max(next_run + interval, loop.time())
            await asyncio.sleep(max(0.0, next_run - loop.time()))

    def status(self) -> Dict[str, Any]:
        return {
            "running": self.is_running,
            "scan_in_progress": self.scan_in_progress,
            "interval_seconds": self.interval_seconds,
            "lookahead_minutes": int(self.lookahead.total_seconds() // 60),
            "last_run": self.last_run.isoformat() if self.last_run else None,
            "last_result": self.last_result,
        }
