"""
Cleanup Service.

Deletes completed tasks once they are older than the retention period and
prunes old notification log rows. Runs once a day at a fixed local hour and
on demand. Never raises to its caller; failures come back as a result dict.
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional

import pytz

from taskmanager.services.notification_log import NotificationLogStore
from taskmanager.services.task_store import TaskStore
from taskmanager.utils.logger import get_logger
from taskmanager.utils.metrics import MetricsCollector
from taskmanager.utils.time import seconds_until_local_hour, utcnow

logger = logging.getLogger(__name__)
cleanup_log = get_logger("taskmanager.cleanup")


class CleanupService:
    """Retention-based housekeeping for completed tasks and notification logs."""

    def __init__(
        self,
        store: TaskStore,
        log_store: NotificationLogStore,
        retention_days: int = 30,
        log_retention_days: int = 90,
        cleanup_hour: int = 2,
        tz=pytz.utc,
        clock: Callable[[], datetime] = utcnow,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.store = store
        self.log_store = log_store
        self.retention_days = retention_days
        self.log_retention_days = log_retention_days
        self.cleanup_hour = cleanup_hour
        self.tz = tz
        self.clock = clock
        self.metrics = metrics or MetricsCollector()

        self._runner: Optional[asyncio.Task] = None
        self.last_run: Optional[datetime] = None

    @property
    def is_running(self) -> bool:
        return self._runner is not None and not self._runner.done()

    def perform_cleanup(self) -> Dict[str, Any]:
        """Delete completed tasks past retention, then prune old notification logs."""
        now = self.clock()
        cutoff = now - timedelta(days=self.retention_days)
        try:
            deleted_count = self.store.delete_completed_before(cutoff)
        except Exception as e:
            logger.error(f"Error during task cleanup: {e}")
            return {"success": False, "error": str(e), "timestamp": now}

        self.metrics.increment_counter("cleanup_deleted_total", deleted_count)
        self.last_run = now
        logger.info(f"Cleanup completed: {deleted_count} completed task(s) older than {self.retention_days} days deleted")

        pruned = self.prune_notification_logs(now)
        return {"success": True, "deleted_count": deleted_count, "pruned_logs": pruned, "timestamp": now}

    def run_cleanup_now(self) -> Dict[str, Any]:
        logger.info("Running manual cleanup")
        return self.perform_cleanup()

    def prune_notification_logs(self, now: Optional[datetime] = None) -> int:
        now = now or self.clock()
        cutoff = now - timedelta(days=self.log_retention_days)
        try:
            pruned = self.log_store.prune_before(cutoff)
        except Exception as e:
            logger.error(f"Error pruning notification logs: {e}")
            return 0
        if pruned:
            logger.info(f"Pruned {pruned} notification log row(s) older than {self.log_retention_days} days")
        return pruned

    def cleanup_by_criteria(self, older_than_days: int, user_id: Optional[str] = None) -> Dict[str, Any]:
        """Delete completed tasks older than ``older_than_days``, optionally for one user only."""
        now = self.clock()
        cutoff = now - timedelta(days=older_than_days)
        criteria = {"older_than_days": older_than_days, "user_id": user_id}
        try:
            deleted_count = self.store.delete_completed_before(cutoff, user_id=user_id)
        except Exception as e:
            logger.error(f"Error during criteria cleanup: {e}")
            return {"success": False, "error": str(e), "criteria": criteria, "timestamp": now}

        self.metrics.increment_counter("cleanup_deleted_total", deleted_count)
        logger.info(f"Criteria cleanup deleted {deleted_count} task(s): {criteria}")
        return {"success": True, "deleted_count": deleted_count, "criteria": criteria, "timestamp": now}

    def get_stats(self) -> Dict[str, Any]:
        cutoff = self.clock() - timedelta(days=self.retention_days)
        try:
            return self.store.completed_counts(cutoff)
        except Exception as e:
            logger.error(f"Error getting cleanup stats: {e}")
            return {"error": str(e)}

    def get_status(self) -> Dict[str, Any]:
        return {
            "running": self.is_running,
            "retention_days": self.retention_days,
            "cleanup_hour": self.cleanup_hour,
            "timezone": str(self.tz),
            "last_run": self.last_run.isoformat() if self.last_run else None,
        }

    # ------------------------------------------------------------------
    # Daily loop
    # ------------------------------------------------------------------

    def start(self):
        if self.is_running:
            return
        self._runner = asyncio.create_task(self._run_loop())
        logger.info(f"Cleanup scheduler started (daily at {self.cleanup_hour:02d}:00 {self.tz})")

    async def stop(self):
        if self._runner is None:
            return
        self._runner.cancel()
        try:
            await self._runner
        except asyncio.CancelledError:
            pass
        self._runner = None
        logger.info("Cleanup scheduler stopped")

    async def _run_loop(self):
        while True:
            await asyncio.sleep(seconds_until_local_hour(self.clock(), self.cleanup_hour, self.tz))
            result = self.perform_cleanup()
            cleanup_log.info("Daily cleanup finished", **result)
