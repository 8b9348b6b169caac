"""
Metrics collection for notification dispatch and the background schedulers.
"""

import threading
import time
from collections import defaultdict
from typing import Any, Dict

from taskmanager.utils.time import utcnow


class MetricsCollector:
    """Collects counters and accumulated timings in process memory."""

    def __init__(self):
        self.metrics = defaultdict(int)
        self.timers = defaultdict(float)
        self.lock = threading.Lock()

        for name in (
            "reminders_sent_total",
            "notifications_delivered_total",
            "notifications_failed_total",
            "overdue_alerts_total",
            "scans_total",
            "cleanup_deleted_total",
        ):
            self.metrics[name] = 0

    def increment_counter(self, metric_name: str, value: int = 1):
        with self.lock:
            self.metrics[metric_name] += value

    def record_timer(self, metric_name: str, duration: float):
        with self.lock:
            self.timers[metric_name] += duration

    def get_metrics(self) -> Dict[str, Any]:
        """Get current metrics values."""
        with self.lock:
            return {
                "counters": dict(self.metrics),
                "timers": dict(self.timers),
                "timestamp": utcnow().isoformat(),
            }

    def reminder_sent(self):
        self.increment_counter("reminders_sent_total")

    def notification_delivered(self):
        self.increment_counter("notifications_delivered_total")

    def notification_failed(self):
        self.increment_counter("notifications_failed_total")

    def overdue_alert(self):
        self.increment_counter("overdue_alerts_total")

    def timed(self, metric_name: str):
        """Context manager that adds the elapsed wall time to ``metric_name``."""
        return _Timer(self, metric_name)


class _Timer:
    def __init__(self, collector: MetricsCollector, metric_name: str):
        self.collector = collector
        self.metric_name = metric_name
        self.start_time = 0.0

    def __enter__(self):
        self.start_time = time.monotonic()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.collector.record_timer(self.metric_name, time.monotonic() - self.start_time)
        return False
