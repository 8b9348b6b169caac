"""
Logging setup for the API and its background schedulers.

Services log through module loggers; the scheduler loops additionally emit
one JSON line per run through ``StructuredLogger`` so scan summaries can be
grepped and shipped as-is.
"""

import json
import logging
import os
import sys

from taskmanager.utils.time import utcnow

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str = None) -> None:
    """Attach a stdout handler to the root logger once."""
    level_name = (level or os.environ.get("LOG_LEVEL", "INFO")).upper()
    root = logging.getLogger()
    root.setLevel(getattr(logging, level_name, logging.INFO))

    # Prevent adding handlers multiple times (uvicorn reload, tests)
    if any(getattr(h, "_taskmanager", False) for h in root.handlers):
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._taskmanager = True
    root.addHandler(handler)


class StructuredLogger:
    """Logger that renders each record as a JSON object."""

    def __init__(self, name: str, level: int = logging.INFO):
        """
        Initialize structured logger.

        Args:
            name: Logger name
            level: Logging level
        """
        self.logger = logging.getLogger(name)
        self.logger.setLevel(level)

    def _log_structured(self, level: int, message: str, **kwargs):
        if self.logger.isEnabledFor(level):
            log_data = {
                "timestamp": utcnow().isoformat(),
                "level": logging.getLevelName(level),
                "message": message,
                "service": self.logger.name,
            }
            log_data.update(kwargs)
            self.logger.log(level, json.dumps(log_data, default=str))

    def info(self, message: str, **kwargs):
        self._log_structured(logging.INFO, message, **kwargs)

    def exception(self, message: str, **kwargs):
        """Log exception with traceback."""
        if self.logger.isEnabledFor(logging.ERROR):
            log_data = {
                "timestamp": utcnow().isoformat(),
                "level": "ERROR",
                "message": message,
                "service": self.logger.name,
                "exception": True,
            }
            log_data.update(kwargs)
            self.logger.exception(json.dumps(log_data, default=str))


def get_logger(service_name: str) -> StructuredLogger:
    """Get a structured logger for the specified service."""
    return StructuredLogger(service_name)
