"""Error types raised by the notification and scheduling services."""


class NotificationError(Exception):
    """Base class for notification channel failures."""

    code = "notification_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotConfigured(NotificationError):
    """A required channel (SMTP) has no credentials."""

    code = "not_configured"


class ChannelUnavailable(NotificationError):
    """The realtime channel layer was never initialised."""

    code = "channel_unavailable"


class DispatchFailed(NotificationError):
    """The transport rejected or failed to deliver a message."""

    code = "dispatch_failed"


class StoreQueryFailed(Exception):
    """A scheduler query against the task store failed."""


class NotFound(Exception):
    """A user or task referenced during processing no longer exists."""


class ReminderValidationError(ValueError):
    """A reminder time is not strictly before the task's due date."""
