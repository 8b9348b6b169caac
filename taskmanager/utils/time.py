"""Time helpers. All persisted timestamps are naive UTC."""
from datetime import datetime, timedelta, timezone
from typing import Optional

import pytz


def utcnow() -> datetime:
    """Current time as a naive UTC datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalise an aware or naive datetime to naive UTC."""
    if value is None:
        return None
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def start_of_local_day(now: datetime, tz) -> datetime:
    """Naive UTC instant at which the calendar day containing ``now`` began in ``tz``."""
    local = pytz.utc.localize(now).astimezone(tz)
    midnight = tz.localize(datetime(local.year, local.month, local.day))
    return midnight.astimezone(pytz.utc).replace(tzinfo=None)


def format_local(value: datetime, tz=None) -> str:
    """Human readable rendering of a naive UTC datetime in ``tz``."""
    tz = tz or pytz.utc
    local = pytz.utc.localize(to_naive_utc(value)).astimezone(tz)
    return local.strftime("%b %d, %Y %I:%M %p %Z")


def seconds_until_local_hour(now: datetime, hour: int, tz) -> float:
    """Seconds from naive UTC ``now`` until the next ``hour``:00 in ``tz``."""
    local = pytz.utc.localize(now).astimezone(tz)
    target = datetime(local.year, local.month, local.day, hour)
    if tz.localize(target) <= local:
        target += timedelta(days=1)
    return (tz.localize(target) - local).total_seconds()
