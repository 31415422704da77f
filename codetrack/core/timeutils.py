"""
Time helpers

The judge reports timestamps as UNIX seconds, sometimes as strings, sometimes
in milliseconds. Everything is converted to float epoch seconds by
to_epoch_seconds() before any comparison. Stored datetimes are naive UTC.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

# Anything above this is milliseconds (1e11 s is the year 5138)
_MILLISECONDS_THRESHOLD = 1e11


def utcnow() -> datetime:
    """Naive UTC now, matching what the document store hands back"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_utc_naive(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def to_epoch_seconds(value: Any) -> float:
    """
    Normalize a timestamp to epoch seconds.

    Accepts datetimes (naive = UTC), ints/floats in seconds or milliseconds,
    numeric strings, and ISO-8601 strings.

    Raises:
        ValueError: value is not a recognisable timestamp
    """
    if isinstance(value, bool):
        raise ValueError(f"Not a timestamp: {value!r}")

    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.timestamp()

    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            raise ValueError("Empty timestamp")
        try:
            number = float(text)
        except ValueError:
            return to_epoch_seconds(datetime.fromisoformat(text.replace("Z", "+00:00")))
    else:
        raise ValueError(f"Not a timestamp: {value!r}")

    if number != number or number < 0:
        raise ValueError(f"Not a timestamp: {value!r}")
    if number > _MILLISECONDS_THRESHOLD:
        number = number / 1000.0
    return number


def from_epoch_seconds(seconds: float) -> datetime:
    return datetime.fromtimestamp(seconds, tz=timezone.utc).replace(tzinfo=None)


# ==================== DERIVED STATUS ====================

class ContestStatus(str, Enum):
    UPCOMING = "upcoming"
    ACTIVE = "active"
    ENDED = "ended"


def contest_status(now: datetime, start_time: datetime, end_time: datetime) -> ContestStatus:
    """Status is always computed from the wall clock, never stored"""
    now_s = to_epoch_seconds(now)
    if now_s < to_epoch_seconds(start_time):
        return ContestStatus.UPCOMING
    if now_s <= to_epoch_seconds(end_time):
        return ContestStatus.ACTIVE
    return ContestStatus.ENDED


def assignment_status(now: datetime, deadline: Optional[datetime]) -> str:
    if deadline is None:
        return "active"
    return "past" if to_epoch_seconds(now) > to_epoch_seconds(deadline) else "active"
