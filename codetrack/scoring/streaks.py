"""
Streak calculation from a judge submission calendar

Pure and never raises: bad keys are skipped, an empty calendar gives zeros.
Only the presence of a day matters, counts are ignored.
"""

import logging
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Dict, Iterable, List, Mapping, Optional

from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from codetrack.core.config import STREAK_TIMEZONE
from codetrack.core.timeutils import to_epoch_seconds

logger = logging.getLogger(__name__)


def resolve_zone(name: Optional[str]) -> tzinfo:
    if not name or name.upper() == "UTC":
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown streak timezone %r, falling back to UTC", name)
        return timezone.utc


def today_in_zone(now: datetime, tz_name: Optional[str] = STREAK_TIMEZONE) -> date:
    """Local calendar day for a naive-UTC (or aware) instant"""
    return datetime.fromtimestamp(to_epoch_seconds(now), tz=resolve_zone(tz_name)).date()


def active_days(calendar: Optional[Mapping], tz: tzinfo = timezone.utc) -> List[date]:
    """Distinct local calendar days with activity, ascending"""
    days = set()
    for key in (calendar or {}):
        try:
            seconds = to_epoch_seconds(key)
            days.add(datetime.fromtimestamp(seconds, tz=tz).date())
        except (ValueError, OverflowError, OSError):
            continue
    return sorted(days)


def _longest_run(days: Iterable[date]) -> int:
    longest = 0
    running = 0
    previous = None
    for day in days:
        if previous is None:
            running = 1
        else:
            gap = (day - previous).days
            if gap == 1:
                running += 1
            elif gap > 1:
                running = 1
            # gap 0 (duplicate day) keeps the run as is
        longest = max(longest, running)
        previous = day
    return longest


def _current_run(days_desc: List[date], today: date) -> int:
    if not days_desc or days_desc[0] < today - timedelta(days=1):
        return 0

    streak = 1
    expected = days_desc[0] - timedelta(days=1)
    for day in days_desc[1:]:
        if day == expected:
            streak += 1
            expected = day - timedelta(days=1)
        elif day < expected:
            break
    return streak


def calculate_streak(
    calendar: Optional[Mapping],
    today: Optional[date] = None,
    tz_name: Optional[str] = STREAK_TIMEZONE
) -> Dict[str, int]:
    """
    Returns {"current_streak", "longest_streak"}.

    The current streak only counts when the latest active day is today or
    yesterday; otherwise the chain is broken and it is 0.
    """
    try:
        tz = resolve_zone(tz_name)
        days = active_days(calendar, tz)
        if not days:
            return {"current_streak": 0, "longest_streak": 0}

        if today is None:
            today = datetime.now(tz).date()

        return {
            "current_streak": _current_run(list(reversed(days)), today),
            "longest_streak": _longest_run(days),
        }
    except Exception:
        logger.exception("Streak calculation failed, returning zeros")
        return {"current_streak": 0, "longest_streak": 0}
