"""Time helpers shared by the nudge and escalation engines.

Everything here is a pure function of its arguments; callers pass the
current time in explicitly.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from bearable.domains.coaching.domain_logic.models import QuietHours

logger = logging.getLogger(__name__)

DEFAULT_TIME_WINDOW = timedelta(hours=72)

_WINDOW_UNITS = {
    "hour": timedelta(hours=1),
    "hours": timedelta(hours=1),
    "day": timedelta(days=1),
    "days": timedelta(days=1),
    "week": timedelta(weeks=1),
    "weeks": timedelta(weeks=1),
}

_WINDOW_RE = re.compile(r"(\d+)\s*([A-Za-z]+)")
_CLOCK_RE = re.compile(r"(\d{1,2}):(\d{2})")


def parse_time_window(time_window: str | None) -> timedelta:
    """Parse ``"<integer> <unit>"`` (hour/day/week, singular or plural).

    Anything unrecognised falls back to 72 hours.
    """
    if not time_window:
        return DEFAULT_TIME_WINDOW
    match = _WINDOW_RE.search(time_window)
    if match:
        unit = _WINDOW_UNITS.get(match.group(2).lower())
        if unit is not None:
            return int(match.group(1)) * unit
    logger.debug("Unrecognised time window %r; using default", time_window)
    return DEFAULT_TIME_WINDOW


def to_local(now: datetime, tz_name: str | None) -> datetime:
    """Convert an aware ``now`` into ``tz_name``; naive values pass through."""
    if now.tzinfo is None or not tz_name:
        return now
    try:
        return now.astimezone(ZoneInfo(tz_name))
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown timezone %r; using time as given", tz_name)
        return now


def clock_to_minutes(clock: str) -> int | None:
    """``"HH:MM"`` -> minutes after midnight, or None when unparseable."""
    match = _CLOCK_RE.search(clock or "")
    if not match:
        return None
    return int(match.group(1)) * 60 + int(match.group(2))


def minutes_of_day(moment: datetime) -> int:
    return moment.hour * 60 + moment.minute


def in_quiet_hours(local_now: datetime, quiet_hours: QuietHours | None) -> bool:
    """Whether ``local_now`` falls inside the quiet window (bounds inclusive).

    ``start < end`` is a same-day window; ``start > end`` spans midnight. A
    missing, unparseable, or zero-length window is never quiet.
    """
    if quiet_hours is None:
        return False
    start = clock_to_minutes(quiet_hours.start)
    end = clock_to_minutes(quiet_hours.end)
    if start is None or end is None or start == end:
        return False

    current = minutes_of_day(local_now)
    if start < end:
        return start <= current <= end
    return current >= start or current <= end


def whole_days_between(earlier: datetime, later: datetime) -> int:
    """Whole days elapsed from ``earlier`` to ``later`` (floored)."""
    return (later - earlier) // timedelta(days=1)
