"""Activity pattern analysis over a user's recent activity log.

Days are calendar days in the user's local timezone. The analysis is a pure
function of the log and the supplied ``now``.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta

from bearable.domains.coaching.domain_logic.models import ALL_PILLARS, ActivityLog, Pillar
from bearable.domains.coaching.domain_logic.time_windows import to_local

PATTERN_WINDOW = timedelta(days=7)
MISSED_DAY_LOOKBACK = 7
STREAK_LOOKBACK_DAYS = 30
LOW_ACTIVITY_THRESHOLD = 2

CONCERNING_KEYWORDS = ["stressed", "anxious", "tired", "overwhelmed", "pain"]

# Activity log type -> pillar it evidences
_TYPE_PILLARS = {
    "nutrition": Pillar.OPTIMAL_NUTRITION,
    "exercise": Pillar.PHYSICAL_ACTIVITY,
    "mood": Pillar.STRESS_MANAGEMENT,
    "sleep": Pillar.RESTORATIVE_SLEEP,
}

_CATEGORY_PILLARS = {"stress": Pillar.STRESS_MANAGEMENT, **{p.value: p for p in ALL_PILLARS}}


@dataclass
class ActivityPatterns:
    missed_days: int = 0
    streak_days: int = 0
    low_activity_pillars: list[Pillar] = field(default_factory=list)
    preferred_activity_times: list[str] = field(default_factory=list)
    concerning_patterns: list[str] = field(default_factory=list)


def pillars_for_entry(entry: ActivityLog) -> set[Pillar]:
    """Pillars an activity entry counts toward (by type and category)."""
    pillars = set()
    by_type = _TYPE_PILLARS.get(entry.type)
    if by_type is not None:
        pillars.add(by_type)
    by_category = _CATEGORY_PILLARS.get(entry.category)
    if by_category is not None:
        pillars.add(by_category)
    return pillars


def active_days(
    activity: list[ActivityLog],
    since: datetime,
    tz_name: str | None = None,
) -> set[date]:
    """Local calendar days with at least one entry at or after ``since``."""
    return {
        to_local(entry.timestamp, tz_name).date()
        for entry in activity
        if entry.timestamp >= since
    }


def count_missed_days(days: set[date], today: date) -> int:
    """Days among the seven before ``today`` with no activity."""
    return sum(
        1 for offset in range(1, MISSED_DAY_LOOKBACK + 1)
        if today - timedelta(days=offset) not in days
    )


def count_streak_days(days: set[date], today: date) -> int:
    """Consecutive active days ending today; stops at the first gap."""
    streak = 0
    for offset in range(STREAK_LOOKBACK_DAYS):
        if today - timedelta(days=offset) not in days:
            break
        streak += 1
    return streak


def find_low_activity_pillars(activity: list[ActivityLog]) -> list[Pillar]:
    counts: Counter[Pillar] = Counter()
    for entry in activity:
        counts.update(pillars_for_entry(entry))
    return [p for p in ALL_PILLARS if counts[p] < LOW_ACTIVITY_THRESHOLD]


def find_preferred_times(activity: list[ActivityLog], tz_name: str | None = None) -> list[str]:
    """Top three ``HH:00`` slots by entry count (ties keep first-seen order)."""
    slots = Counter(f"{to_local(e.timestamp, tz_name).hour:02d}:00" for e in activity)
    return [slot for slot, _ in slots.most_common(3)]


def find_concerning_patterns(activity: list[ActivityLog]) -> list[str]:
    patterns: list[str] = []
    for entry in activity:
        text = entry.description.lower()
        for keyword in CONCERNING_KEYWORDS:
            label = f"frequent_{keyword}"
            if keyword in text and label not in patterns:
                patterns.append(label)
    return patterns


def analyze_activity_patterns(
    activity: list[ActivityLog],
    now: datetime,
    tz_name: str | None = None,
) -> ActivityPatterns:
    """Summarise engagement over the trailing week.

    ``missed_days`` and the pillar counts use the 7-day window; the streak is
    scanned over up to 30 days so long streaks are not capped at a week.
    """
    today = to_local(now, tz_name).date()
    window_start = now - PATTERN_WINDOW
    in_window = [e for e in activity if e.timestamp >= window_start]

    week_days = active_days(activity, window_start, tz_name)
    streak_days = active_days(activity, now - timedelta(days=STREAK_LOOKBACK_DAYS), tz_name)

    return ActivityPatterns(
        missed_days=count_missed_days(week_days, today),
        streak_days=count_streak_days(streak_days, today),
        low_activity_pillars=find_low_activity_pillars(in_window),
        preferred_activity_times=find_preferred_times(activity, tz_name),
        concerning_patterns=find_concerning_patterns(activity),
    )
