"""Tests for time window parsing and quiet-hours checks."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from bearable.domains.coaching.domain_logic.models import QuietHours
from bearable.domains.coaching.domain_logic.time_windows import (
    DEFAULT_TIME_WINDOW,
    clock_to_minutes,
    in_quiet_hours,
    parse_time_window,
    to_local,
    whole_days_between,
)


def _at(hour: int, minute: int = 0) -> datetime:
    return datetime(2026, 3, 2, hour, minute, tzinfo=timezone.utc)


class TestParseTimeWindow:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("72 hours", timedelta(hours=72)),
            ("1 hour", timedelta(hours=1)),
            ("3 days", timedelta(days=3)),
            ("1 day", timedelta(days=1)),
            ("1 week", timedelta(weeks=1)),
            ("2 weeks", timedelta(weeks=2)),
            ("48hours", timedelta(hours=48)),
            ("2 Weeks", timedelta(weeks=2)),
        ],
    )
    def test_supported_units(self, text, expected):
        assert parse_time_window(text) == expected

    @pytest.mark.parametrize("text", ["", None, "soon", "3 fortnights", "week"])
    def test_unparseable_falls_back_to_72_hours(self, text):
        assert parse_time_window(text) == DEFAULT_TIME_WINDOW == timedelta(hours=72)


class TestQuietHours:
    def test_overnight_window(self):
        quiet = QuietHours(start="22:00", end="07:00")
        assert in_quiet_hours(_at(23), quiet)
        assert in_quiet_hours(_at(3), quiet)
        assert not in_quiet_hours(_at(12), quiet)

    def test_same_day_window(self):
        quiet = QuietHours(start="13:00", end="15:00")
        assert in_quiet_hours(_at(14), quiet)
        assert not in_quiet_hours(_at(16), quiet)

    def test_bounds_inclusive(self):
        quiet = QuietHours(start="22:00", end="07:00")
        assert in_quiet_hours(_at(22), quiet)
        assert in_quiet_hours(_at(7), quiet)
        assert not in_quiet_hours(_at(7, 1), quiet)

    def test_missing_or_degenerate_window_never_quiet(self):
        assert not in_quiet_hours(_at(23), None)
        assert not in_quiet_hours(_at(23), QuietHours(start="22:00", end="22:00"))
        assert not in_quiet_hours(_at(23), QuietHours(start="late", end="07:00"))


class TestLocalTime:
    def test_converts_aware_time(self):
        local = to_local(_at(12), "America/New_York")
        assert local.hour == 7

    def test_naive_time_passes_through(self):
        naive = datetime(2026, 3, 2, 12, 0)
        assert to_local(naive, "America/New_York") is naive

    def test_unknown_zone_keeps_time(self):
        assert to_local(_at(12), "Mars/Olympus_Mons") == _at(12)

    def test_clock_to_minutes(self):
        assert clock_to_minutes("07:30") == 450
        assert clock_to_minutes("noon") is None


class TestWholeDays:
    def test_floors_partial_days(self):
        assert whole_days_between(_at(12), _at(12) + timedelta(days=3, hours=23)) == 3
        assert whole_days_between(_at(12), _at(13)) == 0
