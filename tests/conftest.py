"""Shared test fixtures for Bearable coaching tests."""

from __future__ import annotations

import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

# Allow running tests without `pip install -e .` by making `src/` importable.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_SRC_DIR = _PROJECT_ROOT / "src"
if str(_SRC_DIR) not in sys.path:
    sys.path.insert(0, str(_SRC_DIR))

from bearable.domains.coaching.catalog import CoachingCatalog, load_catalog  # noqa: E402
from bearable.domains.coaching.domain_logic.care_plan import CarePlanGenerator  # noqa: E402
from bearable.domains.coaching.domain_logic.models import (  # noqa: E402
    CarePlan,
    CoachTeam,
    Pillar,
    User,
)

# ---------------------------------------------------------------------------
# Test hermeticity
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _force_hermetic_test_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CATALOG_DIR", "")
    monkeypatch.delenv("BEARABLE_HOST", raising=False)
    monkeypatch.delenv("BEARABLE_ALLOW_INSECURE_BIND", raising=False)


# ---------------------------------------------------------------------------
# Domain fixtures
# ---------------------------------------------------------------------------

# 11:00 UTC sits more than 15 minutes from every shipped timed-nudge template,
# so only the nudge sources under test fire.
NOW = datetime(2026, 3, 2, 11, 0, tzinfo=timezone.utc)


@pytest.fixture(scope="session")
def catalog() -> CoachingCatalog:
    """The catalog shipped with the package."""
    return load_catalog()


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def user() -> User:
    return User(id="user-1", name="Alex", timezone="UTC")


@pytest.fixture
def coach_team() -> CoachTeam:
    return CoachTeam(
        primary_coach="coach-bearable",
        specialists={
            Pillar.OPTIMAL_NUTRITION: "coach-nutrition",
            Pillar.PHYSICAL_ACTIVITY: "coach-fitness",
        },
    )


@pytest.fixture
def generator(catalog: CoachingCatalog) -> CarePlanGenerator:
    return CarePlanGenerator(catalog)


@pytest.fixture
def plan(
    generator: CarePlanGenerator,
    user: User,
    coach_team: CoachTeam,
    now: datetime,
) -> CarePlan:
    """A fresh all-pillar plan created at ``now``."""
    return generator.create_care_plan(user, coach_team, now=now)


@pytest.fixture
def single_goal_plan(
    generator: CarePlanGenerator,
    user: User,
    coach_team: CoachTeam,
    now: datetime,
) -> CarePlan:
    """A plan scoped to one pillar, so each phase holds a single goal."""
    return generator.create_care_plan(
        user, coach_team, [Pillar.PHYSICAL_ACTIVITY], now=now
    )
