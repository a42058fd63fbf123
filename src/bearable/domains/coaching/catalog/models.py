"""Read-only catalog records: phase definitions, goal and nudge templates."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

from bearable.domains.coaching.domain_logic.models import (
    NudgeFrequency,
    PHASE_ORDER,
    Pillar,
    PlanPhase,
    RequirementFrequency,
)


@dataclass(frozen=True)
class MilestoneTemplate:
    id: str
    title: str
    description: str


@dataclass(frozen=True)
class RequirementTemplate:
    """Per-pillar activity expectation attached to every phase goal set."""

    frequency: RequirementFrequency
    target_value: float
    target_unit: str
    title: str               # may contain {pillar}
    description: str         # may contain {pillar}


@dataclass(frozen=True)
class PhaseDefinition:
    key: PlanPhase
    id: str
    name: str
    description: str
    duration_weeks: int
    timeline: str
    milestone: MilestoneTemplate
    requirement: RequirementTemplate


@dataclass(frozen=True)
class GoalTemplate:
    title: str
    description: str
    target: str


@dataclass(frozen=True)
class TimedNudgeTemplate:
    """A nudge that fires near a preferred local time of day."""

    id: str
    title: str
    message_template: str    # may contain {userName}
    preferred_time: str      # HH:MM
    frequency: NudgeFrequency
    pillar: Pillar | None = None


@dataclass(frozen=True)
class CoachingCatalog:
    """Everything the generator and nudge engine read but never change.

    Built once by :func:`bearable.domains.coaching.catalog.loader.load_catalog`
    and handed to the engines explicitly.
    """

    phases: tuple[PhaseDefinition, ...]
    goal_templates: Mapping[tuple[Pillar, PlanPhase], GoalTemplate]
    timed_nudges: tuple[TimedNudgeTemplate, ...] = ()
    pillar_messages: Mapping[Pillar, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        keys = tuple(p.key for p in self.phases)
        if keys != PHASE_ORDER:
            raise ValueError(
                f"Catalog phases must be {[p.value for p in PHASE_ORDER]}, "
                f"got {[k.value for k in keys]}"
            )
        object.__setattr__(self, "goal_templates", MappingProxyType(dict(self.goal_templates)))
        object.__setattr__(self, "pillar_messages", MappingProxyType(dict(self.pillar_messages)))

    def goal_template(self, pillar: Pillar, phase: PlanPhase) -> GoalTemplate | None:
        return self.goal_templates.get((pillar, phase))

    def pillar_message(self, pillar: Pillar) -> str:
        return self.pillar_messages.get(
            pillar,
            f"Let's spend a little more time on {pillar.display_name}, {{userName}}.",
        )
