"""Care plan, nudge, and escalation models plus domain enumerations.

Closed vocabularies are ``str``-valued enums so they compare equal to their
wire values and can be used directly as dict keys in JSON payloads.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class Pillar(str, enum.Enum):
    """The six lifestyle-medicine pillars."""

    OPTIMAL_NUTRITION = "optimal_nutrition"
    PHYSICAL_ACTIVITY = "physical_activity"
    STRESS_MANAGEMENT = "stress_management"
    RESTORATIVE_SLEEP = "restorative_sleep"
    CONNECTEDNESS = "connectedness"
    SUBSTANCE_AVOIDANCE = "substance_avoidance"

    @property
    def display_name(self) -> str:
        return self.value.replace("_", " ")


ALL_PILLARS: tuple[Pillar, ...] = tuple(Pillar)


class PlanPhase(str, enum.Enum):
    """Care plan stages, declared in the order a plan moves through them."""

    ASSESSMENT = "assessment"
    INITIATION = "initiation"
    OPTIMIZATION = "optimization"
    MAINTENANCE = "maintenance"


PHASE_ORDER: tuple[PlanPhase, ...] = tuple(PlanPhase)


class GoalStatus(str, enum.Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    PAUSED = "paused"
    ARCHIVED = "archived"


class CommunicationStyle(str, enum.Enum):
    GENTLE = "gentle"
    ENCOURAGING = "encouraging"
    DIRECT = "direct"
    SUPPORTIVE = "supportive"


class NudgeStyle(str, enum.Enum):
    GENTLE = "gentle"
    MOTIVATIONAL = "motivational"
    DIRECT = "direct"
    SCIENTIFIC = "scientific"


class RequirementFrequency(str, enum.Enum):
    DAILY = "daily"
    WEEKLY = "weekly"


class TriggerType(str, enum.Enum):
    MISSED_GOALS = "missed_goals"
    HEALTH_DECLINE = "health_decline"
    NO_ENGAGEMENT = "no_engagement"
    EMERGENCY_PATTERN = "emergency_pattern"
    USER_REQUEST = "user_request"


class Severity(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class Relationship(str, enum.Enum):
    FAMILY = "family"
    FRIEND = "friend"
    HEALTHCARE_PROVIDER = "healthcare_provider"
    PHYSICIAN = "physician"
    NURSE = "nurse"
    COACH = "coach"
    OTHER = "other"


class EscalationLevel(str, enum.Enum):
    """Caregiver designation; doubles as the hierarchy tier name."""

    PRIMARY = "primary"
    SECONDARY = "secondary"
    EMERGENCY = "emergency"


class NudgeType(str, enum.Enum):
    REMINDER = "reminder"
    ENCOURAGEMENT = "encouragement"
    SOCIAL_PROOF = "social_proof"
    GAMIFICATION = "gamification"
    EDUCATION = "education"
    CARE_PLAN_CHECK = "care_plan_check"
    MILESTONE_CELEBRATION = "milestone_celebration"


class NudgeTriggerType(str, enum.Enum):
    TIME_BASED = "time_based"
    ACTIVITY_BASED = "activity_based"
    GOAL_PROGRESS = "goal_progress"
    EXTERNAL_EVENT = "external_event"


class NudgeFrequency(str, enum.Enum):
    ONCE = "once"
    DAILY = "daily"
    WEEKLY = "weekly"
    AS_NEEDED = "as_needed"


class Priority(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    Priority.URGENT: 4,
    Priority.HIGH: 3,
    Priority.MEDIUM: 2,
    Priority.LOW: 1,
}


class UpdateType(str, enum.Enum):
    PROGRESS = "progress"
    MILESTONE = "milestone"
    CONCERN = "concern"
    CELEBRATION = "celebration"
    ALERT = "alert"
    ENCOURAGEMENT = "encouragement"


# ---------------------------------------------------------------------------
# External inputs
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class QuietHours:
    """A daily ``HH:MM`` window; ``start > end`` means it spans midnight."""

    start: str
    end: str


@dataclass
class User:
    """The slice of a user profile the coaching core reads."""

    id: str
    name: str
    communication_style: CommunicationStyle | None = None
    timezone: str = "UTC"
    quiet_hours: QuietHours | None = None


@dataclass
class CoachTeam:
    """Primary coach plus per-pillar specialists (opaque coach ids)."""

    primary_coach: str
    specialists: dict[Pillar, str] = field(default_factory=dict)
    coordination_strategy: str = "collaborative"

    def coach_for(self, pillar: Pillar | None) -> str:
        """Specialist for ``pillar``, or the primary coach when unassigned."""
        if pillar is None:
            return self.primary_coach
        return self.specialists.get(pillar, self.primary_coach)


@dataclass
class ActivityLog:
    """A single logged user activity (read-only to this core)."""

    id: str
    user_id: str
    type: str                  # 'exercise' | 'nutrition' | 'sleep' | 'medication' | 'mood' | 'vitals'
    timestamp: datetime
    description: str = ""
    title: str = ""
    value: float | None = None
    unit: str = ""
    category: str = ""
    source: str = "manual"
    tags: list[str] = field(default_factory=list)


@dataclass
class CaregiverPermissions:
    view_progress: bool = True
    receive_alerts: bool = True
    send_encouragement: bool = True
    access_health_data: bool = False
    emergency_contact: bool = False
    modify_care_plan: bool = False


@dataclass
class CommunicationPreferences:
    preferred_channel: str = "app"          # 'email' | 'sms' | 'app' | 'phone'
    quiet_hours: QuietHours | None = None
    timezone: str | None = None             # falls back to the user's timezone
    urgency_threshold: str = "medium"
    languages: list[str] = field(default_factory=lambda: ["en"])


@dataclass
class Caregiver:
    id: str
    name: str
    relationship: Relationship
    escalation_level: EscalationLevel
    is_active: bool = True
    permissions: CaregiverPermissions = field(default_factory=CaregiverPermissions)
    communication_preferences: CommunicationPreferences = field(
        default_factory=CommunicationPreferences
    )


# ---------------------------------------------------------------------------
# Care plan
# ---------------------------------------------------------------------------

@dataclass
class NudgeConfiguration:
    enabled: bool = True
    frequency: str = "medium"
    preferred_types: list[NudgeType] = field(
        default_factory=lambda: [NudgeType.REMINDER, NudgeType.ENCOURAGEMENT, NudgeType.EDUCATION]
    )
    personalized_style: NudgeStyle = NudgeStyle.MOTIVATIONAL
    respect_quiet_hours: bool = True
    adapt_to_mood_pattern: bool = True


@dataclass
class HealthGoal:
    """One pillar goal inside a phase. ``progress`` is a 0-100 percentage."""

    id: str
    title: str
    description: str
    category: Pillar
    target: str
    timeline: str
    assigned_coach: str
    created_at: datetime
    updated_at: datetime
    progress: int = 0
    status: GoalStatus = GoalStatus.ACTIVE
    nudge_settings: NudgeConfiguration = field(default_factory=NudgeConfiguration)


@dataclass
class CarePlanMilestone:
    id: str
    title: str
    description: str
    target_date: datetime
    is_achieved: bool = False
    achieved_date: datetime | None = None
    celebration_message: str | None = None


@dataclass
class ActivityRequirement:
    """Descriptive expectation for a pillar; never enforced as a hard failure."""

    id: str
    title: str
    description: str
    pillar: Pillar
    frequency: RequirementFrequency
    target_value: float
    target_unit: str
    is_optional: bool = False


@dataclass
class CarePlanPhase:
    id: str
    key: PlanPhase
    name: str
    description: str
    duration_weeks: int
    goals: list[HealthGoal] = field(default_factory=list)
    milestones: list[CarePlanMilestone] = field(default_factory=list)
    required_activities: list[ActivityRequirement] = field(default_factory=list)

    def find_goal(self, goal_id: str) -> HealthGoal | None:
        for goal in self.goals:
            if goal.id == goal_id:
                return goal
        return None

    def average_progress(self) -> float | None:
        """Mean goal progress, or None for a phase without goals."""
        if not self.goals:
            return None
        return sum(g.progress for g in self.goals) / len(self.goals)


@dataclass
class EscalationConditions:
    severity: Severity = Severity.MEDIUM
    threshold: int | None = None
    time_window: str | None = None


@dataclass
class EscalationTrigger:
    id: str
    type: TriggerType
    conditions: EscalationConditions
    escalation_message: str
    target_caregivers: list[str] = field(default_factory=list)
    is_active: bool = True


@dataclass
class CarePlan:
    """A four-phase care plan.

    ``phases`` always holds one phase per :class:`PlanPhase`, in declaration
    order, and ``current_phase`` indexes into it. Both are checked on
    construction.
    """

    id: str
    user_id: str
    title: str
    description: str
    pillars: list[Pillar]
    phases: list[CarePlanPhase]
    assigned_team: CoachTeam
    created_at: datetime
    updated_at: datetime
    next_review: datetime
    current_phase: int = 0
    escalation_triggers: list[EscalationTrigger] = field(default_factory=list)
    protocols: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        keys = tuple(p.key for p in self.phases)
        if keys != PHASE_ORDER:
            raise ValueError(
                f"Care plan must have phases {[p.value for p in PHASE_ORDER]}, "
                f"got {[k.value for k in keys]}"
            )
        if not 0 <= self.current_phase < len(self.phases):
            raise ValueError(f"current_phase out of range: {self.current_phase}")

    @property
    def active_phase(self) -> CarePlanPhase:
        return self.phases[self.current_phase]

    @property
    def is_final_phase(self) -> bool:
        return self.current_phase == len(self.phases) - 1

    def find_trigger(self, trigger_id: str) -> EscalationTrigger | None:
        for trigger in self.escalation_triggers:
            if trigger.id == trigger_id:
                return trigger
        return None


# ---------------------------------------------------------------------------
# Outputs
# ---------------------------------------------------------------------------

@dataclass
class NudgeTrigger:
    type: NudgeTriggerType
    frequency: NudgeFrequency
    conditions: dict[str, Any] = field(default_factory=dict)


@dataclass
class NudgeTiming:
    timezone: str
    respect_quiet_hours: bool = True
    max_per_day: int = 1
    preferred_time: str | None = None


@dataclass
class Nudge:
    id: str
    type: NudgeType
    title: str
    message: str
    trigger: NudgeTrigger
    timing: NudgeTiming
    priority: Priority
    assigned_coach: str
    created_at: datetime
    pillar: Pillar | None = None
    is_active: bool = True


@dataclass
class CaregiverUpdate:
    id: str
    user_id: str
    caregiver_id: str
    type: UpdateType
    title: str
    message: str
    created_at: datetime
    data: dict[str, Any] = field(default_factory=dict)
    is_read: bool = False


@dataclass
class EscalationResult:
    """Outcome of one escalation evaluation pass.

    ``unmet_escalations`` lists fired triggers that reached no caregiver; the
    caller decides how to surface those.
    """

    triggered_escalations: list[EscalationTrigger] = field(default_factory=list)
    urgent_alerts: list[CaregiverUpdate] = field(default_factory=list)
    recommended_actions: list[str] = field(default_factory=list)
    unmet_escalations: list[EscalationTrigger] = field(default_factory=list)


@dataclass
class ProactiveInsight:
    id: str
    user_id: str
    type: str
    title: str
    description: str
    generated_by: str
    priority: Priority
    created_at: datetime
    confidence: float = 0.0
    data: dict[str, Any] = field(default_factory=dict)
    action_recommendations: list[str] = field(default_factory=list)
    pillar: Pillar | None = None
    is_acted_upon: bool = False


@dataclass
class CaregiverSummary:
    overall_status: str          # 'excellent' | 'good' | 'concerning' | 'critical'
    progress_summary: str
    last_update: datetime
    key_insights: list[str] = field(default_factory=list)
    recommended_actions: list[str] = field(default_factory=list)
