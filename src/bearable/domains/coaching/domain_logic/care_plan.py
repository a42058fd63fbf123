"""Care plan generation and progress tracking.

The generator instantiates a four-phase plan from the coaching catalog; the
progress functions mutate that plan as goal updates come in. All
timestamps come from the caller-supplied ``now`` so results are
reproducible.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from bearable.domains.coaching.catalog.models import CoachingCatalog, PhaseDefinition
from bearable.domains.coaching.domain_logic.models import (
    ALL_PILLARS,
    ActivityRequirement,
    CarePlan,
    CarePlanMilestone,
    CarePlanPhase,
    CoachTeam,
    CommunicationStyle,
    EscalationConditions,
    EscalationTrigger,
    GoalStatus,
    HealthGoal,
    NudgeConfiguration,
    NudgeStyle,
    Pillar,
    Severity,
    TriggerType,
    User,
)

logger = logging.getLogger(__name__)

PLAN_TITLE = "Lifestyle Medicine Care Plan"
PLAN_DESCRIPTION = (
    "Comprehensive lifestyle intervention plan based on the 6 pillars of lifestyle medicine"
)
STANDARD_PROTOCOLS = [
    "Lifestyle Medicine Comprehensive Assessment",
    "Behavioral Change Protocol",
    "Chronic Disease Prevention Plan",
]
REVIEW_INTERVAL = timedelta(days=30)

# Mean goal progress (percent) at which a phase's milestones are achieved
MILESTONE_PROGRESS_THRESHOLD = 80
# Fraction of completed goals required (with all milestones) to advance
PHASE_COMPLETION_THRESHOLD = 0.8

_NUDGE_STYLES = {
    CommunicationStyle.GENTLE: NudgeStyle.GENTLE,
    CommunicationStyle.ENCOURAGING: NudgeStyle.MOTIVATIONAL,
    CommunicationStyle.DIRECT: NudgeStyle.DIRECT,
    CommunicationStyle.SUPPORTIVE: NudgeStyle.SCIENTIFIC,
}


def nudge_style_for(style: CommunicationStyle | None) -> NudgeStyle:
    """Map a communication preference to a nudge style (default motivational)."""
    return _NUDGE_STYLES.get(style, NudgeStyle.MOTIVATIONAL)


def _stamp(now: datetime) -> str:
    return now.strftime("%Y%m%d%H%M%S")


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------

class CarePlanGenerator:
    """Builds care plans from an injected, read-only catalog.

    Usage::

        generator = CarePlanGenerator(load_catalog())
        plan = generator.create_care_plan(user, coach_team, now=now)
    """

    def __init__(self, catalog: CoachingCatalog) -> None:
        self._catalog = catalog

    def create_care_plan(
        self,
        user: User,
        coach_team: CoachTeam,
        selected_pillars: list[Pillar] | None = None,
        *,
        now: datetime,
    ) -> CarePlan:
        """Create a four-phase care plan for ``user``.

        Args:
            user: Profile of the plan owner.
            coach_team: Coaches stamped onto goals as ``assigned_coach``.
            selected_pillars: Pillars in scope; empty or None means all six.
            now: Creation time; every derived date is relative to it.
        """
        # Preserve caller order but drop repeats
        pillars = list(dict.fromkeys(selected_pillars)) if selected_pillars else list(ALL_PILLARS)
        stamp = _stamp(now)
        style = nudge_style_for(user.communication_style)

        phases = []
        elapsed = timedelta()
        for definition in self._catalog.phases:
            elapsed += timedelta(weeks=definition.duration_weeks)
            phases.append(self._build_phase(
                definition, pillars, coach_team, style, now=now, target_date=now + elapsed,
                stamp=stamp,
            ))

        plan = CarePlan(
            id=f"care-plan-{user.id}-{stamp}",
            user_id=user.id,
            title=PLAN_TITLE,
            description=PLAN_DESCRIPTION,
            pillars=pillars,
            phases=phases,
            assigned_team=coach_team,
            escalation_triggers=create_standard_triggers(user.id),
            protocols=list(STANDARD_PROTOCOLS),
            created_at=now,
            updated_at=now,
            next_review=now + REVIEW_INTERVAL,
        )
        logger.info(
            "Created care plan %s: %d pillars, %d goals",
            plan.id,
            len(pillars),
            sum(len(p.goals) for p in phases),
        )
        return plan

    def _build_phase(
        self,
        definition: PhaseDefinition,
        pillars: list[Pillar],
        coach_team: CoachTeam,
        style: NudgeStyle,
        *,
        now: datetime,
        target_date: datetime,
        stamp: str,
    ) -> CarePlanPhase:
        goals = []
        for pillar in pillars:
            template = self._catalog.goal_template(pillar, definition.key)
            if template is None:
                logger.debug("No goal template for %s/%s", pillar.value, definition.key.value)
                continue
            goals.append(HealthGoal(
                id=f"goal-{pillar.value}-{definition.key.value}-{stamp}",
                title=template.title,
                description=template.description,
                category=pillar,
                target=template.target,
                timeline=definition.timeline,
                assigned_coach=coach_team.coach_for(pillar),
                nudge_settings=NudgeConfiguration(personalized_style=style),
                created_at=now,
                updated_at=now,
            ))

        requirement = definition.requirement
        activities = [
            ActivityRequirement(
                id=f"{definition.key.value}-{pillar.value}",
                title=requirement.title.format(pillar=pillar.display_name),
                description=requirement.description.format(pillar=pillar.display_name),
                pillar=pillar,
                frequency=requirement.frequency,
                target_value=requirement.target_value,
                target_unit=requirement.target_unit,
            )
            for pillar in pillars
        ]

        milestone = CarePlanMilestone(
            id=definition.milestone.id,
            title=definition.milestone.title,
            description=definition.milestone.description,
            target_date=target_date,
        )

        return CarePlanPhase(
            id=definition.id,
            key=definition.key,
            name=definition.name,
            description=definition.description,
            duration_weeks=definition.duration_weeks,
            goals=goals,
            milestones=[milestone],
            required_activities=activities,
        )


def create_standard_triggers(user_id: str) -> list[EscalationTrigger]:
    """The three triggers every new plan starts with, all active."""
    return [
        EscalationTrigger(
            id=f"escalation-no-engagement-{user_id}",
            type=TriggerType.NO_ENGAGEMENT,
            conditions=EscalationConditions(severity=Severity.MEDIUM, time_window="72 hours"),
            escalation_message=(
                "User has not engaged with care plan for 3 days. May need caregiver support."
            ),
        ),
        EscalationTrigger(
            id=f"escalation-missed-goals-{user_id}",
            type=TriggerType.MISSED_GOALS,
            conditions=EscalationConditions(
                severity=Severity.HIGH, threshold=3, time_window="1 week"
            ),
            escalation_message=(
                "User has missed multiple care plan goals. "
                "Consider plan adjustment or caregiver intervention."
            ),
        ),
        EscalationTrigger(
            id=f"escalation-health-decline-{user_id}",
            type=TriggerType.HEALTH_DECLINE,
            conditions=EscalationConditions(
                severity=Severity.CRITICAL, threshold=2, time_window="1 week"
            ),
            escalation_message=(
                "Health indicators suggest decline. Immediate caregiver review recommended."
            ),
        ),
    ]


# ---------------------------------------------------------------------------
# Progress tracking
# ---------------------------------------------------------------------------

def update_progress(
    plan: CarePlan,
    goal_id: str,
    new_progress: int,
    *,
    now: datetime,
) -> CarePlan:
    """Record progress on a current-phase goal and re-evaluate the phase.

    The plan is mutated in place and returned. Only goals in the current
    phase are addressable; an unknown ``goal_id`` leaves the plan untouched.
    Reaching 100 completes the goal permanently; lower values later do not
    re-open it.
    """
    goal = plan.active_phase.find_goal(goal_id)
    if goal is None:
        logger.debug("Goal %s not in current phase of plan %s; ignoring", goal_id, plan.id)
        return plan

    goal.progress = new_progress
    goal.updated_at = now
    if new_progress >= 100:
        goal.status = GoalStatus.COMPLETED

    _check_milestones(plan, now)
    _check_phase_advancement(plan)

    plan.updated_at = now
    return plan


def _check_milestones(plan: CarePlan, now: datetime) -> None:
    phase = plan.active_phase
    average = phase.average_progress()
    if average is None or average < MILESTONE_PROGRESS_THRESHOLD:
        return

    for milestone in phase.milestones:
        if milestone.is_achieved:
            continue
        milestone.is_achieved = True
        milestone.achieved_date = now
        milestone.celebration_message = f"🎉 Congratulations! You've achieved: {milestone.title}"
        logger.info("Milestone achieved on plan %s: %s", plan.id, milestone.id)


def _check_phase_advancement(plan: CarePlan) -> None:
    phase = plan.active_phase
    if not phase.goals or plan.is_final_phase:
        return

    milestones_done = all(m.is_achieved for m in phase.milestones)
    completed = sum(1 for g in phase.goals if g.status == GoalStatus.COMPLETED)
    if milestones_done and completed / len(phase.goals) >= PHASE_COMPLETION_THRESHOLD:
        plan.current_phase += 1
        logger.info(
            "Plan %s advanced from %s to %s",
            plan.id,
            phase.key.value,
            plan.active_phase.key.value,
        )


# ---------------------------------------------------------------------------
# Trigger management
# ---------------------------------------------------------------------------

def set_trigger_active(plan: CarePlan, trigger_id: str, active: bool, *, now: datetime) -> bool:
    """Toggle an escalation trigger. Returns False for an unknown id."""
    trigger = plan.find_trigger(trigger_id)
    if trigger is None:
        return False
    trigger.is_active = active
    plan.updated_at = now
    return True


def assign_trigger_caregivers(
    plan: CarePlan,
    trigger_id: str,
    caregiver_ids: list[str],
    *,
    now: datetime,
) -> bool:
    """Route a trigger to explicit caregivers; an empty list restores tier routing."""
    trigger = plan.find_trigger(trigger_id)
    if trigger is None:
        return False
    trigger.target_caregivers = list(caregiver_ids)
    plan.updated_at = now
    return True
