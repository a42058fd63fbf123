"""Caregiver-facing plan summaries and proactive insights."""

from __future__ import annotations

from datetime import datetime

from bearable.domains.coaching.domain_logic.models import (
    ActivityLog,
    CarePlan,
    CaregiverSummary,
    Priority,
    ProactiveInsight,
    User,
)
from bearable.domains.coaching.domain_logic.time_windows import whole_days_between

LOW_PROGRESS_BELOW = 30
LOW_PROGRESS_AFTER_DAYS = 7

STATUS_RECOMMENDATIONS = {
    "excellent": [
        "Continue current support level",
        "Celebrate achievements and milestones",
        "Encourage maintenance of good habits",
    ],
    "good": [
        "Provide gentle encouragement",
        "Help identify areas for improvement",
        "Maintain regular check-ins",
    ],
    "concerning": [
        "Increase support and check-in frequency",
        "Help identify and address barriers",
        "Consider care plan adjustments",
    ],
    "critical": [
        "Immediate intervention may be needed",
        "Contact healthcare provider",
        "Provide intensive support",
    ],
}


def generate_proactive_insights(plan: CarePlan, now: datetime) -> list[ProactiveInsight]:
    """Flag current-phase goals that have sat below 30% for over a week."""
    insights = []
    for goal in plan.active_phase.goals:
        if goal.progress >= LOW_PROGRESS_BELOW:
            continue
        if whole_days_between(goal.created_at, now) <= LOW_PROGRESS_AFTER_DAYS:
            continue
        insights.append(ProactiveInsight(
            id=f"insight-low-progress-{goal.id}",
            user_id=plan.user_id,
            type="goal_deviation",
            title="Goal Progress Opportunity",
            description=(
                f"Your {goal.title} goal could use some attention. "
                "Let's explore what might help!"
            ),
            data={"goalId": goal.id, "currentProgress": goal.progress},
            confidence=0.8,
            action_recommendations=[
                "Break goal into smaller steps",
                "Schedule specific times for this activity",
                "Identify and address barriers",
            ],
            generated_by=goal.assigned_coach,
            pillar=goal.category,
            priority=Priority.MEDIUM,
            created_at=now,
        ))
    return insights


def determine_overall_status(
    average_progress: float,
    insights: list[ProactiveInsight],
    recent_activity: list[ActivityLog],
) -> str:
    high_priority = sum(1 for i in insights if i.priority == Priority.HIGH)
    if high_priority > 2 or not recent_activity:
        return "critical"
    if average_progress < 30 or high_priority > 0:
        return "concerning"
    if average_progress < 70:
        return "good"
    return "excellent"


def generate_caregiver_summary(
    user: User,
    plan: CarePlan,
    recent_activity: list[ActivityLog],
    insights: list[ProactiveInsight],
    now: datetime,
) -> CaregiverSummary:
    """Summarise plan status for a caregiver dashboard.

    Args:
        user: Plan owner.
        plan: Plan to summarise; only the current phase is considered.
        recent_activity: Recent activity log; empty means disengaged.
        insights: Insights to surface, most important first.
        now: Timestamp recorded as ``last_update``.
    """
    phase = plan.active_phase
    average = phase.average_progress() or 0.0
    status = determine_overall_status(average, insights, recent_activity)

    extra = [
        rec
        for insight in insights if insight.priority == Priority.HIGH
        for rec in insight.action_recommendations
    ][:2]

    return CaregiverSummary(
        overall_status=status,
        progress_summary=(
            f"{plan.title}: {user.name} is currently in {phase.name} with "
            f"{round(average)}% average progress across lifestyle medicine pillars."
        ),
        key_insights=[i.description for i in insights[:3]],
        recommended_actions=STATUS_RECOMMENDATIONS[status] + extra,
        last_update=now,
    )
