"""JSON mapping for coaching records.

Payloads use camelCase field names and ISO 8601 timestamps. Unknown enum
values degrade to safe defaults rather than failing the whole payload;
missing required fields raise ``KeyError``/``ValueError``, which the tool
layer turns into an error envelope.
"""

from __future__ import annotations

import enum
from datetime import datetime, timezone
from typing import Any, TypeVar

from bearable.domains.coaching.domain_logic.models import (
    ActivityLog,
    ActivityRequirement,
    CarePlan,
    CarePlanMilestone,
    CarePlanPhase,
    Caregiver,
    CaregiverPermissions,
    CaregiverSummary,
    CaregiverUpdate,
    CoachTeam,
    CommunicationPreferences,
    CommunicationStyle,
    EscalationConditions,
    EscalationLevel,
    EscalationResult,
    EscalationTrigger,
    GoalStatus,
    HealthGoal,
    Nudge,
    NudgeConfiguration,
    NudgeStyle,
    NudgeType,
    Pillar,
    PlanPhase,
    ProactiveInsight,
    QuietHours,
    Relationship,
    RequirementFrequency,
    Severity,
    TriggerType,
    User,
)

E = TypeVar("E", bound=enum.Enum)


def _enum(cls: type[E], value: Any, default: E | None = None) -> E | None:
    try:
        return cls(value)
    except ValueError:
        return default


def parse_datetime(value: str | datetime) -> datetime:
    """ISO 8601 text or a datetime, always returned timezone-aware.

    Values without an offset are taken to be UTC.
    """
    if not isinstance(value, datetime):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def _opt_datetime(value: str | datetime | None) -> datetime | None:
    return parse_datetime(value) if value else None


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _quiet_hours(data: dict[str, Any] | None) -> QuietHours | None:
    if not data or not data.get("start") or not data.get("end"):
        return None
    return QuietHours(start=data["start"], end=data["end"])


def _quiet_hours_dict(value: QuietHours | None) -> dict[str, str] | None:
    return {"start": value.start, "end": value.end} if value else None


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------

def user_from_dict(data: dict[str, Any]) -> User:
    """Accepts either a flat profile or one with a nested ``preferences`` block."""
    prefs = data.get("preferences") or {}
    style = data.get("communicationStyle", prefs.get("communicationStyle"))
    return User(
        id=data["id"],
        name=data.get("name", ""),
        communication_style=_enum(CommunicationStyle, style),
        timezone=data.get("timezone") or prefs.get("timezone") or "UTC",
        quiet_hours=_quiet_hours(data.get("quietHours") or prefs.get("quietHours")),
    )


def coach_team_from_dict(data: dict[str, Any]) -> CoachTeam:
    def coach_id(value: Any) -> str:
        # Coach records may be passed whole; only the id is used
        return value["id"] if isinstance(value, dict) else str(value)

    specialists = {}
    for pillar_name, coach in (data.get("specialists") or {}).items():
        pillar = _enum(Pillar, pillar_name)
        if pillar is not None:
            specialists[pillar] = coach_id(coach)
    return CoachTeam(
        primary_coach=coach_id(data["primaryCoach"]),
        specialists=specialists,
        coordination_strategy=data.get("coordinationStrategy", "collaborative"),
    )


def coach_team_to_dict(team: CoachTeam) -> dict[str, Any]:
    return {
        "primaryCoach": team.primary_coach,
        "specialists": {p.value: c for p, c in team.specialists.items()},
        "coordinationStrategy": team.coordination_strategy,
    }


def activity_log_from_dict(data: dict[str, Any]) -> ActivityLog:
    value = data.get("value")
    return ActivityLog(
        id=data.get("id", ""),
        user_id=data.get("userId", ""),
        type=data.get("type", ""),
        timestamp=parse_datetime(data["timestamp"]),
        description=data.get("description", ""),
        title=data.get("title", ""),
        value=float(value) if value is not None else None,
        unit=data.get("unit", ""),
        category=data.get("category", ""),
        source=data.get("source", "manual"),
        tags=list(data.get("tags", [])),
    )


def caregiver_from_dict(data: dict[str, Any]) -> Caregiver:
    perms = data.get("permissions") or {}
    prefs = data.get("communicationPreferences") or {}
    return Caregiver(
        id=data["id"],
        name=data.get("name", ""),
        relationship=_enum(Relationship, data.get("relationship"), Relationship.OTHER),
        escalation_level=_enum(
            EscalationLevel, data.get("escalationLevel"), EscalationLevel.SECONDARY
        ),
        is_active=bool(data.get("isActive", True)),
        permissions=CaregiverPermissions(
            view_progress=bool(perms.get("viewProgress", True)),
            receive_alerts=bool(perms.get("receiveAlerts", True)),
            send_encouragement=bool(perms.get("sendEncouragement", True)),
            access_health_data=bool(perms.get("accessHealthData", False)),
            emergency_contact=bool(perms.get("emergencyContact", False)),
            modify_care_plan=bool(perms.get("modifyCarePlan", False)),
        ),
        communication_preferences=CommunicationPreferences(
            preferred_channel=prefs.get("preferredChannel", "app"),
            quiet_hours=_quiet_hours(prefs.get("quietHours")),
            timezone=prefs.get("timezone"),
            urgency_threshold=prefs.get("urgencyThreshold", "medium"),
            languages=list(prefs.get("languages", ["en"])),
        ),
    )


# ---------------------------------------------------------------------------
# Care plan
# ---------------------------------------------------------------------------

def care_plan_to_dict(plan: CarePlan) -> dict[str, Any]:
    return {
        "id": plan.id,
        "userId": plan.user_id,
        "title": plan.title,
        "description": plan.description,
        "lifestylePillars": [p.value for p in plan.pillars],
        "phases": [_phase_to_dict(p) for p in plan.phases],
        "currentPhase": plan.current_phase,
        "assignedTeam": coach_team_to_dict(plan.assigned_team),
        "escalationTriggers": [_trigger_to_dict(t) for t in plan.escalation_triggers],
        "protocols": list(plan.protocols),
        "createdAt": _iso(plan.created_at),
        "updatedAt": _iso(plan.updated_at),
        "nextReview": _iso(plan.next_review),
    }


def care_plan_from_dict(data: dict[str, Any]) -> CarePlan:
    return CarePlan(
        id=data["id"],
        user_id=data["userId"],
        title=data.get("title", ""),
        description=data.get("description", ""),
        pillars=[Pillar(p) for p in data.get("lifestylePillars", [])],
        phases=[_phase_from_dict(p) for p in data["phases"]],
        current_phase=int(data.get("currentPhase", 0)),
        assigned_team=coach_team_from_dict(data["assignedTeam"]),
        escalation_triggers=[_trigger_from_dict(t) for t in data.get("escalationTriggers", [])],
        protocols=list(data.get("protocols", [])),
        created_at=parse_datetime(data["createdAt"]),
        updated_at=parse_datetime(data["updatedAt"]),
        next_review=parse_datetime(data["nextReview"]),
    )


def _phase_to_dict(phase: CarePlanPhase) -> dict[str, Any]:
    return {
        "id": phase.id,
        "key": phase.key.value,
        "name": phase.name,
        "description": phase.description,
        "durationWeeks": phase.duration_weeks,
        "goals": [_goal_to_dict(g) for g in phase.goals],
        "milestones": [_milestone_to_dict(m) for m in phase.milestones],
        "requiredActivities": [_requirement_to_dict(r) for r in phase.required_activities],
    }


def _phase_from_dict(data: dict[str, Any]) -> CarePlanPhase:
    return CarePlanPhase(
        id=data["id"],
        key=PlanPhase(data["key"]),
        name=data.get("name", ""),
        description=data.get("description", ""),
        duration_weeks=int(data.get("durationWeeks", 0)),
        goals=[_goal_from_dict(g) for g in data.get("goals", [])],
        milestones=[_milestone_from_dict(m) for m in data.get("milestones", [])],
        required_activities=[
            _requirement_from_dict(r) for r in data.get("requiredActivities", [])
        ],
    )


def _goal_to_dict(goal: HealthGoal) -> dict[str, Any]:
    settings = goal.nudge_settings
    return {
        "id": goal.id,
        "title": goal.title,
        "description": goal.description,
        "category": goal.category.value,
        "target": goal.target,
        "timeline": goal.timeline,
        "progress": goal.progress,
        "status": goal.status.value,
        "assignedCoach": goal.assigned_coach,
        "nudgeSettings": {
            "enabled": settings.enabled,
            "frequency": settings.frequency,
            "preferredTypes": [t.value for t in settings.preferred_types],
            "personalizedStyle": settings.personalized_style.value,
            "respectQuietHours": settings.respect_quiet_hours,
            "adaptToMoodPattern": settings.adapt_to_mood_pattern,
        },
        "createdAt": _iso(goal.created_at),
        "updatedAt": _iso(goal.updated_at),
    }


def _goal_from_dict(data: dict[str, Any]) -> HealthGoal:
    settings = data.get("nudgeSettings") or {}
    preferred = [_enum(NudgeType, t) for t in settings.get("preferredTypes", [])]
    return HealthGoal(
        id=data["id"],
        title=data.get("title", ""),
        description=data.get("description", ""),
        category=Pillar(data["category"]),
        target=data.get("target", ""),
        timeline=data.get("timeline", ""),
        progress=int(data.get("progress", 0)),
        status=_enum(GoalStatus, data.get("status"), GoalStatus.ACTIVE),
        assigned_coach=data.get("assignedCoach", ""),
        nudge_settings=NudgeConfiguration(
            enabled=bool(settings.get("enabled", True)),
            frequency=settings.get("frequency", "medium"),
            preferred_types=[t for t in preferred if t is not None] or NudgeConfiguration().preferred_types,
            personalized_style=_enum(
                NudgeStyle, settings.get("personalizedStyle"), NudgeStyle.MOTIVATIONAL
            ),
            respect_quiet_hours=bool(settings.get("respectQuietHours", True)),
            adapt_to_mood_pattern=bool(settings.get("adaptToMoodPattern", True)),
        ),
        created_at=parse_datetime(data["createdAt"]),
        updated_at=parse_datetime(data["updatedAt"]),
    )


def _milestone_to_dict(milestone: CarePlanMilestone) -> dict[str, Any]:
    return {
        "id": milestone.id,
        "title": milestone.title,
        "description": milestone.description,
        "targetDate": _iso(milestone.target_date),
        "isAchieved": milestone.is_achieved,
        "achievedDate": _iso(milestone.achieved_date),
        "celebrationMessage": milestone.celebration_message,
    }


def _milestone_from_dict(data: dict[str, Any]) -> CarePlanMilestone:
    return CarePlanMilestone(
        id=data["id"],
        title=data.get("title", ""),
        description=data.get("description", ""),
        target_date=parse_datetime(data["targetDate"]),
        is_achieved=bool(data.get("isAchieved", False)),
        achieved_date=_opt_datetime(data.get("achievedDate")),
        celebration_message=data.get("celebrationMessage"),
    )


def _requirement_to_dict(req: ActivityRequirement) -> dict[str, Any]:
    return {
        "id": req.id,
        "title": req.title,
        "description": req.description,
        "pillar": req.pillar.value,
        "frequency": req.frequency.value,
        "target": {"value": req.target_value, "unit": req.target_unit},
        "isOptional": req.is_optional,
    }


def _requirement_from_dict(data: dict[str, Any]) -> ActivityRequirement:
    target = data.get("target") or {}
    return ActivityRequirement(
        id=data["id"],
        title=data.get("title", ""),
        description=data.get("description", ""),
        pillar=Pillar(data["pillar"]),
        frequency=_enum(RequirementFrequency, data.get("frequency"), RequirementFrequency.DAILY),
        target_value=float(target.get("value", 1)),
        target_unit=target.get("unit", ""),
        is_optional=bool(data.get("isOptional", False)),
    )


def _trigger_to_dict(trigger: EscalationTrigger) -> dict[str, Any]:
    conditions: dict[str, Any] = {"severity": trigger.conditions.severity.value}
    if trigger.conditions.threshold is not None:
        conditions["threshold"] = trigger.conditions.threshold
    if trigger.conditions.time_window is not None:
        conditions["timeWindow"] = trigger.conditions.time_window
    return {
        "id": trigger.id,
        "type": trigger.type.value,
        "conditions": conditions,
        "targetCaregivers": list(trigger.target_caregivers),
        "escalationMessage": trigger.escalation_message,
        "isActive": trigger.is_active,
    }


def _trigger_from_dict(data: dict[str, Any]) -> EscalationTrigger:
    conditions = data.get("conditions") or {}
    threshold = conditions.get("threshold")
    return EscalationTrigger(
        id=data["id"],
        type=TriggerType(data["type"]),
        conditions=EscalationConditions(
            severity=_enum(Severity, conditions.get("severity"), Severity.MEDIUM),
            threshold=int(threshold) if threshold is not None else None,
            time_window=conditions.get("timeWindow"),
        ),
        escalation_message=data.get("escalationMessage", ""),
        target_caregivers=list(data.get("targetCaregivers", [])),
        is_active=bool(data.get("isActive", True)),
    )


# ---------------------------------------------------------------------------
# Outputs
# ---------------------------------------------------------------------------

def nudge_to_dict(nudge: Nudge) -> dict[str, Any]:
    timing: dict[str, Any] = {
        "timezone": nudge.timing.timezone,
        "respectQuietHours": nudge.timing.respect_quiet_hours,
        "maxPerDay": nudge.timing.max_per_day,
    }
    if nudge.timing.preferred_time:
        timing["preferredTime"] = nudge.timing.preferred_time
    return {
        "id": nudge.id,
        "type": nudge.type.value,
        "title": nudge.title,
        "message": nudge.message,
        "trigger": {
            "type": nudge.trigger.type.value,
            "conditions": dict(nudge.trigger.conditions),
            "frequency": nudge.trigger.frequency.value,
        },
        "timing": timing,
        "priority": nudge.priority.value,
        "pillar": nudge.pillar.value if nudge.pillar else None,
        "assignedCoach": nudge.assigned_coach,
        "isActive": nudge.is_active,
        "createdAt": _iso(nudge.created_at),
    }


def caregiver_update_to_dict(update: CaregiverUpdate) -> dict[str, Any]:
    return {
        "id": update.id,
        "userId": update.user_id,
        "caregiverId": update.caregiver_id,
        "type": update.type.value,
        "title": update.title,
        "message": update.message,
        "data": dict(update.data),
        "isRead": update.is_read,
        "createdAt": _iso(update.created_at),
    }


def escalation_result_to_dict(result: EscalationResult) -> dict[str, Any]:
    return {
        "triggeredEscalations": [_trigger_to_dict(t) for t in result.triggered_escalations],
        "urgentAlerts": [caregiver_update_to_dict(a) for a in result.urgent_alerts],
        "recommendedActions": list(result.recommended_actions),
        "unmetEscalations": [t.id for t in result.unmet_escalations],
    }


def insight_to_dict(insight: ProactiveInsight) -> dict[str, Any]:
    return {
        "id": insight.id,
        "userId": insight.user_id,
        "type": insight.type,
        "title": insight.title,
        "description": insight.description,
        "data": dict(insight.data),
        "confidence": insight.confidence,
        "actionRecommendations": list(insight.action_recommendations),
        "generatedBy": insight.generated_by,
        "pillar": insight.pillar.value if insight.pillar else None,
        "priority": insight.priority.value,
        "createdAt": _iso(insight.created_at),
        "isActedUpon": insight.is_acted_upon,
    }


def caregiver_summary_to_dict(summary: CaregiverSummary) -> dict[str, Any]:
    return {
        "overallStatus": summary.overall_status,
        "progressSummary": summary.progress_summary,
        "keyInsights": list(summary.key_insights),
        "recommendedActions": list(summary.recommended_actions),
        "lastUpdate": _iso(summary.last_update),
    }
