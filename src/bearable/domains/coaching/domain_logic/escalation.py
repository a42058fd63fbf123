"""Caregiver escalation: trigger evaluation, caregiver routing, and alerts.

Each active trigger on a plan is tested against plan state and the activity
log. A trigger that fires is routed either to its explicit caregiver list or,
when that list is empty, to a hierarchy tier chosen by severity. Tier routing
also applies the caregiver's own contact policy:

* ``receive_alerts`` permission is always required.
* Non-critical alerts are held back during the caregiver's quiet hours.
* Critical alerts ignore quiet hours but only reach caregivers designated
  ``escalation_level == emergency``.

A trigger that fires but reaches nobody is still reported, and is listed in
``unmet_escalations`` for the caller to handle.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Protocol, runtime_checkable

from bearable.domains.coaching.domain_logic.models import (
    ActivityLog,
    CarePlan,
    Caregiver,
    CaregiverUpdate,
    EscalationLevel,
    EscalationResult,
    EscalationTrigger,
    GoalStatus,
    Relationship,
    Severity,
    TriggerType,
    UpdateType,
    User,
)
from bearable.domains.coaching.domain_logic.time_windows import (
    in_quiet_hours,
    parse_time_window,
    to_local,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Phrase classification
# ---------------------------------------------------------------------------

EMERGENCY_KEYWORDS = [
    "emergency",
    "crisis",
    "suicide",
    "self-harm",
    "chest pain",
    "can't breathe",
    "severe pain",
    "urgent help",
]

REQUEST_KEYWORDS = [
    "contact my doctor",
    "need help",
    "call family",
    "emergency contact",
    "physician consultation",
]


@runtime_checkable
class PhraseClassifier(Protocol):
    """Decides whether free text signals a given condition."""

    def matches(self, text: str) -> bool:
        ...


class KeywordClassifier:
    """Case-insensitive substring match against a fixed keyword list."""

    def __init__(self, keywords: list[str]) -> None:
        self._keywords = [k.lower() for k in keywords]

    def matches(self, text: str) -> bool:
        lowered = (text or "").lower()
        return any(keyword in lowered for keyword in self._keywords)


# ---------------------------------------------------------------------------
# Routing tables
# ---------------------------------------------------------------------------

CAREGIVER_HIERARCHY: dict[EscalationLevel, frozenset[Relationship]] = {
    EscalationLevel.EMERGENCY: frozenset({Relationship.PHYSICIAN, Relationship.HEALTHCARE_PROVIDER}),
    EscalationLevel.PRIMARY: frozenset({Relationship.FAMILY, Relationship.PHYSICIAN, Relationship.NURSE}),
    EscalationLevel.SECONDARY: frozenset({Relationship.FRIEND, Relationship.COACH, Relationship.FAMILY}),
}

_SEVERITY_TIERS = {
    Severity.CRITICAL: EscalationLevel.EMERGENCY,
    Severity.HIGH: EscalationLevel.PRIMARY,
    Severity.MEDIUM: EscalationLevel.SECONDARY,
    Severity.LOW: EscalationLevel.SECONDARY,
}

_SEVERITY_UPDATE_TYPES = {
    Severity.LOW: UpdateType.ALERT,
    Severity.MEDIUM: UpdateType.CONCERN,
    Severity.HIGH: UpdateType.CONCERN,
    Severity.CRITICAL: UpdateType.ALERT,
}

ALERT_TITLES = {
    TriggerType.NO_ENGAGEMENT: "Patient Engagement Alert",
    TriggerType.MISSED_GOALS: "Care Plan Adherence Concern",
    TriggerType.HEALTH_DECLINE: "Health Status Alert",
    TriggerType.EMERGENCY_PATTERN: "Emergency Pattern Detected",
    TriggerType.USER_REQUEST: "Patient Requested Contact",
}

RECOMMENDED_ACTIONS: dict[TriggerType, list[str]] = {
    TriggerType.NO_ENGAGEMENT: [
        "Send motivational message through preferred communication channel",
        "Schedule check-in call or video session",
        "Simplify current care plan goals",
        "Identify and address potential barriers",
    ],
    TriggerType.MISSED_GOALS: [
        "Review and adjust care plan difficulty",
        "Break large goals into smaller, achievable steps",
        "Increase coaching frequency temporarily",
        "Explore motivational incentives",
    ],
    TriggerType.HEALTH_DECLINE: [
        "Schedule urgent physician consultation",
        "Review medication adherence",
        "Assess for new symptoms or concerns",
        "Consider care plan intensity adjustment",
    ],
    TriggerType.EMERGENCY_PATTERN: [
        "Immediately contact emergency services if warranted",
        "Activate crisis intervention protocol",
        "Notify primary physician urgently",
        "Ensure patient safety and support",
    ],
    TriggerType.USER_REQUEST: [
        "Contact user within 2 hours",
        "Assess specific needs and concerns",
        "Coordinate with requested caregiver type",
        "Document interaction and outcomes",
    ],
}

GENERIC_ACTIONS = [
    "Review patient status",
    "Contact appropriate caregivers",
    "Document incident and response",
]

_ROLE_GUIDANCE = {
    Relationship.PHYSICIAN: (
        "Clinical Review Recommended:",
        [
            "Review recent health data and care plan progress",
            "Consider care plan modifications if needed",
            "Schedule follow-up if appropriate",
        ],
    ),
    Relationship.FAMILY: (
        "Family Support Needed:",
        [
            "Check in with your loved one",
            "Offer encouragement and emotional support",
            "Help identify any barriers to care plan adherence",
        ],
    ),
    Relationship.FRIEND: (
        "Peer Support Opportunity:",
        [
            "Reach out to offer friendship and support",
            "Consider planning an activity together",
            "Be a listening ear if needed",
        ],
    ),
}
_ROLE_GUIDANCE[Relationship.HEALTHCARE_PROVIDER] = _ROLE_GUIDANCE[Relationship.PHYSICIAN]

_DEFAULT_GUIDANCE = (
    "Support Action Recommended:",
    [
        "Reach out to check on the patient",
        "Provide appropriate support based on your relationship",
    ],
)

# Default thresholds when a trigger does not set one
MISSED_GOALS_THRESHOLD = 3
MISSED_GOAL_PROGRESS_BELOW = 20
HEALTH_DECLINE_THRESHOLD = 2
HEALTH_DECLINE_WINDOW = "1 week"
NO_ENGAGEMENT_WINDOW = "72 hours"


def tier_for_severity(severity: Severity) -> EscalationLevel:
    return _SEVERITY_TIERS.get(severity, EscalationLevel.SECONDARY)


def recommended_actions_for(trigger_type: TriggerType | str) -> list[str]:
    return list(RECOMMENDED_ACTIONS.get(trigger_type, GENERIC_ACTIONS))


# ---------------------------------------------------------------------------
# Evaluator
# ---------------------------------------------------------------------------

class EscalationEvaluator:
    """Evaluates a plan's escalation triggers and builds caregiver alerts.

    Usage::

        evaluator = EscalationEvaluator()
        result = evaluator.evaluate_escalations(plan, user, activity, caregivers, now)
        for alert in result.urgent_alerts:
            dispatch(alert)
    """

    def __init__(
        self,
        emergency_classifier: PhraseClassifier | None = None,
        request_classifier: PhraseClassifier | None = None,
    ) -> None:
        self._emergency = emergency_classifier or KeywordClassifier(EMERGENCY_KEYWORDS)
        self._request = request_classifier or KeywordClassifier(REQUEST_KEYWORDS)

    def evaluate_escalations(
        self,
        plan: CarePlan,
        user: User,
        recent_activity: list[ActivityLog],
        caregivers: list[Caregiver],
        now: datetime,
    ) -> EscalationResult:
        """Evaluate every active trigger on ``plan``.

        Returns:
            EscalationResult with fired triggers, one alert per
            (trigger, caregiver) pair, the recommended actions of each fired
            trigger, and the fired triggers that reached no caregiver.
        """
        result = EscalationResult()

        for trigger in plan.escalation_triggers:
            if not trigger.is_active:
                continue
            if not self.should_escalate(trigger, plan, recent_activity, now):
                continue

            result.triggered_escalations.append(trigger)
            targets = self.resolve_caregivers(trigger, caregivers, user, now)
            if not targets:
                result.unmet_escalations.append(trigger)
                logger.warning(
                    "Escalation %s (%s) fired for user %s but no caregiver is eligible",
                    trigger.id,
                    trigger.type.value,
                    user.id,
                )
            for caregiver in targets:
                result.urgent_alerts.append(build_caregiver_alert(trigger, user, caregiver, now))
            result.recommended_actions.extend(recommended_actions_for(trigger.type))

        if result.triggered_escalations:
            logger.info(
                "Escalation pass for user %s: %d triggered, %d alerts",
                user.id,
                len(result.triggered_escalations),
                len(result.urgent_alerts),
            )
        return result

    # ------------------------------------------------------------------
    # Trigger predicates
    # ------------------------------------------------------------------

    def should_escalate(
        self,
        trigger: EscalationTrigger,
        plan: CarePlan,
        recent_activity: list[ActivityLog],
        now: datetime,
    ) -> bool:
        conditions = trigger.conditions
        if trigger.type == TriggerType.NO_ENGAGEMENT:
            cutoff = now - parse_time_window(conditions.time_window or NO_ENGAGEMENT_WINDOW)
            return not any(entry.timestamp > cutoff for entry in recent_activity)

        if trigger.type == TriggerType.MISSED_GOALS:
            threshold = conditions.threshold or MISSED_GOALS_THRESHOLD
            missed = [
                g for g in plan.active_phase.goals
                if g.status == GoalStatus.ACTIVE and g.progress < MISSED_GOAL_PROGRESS_BELOW
            ]
            return len(missed) >= threshold

        if trigger.type == TriggerType.HEALTH_DECLINE:
            cutoff = now - parse_time_window(conditions.time_window or HEALTH_DECLINE_WINDOW)
            threshold = conditions.threshold or HEALTH_DECLINE_THRESHOLD
            declines = [
                e for e in recent_activity
                if e.timestamp > cutoff and is_decline_indicator(e)
            ]
            return len(declines) >= threshold

        if trigger.type == TriggerType.EMERGENCY_PATTERN:
            return any(self._emergency.matches(e.description) for e in recent_activity)

        if trigger.type == TriggerType.USER_REQUEST:
            return any(self._request.matches(e.description) for e in recent_activity)

        return False

    # ------------------------------------------------------------------
    # Routing
    # ------------------------------------------------------------------

    def resolve_caregivers(
        self,
        trigger: EscalationTrigger,
        caregivers: list[Caregiver],
        user: User,
        now: datetime,
    ) -> list[Caregiver]:
        """Caregivers who should receive ``trigger``'s alert right now."""
        if trigger.target_caregivers:
            wanted = set(trigger.target_caregivers)
            return [c for c in caregivers if c.id in wanted]

        severity = trigger.conditions.severity
        roles = CAREGIVER_HIERARCHY[tier_for_severity(severity)]
        return [
            c for c in caregivers
            if c.relationship in roles
            and c.is_active
            and can_receive_escalation(c, severity, user, now)
        ]


def is_decline_indicator(entry: ActivityLog) -> bool:
    """Low mood (<3), short sleep (<6), or a zero-exercise entry."""
    if entry.value is None:
        return False
    if entry.type == "mood":
        return entry.value < 3
    if entry.type == "sleep":
        return entry.value < 6
    if entry.type == "exercise":
        return entry.value == 0
    return False


def can_receive_escalation(
    caregiver: Caregiver,
    severity: Severity,
    user: User,
    now: datetime,
) -> bool:
    """Per-caregiver contact policy for tier-routed alerts."""
    if severity == Severity.CRITICAL and caregiver.escalation_level != EscalationLevel.EMERGENCY:
        return False
    if not caregiver.permissions.receive_alerts:
        return False
    if severity != Severity.CRITICAL:
        prefs = caregiver.communication_preferences
        local_now = to_local(now, prefs.timezone or user.timezone)
        if in_quiet_hours(local_now, prefs.quiet_hours):
            return False
    return True


# ---------------------------------------------------------------------------
# Alert content
# ---------------------------------------------------------------------------

def alert_title(trigger: EscalationTrigger) -> str:
    prefix = "🚨 URGENT: " if trigger.conditions.severity == Severity.CRITICAL else "⚠️ "
    return prefix + ALERT_TITLES.get(trigger.type, "Care Alert")


def format_escalation_message(
    trigger: EscalationTrigger,
    user: User,
    caregiver: Caregiver,
    now: datetime,
) -> str:
    heading, steps = _ROLE_GUIDANCE.get(caregiver.relationship, _DEFAULT_GUIDANCE)
    local_now = to_local(now, caregiver.communication_preferences.timezone or user.timezone)
    lines = [
        f"Hello {caregiver.name},",
        "",
        f"This is an automated alert regarding {user.name}'s care plan.",
        "",
        f"Alert: {trigger.escalation_message}",
        "",
        f"Time: {local_now:%Y-%m-%d} at {local_now:%H:%M}",
        f"Severity: {trigger.conditions.severity.value}",
        "",
        heading,
        *(f"• {step}" for step in steps),
        "",
        "---",
        "This alert was generated by the Bearable health coach care plan engine.",
        "Reply STOP to unsubscribe from alerts or contact support for assistance.",
    ]
    return "\n".join(lines)


def build_caregiver_alert(
    trigger: EscalationTrigger,
    user: User,
    caregiver: Caregiver,
    now: datetime,
) -> CaregiverUpdate:
    severity = trigger.conditions.severity
    return CaregiverUpdate(
        id=f"alert-{trigger.id}-{caregiver.id}-{now:%Y%m%d%H%M%S}",
        user_id=user.id,
        caregiver_id=caregiver.id,
        type=_SEVERITY_UPDATE_TYPES.get(severity, UpdateType.ALERT),
        title=alert_title(trigger),
        message=format_escalation_message(trigger, user, caregiver, now),
        data={
            "triggerId": trigger.id,
            "triggerType": trigger.type.value,
            "severity": severity.value,
            "userId": user.id,
            "timestamp": now.isoformat(),
        },
        created_at=now,
    )
