"""Proactive nudge engine.

Combines four nudge sources (time-of-day templates, goal progress, activity
patterns, and milestone celebrations) into a short, ranked list for the
current evaluation cycle.

All output is deterministic for a given input and ``now``: there is no
randomness and no ambient clock.
"""

from __future__ import annotations

import logging
import zlib
from datetime import datetime

from bearable.domains.coaching.catalog.models import CoachingCatalog, TimedNudgeTemplate
from bearable.domains.coaching.domain_logic.activity_patterns import (
    ActivityPatterns,
    analyze_activity_patterns,
)
from bearable.domains.coaching.domain_logic.models import (
    ActivityLog,
    CarePlan,
    CoachTeam,
    HealthGoal,
    Nudge,
    NudgeFrequency,
    NudgeTiming,
    NudgeTrigger,
    NudgeTriggerType,
    NudgeType,
    Priority,
    User,
)
from bearable.domains.coaching.domain_logic.time_windows import (
    clock_to_minutes,
    in_quiet_hours,
    minutes_of_day,
    to_local,
    whole_days_between,
)

logger = logging.getLogger(__name__)

MAX_NUDGES_PER_CYCLE = 5
TIME_MATCH_TOLERANCE_MINUTES = 15

STALLED_PROGRESS_BELOW = 30
STALLED_AFTER_DAYS = 3
NEAR_COMPLETION_FROM = 80
MISSED_DAYS_NUDGE = 2
MISSED_DAYS_HIGH_PRIORITY = 4
STREAK_CELEBRATION_DAYS = 7

_ENCOURAGEMENT_VARIANTS = [
    "Hi {name}! I noticed \"{goal}\" could use some attention. What's one small step "
    "we could take today? Remember, progress isn't always linear! 💙",
    "{name}, every expert was once a beginner! Let's break \"{goal}\" into smaller, "
    "more manageable steps. What feels achievable right now?",
    "Hey {name}! \"{goal}\" is still important to you, right? Let's explore what might "
    "be getting in the way and find a path forward together. 🌟",
]


class NudgeEngine:
    """Generates ranked nudges from plan state and recent activity.

    Usage::

        engine = NudgeEngine(load_catalog())
        nudges = engine.generate_nudges(user, plan, team, activity, now)
    """

    def __init__(self, catalog: CoachingCatalog) -> None:
        self._catalog = catalog

    def generate_nudges(
        self,
        user: User,
        plan: CarePlan,
        coach_team: CoachTeam,
        recent_activity: list[ActivityLog],
        now: datetime,
    ) -> list[Nudge]:
        """Return at most five nudges, highest priority first."""
        patterns = analyze_activity_patterns(recent_activity, now, user.timezone)

        candidates: list[Nudge] = []
        candidates.extend(self.time_based_nudges(user, coach_team, now))
        candidates.extend(goal_progress_nudges(user, plan, coach_team, now))
        candidates.extend(self.pattern_nudges(user, patterns, coach_team, now))
        candidates.extend(celebration_nudges(user, plan, coach_team, now))

        selected = select_nudges(candidates, user, now)
        logger.debug(
            "Nudge cycle for %s: %d candidates, %d selected (missed=%d, streak=%d)",
            user.id,
            len(candidates),
            len(selected),
            patterns.missed_days,
            patterns.streak_days,
        )
        return selected

    # ------------------------------------------------------------------
    # Sources that need catalog data
    # ------------------------------------------------------------------

    def time_based_nudges(self, user: User, coach_team: CoachTeam, now: datetime) -> list[Nudge]:
        current = minutes_of_day(to_local(now, user.timezone))
        return [
            _timed_nudge(template, user, coach_team, now)
            for template in self._catalog.timed_nudges
            if _near_preferred_time(template, current)
        ]

    def pattern_nudges(
        self,
        user: User,
        patterns: ActivityPatterns,
        coach_team: CoachTeam,
        now: datetime,
    ) -> list[Nudge]:
        nudges = []
        stamp = _stamp(now)

        if patterns.missed_days >= MISSED_DAYS_NUDGE:
            nudges.append(Nudge(
                id=f"pattern-missed-days-{stamp}",
                type=NudgeType.ENCOURAGEMENT,
                title="I Miss You! 🐻",
                message=(
                    f"Hi {user.name}! I noticed we haven't connected in a few days. "
                    "No judgment, life happens! Ready to jump back in together? "
                    "Every small step counts. 💙"
                ),
                trigger=NudgeTrigger(
                    type=NudgeTriggerType.ACTIVITY_BASED,
                    frequency=NudgeFrequency.AS_NEEDED,
                    conditions={"missedDays": patterns.missed_days},
                ),
                timing=NudgeTiming(timezone=user.timezone),
                priority=(
                    Priority.HIGH if patterns.missed_days >= MISSED_DAYS_HIGH_PRIORITY
                    else Priority.MEDIUM
                ),
                assigned_coach=coach_team.primary_coach,
                created_at=now,
            ))

        if patterns.streak_days >= STREAK_CELEBRATION_DAYS:
            nudges.append(Nudge(
                id=f"pattern-streak-{stamp}",
                type=NudgeType.GAMIFICATION,
                title="🔥 Amazing Streak!",
                message=(
                    f"Wow, {user.name}! {patterns.streak_days} days of consistent progress! "
                    "Your dedication to your health is inspiring. Keep up the fantastic work! 🌟"
                ),
                trigger=NudgeTrigger(
                    type=NudgeTriggerType.ACTIVITY_BASED,
                    frequency=NudgeFrequency.AS_NEEDED,
                    conditions={"streakDays": patterns.streak_days},
                ),
                timing=NudgeTiming(timezone=user.timezone),
                priority=Priority.LOW,
                assigned_coach=coach_team.primary_coach,
                created_at=now,
            ))

        for pillar in patterns.low_activity_pillars:
            nudges.append(Nudge(
                id=f"pattern-low-activity-{pillar.value}-{stamp}",
                type=NudgeType.EDUCATION,
                title=f"Let's Focus on {pillar.display_name}",
                message=_personalize(self._catalog.pillar_message(pillar), user),
                trigger=NudgeTrigger(
                    type=NudgeTriggerType.ACTIVITY_BASED,
                    frequency=NudgeFrequency.WEEKLY,
                    conditions={"lowActivityPillar": pillar.value},
                ),
                timing=NudgeTiming(timezone=user.timezone),
                priority=Priority.MEDIUM,
                pillar=pillar,
                assigned_coach=coach_team.coach_for(pillar),
                created_at=now,
            ))

        return nudges


# ---------------------------------------------------------------------------
# Catalog-independent sources
# ---------------------------------------------------------------------------

def goal_progress_nudges(
    user: User,
    plan: CarePlan,
    coach_team: CoachTeam,
    now: datetime,
) -> list[Nudge]:
    """Encourage stalled goals and goals that are nearly complete."""
    nudges = []
    stamp = _stamp(now)

    for goal in plan.active_phase.goals:
        coach = coach_team.coach_for(goal.category)

        if (
            goal.progress < STALLED_PROGRESS_BELOW
            and whole_days_between(goal.updated_at, now) > STALLED_AFTER_DAYS
        ):
            nudges.append(Nudge(
                id=f"goal-nudge-{goal.id}-{stamp}",
                type=NudgeType.ENCOURAGEMENT,
                title=f"Let's Get Back on Track with {goal.title}",
                message=_encouragement_message(goal, user),
                trigger=NudgeTrigger(
                    type=NudgeTriggerType.GOAL_PROGRESS,
                    frequency=NudgeFrequency.AS_NEEDED,
                    conditions={"goalId": goal.id, "thresholdProgress": STALLED_PROGRESS_BELOW},
                ),
                timing=NudgeTiming(timezone=user.timezone, max_per_day=2),
                priority=Priority.HIGH if goal.progress < 10 else Priority.MEDIUM,
                pillar=goal.category,
                assigned_coach=coach,
                created_at=now,
            ))

        if NEAR_COMPLETION_FROM <= goal.progress < 100:
            nudges.append(Nudge(
                id=f"goal-completion-{goal.id}-{stamp}",
                type=NudgeType.ENCOURAGEMENT,
                title="You're Almost There! 🎯",
                message=(
                    f"{user.name}, you're so close to achieving \"{goal.title}\"! "
                    f"Just {100 - goal.progress}% to go. I believe in you! 💪"
                ),
                trigger=NudgeTrigger(
                    type=NudgeTriggerType.GOAL_PROGRESS,
                    frequency=NudgeFrequency.AS_NEEDED,
                    conditions={"goalId": goal.id, "thresholdProgress": NEAR_COMPLETION_FROM},
                ),
                timing=NudgeTiming(timezone=user.timezone),
                priority=Priority.HIGH,
                pillar=goal.category,
                assigned_coach=coach,
                created_at=now,
            ))

    return nudges


def celebration_nudges(
    user: User,
    plan: CarePlan,
    coach_team: CoachTeam,
    now: datetime,
) -> list[Nudge]:
    """Celebrate achieved milestones that have not been celebrated yet."""
    stamp = _stamp(now)
    return [
        Nudge(
            id=f"celebration-{milestone.id}-{stamp}",
            type=NudgeType.MILESTONE_CELEBRATION,
            title="🎉 Milestone Achieved!",
            message=(
                f"Congratulations, {user.name}! You've achieved \"{milestone.title}\"! "
                "This is a significant step in your health journey. "
                "Take a moment to celebrate this accomplishment! 🎊"
            ),
            trigger=NudgeTrigger(
                type=NudgeTriggerType.GOAL_PROGRESS,
                frequency=NudgeFrequency.ONCE,
                conditions={"milestoneId": milestone.id},
            ),
            # Celebrations go out immediately, even during quiet hours
            timing=NudgeTiming(timezone=user.timezone, respect_quiet_hours=False, max_per_day=5),
            priority=Priority.HIGH,
            assigned_coach=coach_team.primary_coach,
            created_at=now,
        )
        for milestone in plan.active_phase.milestones
        if milestone.is_achieved and not milestone.celebration_message
    ]


def select_nudges(candidates: list[Nudge], user: User, now: datetime) -> list[Nudge]:
    """Quiet-hours filter, dedupe by (title, type), rank, and cap."""
    if in_quiet_hours(to_local(now, user.timezone), user.quiet_hours):
        candidates = [n for n in candidates if not n.timing.respect_quiet_hours]

    seen: set[tuple[str, NudgeType]] = set()
    unique = []
    for nudge in candidates:
        key = (nudge.title, nudge.type)
        if key in seen:
            continue
        seen.add(key)
        unique.append(nudge)

    # sorted() is stable, so equal priorities keep generation order
    ranked = sorted(unique, key=lambda n: n.priority.rank, reverse=True)
    return ranked[:MAX_NUDGES_PER_CYCLE]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _timed_nudge(
    template: TimedNudgeTemplate,
    user: User,
    coach_team: CoachTeam,
    now: datetime,
) -> Nudge:
    return Nudge(
        id=f"nudge-{template.id}-{_stamp(now)}",
        type=NudgeType.REMINDER,
        title=template.title,
        message=_personalize(template.message_template, user),
        trigger=NudgeTrigger(
            type=NudgeTriggerType.TIME_BASED,
            frequency=template.frequency,
            conditions={"targetTime": template.preferred_time},
        ),
        timing=NudgeTiming(timezone=user.timezone, preferred_time=template.preferred_time),
        priority=Priority.MEDIUM,
        pillar=template.pillar,
        assigned_coach=coach_team.coach_for(template.pillar),
        created_at=now,
    )


def _near_preferred_time(template: TimedNudgeTemplate, current_minutes: int) -> bool:
    target = clock_to_minutes(template.preferred_time)
    if target is None:
        return False
    return abs(current_minutes - target) <= TIME_MATCH_TOLERANCE_MINUTES


def _encouragement_message(goal: HealthGoal, user: User) -> str:
    # Variant is keyed on the goal id so repeated cycles read the same
    variant = _ENCOURAGEMENT_VARIANTS[zlib.crc32(goal.id.encode()) % len(_ENCOURAGEMENT_VARIANTS)]
    return variant.format(name=user.name, goal=goal.title)


def _personalize(template: str, user: User) -> str:
    return template.replace("{userName}", user.name)


def _stamp(now: datetime) -> str:
    return now.strftime("%Y%m%d%H%M%S")
