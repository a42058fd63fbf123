"""Tests for care plan generation."""

from __future__ import annotations

from dataclasses import replace
from datetime import timedelta

import pytest

from bearable.domains.coaching.catalog import CoachingCatalog
from bearable.domains.coaching.domain_logic.care_plan import (
    CarePlanGenerator,
    create_standard_triggers,
    nudge_style_for,
)
from bearable.domains.coaching.domain_logic.models import (
    ALL_PILLARS,
    PHASE_ORDER,
    CommunicationStyle,
    GoalStatus,
    NudgeStyle,
    Pillar,
    PlanPhase,
    RequirementFrequency,
    Severity,
    TriggerType,
)


class TestCreateCarePlan:
    def test_all_pillars_yields_four_phases_of_six_goals(self, plan):
        assert len(plan.phases) == 4
        for phase in plan.phases:
            assert len(phase.goals) == 6
            assert {g.category for g in phase.goals} == set(ALL_PILLARS)
            assert len(phase.milestones) == 1

    def test_phases_in_fixed_order(self, plan):
        assert tuple(p.key for p in plan.phases) == PHASE_ORDER
        assert [p.duration_weeks for p in plan.phases] == [2, 4, 8, 12]

    def test_new_plan_starts_in_assessment(self, plan, now):
        assert plan.current_phase == 0
        assert plan.active_phase.key == PlanPhase.ASSESSMENT
        assert plan.created_at == now
        assert plan.updated_at == now
        assert plan.next_review == now + timedelta(days=30)

    def test_goals_start_active_at_zero(self, plan, now):
        for phase in plan.phases:
            for goal in phase.goals:
                assert goal.progress == 0
                assert goal.status == GoalStatus.ACTIVE
                assert goal.created_at == now

    def test_goal_ids_unique_within_plan(self, plan):
        ids = [g.id for p in plan.phases for g in p.goals]
        assert len(ids) == len(set(ids))
        assert "goal-optimal_nutrition-assessment-20260302110000" in ids

    def test_plan_id_includes_user_and_time(self, plan, user):
        assert plan.id == f"care-plan-{user.id}-20260302110000"
        assert plan.user_id == user.id

    def test_goal_content_comes_from_catalog(self, plan):
        goal = plan.phases[0].goals[0]
        assert goal.category == Pillar.OPTIMAL_NUTRITION
        assert goal.title == "Complete Nutrition Assessment"
        assert goal.timeline == "2 weeks"

    def test_goals_assigned_to_specialist_or_primary(self, plan):
        phase = plan.phases[1]
        by_pillar = {g.category: g.assigned_coach for g in phase.goals}
        assert by_pillar[Pillar.OPTIMAL_NUTRITION] == "coach-nutrition"
        assert by_pillar[Pillar.PHYSICAL_ACTIVITY] == "coach-fitness"
        assert by_pillar[Pillar.RESTORATIVE_SLEEP] == "coach-bearable"

    def test_milestone_target_dates_are_cumulative(self, plan, now):
        targets = [p.milestones[0].target_date for p in plan.phases]
        assert targets == [
            now + timedelta(weeks=2),
            now + timedelta(weeks=6),
            now + timedelta(weeks=14),
            now + timedelta(weeks=26),
        ]

    def test_milestones_start_unachieved(self, plan):
        milestone = plan.phases[0].milestones[0]
        assert milestone.title == "Baseline Assessment Complete"
        assert milestone.is_achieved is False
        assert milestone.achieved_date is None
        assert milestone.celebration_message is None

    def test_requirements_one_per_pillar(self, plan):
        assessment = plan.phases[0].required_activities
        assert len(assessment) == 6
        first = assessment[0]
        assert first.id == "assessment-optimal_nutrition"
        assert first.title == "optimal nutrition Assessment"
        assert first.frequency == RequirementFrequency.WEEKLY
        optimization = plan.phases[2].required_activities[0]
        assert optimization.target_value == 2
        assert optimization.target_unit == "advanced_practices"

    def test_selected_pillars_limit_scope(self, generator, user, coach_team, now):
        plan = generator.create_care_plan(
            user, coach_team, [Pillar.RESTORATIVE_SLEEP, Pillar.CONNECTEDNESS], now=now
        )
        assert plan.pillars == [Pillar.RESTORATIVE_SLEEP, Pillar.CONNECTEDNESS]
        for phase in plan.phases:
            assert [g.category for g in phase.goals] == plan.pillars

    def test_duplicate_pillars_collapsed(self, generator, user, coach_team, now):
        plan = generator.create_care_plan(
            user,
            coach_team,
            [Pillar.CONNECTEDNESS, Pillar.CONNECTEDNESS, Pillar.OPTIMAL_NUTRITION],
            now=now,
        )
        assert plan.pillars == [Pillar.CONNECTEDNESS, Pillar.OPTIMAL_NUTRITION]
        assert len(plan.phases[0].goals) == 2

    def test_empty_selection_means_all_pillars(self, generator, user, coach_team, now):
        plan = generator.create_care_plan(user, coach_team, [], now=now)
        assert plan.pillars == list(ALL_PILLARS)

    def test_missing_template_omits_goal(self, catalog, user, coach_team, now):
        templates = {
            key: value for key, value in catalog.goal_templates.items()
            if key != (Pillar.CONNECTEDNESS, PlanPhase.INITIATION)
        }
        sparse = CoachingCatalog(phases=catalog.phases, goal_templates=templates)
        plan = CarePlanGenerator(sparse).create_care_plan(user, coach_team, now=now)
        assert len(plan.phases[0].goals) == 6
        assert len(plan.phases[1].goals) == 5
        assert Pillar.CONNECTEDNESS not in {g.category for g in plan.phases[1].goals}

    def test_communication_style_sets_nudge_style(self, generator, user, coach_team, now):
        gentle_user = replace(user, communication_style=CommunicationStyle.GENTLE)
        plan = generator.create_care_plan(gentle_user, coach_team, now=now)
        assert plan.phases[0].goals[0].nudge_settings.personalized_style == NudgeStyle.GENTLE

    def test_plan_has_standard_triggers_and_protocols(self, plan):
        assert [t.type for t in plan.escalation_triggers] == [
            TriggerType.NO_ENGAGEMENT,
            TriggerType.MISSED_GOALS,
            TriggerType.HEALTH_DECLINE,
        ]
        assert len(plan.protocols) == 3


class TestNudgeStyleFor:
    @pytest.mark.parametrize(
        ("style", "expected"),
        [
            (CommunicationStyle.GENTLE, NudgeStyle.GENTLE),
            (CommunicationStyle.ENCOURAGING, NudgeStyle.MOTIVATIONAL),
            (CommunicationStyle.DIRECT, NudgeStyle.DIRECT),
            (CommunicationStyle.SUPPORTIVE, NudgeStyle.SCIENTIFIC),
            (None, NudgeStyle.MOTIVATIONAL),
        ],
    )
    def test_mapping(self, style, expected):
        assert nudge_style_for(style) == expected


class TestStandardTriggers:
    def test_ids_scoped_to_user(self):
        triggers = create_standard_triggers("u42")
        assert [t.id for t in triggers] == [
            "escalation-no-engagement-u42",
            "escalation-missed-goals-u42",
            "escalation-health-decline-u42",
        ]

    def test_conditions(self):
        no_engagement, missed, decline = create_standard_triggers("u42")
        assert no_engagement.conditions.severity == Severity.MEDIUM
        assert no_engagement.conditions.time_window == "72 hours"
        assert missed.conditions.severity == Severity.HIGH
        assert missed.conditions.threshold == 3
        assert decline.conditions.severity == Severity.CRITICAL
        assert decline.conditions.threshold == 2

    def test_all_active_and_tier_routed(self):
        for trigger in create_standard_triggers("u42"):
            assert trigger.is_active
            assert trigger.target_caregivers == []


class TestCarePlanInvariants:
    def test_rejects_wrong_phase_order(self, plan):
        with pytest.raises(ValueError, match="phases"):
            replace(plan, phases=list(reversed(plan.phases)))

    def test_rejects_missing_phase(self, plan):
        with pytest.raises(ValueError):
            replace(plan, phases=plan.phases[:3])

    def test_rejects_out_of_range_current_phase(self, plan):
        with pytest.raises(ValueError, match="current_phase"):
            replace(plan, current_phase=4)
