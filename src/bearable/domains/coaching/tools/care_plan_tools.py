"""MCP tools for care plan creation and progress tracking.

Plans are not stored server-side: every tool takes the current plan as a
JSON object and returns the updated plan for the caller to keep.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from fastmcp import Context, FastMCP

from bearable.domains.coaching.domain_logic.care_plan import (
    assign_trigger_caregivers,
    set_trigger_active,
    update_progress,
)
from bearable.domains.coaching.domain_logic.models import Pillar
from bearable.domains.coaching.serialization import (
    care_plan_from_dict,
    care_plan_to_dict,
    coach_team_from_dict,
    user_from_dict,
)
from bearable.domains.coaching.tools.payloads import (
    PAYLOAD_ERRORS,
    error_response,
    resolve_now,
)

if TYPE_CHECKING:
    from bearable.domains.coaching.domain_logic.care_plan import CarePlanGenerator

logger = logging.getLogger(__name__)


def register_care_plan_tools(
    mcp: FastMCP,
    generator: CarePlanGenerator,
) -> None:
    """Register care plan tools on the MCP server."""

    @mcp.tool
    async def create_care_plan(
        ctx: Context,
        user: dict,
        coach_team: dict,
        selected_pillars: list[str] | None = None,
        now: str = "",
    ) -> str:
        """Create a four-phase lifestyle-medicine care plan.

        Args:
            user: User profile (id, name, communicationStyle, timezone, quietHours).
            coach_team: Coach team (primaryCoach, specialists keyed by pillar).
            selected_pillars: Pillars to include (e.g., 'optimal_nutrition'). Defaults to all six.
            now: Creation time (ISO 8601). Defaults to the current UTC time.
        """
        try:
            profile = user_from_dict(user)
            team = coach_team_from_dict(coach_team)
            pillars = [Pillar(p) for p in selected_pillars or []]
            plan = generator.create_care_plan(profile, team, pillars, now=resolve_now(now))
        except PAYLOAD_ERRORS as exc:
            return error_response("create_care_plan", exc)

        return json.dumps({"status": "created", "care_plan": care_plan_to_dict(plan)})

    @mcp.tool
    async def update_goal_progress(
        ctx: Context,
        care_plan: dict,
        goal_id: str,
        progress: int,
        now: str = "",
    ) -> str:
        """Record progress on a goal in the plan's current phase.

        Milestones and phase advancement are re-evaluated after the update.
        An unknown goal id leaves the plan unchanged.

        Args:
            care_plan: The care plan as returned by create_care_plan.
            goal_id: Id of a goal in the current phase.
            progress: New progress percentage (0-100).
            now: Update time (ISO 8601). Defaults to the current UTC time.
        """
        try:
            plan = care_plan_from_dict(care_plan)
            phase_before = plan.current_phase
            found = plan.active_phase.find_goal(goal_id) is not None
            update_progress(plan, goal_id, progress, now=resolve_now(now))
        except PAYLOAD_ERRORS as exc:
            return error_response("update_goal_progress", exc)

        logger.info("Progress update on plan %s: goal=%s progress=%d", plan.id, goal_id, progress)
        return json.dumps({
            "status": "updated" if found else "unchanged",
            "phase_advanced": plan.current_phase != phase_before,
            "care_plan": care_plan_to_dict(plan),
        })

    @mcp.tool
    async def set_escalation_trigger(
        ctx: Context,
        care_plan: dict,
        trigger_id: str,
        active: bool | None = None,
        caregiver_ids: list[str] | None = None,
        now: str = "",
    ) -> str:
        """Enable, disable, or re-route an escalation trigger.

        Args:
            care_plan: The care plan holding the trigger.
            trigger_id: Id of the trigger to change.
            active: New active flag. Omit to leave unchanged.
            caregiver_ids: Explicit caregiver ids to notify. An empty list restores
                severity-tier routing; omit to leave unchanged.
            now: Change time (ISO 8601). Defaults to the current UTC time.
        """
        try:
            plan = care_plan_from_dict(care_plan)
            when = resolve_now(now)
        except PAYLOAD_ERRORS as exc:
            return error_response("set_escalation_trigger", exc)

        if plan.find_trigger(trigger_id) is None:
            return json.dumps({"status": "error", "message": f"Unknown trigger: {trigger_id}"})

        if active is not None:
            set_trigger_active(plan, trigger_id, active, now=when)
        if caregiver_ids is not None:
            assign_trigger_caregivers(plan, trigger_id, caregiver_ids, now=when)

        return json.dumps({"status": "updated", "care_plan": care_plan_to_dict(plan)})
