"""MCP tools for proactive nudge generation."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from fastmcp import Context, FastMCP

from bearable.domains.coaching.serialization import (
    activity_log_from_dict,
    care_plan_from_dict,
    coach_team_from_dict,
    nudge_to_dict,
    user_from_dict,
)
from bearable.domains.coaching.tools.payloads import (
    PAYLOAD_ERRORS,
    error_response,
    resolve_now,
)

if TYPE_CHECKING:
    from bearable.domains.coaching.domain_logic.nudge_engine import NudgeEngine

logger = logging.getLogger(__name__)


def register_nudge_tools(mcp: FastMCP, engine: NudgeEngine) -> None:
    """Register nudge tools on the MCP server."""

    @mcp.tool
    async def generate_nudges(
        ctx: Context,
        user: dict,
        care_plan: dict,
        coach_team: dict,
        recent_activity: list[dict] | None = None,
        now: str = "",
    ) -> str:
        """Generate up to five prioritized nudges for one scheduling cycle.

        Args:
            user: User profile (id, name, timezone, quietHours).
            care_plan: The user's current care plan.
            coach_team: Coach team used to attribute nudges.
            recent_activity: Activity log entries (type, timestamp, category, value).
            now: Evaluation time (ISO 8601). Defaults to the current UTC time.
        """
        try:
            profile = user_from_dict(user)
            plan = care_plan_from_dict(care_plan)
            team = coach_team_from_dict(coach_team)
            activity = [activity_log_from_dict(a) for a in recent_activity or []]
            nudges = engine.generate_nudges(profile, plan, team, activity, resolve_now(now))
        except PAYLOAD_ERRORS as exc:
            return error_response("generate_nudges", exc)

        logger.info("Generated %d nudges for %s", len(nudges), profile.id)
        return json.dumps({
            "status": "ok",
            "count": len(nudges),
            "nudges": [nudge_to_dict(n) for n in nudges],
        })
