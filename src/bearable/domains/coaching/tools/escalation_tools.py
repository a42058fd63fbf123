"""MCP tools for caregiver escalation and caregiver-facing summaries."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from fastmcp import Context, FastMCP

from bearable.domains.coaching.domain_logic.caregiver_summary import (
    generate_caregiver_summary,
    generate_proactive_insights,
)
from bearable.domains.coaching.serialization import (
    activity_log_from_dict,
    care_plan_from_dict,
    caregiver_from_dict,
    caregiver_summary_to_dict,
    escalation_result_to_dict,
    insight_to_dict,
    user_from_dict,
)
from bearable.domains.coaching.tools.payloads import (
    PAYLOAD_ERRORS,
    error_response,
    resolve_now,
)

if TYPE_CHECKING:
    from bearable.domains.coaching.domain_logic.escalation import EscalationEvaluator

logger = logging.getLogger(__name__)


def register_escalation_tools(mcp: FastMCP, evaluator: EscalationEvaluator) -> None:
    """Register escalation and caregiver summary tools on the MCP server."""

    @mcp.tool
    async def evaluate_escalations(
        ctx: Context,
        care_plan: dict,
        user: dict,
        caregivers: list[dict],
        recent_activity: list[dict] | None = None,
        now: str = "",
    ) -> str:
        """Evaluate the plan's escalation triggers and build caregiver alerts.

        Args:
            care_plan: The user's care plan, including escalationTriggers.
            user: User profile; its timezone is the fallback for caregiver quiet hours.
            caregivers: Caregiver records (relationship, escalationLevel, permissions).
            recent_activity: Activity log entries to evaluate.
            now: Evaluation time (ISO 8601). Defaults to the current UTC time.
        """
        try:
            plan = care_plan_from_dict(care_plan)
            profile = user_from_dict(user)
            people = [caregiver_from_dict(c) for c in caregivers]
            activity = [activity_log_from_dict(a) for a in recent_activity or []]
            result = evaluator.evaluate_escalations(
                plan, profile, activity, people, resolve_now(now)
            )
        except PAYLOAD_ERRORS as exc:
            return error_response("evaluate_escalations", exc)

        return json.dumps({"status": "ok", **escalation_result_to_dict(result)})

    @mcp.tool
    async def caregiver_summary(
        ctx: Context,
        user: dict,
        care_plan: dict,
        recent_activity: list[dict] | None = None,
        now: str = "",
    ) -> str:
        """Summarize plan status and insights for a caregiver dashboard.

        Args:
            user: User profile.
            care_plan: The user's care plan.
            recent_activity: Recent activity entries; none at all reads as disengaged.
            now: Summary time (ISO 8601). Defaults to the current UTC time.
        """
        try:
            profile = user_from_dict(user)
            plan = care_plan_from_dict(care_plan)
            activity = [activity_log_from_dict(a) for a in recent_activity or []]
            when = resolve_now(now)
        except PAYLOAD_ERRORS as exc:
            return error_response("caregiver_summary", exc)

        insights = generate_proactive_insights(plan, when)
        summary = generate_caregiver_summary(profile, plan, activity, insights, when)
        logger.info("Caregiver summary for %s: %s", profile.id, summary.overall_status)
        return json.dumps({
            "status": "ok",
            "summary": caregiver_summary_to_dict(summary),
            "insights": [insight_to_dict(i) for i in insights],
        })
