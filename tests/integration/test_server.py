"""Integration tests for the Bearable coaching MCP server."""

from __future__ import annotations

import asyncio
import json

import pytest
from fastmcp import Client

from bearable.core.server.app import create_app


def _run(coro):
    """Run an async coroutine synchronously (no pytest-asyncio required)."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def _payload(result) -> dict:
    """Decode the JSON text a tool returned."""
    content = getattr(result, "content", result)
    return json.loads(content[0].text)


ALL_EXPECTED_TOOLS = [
    "health_check",
    "create_care_plan",
    "update_goal_progress",
    "set_escalation_trigger",
    "generate_nudges",
    "evaluate_escalations",
    "caregiver_summary",
]

NOW = "2026-03-02T11:00:00+00:00"

USER = {"id": "user-1", "name": "Alex", "timezone": "UTC"}
COACH_TEAM = {
    "primaryCoach": "coach-bearable",
    "specialists": {"physical_activity": "coach-fitness"},
}
FAMILY = {
    "id": "cg-family",
    "name": "Jordan",
    "relationship": "family",
    "escalationLevel": "primary",
    "permissions": {"receiveAlerts": True},
}


@pytest.fixture
def client(catalog):
    mcp = create_app(catalog_override=catalog)
    return Client(mcp)


async def _call(client, tool: str, arguments: dict) -> dict:
    return _payload(await client.call_tool(tool, arguments))


async def _create_plan(client, pillars=None) -> dict:
    payload = await _call(client, "create_care_plan", {
        "user": USER,
        "coach_team": COACH_TEAM,
        "selected_pillars": pillars,
        "now": NOW,
    })
    return payload["care_plan"]


def test_server_starts_and_lists_tools(client):
    """Server should start and expose all registered tools."""
    async def _check():
        async with client:
            tools = await client.list_tools()
            tool_names = [t.name for t in tools]
            for expected in ALL_EXPECTED_TOOLS:
                assert expected in tool_names, f"Missing tool: {expected}"
    _run(_check())


def test_health_check_returns_ok(client):
    """health_check tool should return status ok with catalog counts."""
    async def _check():
        async with client:
            result = await client.call_tool("health_check", {})
            text = str(result)
            assert "ok" in text
            assert "goal_templates_loaded" in text
    _run(_check())


def test_create_care_plan(client):
    async def _check():
        async with client:
            payload = await _call(client, "create_care_plan", {
                "user": USER,
                "coach_team": COACH_TEAM,
                "now": NOW,
            })
            assert payload["status"] == "created"
            plan = payload["care_plan"]
            assert len(plan["phases"]) == 4
            assert all(len(p["goals"]) == 6 for p in plan["phases"])
            assert plan["createdAt"] == NOW
    _run(_check())


def test_create_care_plan_rejects_unknown_pillar(client):
    async def _check():
        async with client:
            payload = await _call(client, "create_care_plan", {
                "user": USER,
                "coach_team": COACH_TEAM,
                "selected_pillars": ["astrology"],
                "now": NOW,
            })
            assert payload["status"] == "error"
            assert "astrology" in payload["message"]
    _run(_check())


def test_progress_updates_advance_phase(client):
    async def _check():
        async with client:
            plan = await _create_plan(client, ["physical_activity"])
            goal_id = plan["phases"][0]["goals"][0]["id"]
            payload = await _call(client, "update_goal_progress", {
                "care_plan": plan,
                "goal_id": goal_id,
                "progress": 100,
                "now": "2026-03-05T09:00:00+00:00",
            })
            assert payload["status"] == "updated"
            assert payload["phase_advanced"] is True
            updated = payload["care_plan"]
            assert updated["currentPhase"] == 1
            assert updated["phases"][0]["milestones"][0]["isAchieved"] is True
    _run(_check())


def test_unknown_goal_reports_unchanged(client):
    async def _check():
        async with client:
            plan = await _create_plan(client)
            payload = await _call(client, "update_goal_progress", {
                "care_plan": plan,
                "goal_id": "goal-missing",
                "progress": 50,
                "now": "2026-03-05T09:00:00+00:00",
            })
            assert payload["status"] == "unchanged"
            assert payload["care_plan"] == plan
    _run(_check())


def test_set_escalation_trigger(client):
    async def _check():
        async with client:
            plan = await _create_plan(client)
            arguments = {
                "care_plan": plan,
                "trigger_id": plan["escalationTriggers"][0]["id"],
                "active": False,
                "caregiver_ids": ["cg-family"],
                "now": NOW,
            }
            payload = await _call(client, "set_escalation_trigger", arguments)
            trigger = payload["care_plan"]["escalationTriggers"][0]
            assert trigger["isActive"] is False
            assert trigger["targetCaregivers"] == ["cg-family"]

            missing = await _call(
                client, "set_escalation_trigger", {**arguments, "trigger_id": "no-such-trigger"}
            )
            assert missing["status"] == "error"
    _run(_check())


def test_generate_nudges_capped(client):
    async def _check():
        async with client:
            plan = await _create_plan(client)
            payload = await _call(client, "generate_nudges", {
                "user": USER,
                "care_plan": plan,
                "coach_team": COACH_TEAM,
                "recent_activity": [],
                "now": "2026-03-07T14:00:00+00:00",
            })
            assert payload["status"] == "ok"
            assert payload["count"] == 5
            assert payload["nudges"][0]["priority"] == "high"
    _run(_check())


def test_evaluate_escalations_alerts_family(client):
    async def _check():
        async with client:
            plan = await _create_plan(client)
            for goal in plan["phases"][0]["goals"]:
                goal["progress"] = 50
            payload = await _call(client, "evaluate_escalations", {
                "care_plan": plan,
                "user": USER,
                "caregivers": [FAMILY],
                "recent_activity": [],
                "now": NOW,
            })
            assert [t["type"] for t in payload["triggeredEscalations"]] == ["no_engagement"]
            assert len(payload["urgentAlerts"]) == 1
            alert = payload["urgentAlerts"][0]
            assert alert["type"] == "concern"
            assert alert["caregiverId"] == "cg-family"
            assert payload["unmetEscalations"] == []
    _run(_check())


def test_timestamps_without_offset_are_accepted(client):
    activity = [{"type": "exercise", "timestamp": "2026-03-02T09:00:00", "value": 30}]

    async def _check():
        async with client:
            plan = await _create_plan(client)
            for goal in plan["phases"][0]["goals"]:
                goal["progress"] = 50
            nudges = await _call(client, "generate_nudges", {
                "user": USER,
                "care_plan": plan,
                "coach_team": COACH_TEAM,
                "recent_activity": activity,
                "now": "2026-03-02T11:00:00",
            })
            escalations = await _call(client, "evaluate_escalations", {
                "care_plan": plan,
                "user": USER,
                "caregivers": [FAMILY],
                "recent_activity": activity,
                "now": "2026-03-02T11:00:00",
            })
            assert nudges["status"] == "ok"
            assert escalations["status"] == "ok"
            assert escalations["triggeredEscalations"] == []
    _run(_check())


def test_evaluate_escalations_bad_caregiver(client):
    async def _check():
        async with client:
            plan = await _create_plan(client)
            payload = await _call(client, "evaluate_escalations", {
                "care_plan": plan,
                "user": USER,
                "caregivers": [{"name": "no id"}],
                "now": NOW,
            })
            assert payload["status"] == "error"
    _run(_check())


def test_caregiver_summary(client):
    async def _check():
        async with client:
            plan = await _create_plan(client)
            payload = await _call(client, "caregiver_summary", {
                "user": USER,
                "care_plan": plan,
                "recent_activity": [
                    {"id": "a1", "userId": "user-1", "type": "exercise",
                     "timestamp": "2026-03-10T08:00:00Z", "value": 30},
                ],
                "now": "2026-03-11T11:00:00+00:00",
            })
            summary = payload["summary"]
            assert summary["overallStatus"] == "concerning"
            assert "Alex is currently in Assessment & Foundation" in summary["progressSummary"]
            assert len(payload["insights"]) == 6
    _run(_check())
