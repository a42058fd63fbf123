"""Bearable coaching MCP server application factory.

This module provides:
- create_app() for testability (integration tests create fresh server instances)
- Module-level `mcp` variable for FastMCP discovery
"""

from __future__ import annotations

import logging

from fastmcp import FastMCP

from bearable.core.config.settings import get_settings
from bearable.domains.coaching.catalog import CoachingCatalog, load_catalog
from bearable.domains.coaching.domain_logic.care_plan import CarePlanGenerator
from bearable.domains.coaching.domain_logic.escalation import EscalationEvaluator
from bearable.domains.coaching.domain_logic.nudge_engine import NudgeEngine
from bearable.domains.coaching.tools.care_plan_tools import register_care_plan_tools
from bearable.domains.coaching.tools.escalation_tools import register_escalation_tools
from bearable.domains.coaching.tools.nudge_tools import register_nudge_tools

logger = logging.getLogger(__name__)

SERVER_NAME = "Bearable Health Coach"
SERVER_VERSION = "0.1.0"


def create_app(
    *,
    catalog_override: CoachingCatalog | None = None,
    evaluator_override: EscalationEvaluator | None = None,
) -> FastMCP:
    """Create and configure the coaching MCP server.

    This is the main application factory. It:
    1. Creates the FastMCP server instance
    2. Loads the coaching catalog (or uses the override)
    3. Builds the plan generator, nudge engine and escalation evaluator
    4. Registers all tools
    """
    settings = get_settings()

    # --- Server instance ---
    server = FastMCP(
        SERVER_NAME,
        instructions=(
            "Lifestyle-medicine coaching server. Creates phased care plans, "
            "tracks goal progress, generates proactive nudges and evaluates "
            "caregiver escalation triggers. Plans are passed in and returned "
            "as JSON; the server keeps no state between calls."
        ),
    )

    # --- Catalog ---
    if catalog_override is not None:
        catalog = catalog_override
    else:
        catalog = load_catalog(settings.catalog_dir or None)
    logger.info(
        "Catalog ready: %d phases, %d goal templates, %d timed nudges",
        len(catalog.phases),
        len(catalog.goal_templates),
        len(catalog.timed_nudges),
    )

    # --- Engines ---
    generator = CarePlanGenerator(catalog)
    nudge_engine = NudgeEngine(catalog)
    evaluator = evaluator_override or EscalationEvaluator()

    # --- Register tools ---
    @server.tool
    def health_check() -> dict:
        """Check server health and return basic status information."""
        return {
            "status": "ok",
            "server": SERVER_NAME,
            "version": SERVER_VERSION,
            "phases_loaded": len(catalog.phases),
            "goal_templates_loaded": len(catalog.goal_templates),
            "timed_nudges_loaded": len(catalog.timed_nudges),
        }

    register_care_plan_tools(server, generator)
    logger.info("Care plan tools registered")

    register_nudge_tools(server, nudge_engine)
    logger.info("Nudge tools registered")

    register_escalation_tools(server, evaluator)
    logger.info("Escalation tools registered")

    return server


# Module-level instance for FastMCP discovery ("...app.py:mcp").
# Lazy: only created when this module is loaded directly (not when tests import create_app).
def __getattr__(name: str):
    if name == "mcp":
        global mcp  # noqa: PLW0603
        mcp = create_app()
        return mcp
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
