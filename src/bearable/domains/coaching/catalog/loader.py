"""Catalog loader: reads coaching catalog YAML definitions from disk."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from bearable.domains.coaching.catalog.models import (
    CoachingCatalog,
    GoalTemplate,
    MilestoneTemplate,
    PhaseDefinition,
    RequirementTemplate,
    TimedNudgeTemplate,
)
from bearable.domains.coaching.domain_logic.models import (
    NudgeFrequency,
    Pillar,
    PlanPhase,
    RequirementFrequency,
)

logger = logging.getLogger(__name__)

# Shipped catalog definitions live under src/bearable/domains/coaching/catalogs/
DEFAULT_CATALOG_DIR = Path(__file__).resolve().parent.parent / "catalogs"

PHASES_FILE = "phases.yaml"
GOAL_TEMPLATES_FILE = "goal_templates.yaml"
NUDGE_TEMPLATES_FILE = "nudge_templates.yaml"


class CatalogError(Exception):
    """Raised when a catalog file is missing or malformed."""


def load_catalog(directory: str | Path | None = None) -> CoachingCatalog:
    """Load the phase, goal, and nudge catalogs from ``directory``.

    Args:
        directory: Folder holding the catalog YAML files. Defaults to the
            catalogs shipped with the package.

    Raises:
        CatalogError: A required file is missing or does not parse into
            the expected shape.
    """
    directory = Path(directory) if directory else DEFAULT_CATALOG_DIR
    if not directory.is_dir():
        raise CatalogError(f"Catalog directory does not exist: {directory}")

    phases_data = _read_yaml(directory / PHASES_FILE)
    goals_data = _read_yaml(directory / GOAL_TEMPLATES_FILE)
    nudges_path = directory / NUDGE_TEMPLATES_FILE
    nudges_data = _read_yaml(nudges_path) if nudges_path.exists() else {}

    try:
        catalog = CoachingCatalog(
            phases=tuple(_parse_phase(p) for p in phases_data.get("phases", [])),
            goal_templates=_parse_goal_templates(goals_data.get("goal_templates", {})),
            timed_nudges=tuple(
                _parse_timed_nudge(n) for n in nudges_data.get("timed_nudges", [])
            ),
            pillar_messages={
                Pillar(k): str(v).strip()
                for k, v in (nudges_data.get("pillar_messages") or {}).items()
            },
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise CatalogError(f"Malformed catalog in {directory}: {exc}") from exc

    logger.info(
        "Loaded coaching catalog from %s: %d phases, %d goal templates, %d timed nudges",
        directory,
        len(catalog.phases),
        len(catalog.goal_templates),
        len(catalog.timed_nudges),
    )
    return catalog


def _read_yaml(path: Path) -> dict[str, Any]:
    if not path.is_file():
        raise CatalogError(f"Catalog file not found: {path}")
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise CatalogError(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise CatalogError(f"Expected a mapping at top level of {path}")
    return data


def _parse_phase(data: dict[str, Any]) -> PhaseDefinition:
    milestone = data["milestone"]
    requirement = data["requirement"]
    return PhaseDefinition(
        key=PlanPhase(data["key"]),
        id=data["id"],
        name=data["name"],
        description=data["description"].strip(),
        duration_weeks=int(data["duration_weeks"]),
        timeline=data.get("timeline") or f"{data['duration_weeks']} weeks",
        milestone=MilestoneTemplate(
            id=milestone["id"],
            title=milestone["title"],
            description=milestone.get("description", "").strip(),
        ),
        requirement=RequirementTemplate(
            frequency=RequirementFrequency(requirement["frequency"]),
            target_value=float(requirement["target_value"]),
            target_unit=requirement["target_unit"],
            title=requirement["title"],
            description=requirement.get("description", ""),
        ),
    )


def _parse_goal_templates(
    data: dict[str, dict[str, dict[str, str]]],
) -> dict[tuple[Pillar, PlanPhase], GoalTemplate]:
    templates: dict[tuple[Pillar, PlanPhase], GoalTemplate] = {}
    for pillar_name, by_phase in data.items():
        pillar = Pillar(pillar_name)
        for phase_name, template in (by_phase or {}).items():
            templates[(pillar, PlanPhase(phase_name))] = GoalTemplate(
                title=template["title"],
                description=template.get("description", "").strip(),
                target=template.get("target", "").strip(),
            )
    return templates


def _parse_timed_nudge(data: dict[str, Any]) -> TimedNudgeTemplate:
    pillar = data.get("pillar")
    return TimedNudgeTemplate(
        id=data["id"],
        title=data["title"],
        message_template=data["message"].strip(),
        preferred_time=str(data["preferred_time"]),
        frequency=NudgeFrequency(data.get("frequency", "daily")),
        pillar=Pillar(pillar) if pillar else None,
    )
