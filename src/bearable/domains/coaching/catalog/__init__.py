"""Coaching catalog: read-only phase, goal, and nudge template data."""

from bearable.domains.coaching.catalog.loader import CatalogError, load_catalog
from bearable.domains.coaching.catalog.models import CoachingCatalog

__all__ = ["CatalogError", "CoachingCatalog", "load_catalog"]
