"""Shared helpers for coaching MCP tools.

Tool payloads arrive as JSON objects; these helpers turn the optional
``now`` argument into a timestamp and malformed payloads into the error
envelope every tool returns.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone

from bearable.domains.coaching.serialization import parse_datetime

logger = logging.getLogger(__name__)

# Raised by the *_from_dict mappers for missing fields or bad values
PAYLOAD_ERRORS = (KeyError, ValueError, TypeError)


def resolve_now(now: str = "") -> datetime:
    """Parse an ISO timestamp, defaulting to the current UTC time."""
    if not now:
        return datetime.now(timezone.utc)
    return parse_datetime(now)


def error_response(tool: str, exc: Exception) -> str:
    message = f"Invalid payload: {exc.__class__.__name__}: {exc}"
    logger.warning("%s rejected payload: %s", tool, message)
    return json.dumps({"status": "error", "message": message})
