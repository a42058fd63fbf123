"""Run the Bearable coaching server: ``python -m bearable.core.server.main``.

The coaching tools accept care plans, caregiver contacts and activity logs
with no authentication of their own, so the server only listens on a
loopback address unless BEARABLE_ALLOW_INSECURE_BIND is set.
"""

from __future__ import annotations

import logging
from ipaddress import ip_address

from bearable.core.config.settings import Settings, get_settings
from bearable.core.server.app import SERVER_NAME, create_app

logger = logging.getLogger(__name__)


def _is_loopback_host(host: str) -> bool:
    if host == "localhost":
        return True
    try:
        return ip_address(host).is_loopback
    except ValueError:
        return False


def check_bind_host(settings: Settings) -> None:
    """Raise unless the configured host is loopback or the override is set."""
    if settings.bearable_allow_insecure_bind or _is_loopback_host(settings.bearable_host):
        return
    raise RuntimeError(
        f"BEARABLE_HOST={settings.bearable_host!r} is a non-loopback address; caregiver "
        "contacts and care plans would be served without authentication. "
        "Set BEARABLE_ALLOW_INSECURE_BIND=true to serve it anyway."
    )


def run() -> None:
    """Serve the coaching tools over Streamable HTTP."""
    settings = get_settings()
    logging.basicConfig(level=getattr(logging, settings.bearable_log_level.upper(), logging.INFO))

    check_bind_host(settings)
    if settings.bearable_allow_insecure_bind and not _is_loopback_host(settings.bearable_host):
        logger.warning("Serving %s on public host %s", SERVER_NAME, settings.bearable_host)

    mcp = create_app()
    logger.info(
        "%s listening on %s:%d (catalog: %s)",
        SERVER_NAME,
        settings.bearable_host,
        settings.bearable_port,
        settings.catalog_dir or "bundled",
    )
    mcp.run(
        transport="streamable-http",
        host=settings.bearable_host,
        port=settings.bearable_port,
    )


if __name__ == "__main__":
    run()
