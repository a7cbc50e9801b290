"""Command-line launcher for the vitaltrend MCP server (``vitaltrend`` script)."""

from __future__ import annotations

import logging
from ipaddress import ip_address

from vitaltrend.core.config.settings import Settings, get_settings
from vitaltrend.core.server.app import create_app

logger = logging.getLogger(__name__)


def _is_loopback_host(host: str) -> bool:
    if host == "localhost":
        return True
    try:
        return ip_address(host).is_loopback
    except ValueError:
        return False


def _check_bind(settings: Settings) -> None:
    """Health records are served without authentication; only loopback unless overridden."""
    if settings.vt_allow_insecure_bind or _is_loopback_host(settings.vt_host):
        return
    raise RuntimeError(
        f"vitaltrend will not listen on {settings.vt_host}: the tools expose health "
        "records without authentication. Set VT_ALLOW_INSECURE_BIND=true to allow it."
    )


def run() -> None:
    """Configure logging, validate the bind address and serve over Streamable HTTP."""
    settings = get_settings()
    logging.basicConfig(level=getattr(logging, settings.vt_log_level.upper(), logging.INFO))
    _check_bind(settings)

    logger.info(
        "vitaltrend listening on http://%s:%d (records cache: %s, display tz: %s)",
        settings.vt_host, settings.vt_port, settings.records_cache_path, settings.display_timezone,
    )
    create_app().run(
        transport="streamable-http",
        host=settings.vt_host,
        port=settings.vt_port,
    )


if __name__ == "__main__":
    run()
