"""vitaltrend MCP server — application factory.

This module provides:
- create_app() for testability (integration tests create fresh server instances)
- Module-level `mcp` variable for FastMCP discovery
"""

from __future__ import annotations

import logging

from fastmcp import FastMCP

from vitaltrend.core.config.settings import get_settings
from vitaltrend.domains.health.connectors import HealthRecordSource
from vitaltrend.domains.health.connectors.local_cache import LocalCacheRecordSource
from vitaltrend.domains.health.tools.health_view_tools import register_health_view_tools

logger = logging.getLogger(__name__)

VERSION = "0.1.0"


def create_app(
    *,
    record_source_override: HealthRecordSource | None = None,
) -> FastMCP:
    """Create and configure the vitaltrend MCP server.

    This is the main application factory. It:
    1. Creates the FastMCP server instance
    2. Initializes the record source (local cache unless overridden)
    3. Registers the health view tools
    """
    settings = get_settings()

    # --- Server instance ---
    server = FastMCP(
        "vitaltrend",
        instructions=(
            "Personal health-metrics tracker. Provides time-windowed record "
            "lists, chart-ready datasets for weight, blood pressure and glucose, "
            "and a day-by-day clinical review with threshold alerts."
        ),
    )

    # --- Initialize record source ---
    if record_source_override is not None:
        source = record_source_override
    else:
        source = LocalCacheRecordSource(settings.records_cache_path)
        logger.info("Using local record cache at %s", settings.records_cache_path)

    # --- Register tools ---
    @server.tool
    def health_check() -> dict:
        """Check server health and return basic status information."""
        return {
            "status": "ok",
            "server": "vitaltrend",
            "version": VERSION,
            "display_timezone": settings.display_timezone,
            **source.get_provenance(),
        }

    register_health_view_tools(server, source, settings)
    logger.info("Health view tools registered (source: %s)", source.data_source)

    return server


# Module-level instance for FastMCP discovery.
# Lazy: only created when this module is loaded directly (not when tests import create_app).
def __getattr__(name: str):
    if name == "mcp":
        global mcp  # noqa: PLW0603
        mcp = create_app()
        return mcp
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
