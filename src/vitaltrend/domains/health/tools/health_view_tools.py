"""MCP tools exposing the analytics engine's read-only views.

Each tool takes a fresh snapshot from the record source, recomputes the view
and returns plain JSON. Nothing is cached between calls.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import asdict
from datetime import date
from typing import TYPE_CHECKING, Any

from fastmcp import Context, FastMCP

from vitaltrend.domains.health.connectors.local_cache import RecordCacheError
from vitaltrend.domains.health.domain_logic.chart_builder import build_chart_bundles
from vitaltrend.domains.health.domain_logic.chart_styles import (
    ChartDisplayOptions,
    load_chart_styles,
)
from vitaltrend.domains.health.domain_logic.classification import (
    latest_weight_alert,
    record_flags,
)
from vitaltrend.domains.health.domain_logic.daily_aggregator import build_clinical_review
from vitaltrend.domains.health.domain_logic.record_codec import record_to_dict
from vitaltrend.domains.health.domain_logic.record_models import (
    AuxiliaryMode,
    ReviewMode,
    SortOrder,
    TimeRange,
)
from vitaltrend.domains.health.domain_logic.time_window import (
    filter_by_range,
    record_for_index,
    sort_records,
)

if TYPE_CHECKING:
    from vitaltrend.core.config.settings import Settings
    from vitaltrend.domains.health.connectors import HealthRecordSource

logger = logging.getLogger(__name__)


def _error(message: str) -> str:
    return json.dumps({"status": "error", "message": message})


def _parse_window(time_range: str, reference_date: str) -> tuple[TimeRange, date | None]:
    """Raises ValueError for unknown ranges or malformed dates."""
    parsed_date = date.fromisoformat(reference_date) if reference_date else None
    return TimeRange(time_range), parsed_date


def register_health_view_tools(
    mcp: FastMCP,
    source: HealthRecordSource,
    settings: Settings,
) -> None:
    """Register the dashboard, list, review and edit-lookup tools on the MCP server."""

    tz = settings.display_tz()
    styles = load_chart_styles(settings.chart_styles_path or None)

    async def _snapshot(time_range: str, reference_date: str):
        window, ref = _parse_window(time_range or settings.default_time_range, reference_date)
        records = await source.get_records()
        thresholds = await source.get_thresholds()
        filtered = filter_by_range(records, window, ref, tz=tz)
        return window, records, thresholds, filtered

    @mcp.tool
    async def health_records(
        ctx: Context,
        time_range: str = "",
        reference_date: str = "",
        order: str = "desc",
    ) -> str:
        """List health records inside a time window with their alert flags.

        Args:
            time_range: week, 2week, month, quarter, halfYear, year or all.
                Defaults to the configured range.
            reference_date: Optional 'as of' date (YYYY-MM-DD).
            order: 'desc' (newest first) or 'asc'.
        """
        start_time = time.monotonic()
        try:
            window, records, thresholds, filtered = await _snapshot(time_range, reference_date)
            sort_order = SortOrder(order)
        except ValueError as exc:
            return _error(str(exc))
        except RecordCacheError as exc:
            logger.error("health_records: %s", exc)
            return _error(str(exc))

        items = []
        for record in sort_records(filtered, sort_order):
            item: dict[str, Any] = record_to_dict(record)
            item["flags"] = asdict(record_flags(record, records, thresholds))
            items.append(item)

        logger.info(
            "health_records: %s -> %d records (%.1f ms)",
            window.value, len(items), (time.monotonic() - start_time) * 1000,
        )
        return json.dumps({
            "time_range": window.value,
            "count": len(items),
            "records": items,
            "thresholds": thresholds.to_mapping(),
            **source.get_provenance(),
        })

    @mcp.tool
    async def health_dashboard(
        ctx: Context,
        time_range: str = "",
        reference_date: str = "",
        show_thresholds: bool | None = None,
        show_auxiliary: bool | None = None,
        auxiliary_mode: str = "",
    ) -> str:
        """Build the weight, blood-pressure and glucose chart datasets.

        Args:
            time_range: week, 2week, month, quarter, halfYear, year or all.
            reference_date: Optional 'as of' date (YYYY-MM-DD).
            show_thresholds: Draw threshold lines and the pulse-pressure overlay.
            show_auxiliary: Draw exercise / weather / diet markers.
            auxiliary_mode: 'band' or 'line_color'.
        """
        start_time = time.monotonic()
        try:
            window, records, thresholds, filtered = await _snapshot(time_range, reference_date)
            options = ChartDisplayOptions(
                show_thresholds=settings.show_alert_lines if show_thresholds is None else show_thresholds,
                show_auxiliary=settings.show_auxiliary_lines if show_auxiliary is None else show_auxiliary,
                auxiliary_mode=AuxiliaryMode(auxiliary_mode or settings.auxiliary_line_mode),
                styles=styles,
            )
        except ValueError as exc:
            return _error(str(exc))
        except RecordCacheError as exc:
            logger.error("health_dashboard: %s", exc)
            return _error(str(exc))

        bundles = build_chart_bundles(filtered, thresholds, options, tz=tz)
        logger.info(
            "health_dashboard: %s -> %d points (%.1f ms)",
            window.value, len(filtered), (time.monotonic() - start_time) * 1000,
        )
        return json.dumps({
            "time_range": window.value,
            "weight_alert": latest_weight_alert(records, thresholds),
            "charts": {key: bundle.to_dict() for key, bundle in bundles.items()},
        })

    @mcp.tool
    async def physician_review(
        ctx: Context,
        time_range: str = "week",
        reference_date: str = "",
        order: str = "desc",
        mode: str = "simple",
    ) -> str:
        """Day-by-day clinical review with weight swings and glucose pairing.

        Args:
            time_range: week, 2week, month, quarter, halfYear, year or all.
            reference_date: Optional 'as of' date (YYYY-MM-DD).
            order: 'desc' (newest day first) or 'asc'.
            mode: 'simple' (morning/evening BP + weight) or 'detailed' (every record).
        """
        try:
            window, records, thresholds, filtered = await _snapshot(time_range, reference_date)
            review = build_clinical_review(
                filtered, records, thresholds,
                mode=ReviewMode(mode), order=SortOrder(order), tz=tz,
            )
        except ValueError as exc:
            return _error(str(exc))
        except RecordCacheError as exc:
            logger.error("physician_review: %s", exc)
            return _error(str(exc))

        return json.dumps({
            "time_range": window.value,
            "mode": mode,
            "days": [day.to_dict() for day in review],
        })

    @mcp.tool
    async def record_at_index(
        ctx: Context,
        index: int,
        time_range: str = "",
        reference_date: str = "",
    ) -> str:
        """Resolve a chart point index back to the full stored record for editing.

        Args:
            index: Point index in the chart datasets for the same window.
            time_range: The window the chart was built with.
            reference_date: The reference date the chart was built with.
        """
        try:
            _, _, _, filtered = await _snapshot(time_range, reference_date)
        except ValueError as exc:
            return _error(str(exc))
        except RecordCacheError as exc:
            logger.error("record_at_index: %s", exc)
            return _error(str(exc))

        record = record_for_index(filtered, index)
        if record is None:
            return _error(f"No record at index {index} (window holds {len(filtered)})")
        return json.dumps({"status": "ok", "index": index, "record": record_to_dict(record)})
