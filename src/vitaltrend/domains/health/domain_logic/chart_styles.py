"""Chart styles loader — reads the packaged YAML defaults plus a user override."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from vitaltrend.domains.health.domain_logic.record_models import AuxiliaryMode

logger = logging.getLogger(__name__)

_DEFAULT_STYLES_PATH = Path(__file__).resolve().parent / "chart_styles.yaml"


@dataclass
class MetricStyle:
    label: str
    color: str


@dataclass
class ChartStyles:
    """Colors and labels handed to the rendering layer verbatim."""

    alert_color: str
    note_color: str
    threshold_color: str
    pulse_pressure_color: str
    point_radius: float
    highlight_radius: float
    metrics: dict[str, MetricStyle] = field(default_factory=dict)
    categories: dict[str, dict[str, str]] = field(default_factory=dict)
    category_labels: dict[str, dict[str, str]] = field(default_factory=dict)

    def metric(self, key: str) -> MetricStyle:
        return self.metrics.get(key) or MetricStyle(label=key, color="rgb(128, 128, 128)")

    def category_colors(self, group: str) -> dict[str, str]:
        return dict(self.categories.get(group, {}))

    def category_label(self, group: str, value: str) -> str:
        return self.category_labels.get(group, {}).get(value, value)


@dataclass
class ChartDisplayOptions:
    """Display-mode configuration owned by the settings layer."""

    show_thresholds: bool = True
    show_auxiliary: bool = False
    auxiliary_mode: AuxiliaryMode = AuxiliaryMode.BAND
    styles: ChartStyles | None = None

    def __post_init__(self) -> None:
        self.auxiliary_mode = AuxiliaryMode(self.auxiliary_mode)

    def resolved_styles(self) -> ChartStyles:
        return self.styles or default_chart_styles()


def _merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _read_yaml(path: Path) -> dict[str, Any]:
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Chart styles must be a mapping, got {type(data).__name__}")
    return data


def styles_from_mapping(data: dict[str, Any]) -> ChartStyles:
    return ChartStyles(
        alert_color=data["alert_color"],
        note_color=data["note_color"],
        threshold_color=data["threshold_color"],
        pulse_pressure_color=data["pulse_pressure_color"],
        point_radius=float(data.get("point_radius", 3)),
        highlight_radius=float(data.get("highlight_radius", 6)),
        metrics={
            key: MetricStyle(label=str(m.get("label", key)), color=str(m["color"]))
            for key, m in data.get("metrics", {}).items()
        },
        categories={
            group: {str(k): str(v) for k, v in colors.items()}
            for group, colors in data.get("categories", {}).items()
        },
        category_labels={
            group: {str(k): str(v) for k, v in labels.items()}
            for group, labels in data.get("category_labels", {}).items()
        },
    )


def load_chart_styles(override_path: str | Path | None = None) -> ChartStyles:
    """Load the packaged defaults, merging an optional override file on top.

    A missing, unreadable or malformed override is logged and ignored.
    """
    defaults = _read_yaml(_DEFAULT_STYLES_PATH)
    if override_path:
        path = Path(override_path).expanduser()
        if not path.is_file():
            logger.warning("Chart styles override does not exist: %s", path)
        else:
            try:
                styles = styles_from_mapping(_merge(defaults, _read_yaml(path)))
            except Exception:
                logger.exception("Ignoring malformed chart styles override at %s", path)
            else:
                logger.info("Loaded chart styles override from %s", path)
                return styles
    return styles_from_mapping(defaults)


_default_styles: ChartStyles | None = None


def default_chart_styles() -> ChartStyles:
    """Packaged defaults, parsed once."""
    global _default_styles  # noqa: PLW0603
    if _default_styles is None:
        _default_styles = load_chart_styles()
    return _default_styles
