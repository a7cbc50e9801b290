"""Chart dataset builder — renderer-agnostic series for the three metric charts.

Turns a filtered, ascending record list into plain-data chart bundles:

* one primary line per metric, with ``None`` gaps and per-point colors/radii
  computed up front (alert > correlated highlight > default),
* dashed threshold reference lines for every enabled threshold,
* auxiliary categorical marker series (exercise / weather / diet), drawn as
  bands or folded into the primary line's segment colors,
* the pulse-pressure overlay (vertical connectors + a legend-only series).

Nothing here knows about a charting library; every color is resolved to a
string and every index maps back to ``filtered[index]``.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import asdict, dataclass, field
from datetime import timezone, tzinfo
from enum import Enum
from typing import Any, Callable, Iterable, Sequence

from vitaltrend.domains.health.domain_logic.chart_styles import (
    ChartDisplayOptions,
    ChartStyles,
)
from vitaltrend.domains.health.domain_logic.classification import (
    classify_glucose,
    is_diastolic_high,
    is_pulse_pressure_abnormal,
    is_systolic_high,
    is_weight_abnormal,
)
from vitaltrend.domains.health.domain_logic.daily_aggregator import day_key
from vitaltrend.domains.health.domain_logic.note_correlator import (
    NoteCorrelation,
    correlate_notes,
    correlate_tags,
    has_blood_pressure,
    has_glucose,
    has_weight,
)
from vitaltrend.domains.health.domain_logic.record_models import (
    DEFAULT_THRESHOLDS,
    AuxiliaryMode,
    DietType,
    ExerciseType,
    GlucoseKind,
    GlucoseStatus,
    HealthRecord,
    HealthThresholds,
    Weather,
    measured,
)

logger = logging.getLogger(__name__)

# (floor, headroom) for the y-axis maximum
WEIGHT_AXIS = (70.0, 5.0)
BLOOD_PRESSURE_AXIS = (160.0, 10.0)
GLUCOSE_AXIS = (200.0, 20.0)

MIN_POINTS_FOR_LINE_COLOR = 2


# ---------------------------------------------------------------------------
# Output types
# ---------------------------------------------------------------------------

@dataclass
class Series:
    """One dataset as the rendering layer consumes it."""

    key: str
    label: str
    kind: str                                       # 'line' | 'bar' | 'threshold' | 'legend'
    data: list[float | None]
    color: str
    point_colors: list[str] | None = None
    point_radii: list[float] | None = None
    segment_colors: list[str | None] | None = None  # [i] colors the segment ending at point i
    dashed: bool = False
    span_gaps: bool = True


@dataclass
class Connector:
    """Vertical line between systolic and diastolic at one x position."""

    index: int
    top: float
    bottom: float
    color: str


@dataclass
class ChartBundle:
    key: str
    title: str
    labels: list[str]
    record_ids: list[str | None]
    series: list[Series] = field(default_factory=list)
    connectors: list[Connector] = field(default_factory=list)
    y_max: float = 0.0

    def series_by_key(self, key: str) -> Series | None:
        for s in self.series:
            if s.key == key:
                return s
        return None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


# ---------------------------------------------------------------------------
# Shared building blocks
# ---------------------------------------------------------------------------

def _labels(records: Sequence[HealthRecord], tz: tzinfo | None) -> list[str]:
    return [r.timestamp.astimezone(tz or timezone.utc).strftime("%m/%d %H:%M") for r in records]


def _y_max(values: Iterable[float | None], axis: tuple[float, float], floor: float | None = None) -> float:
    default_floor, headroom = axis
    observed = [v for v in values if v is not None]
    return max(observed + [floor if floor else default_floor]) + headroom


def _enum_colors(enum_cls: type[Enum], colors: dict[str, str]) -> dict[Enum, str]:
    mapping = {}
    for value, color in colors.items():
        try:
            mapping[enum_cls(value)] = color
        except ValueError:
            logger.warning("Unknown %s category in chart styles: %r", enum_cls.__name__, value)
    return mapping


def _primary_line(
    key: str,
    values: list[float | None],
    styles: ChartStyles,
    *,
    alerts: Sequence[bool] = (),
    highlights: dict[int, str] | None = None,
    anomalies: Sequence[bool] = (),
) -> Series:
    style = styles.metric(key)
    highlights = highlights or {}
    colors: list[str] = []
    radii: list[float] = []
    for i in range(len(values)):
        alert = i < len(alerts) and alerts[i]
        anomaly = i < len(anomalies) and anomalies[i]
        if alert:
            colors.append(styles.alert_color)
        else:
            colors.append(highlights.get(i, style.color))
        boosted = alert or anomaly or i in highlights
        radii.append(styles.highlight_radius if boosted else styles.point_radius)
    return Series(
        key=key,
        label=style.label,
        kind="line",
        data=values,
        color=style.color,
        point_colors=colors,
        point_radii=radii,
    )


def _threshold_lines(
    specs: Sequence[tuple[str, str, float]],
    n: int,
    styles: ChartStyles,
    show: bool,
) -> list[Series]:
    if not show:
        return []
    return [
        Series(
            key=f"threshold:{key}",
            label=label,
            kind="threshold",
            data=[float(value)] * n,
            color=styles.threshold_color,
            dashed=True,
        )
        for key, label, value in specs
        if value and value > 0
    ]


def _segment_colors(values: Sequence[float | None], colors: dict[int, str]) -> list[str | None]:
    return [colors.get(i) if v is not None else None for i, v in enumerate(values)]


def _marker_series(
    records: Sequence[HealthRecord],
    group: str,
    categories: Sequence[Enum],
    tags_of: Callable[[HealthRecord], Iterable[Enum]],
    styles: ChartStyles,
    y_max: float,
    *,
    as_bands: bool,
    tz: tzinfo | None,
) -> list[Series]:
    """One bar series per category; bars reach y_max on days carrying the tag."""
    tags_by_day: dict[str, set[Enum]] = defaultdict(set)
    keys = [day_key(r.timestamp, tz) for r in records]
    for key, record in zip(keys, records):
        tags_by_day[key].update(tags_of(record))

    colors = _enum_colors(type(categories[0]), styles.category_colors(group))
    series = []
    for category in categories:
        if as_bands:
            data = [y_max if category in tags_by_day[k] else None for k in keys]
        else:
            data = [None] * len(records)
        series.append(Series(
            key=f"{group}:{category.value}",
            label=styles.category_label(group, category.value),
            kind="bar",
            data=data,
            color=colors.get(category, styles.note_color),
            span_gaps=False,
        ))
    return series


def _exercise_tags(record: HealthRecord) -> list[ExerciseType]:
    return [e.kind for e in record.note.exercises] if record.note else []


def _weather_tags(record: HealthRecord) -> list[Weather]:
    return [record.weather] if record.weather else []


def _diet_tags(record: HealthRecord) -> list[DietType]:
    return list(record.note.diets) if record.note else []


def _use_line_color(options: ChartDisplayOptions, qualifying: int) -> bool:
    return (
        options.show_auxiliary
        and options.auxiliary_mode is AuxiliaryMode.LINE_COLOR
        and qualifying >= MIN_POINTS_FOR_LINE_COLOR
    )


# ---------------------------------------------------------------------------
# Weight
# ---------------------------------------------------------------------------

def build_weight_chart(
    records: Sequence[HealthRecord],
    thresholds: HealthThresholds | None = None,
    options: ChartDisplayOptions | None = None,
    *,
    correlation: NoteCorrelation | None = None,
    tz: tzinfo | None = None,
) -> ChartBundle:
    thresholds = thresholds or DEFAULT_THRESHOLDS
    options = options or ChartDisplayOptions()
    styles = options.resolved_styles()
    correlation = correlation or correlate_notes(records, default_color=styles.note_color)

    values = [r.weight if r.has_weight else None for r in records]
    alerts = [r.has_weight and is_weight_abnormal(r, records, thresholds) for r in records]

    highlights = dict(correlation.weight)
    if options.show_auxiliary:
        highlights.update(correlate_tags(
            records, _exercise_tags, has_weight,
            _enum_colors(ExerciseType, styles.category_colors("exercise")),
            order=list(ExerciseType),
        ))

    y_max = _y_max(values, WEIGHT_AXIS, floor=thresholds.weight_high)
    line = _primary_line("weight", values, styles, alerts=alerts, highlights=highlights)

    line_color = _use_line_color(options, sum(v is not None for v in values))
    if line_color:
        line.segment_colors = _segment_colors(values, highlights)

    bundle = ChartBundle(
        key="weight",
        title="Weight",
        labels=_labels(records, tz),
        record_ids=[r.id for r in records],
        series=[line],
        y_max=y_max,
    )
    bundle.series += _threshold_lines(
        [
            ("weight_high", "Weight upper bound", thresholds.weight_high),
            ("weight_low", "Weight lower bound", thresholds.weight_low),
        ],
        len(records), styles, options.show_thresholds,
    )
    if options.show_auxiliary:
        bundle.series += _marker_series(
            records, "exercise", list(ExerciseType), _exercise_tags, styles, y_max,
            as_bands=not line_color, tz=tz,
        )
    return bundle


# ---------------------------------------------------------------------------
# Blood pressure & heart rate
# ---------------------------------------------------------------------------

def build_blood_pressure_chart(
    records: Sequence[HealthRecord],
    thresholds: HealthThresholds | None = None,
    options: ChartDisplayOptions | None = None,
    *,
    correlation: NoteCorrelation | None = None,
    tz: tzinfo | None = None,
) -> ChartBundle:
    thresholds = thresholds or DEFAULT_THRESHOLDS
    options = options or ChartDisplayOptions()
    styles = options.resolved_styles()
    correlation = correlation or correlate_notes(records, default_color=styles.note_color)

    systolic = [r.systolic if measured(r.systolic) else None for r in records]
    diastolic = [r.diastolic if measured(r.diastolic) else None for r in records]
    heart_rate = [r.heart_rate if r.has_heart_rate else None for r in records]
    pulse_abnormal = [is_pulse_pressure_abnormal(r, thresholds) for r in records]

    weather_colors: dict[int, str] = {}
    if options.show_auxiliary:
        weather_colors = correlate_tags(
            records, _weather_tags, has_blood_pressure,
            _enum_colors(Weather, styles.category_colors("weather")),
            order=list(Weather),
        )

    y_max = _y_max(systolic + diastolic + heart_rate, BLOOD_PRESSURE_AXIS)
    lines = [
        _primary_line(
            "systolic", systolic, styles,
            alerts=[is_systolic_high(r, thresholds) for r in records],
            highlights=weather_colors,
            anomalies=pulse_abnormal,
        ),
        _primary_line(
            "diastolic", diastolic, styles,
            alerts=[is_diastolic_high(r, thresholds) for r in records],
            highlights=weather_colors,
            anomalies=pulse_abnormal,
        ),
        _primary_line("heart_rate", heart_rate, styles, highlights=dict(correlation.heart_rate)),
    ]

    line_color = _use_line_color(options, sum(v is not None for v in systolic))
    if line_color:
        lines[0].segment_colors = _segment_colors(systolic, weather_colors)
        lines[1].segment_colors = _segment_colors(diastolic, weather_colors)

    bundle = ChartBundle(
        key="blood_pressure",
        title="Blood pressure & heart rate",
        labels=_labels(records, tz),
        record_ids=[r.id for r in records],
        series=lines,
        y_max=y_max,
    )
    bundle.series += _threshold_lines(
        [
            ("systolic_high", "Systolic upper bound", thresholds.systolic_high),
            ("diastolic_high", "Diastolic upper bound", thresholds.diastolic_high),
        ],
        len(records), styles, options.show_thresholds,
    )

    if options.show_thresholds and any(pulse_abnormal):
        bundle.connectors = [
            Connector(index=i, top=r.systolic, bottom=r.diastolic, color=styles.pulse_pressure_color)
            for i, r in enumerate(records)
            if pulse_abnormal[i]
        ]
        bundle.series.append(Series(
            key="pulse_pressure_abnormal",
            label="Pulse pressure abnormal",
            kind="legend",
            data=[],
            color=styles.pulse_pressure_color,
        ))

    if options.show_auxiliary:
        bundle.series += _marker_series(
            records, "weather", list(Weather), _weather_tags, styles, y_max,
            as_bands=not line_color, tz=tz,
        )
    return bundle


# ---------------------------------------------------------------------------
# Glucose
# ---------------------------------------------------------------------------

_GLUCOSE_KEYS = {
    GlucoseKind.FASTING: "fasting",
    GlucoseKind.POST_MEAL: "postMeal",
    GlucoseKind.RANDOM: "random",
}


def build_glucose_chart(
    records: Sequence[HealthRecord],
    thresholds: HealthThresholds | None = None,
    options: ChartDisplayOptions | None = None,
    *,
    correlation: NoteCorrelation | None = None,
    tz: tzinfo | None = None,
) -> ChartBundle:
    thresholds = thresholds or DEFAULT_THRESHOLDS
    options = options or ChartDisplayOptions()
    styles = options.resolved_styles()
    correlation = correlation or correlate_notes(records, default_color=styles.note_color)

    highlights = dict(correlation.glucose)
    if options.show_auxiliary:
        highlights.update(correlate_tags(
            records, _diet_tags, has_glucose,
            _enum_colors(DietType, styles.category_colors("diet")),
            order=list(DietType),
        ))

    per_kind = {kind: [r.glucose_value(kind) for r in records] for kind in _GLUCOSE_KEYS}
    lines = []
    for kind, key in _GLUCOSE_KEYS.items():
        values = per_kind[kind]
        alerts = [
            v is not None and classify_glucose(v, kind, thresholds) is not GlucoseStatus.NORMAL
            for v in values
        ]
        lines.append(_primary_line(key, values, styles, alerts=alerts, highlights=highlights))

    y_max = _y_max([v for values in per_kind.values() for v in values], GLUCOSE_AXIS)

    line_color = _use_line_color(options, sum(r.has_glucose for r in records))
    if line_color:
        for line in lines:
            line.segment_colors = _segment_colors(line.data, highlights)

    bundle = ChartBundle(
        key="glucose",
        title="Glucose",
        labels=_labels(records, tz),
        record_ids=[r.id for r in records],
        series=lines,
        y_max=y_max,
    )
    bundle.series += _threshold_lines(
        [
            ("fasting_high", "Fasting upper bound", thresholds.fasting_high),
            ("post_meal_high", "Post-meal upper bound", thresholds.post_meal_high),
        ],
        len(records), styles, options.show_thresholds,
    )
    if options.show_auxiliary:
        bundle.series += _marker_series(
            records, "diet", list(DietType), _diet_tags, styles, y_max,
            as_bands=not line_color, tz=tz,
        )
    return bundle


# ---------------------------------------------------------------------------
# All charts
# ---------------------------------------------------------------------------

def build_chart_bundles(
    filtered: Sequence[HealthRecord],
    thresholds: HealthThresholds | None = None,
    options: ChartDisplayOptions | None = None,
    *,
    tz: tzinfo | None = None,
) -> dict[str, ChartBundle]:
    """Build the weight, blood-pressure and glucose bundles in one pass.

    ``filtered`` must already be window-filtered and sorted ascending
    (see ``filter_by_range``). Missing thresholds fall back to defaults.
    """
    thresholds = thresholds or DEFAULT_THRESHOLDS
    options = options or ChartDisplayOptions()
    styles = options.resolved_styles()
    correlation = correlate_notes(filtered, default_color=styles.note_color)

    bundles = {
        "weight": build_weight_chart(filtered, thresholds, options, correlation=correlation, tz=tz),
        "blood_pressure": build_blood_pressure_chart(
            filtered, thresholds, options, correlation=correlation, tz=tz
        ),
        "glucose": build_glucose_chart(filtered, thresholds, options, correlation=correlation, tz=tz),
    }
    logger.debug(
        "Built chart bundles for %d records (thresholds=%s, auxiliary=%s/%s)",
        len(filtered), options.show_thresholds, options.show_auxiliary, options.auxiliary_mode.value,
    )
    return bundles
