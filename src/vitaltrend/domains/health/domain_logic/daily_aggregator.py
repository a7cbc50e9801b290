"""Daily aggregation for clinical review.

Groups filtered records by calendar day (in the display timezone), computes
day-over-day weight swings against the full record set, and shapes each day
either as a compact summary (simple mode) or record by record (detailed mode).
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import asdict, dataclass, field
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Any, Iterable, Sequence

from vitaltrend.domains.health.domain_logic.classification import (
    classify_glucose,
    is_pulse_pressure_abnormal,
    is_weight_swing,
)
from vitaltrend.domains.health.domain_logic.record_models import (
    DEFAULT_THRESHOLDS,
    GlucoseKind,
    HealthRecord,
    HealthThresholds,
    NoteContent,
    ReviewMode,
    SortOrder,
    WeightDelta,
)

logger = logging.getLogger(__name__)

EVENING_START_HOUR = 16


def _local(ts: datetime, tz: tzinfo | None) -> datetime:
    return ts.astimezone(tz or timezone.utc)


def day_key(ts: datetime, tz: tzinfo | None = None) -> str:
    """Calendar date (YYYY-MM-DD) of ``ts`` in the display timezone."""
    return _local(ts, tz).date().isoformat()


# ---------------------------------------------------------------------------
# Grouping
# ---------------------------------------------------------------------------

@dataclass
class DayGroup:
    """All records of one calendar day, ascending by time."""

    day_key: str
    records: list[HealthRecord] = field(default_factory=list)


def group_by_day(
    filtered: Iterable[HealthRecord],
    order: SortOrder | str = SortOrder.ASC,
    *,
    tz: tzinfo | None = None,
) -> list[DayGroup]:
    buckets: dict[str, list[HealthRecord]] = defaultdict(list)
    for record in filtered:
        buckets[day_key(record.timestamp, tz)].append(record)

    keys = sorted(buckets, reverse=SortOrder(order) is SortOrder.DESC)
    return [
        DayGroup(day_key=k, records=sorted(buckets[k], key=lambda r: r.timestamp))
        for k in keys
    ]


def _latest_weight(records: Iterable[HealthRecord]) -> float | None:
    weighted = [r for r in records if r.has_weight]
    if not weighted:
        return None
    return max(weighted, key=lambda r: r.timestamp).weight


def day_over_day_weight_delta(
    key: str,
    day_records: Sequence[HealthRecord],
    all_records: Iterable[HealthRecord],
    *,
    tz: tzinfo | None = None,
) -> WeightDelta:
    """Latest weight of ``key`` versus the latest weight of the previous day.

    The previous day is looked up in ``all_records`` so the comparison
    reaches outside the active time window.
    """
    latest = _latest_weight(day_records)
    if latest is None:
        return WeightDelta()

    previous_key = (date.fromisoformat(key) - timedelta(days=1)).isoformat()
    previous = _latest_weight(
        r for r in all_records if day_key(r.timestamp, tz) == previous_key
    )
    if previous is None:
        return WeightDelta()

    delta = latest - previous
    return WeightDelta(abnormal=is_weight_swing(delta), delta=round(delta, 2))


# ---------------------------------------------------------------------------
# Glucose timeline
# ---------------------------------------------------------------------------

@dataclass
class GlucoseEntry:
    kind: str
    value: float
    status: str
    time: str
    minutes_since_fasting: int | None = None  # set on a post-meal reading right after a fasting one


def glucose_timeline(
    records: Iterable[HealthRecord],
    thresholds: HealthThresholds = DEFAULT_THRESHOLDS,
    *,
    tz: tzinfo | None = None,
) -> list[GlucoseEntry]:
    readings = sorted(
        (reading for r in records for reading in r.glucose_readings()),
        key=lambda g: g.timestamp,
    )
    entries: list[GlucoseEntry] = []
    for i, reading in enumerate(readings):
        interval = None
        if reading.kind is GlucoseKind.POST_MEAL and i > 0:
            prior = readings[i - 1]
            if prior.kind is GlucoseKind.FASTING:
                interval = int((reading.timestamp - prior.timestamp).total_seconds() // 60)
        entries.append(GlucoseEntry(
            kind=reading.kind.value,
            value=reading.value,
            status=classify_glucose(reading.value, reading.kind, thresholds).value,
            time=_local(reading.timestamp, tz).strftime("%H:%M"),
            minutes_since_fasting=interval,
        ))
    return entries


# ---------------------------------------------------------------------------
# Simple and detailed shapes
# ---------------------------------------------------------------------------

@dataclass
class BloodPressureBlock:
    time: str
    systolic: float
    diastolic: float
    heart_rate: float | None = None
    pulse_pressure_abnormal: bool = False


@dataclass
class DaySummary:
    morning: BloodPressureBlock | None = None
    evening: BloodPressureBlock | None = None
    weight: float | None = None
    weight_delta: WeightDelta = field(default_factory=WeightDelta)


@dataclass
class RecordEntry:
    """One record with only the fields it actually carries."""

    record_id: str | None
    time: str
    weight: float | None = None
    blood_pressure: BloodPressureBlock | None = None
    heart_rate: float | None = None
    glucose: list[GlucoseEntry] = field(default_factory=list)
    weather: str | None = None
    note: str | None = None


def _bp_block(record: HealthRecord, thresholds: HealthThresholds, tz: tzinfo | None) -> BloodPressureBlock:
    return BloodPressureBlock(
        time=_local(record.timestamp, tz).strftime("%H:%M"),
        systolic=record.systolic,
        diastolic=record.diastolic,
        heart_rate=record.heart_rate if record.has_heart_rate else None,
        pulse_pressure_abnormal=is_pulse_pressure_abnormal(record, thresholds),
    )


def simple_summary(
    day: DayGroup,
    all_records: Iterable[HealthRecord],
    thresholds: HealthThresholds = DEFAULT_THRESHOLDS,
    *,
    tz: tzinfo | None = None,
) -> DaySummary:
    """Latest morning (<16:00) and evening BP plus the day's latest weight."""
    morning = evening = None
    for record in day.records:  # ascending, so later records replace earlier
        if not record.has_blood_pressure:
            continue
        if _local(record.timestamp, tz).hour < EVENING_START_HOUR:
            morning = record
        else:
            evening = record

    return DaySummary(
        morning=_bp_block(morning, thresholds, tz) if morning else None,
        evening=_bp_block(evening, thresholds, tz) if evening else None,
        weight=_latest_weight(day.records),
        weight_delta=day_over_day_weight_delta(day.day_key, day.records, all_records, tz=tz),
    )


def summarize_note(note: NoteContent | None) -> str | None:
    """Short human-readable label for a note, or None if it is empty."""
    if note is None or note.is_empty():
        return None
    parts: list[str] = []
    if note.diets:
        parts.append("diet: " + ", ".join(sorted(d.value for d in note.diets)))
    for exercise in note.exercises:
        label = exercise.display_name
        if exercise.duration_minutes:
            label += f" {exercise.duration_minutes:g} min"
        parts.append(label)
    if note.has_other_note:
        parts.append(note.other_note.strip())
    return "; ".join(parts)


def detailed_entries(
    day: DayGroup,
    thresholds: HealthThresholds = DEFAULT_THRESHOLDS,
    *,
    tz: tzinfo | None = None,
) -> list[RecordEntry]:
    """One entry per record, no merging across records."""
    return [
        RecordEntry(
            record_id=record.id,
            time=_local(record.timestamp, tz).strftime("%H:%M"),
            weight=record.weight if record.has_weight else None,
            blood_pressure=_bp_block(record, thresholds, tz) if record.has_blood_pressure else None,
            heart_rate=record.heart_rate if record.has_heart_rate else None,
            glucose=glucose_timeline([record], thresholds, tz=tz),
            weather=record.weather.value if record.weather else None,
            note=summarize_note(record.note),
        )
        for record in day.records
    ]


# ---------------------------------------------------------------------------
# Review assembly
# ---------------------------------------------------------------------------

@dataclass
class ReviewDay:
    day_key: str
    weight_delta: WeightDelta
    glucose: list[GlucoseEntry] = field(default_factory=list)
    summary: DaySummary | None = None
    entries: list[RecordEntry] | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        if self.summary is None:
            data.pop("summary")
        if self.entries is None:
            data.pop("entries")
        return data


def build_clinical_review(
    filtered: Sequence[HealthRecord],
    all_records: Sequence[HealthRecord],
    thresholds: HealthThresholds | None = None,
    *,
    mode: ReviewMode | str = ReviewMode.SIMPLE,
    order: SortOrder | str = SortOrder.DESC,
    tz: tzinfo | None = None,
) -> list[ReviewDay]:
    """Group the window by day and shape each day for the physician view."""
    thresholds = thresholds or DEFAULT_THRESHOLDS
    mode = ReviewMode(mode)

    days: list[ReviewDay] = []
    for group in group_by_day(filtered, order, tz=tz):
        review = ReviewDay(
            day_key=group.day_key,
            weight_delta=day_over_day_weight_delta(group.day_key, group.records, all_records, tz=tz),
            glucose=glucose_timeline(group.records, thresholds, tz=tz),
        )
        if mode is ReviewMode.SIMPLE:
            review.summary = simple_summary(group, all_records, thresholds, tz=tz)
        else:
            review.entries = detailed_entries(group, thresholds, tz=tz)
        days.append(review)

    logger.debug("Clinical review: %d records -> %d days (%s)", len(filtered), len(days), mode.value)
    return days
