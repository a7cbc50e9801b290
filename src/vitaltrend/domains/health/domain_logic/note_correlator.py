"""Note correlation — attach annotated events to the nearest metric reading.

Structured activity/weather tags and free-form notes are often logged on
records that carry no metric of their own. Each annotation is mapped to the
closest record (within a bounded radius) that does carry the metric, so
charts can highlight "this reading happened near this event".
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from typing import Callable, Iterable, Mapping, Sequence, TypeVar

from vitaltrend.domains.health.domain_logic.record_models import HealthRecord

CORRELATION_RADIUS = timedelta(hours=24)
DEFAULT_NOTE_COLOR = "#14b8a6"

T = TypeVar("T")


@dataclass
class NoteCorrelation:
    """Record index -> highlight color, per metric family."""

    weight: dict[int, str] = field(default_factory=dict)
    heart_rate: dict[int, str] = field(default_factory=dict)
    glucose: dict[int, str] = field(default_factory=dict)


# Metric family predicates
def has_weight(record: HealthRecord) -> bool:
    return record.has_weight


def has_heart_rate(record: HealthRecord) -> bool:
    return record.has_heart_rate


def has_glucose(record: HealthRecord) -> bool:
    return record.has_glucose


def has_blood_pressure(record: HealthRecord) -> bool:
    return record.has_blood_pressure


def nearest_index(
    records: Sequence[HealthRecord],
    source: HealthRecord,
    has_metric: Callable[[HealthRecord], bool],
    radius: timedelta = CORRELATION_RADIUS,
) -> int | None:
    """Index of the record closest in time to ``source`` carrying the metric.

    Ties go to the lowest index. Returns None if nothing lies within radius.
    """
    best: int | None = None
    best_distance: timedelta | None = None
    for i, candidate in enumerate(records):
        if not has_metric(candidate):
            continue
        distance = abs(candidate.timestamp - source.timestamp)
        if distance > radius:
            continue
        if best_distance is None or distance < best_distance:
            best, best_distance = i, distance
    return best


def correlate_notes(
    filtered: Sequence[HealthRecord],
    *,
    radius: timedelta = CORRELATION_RADIUS,
    default_color: str = DEFAULT_NOTE_COLOR,
) -> NoteCorrelation:
    """Map every free-text note to the nearest weight, heart-rate and glucose reading.

    When several notes land on the same index, the last note in input order wins.
    """
    result = NoteCorrelation()
    families = (
        (result.weight, has_weight),
        (result.heart_rate, has_heart_rate),
        (result.glucose, has_glucose),
    )
    for record in filtered:
        if not record.has_other_note:
            continue
        color = record.note.other_note_color or default_color
        for mapping, has_metric in families:
            index = nearest_index(filtered, record, has_metric, radius)
            if index is not None:
                mapping[index] = color
    return result


def correlate_tags(
    filtered: Sequence[HealthRecord],
    tags_of: Callable[[HealthRecord], Iterable[T]],
    has_metric: Callable[[HealthRecord], bool],
    colors: Mapping[T, str],
    *,
    order: Sequence[T] | None = None,
    radius: timedelta = CORRELATION_RADIUS,
) -> dict[int, str]:
    """Map categorical tags (exercise, weather, diet) to the nearest reading.

    A record with several tags contributes the first one in ``order``.
    Later records overwrite earlier ones on the same index.
    """
    mapping: dict[int, str] = {}
    for record in filtered:
        tag = _first_tag(tags_of(record), order)
        if tag is None:
            continue
        color = colors.get(tag)
        if color is None:
            continue
        index = nearest_index(filtered, record, has_metric, radius)
        if index is not None:
            mapping[index] = color
    return mapping


def _first_tag(tags: Iterable[T], order: Sequence[T] | None) -> T | None:
    present = list(tags)
    if not present:
        return None
    if order is None:
        return present[0]
    for tag in order:
        if tag in present:
            return tag
    return None
