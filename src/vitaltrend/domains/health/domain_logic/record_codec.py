"""Record codec — stored record dictionaries <-> HealthRecord.

The stored schema keeps numeric metrics with ``0`` meaning "not measured"
and embeds two serialized-text fields on each record:

* ``details``: JSON list of ``{type, value, timestamp}`` glucose readings.
* ``noteContent``: JSON object with ``diets``, ``exercises``, ``otherNote``,
  ``otherNoteColor`` (and optionally ``weather``).

Malformed embedded text is treated as empty content for that record only.
"""

from __future__ import annotations

import json
import logging
from dataclasses import replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Iterable, TypeVar

from vitaltrend.domains.health.domain_logic.record_models import (
    DietType,
    ExerciseEntry,
    ExerciseType,
    GlucoseKind,
    GlucoseReading,
    HealthRecord,
    NoteContent,
    Weather,
    measured,
)

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Enum)


class RecordParseError(Exception):
    """Raised when a stored record cannot be turned into a HealthRecord."""


# ---------------------------------------------------------------------------
# Scalars
# ---------------------------------------------------------------------------

def parse_timestamp(value: Any) -> datetime:
    """Parse an ISO-8601 instant. Naive values are taken as UTC."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError as exc:
            raise RecordParseError(f"Invalid timestamp: {value!r}") from exc
    else:
        raise RecordParseError(f"Missing timestamp: {value!r}")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _metric(value: Any) -> float | None:
    """Stored metric -> float, with 0 / empty / junk meaning absent."""
    if value is None or isinstance(value, bool) or value == "":
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if number != 0 else None


def _enum(enum_cls: type[E], value: Any) -> E | None:
    try:
        return enum_cls(value)
    except (ValueError, TypeError):
        return None


def _text(value: Any) -> str | None:
    """Non-empty string or None; other JSON types are dropped."""
    return value if isinstance(value, str) and value else None


def _load_json_text(text: Any, field_name: str) -> Any:
    if text is None or text == "":
        return None
    if not isinstance(text, str):
        # Already-decoded payloads are accepted as-is
        return text
    try:
        return json.loads(text)
    except (TypeError, ValueError):
        logger.warning("Ignoring malformed %s text (%d chars)", field_name, len(text))
        return None


# ---------------------------------------------------------------------------
# Embedded payloads
# ---------------------------------------------------------------------------

def parse_note_content(text: Any) -> NoteContent | None:
    """Decode a serialized NoteContent. Returns None for empty/malformed text."""
    data = _load_json_text(text, "noteContent")
    if not isinstance(data, dict):
        if data is not None:
            logger.warning("Ignoring noteContent that is not an object: %s", type(data).__name__)
        return None

    diets = frozenset(
        d for d in (_enum(DietType, v) for v in _as_list(data.get("diets"))) if d is not None
    )

    exercises: list[ExerciseEntry] = []
    for item in _as_list(data.get("exercises")):
        if not isinstance(item, dict):
            continue
        kind = _enum(ExerciseType, item.get("type", item.get("kind")))
        if kind is None:
            continue
        exercises.append(ExerciseEntry(
            kind=kind,
            duration_minutes=_metric(item.get("durationMinutes")),
            custom_name=_text(item.get("customName")),
        ))

    return NoteContent(
        diets=diets,
        exercises=tuple(exercises),
        other_note=_text(data.get("otherNote")),
        other_note_color=_text(data.get("otherNoteColor")),
    )


def parse_detail_readings(text: Any) -> tuple[GlucoseReading, ...] | None:
    """Decode the ``details`` glucose list. Returns None when absent or malformed."""
    data = _load_json_text(text, "details")
    if data is None:
        return None
    if not isinstance(data, list):
        logger.warning("Ignoring details that are not a list: %s", type(data).__name__)
        return None

    readings: list[GlucoseReading] = []
    for item in data:
        if not isinstance(item, dict):
            continue
        kind = _enum(GlucoseKind, item.get("type", item.get("kind")))
        value = _metric(item.get("value"))
        if kind is None or value is None:
            continue
        try:
            ts = parse_timestamp(item.get("timestamp"))
        except RecordParseError:
            logger.warning("Skipping glucose reading with bad timestamp: %r", item.get("timestamp"))
            continue
        readings.append(GlucoseReading(kind=kind, value=value, timestamp=ts))
    # An empty list carries no decomposition; fall back to the scalar fields
    return tuple(readings) or None


def _as_list(value: Any) -> list:
    return value if isinstance(value, list) else []


def note_content_to_dict(note: NoteContent) -> dict[str, Any]:
    data: dict[str, Any] = {}
    if note.diets:
        data["diets"] = sorted(d.value for d in note.diets)
    if note.exercises:
        data["exercises"] = []
        for e in note.exercises:
            entry: dict[str, Any] = {"type": e.kind.value}
            if e.duration_minutes is not None:
                entry["durationMinutes"] = e.duration_minutes
            if e.custom_name:
                entry["customName"] = e.custom_name
            data["exercises"].append(entry)
    if note.other_note:
        data["otherNote"] = note.other_note
    if note.other_note_color:
        data["otherNoteColor"] = note.other_note_color
    return data


def note_content_to_json(note: NoteContent) -> str:
    return json.dumps(note_content_to_dict(note), ensure_ascii=False)


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

def record_from_dict(raw: dict[str, Any]) -> HealthRecord:
    """Convert a stored record dict into a HealthRecord.

    Raises:
        RecordParseError: if the record has no usable timestamp.
    """
    if not isinstance(raw, dict):
        raise RecordParseError(f"Record must be an object, got {type(raw).__name__}")

    timestamp = parse_timestamp(raw.get("timestamp"))

    note_text = raw.get("noteContent")
    if note_text is None:
        note_text = raw.get("note")
    note = parse_note_content(note_text)

    note_payload = _load_json_text(note_text, "noteContent") if note is not None else None
    weather_raw = raw.get("weather")
    if weather_raw is None and isinstance(note_payload, dict):
        weather_raw = note_payload.get("weather")

    record_id = raw.get("id")
    return HealthRecord(
        timestamp=timestamp,
        owner=str(raw.get("name", raw.get("owner", "")) or ""),
        id=str(record_id) if record_id not in (None, "") else None,
        weight=_metric(raw.get("weight")),
        systolic=_metric(raw.get("systolic")),
        diastolic=_metric(raw.get("diastolic")),
        heart_rate=_metric(raw.get("heartRate")),
        glucose_fasting=_metric(raw.get("glucoseFasting")),
        glucose_post_meal=_metric(raw.get("glucosePostMeal")),
        glucose_random=_metric(raw.get("glucoseRandom")),
        detail_readings=parse_detail_readings(raw.get("details")),
        weather=_enum(Weather, weather_raw) if weather_raw else None,
        note=note,
    )


def records_from_dicts(raws: Iterable[dict[str, Any]]) -> list[HealthRecord]:
    """Convert a batch, skipping records that cannot be parsed."""
    records: list[HealthRecord] = []
    for raw in raws:
        try:
            records.append(record_from_dict(raw))
        except RecordParseError as exc:
            logger.warning("Skipping stored record: %s", exc)
    return records


def record_to_dict(record: HealthRecord) -> dict[str, Any]:
    """Project a HealthRecord back onto the stored schema."""
    data: dict[str, Any] = {
        "timestamp": record.timestamp.isoformat(),
        "name": record.owner,
        "weight": record.weight or 0,
        "systolic": record.systolic or 0,
        "diastolic": record.diastolic or 0,
    }
    if record.id is not None:
        data["id"] = record.id
    if record.heart_rate is not None:
        data["heartRate"] = record.heart_rate
    if record.glucose_fasting is not None:
        data["glucoseFasting"] = record.glucose_fasting
    if record.glucose_post_meal is not None:
        data["glucosePostMeal"] = record.glucose_post_meal
    if record.glucose_random is not None:
        data["glucoseRandom"] = record.glucose_random
    if record.detail_readings:
        data["details"] = json.dumps([
            {"type": r.kind.value, "value": r.value, "timestamp": r.timestamp.isoformat()}
            for r in record.detail_readings
        ])
    if record.weather is not None:
        data["weather"] = record.weather.value
    if record.note is not None:
        data["noteContent"] = note_content_to_json(record.note)
    return data


def merge_same_day(existing: HealthRecord, incoming: HealthRecord) -> HealthRecord:
    """Fold a new entry into the subject's existing record for the same day.

    Measured incoming metrics replace the existing ones; the incoming glucose
    readings are appended to the existing decomposition. The merged record
    keeps the existing id and timestamp.
    """
    readings = list(existing.glucose_readings()) + list(incoming.glucose_readings())

    def pick(new: float | None, old: float | None) -> float | None:
        return new if measured(new) else old

    return replace(
        existing,
        weight=pick(incoming.weight, existing.weight),
        systolic=pick(incoming.systolic, existing.systolic),
        diastolic=pick(incoming.diastolic, existing.diastolic),
        heart_rate=pick(incoming.heart_rate, existing.heart_rate),
        glucose_fasting=pick(incoming.glucose_fasting, existing.glucose_fasting),
        glucose_post_meal=pick(incoming.glucose_post_meal, existing.glucose_post_meal),
        glucose_random=pick(incoming.glucose_random, existing.glucose_random),
        detail_readings=tuple(readings) or None,
        weather=incoming.weather or existing.weather,
        note=incoming.note or existing.note,
    )
