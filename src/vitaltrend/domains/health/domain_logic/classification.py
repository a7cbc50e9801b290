"""Threshold and classification rules.

Pure functions mapping a metric value (and recent history) to a
normal/abnormal classification. Absent metrics never classify as abnormal.
"""

from __future__ import annotations

from typing import Sequence

from vitaltrend.domains.health.domain_logic.record_models import (
    DEFAULT_THRESHOLDS,
    GlucoseKind,
    GlucoseStatus,
    HealthRecord,
    HealthThresholds,
    RecordFlags,
    measured,
)

WEIGHT_SWING_KG = 2.0
WEIGHT_NEIGHBOR_HOURS = 24
_SWING_TOLERANCE = 1e-9

_VERY_HIGH_FACTOR = {
    GlucoseKind.FASTING: 1.2,
    GlucoseKind.POST_MEAL: 1.4,
    GlucoseKind.RANDOM: 1.4,
}


def classify_glucose(
    value: float,
    kind: GlucoseKind,
    thresholds: HealthThresholds = DEFAULT_THRESHOLDS,
) -> GlucoseStatus:
    """Classify a glucose reading. Callers filter out absent readings first."""
    kind = GlucoseKind(kind)
    high = thresholds.fasting_high if kind is GlucoseKind.FASTING else thresholds.post_meal_high
    if value > high * _VERY_HIGH_FACTOR[kind]:
        return GlucoseStatus.VERY_HIGH
    if value > high:
        return GlucoseStatus.HIGH
    return GlucoseStatus.NORMAL


def is_weight_swing(delta: float) -> bool:
    """A weight change of at least 2 kg, tolerant of float noise (72.1 - 70.1)."""
    return abs(delta) >= WEIGHT_SWING_KG - _SWING_TOLERANCE


def _whole_hours_apart(a: HealthRecord, b: HealthRecord) -> int:
    # Whole hours, truncated toward zero
    return abs(int((a.timestamp - b.timestamp).total_seconds() / 3600))


def _same_record(a: HealthRecord, b: HealthRecord) -> bool:
    if a is b:
        return True
    return a.id is not None and a.id == b.id


def is_weight_out_of_bounds(
    record: HealthRecord,
    thresholds: HealthThresholds = DEFAULT_THRESHOLDS,
) -> bool:
    """Weight above the enabled upper bound or below the enabled lower bound."""
    if not measured(record.weight):
        return False
    if thresholds.weight_high > 0 and record.weight > thresholds.weight_high:
        return True
    if thresholds.weight_low > 0 and record.weight < thresholds.weight_low:
        return True
    return False


def is_weight_abnormal(
    record: HealthRecord,
    history: Sequence[HealthRecord],
    thresholds: HealthThresholds = DEFAULT_THRESHOLDS,
) -> bool:
    """Flag a weight out of bounds or swinging >= 2 kg within 24 hours.

    The neighbor search walks ``history`` in the given order and stops at the
    first different record that qualifies.
    """
    if is_weight_out_of_bounds(record, thresholds):
        return True
    if not measured(record.weight):
        return False

    for other in history:
        if _same_record(record, other) or not measured(other.weight):
            continue
        if _whole_hours_apart(record, other) > WEIGHT_NEIGHBOR_HOURS:
            continue
        if is_weight_swing(record.weight - other.weight):
            return True
    return False


def is_pulse_pressure_abnormal(
    record: HealthRecord,
    thresholds: HealthThresholds = DEFAULT_THRESHOLDS,
) -> bool:
    pulse = record.pulse_pressure
    if pulse is None:
        return False
    return pulse > thresholds.pulse_pressure_high or pulse < thresholds.pulse_pressure_low


def is_systolic_high(record: HealthRecord, thresholds: HealthThresholds = DEFAULT_THRESHOLDS) -> bool:
    return measured(record.systolic) and record.systolic > thresholds.systolic_high


def is_diastolic_high(record: HealthRecord, thresholds: HealthThresholds = DEFAULT_THRESHOLDS) -> bool:
    return measured(record.diastolic) and record.diastolic > thresholds.diastolic_high


def latest_weight_alert(
    records: Sequence[HealthRecord],
    thresholds: HealthThresholds = DEFAULT_THRESHOLDS,
) -> bool:
    """Whether the chronologically latest record carries a weight alert."""
    if not records:
        return False
    latest = max(records, key=lambda r: r.timestamp)
    return is_weight_abnormal(latest, records, thresholds)


def record_flags(
    record: HealthRecord,
    history: Sequence[HealthRecord],
    thresholds: HealthThresholds = DEFAULT_THRESHOLDS,
) -> RecordFlags:
    """Collect every alert flag for one record (list and table views)."""
    glucose = {
        reading.kind.value: classify_glucose(reading.value, reading.kind, thresholds).value
        for reading in record.glucose_readings()
    }
    return RecordFlags(
        weight_abnormal=is_weight_abnormal(record, history, thresholds),
        pulse_pressure_abnormal=is_pulse_pressure_abnormal(record, thresholds),
        glucose=glucose,
    )
