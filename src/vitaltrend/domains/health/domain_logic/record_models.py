"""Health record models and domain constants for the analytics engine."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum


# ---------------------------------------------------------------------------
# Enumerations (values match the stored representation)
# ---------------------------------------------------------------------------

class GlucoseKind(str, Enum):
    FASTING = "fasting"
    POST_MEAL = "postMeal"
    RANDOM = "random"


class DietType(str, Enum):
    BIG_MEAL = "bigMeal"
    NORMAL = "normal"
    DIETING = "dieting"
    FASTING = "fasting"


class ExerciseType(str, Enum):
    WALKING = "walking"
    CYCLING = "cycling"
    RESISTANCE = "resistance"
    OTHER = "other"


class Weather(str, Enum):
    HOT = "hot"
    MODERATE = "moderate"
    COLD = "cold"


class TimeRange(str, Enum):
    WEEK = "week"
    TWO_WEEKS = "2week"
    MONTH = "month"
    QUARTER = "quarter"
    HALF_YEAR = "halfYear"
    YEAR = "year"
    ALL = "all"


class GlucoseStatus(str, Enum):
    NORMAL = "normal"
    HIGH = "high"
    VERY_HIGH = "very-high"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class AuxiliaryMode(str, Enum):
    BAND = "band"              # bars peaking to the chart max
    LINE_COLOR = "line_color"  # primary line segments take the tag color


class ReviewMode(str, Enum):
    SIMPLE = "simple"
    DETAILED = "detailed"


# ---------------------------------------------------------------------------
# Notes
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ExerciseEntry:
    """One exercise session attached to a note."""

    kind: ExerciseType
    duration_minutes: float | None = None
    custom_name: str | None = None  # only meaningful for kind=other

    def __post_init__(self) -> None:
        if self.kind is not ExerciseType.OTHER and self.custom_name is not None:
            object.__setattr__(self, "custom_name", None)

    @property
    def display_name(self) -> str:
        if self.kind is ExerciseType.OTHER and self.custom_name:
            return self.custom_name
        return self.kind.value


@dataclass(frozen=True)
class NoteContent:
    """Structured lifestyle note attached to a record."""

    diets: frozenset[DietType] = frozenset()
    exercises: tuple[ExerciseEntry, ...] = ()
    other_note: str | None = None
    other_note_color: str | None = None

    def with_diet(self, diet: DietType) -> NoteContent:
        return replace(self, diets=self.diets | {diet})

    def without_diet(self, diet: DietType) -> NoteContent:
        return replace(self, diets=self.diets - {diet})

    @property
    def has_other_note(self) -> bool:
        return bool(self.other_note and self.other_note.strip())

    def is_empty(self) -> bool:
        return not self.diets and not self.exercises and not self.has_other_note


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class GlucoseReading:
    """A single glucose measurement folded into a record."""

    kind: GlucoseKind
    value: float
    timestamp: datetime


def measured(value: float | None) -> bool:
    """True when a metric value is an actual observation (present and > 0)."""
    return value is not None and value > 0


@dataclass(frozen=True)
class HealthRecord:
    """One timestamped bundle of health metrics for a subject.

    Metric fields are ``None`` when not measured. ``detail_readings`` is the
    authoritative glucose decomposition when present.
    """

    timestamp: datetime
    owner: str = ""
    id: str | None = None  # None = unsaved draft

    weight: float | None = None
    systolic: float | None = None
    diastolic: float | None = None
    heart_rate: float | None = None
    glucose_fasting: float | None = None
    glucose_post_meal: float | None = None
    glucose_random: float | None = None
    detail_readings: tuple[GlucoseReading, ...] | None = None

    weather: Weather | None = None
    note: NoteContent | None = None

    @property
    def has_weight(self) -> bool:
        return measured(self.weight)

    @property
    def has_blood_pressure(self) -> bool:
        return measured(self.systolic) and measured(self.diastolic)

    @property
    def has_heart_rate(self) -> bool:
        return measured(self.heart_rate)

    @property
    def has_glucose(self) -> bool:
        return bool(self.glucose_readings())

    @property
    def pulse_pressure(self) -> float | None:
        if not self.has_blood_pressure:
            return None
        return self.systolic - self.diastolic

    def glucose_readings(self) -> tuple[GlucoseReading, ...]:
        """Measured glucose readings, synthesized from scalars when needed."""
        if self.detail_readings:
            return tuple(r for r in self.detail_readings if measured(r.value))
        scalars = (
            (GlucoseKind.FASTING, self.glucose_fasting),
            (GlucoseKind.POST_MEAL, self.glucose_post_meal),
            (GlucoseKind.RANDOM, self.glucose_random),
        )
        return tuple(
            GlucoseReading(kind=kind, value=value, timestamp=self.timestamp)
            for kind, value in scalars
            if measured(value)
        )

    def glucose_value(self, kind: GlucoseKind) -> float | None:
        """Latest reading of ``kind`` on this record, or None."""
        values = [r for r in self.glucose_readings() if r.kind is kind]
        if not values:
            return None
        return max(values, key=lambda r: r.timestamp).value

    @property
    def has_other_note(self) -> bool:
        return self.note is not None and self.note.has_other_note


# ---------------------------------------------------------------------------
# Thresholds
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class HealthThresholds:
    """Per-subject alert thresholds. 0 disables the weight bounds."""

    systolic_high: float = 140
    diastolic_high: float = 90
    fasting_high: float = 100
    post_meal_high: float = 140
    weight_high: float = 0
    weight_low: float = 0
    pulse_pressure_high: float = 60
    pulse_pressure_low: float = 30

    # Stored (camelCase) key -> attribute name
    FIELD_KEYS = {
        "systolicHigh": "systolic_high",
        "diastolicHigh": "diastolic_high",
        "fastingHigh": "fasting_high",
        "postMealHigh": "post_meal_high",
        "weightHigh": "weight_high",
        "weightLow": "weight_low",
        "pulsePressureHigh": "pulse_pressure_high",
        "pulsePressureLow": "pulse_pressure_low",
    }

    @classmethod
    def from_mapping(cls, data: dict | None) -> HealthThresholds:
        """Build thresholds from stored settings, defaulting per field."""
        if not data:
            return cls()
        values: dict[str, float] = {}
        for key, attr in cls.FIELD_KEYS.items():
            raw = data.get(key, data.get(attr))
            if raw is None or isinstance(raw, bool):
                continue
            try:
                values[attr] = float(raw)
            except (TypeError, ValueError):
                continue
        return cls(**values)

    def to_mapping(self) -> dict[str, float]:
        return {key: getattr(self, attr) for key, attr in self.FIELD_KEYS.items()}


DEFAULT_THRESHOLDS = HealthThresholds()


@dataclass
class WeightDelta:
    """Day-over-day weight change."""

    abnormal: bool = False
    delta: float = 0.0


@dataclass
class RecordFlags:
    """Per-record alert flags for list views."""

    weight_abnormal: bool = False
    pulse_pressure_abnormal: bool = False
    glucose: dict[str, str] = field(default_factory=dict)
