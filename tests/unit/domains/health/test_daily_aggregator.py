"""Tests for the clinical-review daily aggregation."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from conftest import T0, make_record

from vitaltrend.domains.health.domain_logic.daily_aggregator import (
    build_clinical_review,
    day_key,
    day_over_day_weight_delta,
    glucose_timeline,
    group_by_day,
    simple_summary,
    summarize_note,
)
from vitaltrend.domains.health.domain_logic.record_models import (
    DietType,
    ExerciseEntry,
    ExerciseType,
    GlucoseKind,
    GlucoseReading,
    NoteContent,
    ReviewMode,
    SortOrder,
)


class TestGrouping:
    def test_day_key_uses_timezone(self):
        late = datetime(2024, 1, 1, 20, 0, tzinfo=timezone.utc)
        assert day_key(late) == "2024-01-01"
        assert day_key(late, ZoneInfo("Asia/Taipei")) == "2024-01-02"

    def test_groups_sorted_by_order(self, sample_records):
        asc = group_by_day(sample_records, SortOrder.ASC)
        assert [g.day_key for g in asc] == ["2024-01-01", "2024-01-02", "2024-01-03", "2024-01-04"]
        desc = group_by_day(sample_records, "desc")
        assert [g.day_key for g in desc] == ["2024-01-04", "2024-01-03", "2024-01-02", "2024-01-01"]

    def test_records_within_day_ascend(self):
        records = [make_record(3, id="late"), make_record(1, id="early")]
        (group,) = group_by_day(records)
        assert [r.id for r in group.records] == ["early", "late"]


class TestWeightDelta:
    def test_three_kilo_gain_is_abnormal(self):
        day1 = make_record(0, weight=70)
        day2 = make_record(24, weight=73)
        delta = day_over_day_weight_delta("2024-01-02", [day2], [day1, day2])
        assert delta.delta == 3.0
        assert delta.abnormal

    def test_latest_weight_of_each_day_is_used(self):
        records = [
            make_record(0, weight=70),
            make_record(4, weight=71),
            make_record(24, weight=72.5),
        ]
        delta = day_over_day_weight_delta("2024-01-02", records[2:], records)
        assert delta.delta == 1.5
        assert not delta.abnormal

    def test_missing_previous_day(self):
        day3 = make_record(48, weight=73)
        delta = day_over_day_weight_delta("2024-01-03", [day3], [make_record(0, weight=70), day3])
        assert delta.delta == 0.0 and not delta.abnormal

    def test_rounds_to_two_places(self):
        day1 = make_record(0, weight=70.1)
        day2 = make_record(24, weight=70.3)
        assert day_over_day_weight_delta("2024-01-02", [day2], [day1, day2]).delta == 0.2


class TestGlucoseTimeline:
    def test_post_meal_interval_after_fasting(self):
        record = make_record(0, detail_readings=(
            GlucoseReading(GlucoseKind.FASTING, 95, T0 - timedelta(hours=1)),
            GlucoseReading(GlucoseKind.POST_MEAL, 150, T0 + timedelta(minutes=90)),
        ))
        fasting, post_meal = glucose_timeline([record])
        assert fasting.minutes_since_fasting is None
        assert fasting.time == "07:00"
        assert post_meal.minutes_since_fasting == 150
        assert post_meal.status == "high"

    def test_scalar_fallback(self):
        record = make_record(0, glucose_random=120)
        (entry,) = glucose_timeline([record])
        assert entry.kind == "random" and entry.value == 120 and entry.status == "normal"


class TestSimpleSummary:
    def test_morning_and_evening_blood_pressure(self):
        records = [
            make_record(0, id="m1", systolic=120, diastolic=80),
            make_record(2, id="m2", systolic=125, diastolic=82, heart_rate=70),
            make_record(10, id="e1", systolic=135, diastolic=85),
        ]
        (group,) = group_by_day(records)
        summary = simple_summary(group, records)
        assert summary.morning.time == "10:00"
        assert summary.morning.systolic == 125
        assert summary.morning.heart_rate == 70
        assert summary.evening.time == "18:00"
        assert summary.weight is None

    def test_pulse_pressure_flag(self):
        records = [make_record(0, systolic=160, diastolic=80)]
        (group,) = group_by_day(records)
        assert simple_summary(group, records).morning.pulse_pressure_abnormal


class TestClinicalReview:
    def test_simple_mode_shape(self):
        records = [make_record(0, weight=70), make_record(24, weight=73, glucose_fasting=130)]
        days = build_clinical_review(records[1:], records)
        (day,) = days
        data = day.to_dict()
        assert data["day_key"] == "2024-01-02"
        assert data["weight_delta"] == {"abnormal": True, "delta": 3.0}
        assert data["glucose"][0]["status"] == "very-high"
        assert "summary" in data and "entries" not in data
        assert data["summary"]["weight"] == 73

    def test_detailed_mode_lists_every_record(self, sample_records):
        days = build_clinical_review(sample_records, sample_records, mode=ReviewMode.DETAILED)
        assert [d.day_key for d in days] == ["2024-01-04", "2024-01-03", "2024-01-02", "2024-01-01"]
        data = days[-1].to_dict()
        assert "summary" not in data
        (entry,) = data["entries"]
        assert entry["record_id"] == "r1"
        assert entry["weight"] == 70.0
        assert entry["blood_pressure"]["systolic"] == 120
        assert entry["glucose"][0]["kind"] == "fasting"

    def test_empty_window(self):
        assert build_clinical_review([], []) == []


class TestSummarizeNote:
    def test_empty(self):
        assert summarize_note(None) is None
        assert summarize_note(NoteContent(other_note="  ")) is None

    def test_combined(self):
        note = NoteContent(
            diets=frozenset({DietType.BIG_MEAL}),
            exercises=(ExerciseEntry(ExerciseType.OTHER, 20, custom_name="yoga"),),
            other_note="tired",
        )
        assert summarize_note(note) == "diet: bigMeal; yoga 20 min; tired"


class TestWeightDeltaBoundary:
    def test_just_under_two_kilos_is_normal(self):
        day1 = make_record(0, weight=70.0)
        day2 = make_record(24, weight=71.996)
        delta = day_over_day_weight_delta("2024-01-02", [day2], [day1, day2])
        assert delta.delta == 2.0
        assert not delta.abnormal

    def test_float_noise_at_two_kilos_is_abnormal(self):
        day1 = make_record(0, weight=70.1)
        day2 = make_record(24, weight=72.1)
        assert day_over_day_weight_delta("2024-01-02", [day2], [day1, day2]).abnormal

    def test_agrees_with_neighbor_rule(self):
        from vitaltrend.domains.health.domain_logic.classification import is_weight_abnormal

        day1 = make_record(0, id="a", weight=70.0)
        day2 = make_record(24, id="b", weight=71.996)
        delta = day_over_day_weight_delta("2024-01-02", [day2], [day1, day2])
        assert delta.abnormal == is_weight_abnormal(day2, [day1, day2])
