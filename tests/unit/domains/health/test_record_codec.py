"""Tests for the stored-record codec."""

from __future__ import annotations

import json
from datetime import datetime, timezone

import pytest
from conftest import make_record

from vitaltrend.domains.health.domain_logic.record_codec import (
    RecordParseError,
    merge_same_day,
    parse_detail_readings,
    parse_note_content,
    parse_timestamp,
    record_from_dict,
    record_to_dict,
    records_from_dicts,
)
from vitaltrend.domains.health.domain_logic.record_models import (
    DietType,
    ExerciseType,
    GlucoseKind,
    Weather,
)


def _stored(**overrides):
    raw = {
        "id": "abc",
        "timestamp": "2024-01-01T08:00:00Z",
        "name": "alice",
        "weight": 70.2,
        "systolic": 0,
        "diastolic": 0,
        "heartRate": 66,
    }
    raw.update(overrides)
    return raw


class TestTimestamp:
    def test_zulu_suffix(self):
        assert parse_timestamp("2024-01-01T08:00:00Z") == datetime(2024, 1, 1, 8, tzinfo=timezone.utc)

    def test_naive_is_utc(self):
        assert parse_timestamp("2024-01-01T08:00:00").tzinfo is timezone.utc

    def test_invalid(self):
        with pytest.raises(RecordParseError):
            parse_timestamp("yesterday")
        with pytest.raises(RecordParseError):
            parse_timestamp(None)


class TestRecordFromDict:
    def test_zero_means_absent(self):
        record = record_from_dict(_stored())
        assert record.weight == 70.2
        assert record.systolic is None and record.diastolic is None
        assert not record.has_blood_pressure
        assert record.heart_rate == 66
        assert record.owner == "alice"
        assert record.id == "abc"

    def test_malformed_note_is_empty(self):
        record = record_from_dict(_stored(noteContent="{not json"))
        assert record.note is None
        assert record.weight == 70.2

    def test_note_content(self):
        note = {
            "diets": ["bigMeal", "unknown"],
            "exercises": [
                {"type": "walking", "durationMinutes": 30},
                {"type": "other", "customName": "yoga"},
                {"type": "swimming"},
            ],
            "otherNote": "headache",
            "weather": "cold",
        }
        record = record_from_dict(_stored(noteContent=json.dumps(note)))
        assert record.note.diets == frozenset({DietType.BIG_MEAL})
        assert [e.kind for e in record.note.exercises] == [ExerciseType.WALKING, ExerciseType.OTHER]
        assert record.note.exercises[1].display_name == "yoga"
        assert record.note.other_note == "headache"
        assert record.weather is Weather.COLD

    def test_malformed_details_fall_back_to_scalars(self):
        record = record_from_dict(_stored(details="[oops", glucoseFasting=98))
        assert record.detail_readings is None
        (reading,) = record.glucose_readings()
        assert reading.kind is GlucoseKind.FASTING and reading.value == 98

    def test_details_win_over_scalars(self):
        details = json.dumps([
            {"type": "fasting", "value": 92, "timestamp": "2024-01-01T07:00:00Z"},
            {"type": "postMeal", "value": 0, "timestamp": "2024-01-01T09:00:00Z"},
        ])
        record = record_from_dict(_stored(details=details, glucoseFasting=120))
        assert [r.value for r in record.glucose_readings()] == [92]

    def test_missing_timestamp(self):
        with pytest.raises(RecordParseError):
            record_from_dict({"weight": 70})

    def test_batch_skips_bad_records(self):
        records = records_from_dicts([_stored(), {"weight": 1}, "junk"])
        assert [r.id for r in records] == ["abc"]


class TestHelpers:
    def test_parse_note_content_not_object(self):
        assert parse_note_content("[1, 2]") is None
        assert parse_note_content("") is None

    def test_parse_detail_readings_empty_list(self):
        assert parse_detail_readings("[]") is None

    def test_record_to_dict_writes_zero_for_absent(self):
        data = record_to_dict(make_record(id="x", heart_rate=70))
        assert data["weight"] == 0 and data["systolic"] == 0 and data["diastolic"] == 0
        assert data["heartRate"] == 70
        assert "glucoseFasting" not in data
        assert record_from_dict(data).weight is None


class TestMergeSameDay:
    def test_incoming_metrics_replace_and_glucose_appends(self):
        existing = make_record(0, id="day", weight=70, glucose_fasting=95)
        incoming = make_record(3, weight=70.4, systolic=120, diastolic=80, glucose_post_meal=150)
        merged = merge_same_day(existing, incoming)
        assert merged.id == "day"
        assert merged.timestamp == existing.timestamp
        assert merged.weight == 70.4
        assert merged.systolic == 120
        assert [r.kind for r in merged.glucose_readings()] == [GlucoseKind.FASTING, GlucoseKind.POST_MEAL]

    def test_absent_incoming_metrics_keep_existing(self):
        existing = make_record(0, id="day", weight=70, heart_rate=60)
        merged = merge_same_day(existing, make_record(2, systolic=118, diastolic=76))
        assert merged.weight == 70 and merged.heart_rate == 60
        assert merged.detail_readings is None


class TestMalformedNoteFields:
    def test_non_string_fields_are_dropped(self):
        note = {
            "diets": [["bigMeal"], "normal"],
            "exercises": [{"type": "other", "customName": 5, "durationMinutes": 10}],
            "otherNote": {"text": "x"},
            "otherNoteColor": 7,
        }
        record = record_from_dict(_stored(noteContent=json.dumps(note), weather=["hot"]))
        assert record.note.diets == frozenset({DietType.NORMAL})
        (exercise,) = record.note.exercises
        assert exercise.custom_name is None
        assert exercise.display_name == "other"
        assert exercise.duration_minutes == 10
        assert record.note.other_note is None
        assert record.note.other_note_color is None
        assert record.weather is None

    def test_detailed_review_survives_bad_custom_name(self):
        from vitaltrend.domains.health.domain_logic.daily_aggregator import build_clinical_review
        from vitaltrend.domains.health.domain_logic.record_models import ReviewMode

        note = {"exercises": [{"type": "other", "customName": 5, "durationMinutes": 10}]}
        records = records_from_dicts([
            _stored(noteContent=json.dumps(note)),
            _stored(id="def", timestamp="2024-01-01T09:00:00Z"),
        ])
        (day,) = build_clinical_review(records, records, mode=ReviewMode.DETAILED)
        assert [e.note for e in day.entries] == ["other 10 min", None]
