"""Shared test fixtures for vitaltrend tests."""

from __future__ import annotations

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# ---------------------------------------------------------------------------
# Test hermeticity
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _force_hermetic_test_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("RECORDS_CACHE_PATH", str(tmp_path / "records.json"))
    monkeypatch.setenv("DISPLAY_TIMEZONE", "UTC")
    monkeypatch.setenv("CHART_STYLES_PATH", "")
    monkeypatch.setenv("SHOW_ALERT_LINES", "false")
    monkeypatch.setenv("SHOW_AUXILIARY_LINES", "false")

# Allow running tests without `pip install -e .` by making `src/` importable.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_SRC_DIR = _PROJECT_ROOT / "src"
if str(_SRC_DIR) not in sys.path:
    sys.path.insert(0, str(_SRC_DIR))

from vitaltrend.domains.health.domain_logic.record_models import (  # noqa: E402
    HealthRecord,
    HealthThresholds,
)

T0 = datetime(2024, 1, 1, 8, 0, tzinfo=timezone.utc)


def make_record(
    hours: float = 0,
    *,
    base: datetime = T0,
    **fields,
) -> HealthRecord:
    """Create a test record ``hours`` after ``base`` with the given metrics."""
    fields.setdefault("owner", "tester")
    return HealthRecord(timestamp=base + timedelta(hours=hours), **fields)


@pytest.fixture
def disabled_weight_thresholds() -> HealthThresholds:
    """Default thresholds (weight bounds disabled)."""
    return HealthThresholds()


@pytest.fixture
def sample_records() -> list[HealthRecord]:
    """A small mixed week of records, deliberately stored out of order."""
    return [
        make_record(48, id="r3", weight=71.0, systolic=150, diastolic=70, heart_rate=80),
        make_record(0, id="r1", weight=70.0, systolic=120, diastolic=80, heart_rate=72,
                    glucose_fasting=95),
        make_record(26, id="r2", systolic=130, diastolic=85, glucose_post_meal=180),
        make_record(72, id="r4", weight=73.5, glucose_random=120),
    ]


@pytest.fixture
def memory_source(sample_records):
    from vitaltrend.domains.health.connectors.providers import InMemoryRecordSource

    return InMemoryRecordSource(sample_records)
