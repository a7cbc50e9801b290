"""Tests for chart style loading."""

from __future__ import annotations

import pytest

from vitaltrend.domains.health.domain_logic.chart_styles import (
    ChartDisplayOptions,
    default_chart_styles,
    load_chart_styles,
)
from vitaltrend.domains.health.domain_logic.record_models import AuxiliaryMode


def test_packaged_defaults():
    styles = load_chart_styles()
    assert styles.alert_color == "#ef4444"
    assert styles.metric("weight").label == "Weight (kg)"
    assert set(styles.category_colors("exercise")) == {"walking", "cycling", "resistance", "other"}
    assert styles.category_label("diet", "bigMeal") == "Big meal"


def test_unknown_metric_and_label_fall_back():
    styles = default_chart_styles()
    assert styles.metric("spo2").label == "spo2"
    assert styles.category_label("diet", "keto") == "keto"


def test_override_merges_nested_values(tmp_path):
    override = tmp_path / "styles.yaml"
    override.write_text(
        "alert_color: '#000000'\n"
        "categories:\n"
        "  weather:\n"
        "    hot: '#ffffff'\n"
    )
    styles = load_chart_styles(override)
    assert styles.alert_color == "#000000"
    assert styles.category_colors("weather")["hot"] == "#ffffff"
    assert styles.category_colors("weather")["cold"] == "#0ea5e9"
    assert styles.note_color == "#14b8a6"


def test_bad_override_is_ignored(tmp_path):
    override = tmp_path / "styles.yaml"
    override.write_text("- just\n- a list\n")
    assert load_chart_styles(override).alert_color == "#ef4444"


def test_missing_override_is_ignored(tmp_path):
    assert load_chart_styles(tmp_path / "nope.yaml").alert_color == "#ef4444"


def test_display_options_coerce_mode():
    assert ChartDisplayOptions(auxiliary_mode="band").auxiliary_mode is AuxiliaryMode.BAND
    with pytest.raises(ValueError):
        ChartDisplayOptions(auxiliary_mode="sparkle")


@pytest.mark.parametrize("content", [
    "metrics: []\n",
    "point_radius: big\n",
    "categories:\n  weather: [hot]\n",
])
def test_override_with_bad_shape_falls_back_to_defaults(tmp_path, content):
    override = tmp_path / "styles.yaml"
    override.write_text(content)
    styles = load_chart_styles(override)
    assert styles.point_radius == 3
    assert styles.metric("weight").label == "Weight (kg)"
    assert styles.category_colors("weather")["hot"] == "#f59e0b"
