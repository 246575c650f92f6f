"""
tests/test_trends.py
─────────────────────
Tests for sliding-window trend detection.
"""
from datetime import timedelta

import pytest

from config.alerts import Parameter, TrendDirection
from puretrack.analytics.trends import (
    analyze_trend,
    compute_change_rate,
    detect_trend,
    summarize_trends,
)
from puretrack.data.models import TrendConfig


class _BrokenStore:
    def readings_in_window(self, *args, **kwargs):
        raise RuntimeError("read timeout")


class TestComputeChangeRate:
    def test_increase(self):
        assert compute_change_rate(130.0, 100.0) == pytest.approx(30.0)

    def test_decrease(self):
        assert compute_change_rate(80.0, 100.0) == pytest.approx(-20.0)

    def test_zero_earliest_is_undefined(self):
        assert compute_change_rate(5.0, 0.0) is None


class TestDetectTrend:
    def test_needs_two_samples(self):
        assert detect_trend(130.0, [130.0], 15.0) is None
        assert detect_trend(130.0, [], 15.0) is None

    def test_below_threshold(self):
        assert detect_trend(105.0, [100.0, 105.0], 15.0) is None

    def test_exactly_at_threshold_is_a_trend(self):
        result = detect_trend(115.0, [100.0, 115.0], 15.0)
        assert result is not None
        assert result.change_rate == pytest.approx(15.0)

    def test_decreasing_reports_absolute_rate(self):
        result = detect_trend(70.0, [100.0, 90.0, 70.0], 15.0)
        assert result.direction == TrendDirection.DECREASING
        assert result.change_rate == pytest.approx(30.0)
        assert result.previous_value == 100.0

    def test_zero_guard(self):
        assert detect_trend(5.0, [0.0, 5.0], 15.0) is None


class TestAnalyzeTrend:
    def test_increasing_tds(self, reading_store, make_reading, now):
        reading_store.insert_readings([
            make_reading(minutes_ago=20, tds=100.0),
            make_reading(minutes_ago=0, tds=130.0),
        ])
        result = analyze_trend("PT-001", Parameter.TDS, 130.0, TrendConfig(), reading_store, now)
        assert result is not None
        assert result.has_trend
        assert result.direction == TrendDirection.INCREASING
        assert result.change_rate == pytest.approx(30.0)
        assert result.previous_value == 100.0

    def test_small_change_is_not_a_trend(self, reading_store, make_reading, now):
        reading_store.insert_readings([
            make_reading(minutes_ago=20, tds=100.0),
            make_reading(minutes_ago=0, tds=105.0),
        ])
        assert analyze_trend("PT-001", Parameter.TDS, 105.0, TrendConfig(), reading_store, now) is None

    def test_readings_outside_window_ignored(self, reading_store, make_reading, now):
        reading_store.insert_readings([
            make_reading(minutes_ago=45, tds=100.0),
            make_reading(minutes_ago=0, tds=130.0),
        ])
        assert analyze_trend("PT-001", Parameter.TDS, 130.0, TrendConfig(), reading_store, now) is None

    def test_only_most_recent_samples_used(self, reading_store, make_reading, now):
        # 12 readings in the window; the oldest two are outside the 10-sample limit
        readings = [make_reading(minutes_ago=24 - 2 * i, tds=100.0) for i in range(2)]
        readings += [make_reading(minutes_ago=20 - 2 * i, tds=125.0) for i in range(10)]
        reading_store.insert_readings(readings)
        assert analyze_trend("PT-001", Parameter.TDS, 125.0, TrendConfig(), reading_store, now) is None

    def test_other_devices_ignored(self, reading_store, make_reading, now):
        reading_store.insert_readings([
            make_reading(minutes_ago=20, device_id="PT-999", tds=100.0),
            make_reading(minutes_ago=0, tds=130.0),
        ])
        assert analyze_trend("PT-001", Parameter.TDS, 130.0, TrendConfig(), reading_store, now) is None

    def test_disabled(self, reading_store, make_reading, now):
        reading_store.insert_readings([
            make_reading(minutes_ago=20, tds=100.0),
            make_reading(minutes_ago=0, tds=200.0),
        ])
        config = TrendConfig(enabled=False)
        assert analyze_trend("PT-001", Parameter.TDS, 200.0, config, reading_store, now) is None

    def test_custom_percentage(self, reading_store, make_reading, now):
        reading_store.insert_readings([
            make_reading(minutes_ago=10, ph=7.0),
            make_reading(minutes_ago=0, ph=7.5),
        ])
        config = TrendConfig(threshold_percentage=5.0)
        result = analyze_trend("PT-001", Parameter.PH, 7.5, config, reading_store, now)
        assert result is not None
        assert result.change_rate == pytest.approx(7.142857, rel=1e-4)

    def test_read_error_means_no_trend(self, now):
        assert analyze_trend("PT-001", Parameter.TDS, 130.0, TrendConfig(), _BrokenStore(), now) is None


class TestSummarizeTrends:
    def test_too_few_readings_is_stable(self, make_reading):
        readings = [make_reading(minutes_ago=i) for i in range(5)]
        summary = summarize_trends(readings)
        assert set(summary.values()) == {TrendDirection.STABLE}

    def test_rising_tds(self, make_reading):
        older = [make_reading(minutes_ago=40 - i, tds=300.0) for i in range(10)]
        recent = [make_reading(minutes_ago=20 - i, tds=400.0) for i in range(10)]
        summary = summarize_trends(older + recent)
        assert summary[Parameter.TDS] == TrendDirection.INCREASING
        assert summary[Parameter.PH] == TrendDirection.STABLE

    def test_ph_uses_tighter_band(self, make_reading):
        older = [make_reading(minutes_ago=40 - i, ph=7.0) for i in range(10)]
        recent = [make_reading(minutes_ago=20 - i, ph=6.6) for i in range(10)]
        summary = summarize_trends(older + recent)
        assert summary[Parameter.PH] == TrendDirection.DECREASING
