"""
tests/test_thresholds.py
─────────────────────────
Tests for the threshold engine and config provider.
"""
import pytest

from config.alerts import Parameter, Severity
from puretrack.analytics.thresholds import (
    ThresholdConfigProvider,
    check_threshold,
    evaluate_band,
)
from puretrack.data.models import ParameterThreshold, default_thresholds
from puretrack.errors import ConfigError


class TestCheckThreshold:
    def test_ph_above_critical_max(self):
        result = check_threshold(Parameter.PH, 9.2, default_thresholds())
        assert result.exceeded
        assert result.severity == Severity.CRITICAL
        assert result.threshold == 9.0

    def test_ph_below_critical_min(self):
        result = check_threshold(Parameter.PH, 5.0, default_thresholds())
        assert result.severity == Severity.CRITICAL
        assert result.threshold == 5.5

    def test_ph_warning_band(self):
        result = check_threshold(Parameter.PH, 8.7, default_thresholds())
        assert result.severity == Severity.WARNING
        assert result.threshold == 8.5

    def test_ph_below_warning_min(self):
        result = check_threshold(Parameter.PH, 5.8, default_thresholds())
        assert result.severity == Severity.WARNING
        assert result.threshold == 6.0

    def test_tds_warning(self):
        result = check_threshold(Parameter.TDS, 600.0, default_thresholds())
        assert result.severity == Severity.WARNING
        assert result.threshold == 500.0

    def test_tds_critical(self):
        result = check_threshold(Parameter.TDS, 1200.0, default_thresholds())
        assert result.severity == Severity.CRITICAL
        assert result.threshold == 1000.0

    def test_turbidity_in_range(self):
        result = check_threshold(Parameter.TURBIDITY, 1.2, default_thresholds())
        assert not result.exceeded
        assert result.severity is None
        assert result.threshold is None

    def test_bounds_are_exclusive(self):
        assert not check_threshold(Parameter.PH, 8.5, default_thresholds()).exceeded
        assert check_threshold(Parameter.PH, 9.0, default_thresholds()).severity == Severity.WARNING


class TestEvaluateBand:
    def test_unset_bounds_never_trigger(self):
        band = ParameterThreshold()
        assert not evaluate_band(1e9, band).exceeded
        assert not evaluate_band(-1e9, band).exceeded

    def test_only_critical_configured(self):
        band = ParameterThreshold(critical_max=10.0)
        assert not evaluate_band(9.9, band).exceeded
        assert evaluate_band(10.1, band).severity == Severity.CRITICAL

    def test_critical_reported_before_warning(self):
        band = ParameterThreshold(warning_max=5.0, critical_max=10.0)
        result = evaluate_band(50.0, band)
        assert result.severity == Severity.CRITICAL
        assert result.threshold == 10.0


class _FakeConfigStore:
    def __init__(self, document=None, error=None):
        self.document = document
        self.error = error
        self.calls = 0

    def load_thresholds(self):
        self.calls += 1
        if self.error:
            raise self.error
        return self.document


class _Clock:
    def __init__(self):
        self.t = 0.0

    def __call__(self):
        return self.t


class TestThresholdConfigProvider:
    def test_no_store_uses_defaults(self):
        provider = ThresholdConfigProvider()
        assert provider.get().ph.critical_max == 9.0

    def test_absent_document_uses_defaults(self):
        provider = ThresholdConfigProvider(_FakeConfigStore(document=None))
        assert provider.get().tds.warning_max == 500.0

    def test_store_error_falls_back_to_defaults(self):
        provider = ThresholdConfigProvider(_FakeConfigStore(error=RuntimeError("offline")))
        assert provider.get() == default_thresholds()

    def test_override_from_store(self, config_store):
        custom = default_thresholds().model_copy(deep=True)
        custom.ph.critical_max = 8.8
        config_store.save_thresholds(custom)

        provider = ThresholdConfigProvider(config_store)
        assert provider.get().ph.critical_max == 8.8
        assert check_threshold(Parameter.PH, 8.9, provider.get()).severity == Severity.CRITICAL

    def test_invalid_stored_document_falls_back(self, config_store, db):
        with db.lock, db.conn:
            db.conn.execute(
                "INSERT INTO alert_settings (key, document) VALUES ('thresholds', ?)",
                ('{"tds": {"warningMax": "lots"}}',),
            )
        with pytest.raises(ConfigError):
            config_store.load_thresholds()
        assert ThresholdConfigProvider(config_store).get() == default_thresholds()

    def test_cached_within_ttl(self):
        store = _FakeConfigStore(document=default_thresholds())
        clock = _Clock()
        provider = ThresholdConfigProvider(store, ttl_seconds=60, clock=clock)

        provider.get()
        clock.t = 30
        provider.get()
        assert store.calls == 1

        clock.t = 61
        provider.get()
        assert store.calls == 2

    def test_failed_refresh_keeps_last_good_value(self):
        custom = default_thresholds().model_copy(deep=True)
        custom.tds.warning_max = 400.0
        store = _FakeConfigStore(document=custom)
        clock = _Clock()
        provider = ThresholdConfigProvider(store, ttl_seconds=10, clock=clock)
        assert provider.get().tds.warning_max == 400.0

        store.error = RuntimeError("timeout")
        clock.t = 20
        assert provider.get().tds.warning_max == 400.0

    def test_invalidate_forces_reload(self):
        store = _FakeConfigStore(document=default_thresholds())
        provider = ThresholdConfigProvider(store, ttl_seconds=3600, clock=_Clock())
        provider.get()
        provider.invalidate()
        provider.get()
        assert store.calls == 2


class TestThresholdDocument:
    def test_camel_case_document_parses(self):
        thresholds = default_thresholds()
        assert thresholds.trend_detection.threshold_percentage == 15.0
        assert thresholds.trend_detection.time_window_minutes == 30.0

    @pytest.mark.parametrize("parameter", list(Parameter))
    def test_every_parameter_has_a_band(self, parameter):
        band = default_thresholds().for_parameter(parameter)
        assert band.critical_max is not None
