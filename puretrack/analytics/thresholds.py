"""
puretrack/analytics/thresholds.py
─────────────────────────────────
Threshold engine.

Provides:
  - check_threshold()         : pure band check for one parameter value
  - ThresholdConfigProvider   : cached threshold config with default fallback

Evaluation order is critical before warning and, within each tier, max
bound before min bound, so a value outside both bands is reported once,
at Critical severity, with the violated critical bound.
"""
from __future__ import annotations

import logging
import threading
import time

from config.alerts import Parameter, Severity
from config.settings import settings
from puretrack.data.models import (
    AlertThresholds,
    ParameterThreshold,
    ThresholdCheckResult,
    default_thresholds,
)
from puretrack.data.repositories import ThresholdConfigStore

logger = logging.getLogger(__name__)

_NOT_EXCEEDED = ThresholdCheckResult(exceeded=False)


def evaluate_band(value: float, band: ParameterThreshold) -> ThresholdCheckResult:
    """Classify a value against one parameter's warning/critical band."""
    if band.critical_max is not None and value > band.critical_max:
        return ThresholdCheckResult(exceeded=True, severity=Severity.CRITICAL, threshold=band.critical_max)
    if band.critical_min is not None and value < band.critical_min:
        return ThresholdCheckResult(exceeded=True, severity=Severity.CRITICAL, threshold=band.critical_min)
    if band.warning_max is not None and value > band.warning_max:
        return ThresholdCheckResult(exceeded=True, severity=Severity.WARNING, threshold=band.warning_max)
    if band.warning_min is not None and value < band.warning_min:
        return ThresholdCheckResult(exceeded=True, severity=Severity.WARNING, threshold=band.warning_min)
    return _NOT_EXCEEDED


def check_threshold(
    parameter: Parameter,
    value: float,
    thresholds: AlertThresholds,
) -> ThresholdCheckResult:
    """
    Check a parameter value against the configured thresholds.

    Returns ThresholdCheckResult(exceeded, severity, threshold) where
    `threshold` is the bound that was violated.
    """
    return evaluate_band(value, thresholds.for_parameter(parameter))


class ThresholdConfigProvider:
    """
    Serves the current AlertThresholds.

    Loads the override document from the config store at most once per
    `ttl_seconds`; absent or unreadable documents fall back to the built-in
    defaults. A failed refresh keeps the last good value.
    """

    def __init__(
        self,
        store: ThresholdConfigStore | None = None,
        ttl_seconds: float = settings.CONFIG_CACHE_TTL_SECONDS,
        clock=time.monotonic,
    ):
        self.store = store
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._cached: AlertThresholds | None = None
        self._loaded_at: float | None = None

    def get(self) -> AlertThresholds:
        with self._lock:
            now = self._clock()
            if (
                self._cached is not None
                and self._loaded_at is not None
                and now - self._loaded_at < self.ttl_seconds
            ):
                return self._cached

            self._cached = self._load(fallback=self._cached)
            self._loaded_at = now
            return self._cached

    def invalidate(self) -> None:
        with self._lock:
            self._loaded_at = None

    def _load(self, fallback: AlertThresholds | None) -> AlertThresholds:
        if self.store is None:
            return default_thresholds()
        try:
            loaded = self.store.load_thresholds()
        except Exception as exc:
            logger.warning("Failed to load threshold config, using %s: %s",
                           "cached values" if fallback else "defaults", exc)
            return fallback or default_thresholds()

        if loaded is None:
            return default_thresholds()
        logger.info("Loaded threshold config from store")
        return loaded
