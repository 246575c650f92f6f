"""
puretrack/analytics/trends.py
─────────────────────────────
Short-term trend detection for water-quality parameters.

Algorithm (per reading, per parameter):
  1. Read the most recent samples in the last `time_window_minutes`
  2. Compare the current value to the earliest sample in that window
  3. change_rate = (current - earliest) / earliest × 100
  4. |change_rate| ≥ threshold_percentage → trend

Also provides a coarse increasing/decreasing/stable summary over a longer
history for reporting.
"""
from __future__ import annotations

import logging
import math
from datetime import UTC, datetime, timedelta

import pandas as pd

from config.alerts import PARAMETERS, Parameter, TrendDirection
from config.settings import settings
from puretrack.data.models import Reading, TrendAnalysisResult, TrendConfig
from puretrack.data.repositories import ReadingStore

logger = logging.getLogger(__name__)

MIN_SAMPLES = 2

# Relative band around the older mean considered "stable"
SUMMARY_TOLERANCE: dict[str, float] = {
    Parameter.TDS: 0.10,
    Parameter.PH: 0.05,
    Parameter.TURBIDITY: 0.10,
}
SUMMARY_WINDOW = 10


def compute_change_rate(current_value: float, earliest_value: float) -> float | None:
    """
    Percentage change from `earliest_value` to `current_value`.

    Returns None when the rate is undefined (earliest value of zero) or not
    finite, so callers never compare against NaN or infinity.
    """
    if earliest_value == 0:
        return None
    rate = (current_value - earliest_value) / earliest_value * 100.0
    if not math.isfinite(rate):
        return None
    return rate


def detect_trend(
    current_value: float,
    window_values: list[float],
    threshold_percentage: float,
) -> TrendAnalysisResult | None:
    """Pure trend decision over window samples ordered oldest-first."""
    if len(window_values) < MIN_SAMPLES:
        return None

    earliest = float(window_values[0])
    rate = compute_change_rate(current_value, earliest)
    if rate is None or abs(rate) < threshold_percentage:
        return None

    return TrendAnalysisResult(
        has_trend=True,
        direction=TrendDirection.INCREASING if rate > 0 else TrendDirection.DECREASING,
        change_rate=abs(rate),
        previous_value=earliest,
    )


def analyze_trend(
    device_id: str,
    parameter: Parameter,
    current_value: float,
    trend_config: TrendConfig,
    reading_store: ReadingStore,
    now: datetime | None = None,
    limit: int = settings.TREND_WINDOW_LIMIT,
) -> TrendAnalysisResult | None:
    """
    Analyze the recent trend of one parameter for a device.

    Returns None when trend detection is disabled, the window holds fewer
    than two samples, the rate is undefined, or the change stays below the
    configured percentage. A failing window read is logged and treated as
    "no trend"; it never affects threshold evaluation.
    """
    if not trend_config.enabled:
        return None

    now = now or datetime.now(tz=UTC)
    window_start = now - timedelta(minutes=trend_config.time_window_minutes)

    try:
        readings = reading_store.readings_in_window(device_id, window_start, now, limit=limit)
    except Exception as exc:
        logger.error("Error reading trend window for %s/%s: %s", device_id, parameter.value, exc)
        return None

    readings = sorted(readings, key=lambda r: r.timestamp)[-limit:]
    result = detect_trend(
        current_value,
        [r.value(parameter) for r in readings],
        trend_config.threshold_percentage,
    )
    if result is not None:
        logger.info(
            "Trend detected: %s %s %s by %.1f%% (from %.2f to %.2f)",
            device_id, parameter.value, result.direction.value,
            result.change_rate, result.previous_value, current_value,
        )
    return result


def summarize_trends(readings: list[Reading]) -> dict[Parameter, TrendDirection]:
    """
    Coarse direction per parameter: mean of the latest 10 readings against
    the 10 before them. Fewer than 20 readings → all stable.
    """
    stable = {p: TrendDirection.STABLE for p in PARAMETERS}
    if len(readings) < 2 * SUMMARY_WINDOW:
        return stable

    df = pd.DataFrame([r.model_dump() for r in readings]).sort_values("timestamp")
    recent = df.iloc[-SUMMARY_WINDOW:]
    older = df.iloc[-2 * SUMMARY_WINDOW : -SUMMARY_WINDOW]

    summary: dict[Parameter, TrendDirection] = {}
    for parameter in PARAMETERS:
        col = parameter.value
        tol = SUMMARY_TOLERANCE[parameter]
        recent_mean = float(recent[col].mean())
        older_mean = float(older[col].mean())

        if recent_mean > older_mean * (1 + tol):
            summary[parameter] = TrendDirection.INCREASING
        elif recent_mean < older_mean * (1 - tol):
            summary[parameter] = TrendDirection.DECREASING
        else:
            summary[parameter] = TrendDirection.STABLE
    return summary
