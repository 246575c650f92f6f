"""
puretrack/analytics/health_index.py
───────────────────────────────────
System health score calculation.

Score ∈ [0, 100] where 100 = fully healthy.

Weighted components:
  infra    60%  — infrastructure health checks, supplied by the caller
  devices  20%  — share of devices currently online
  alerts   20%  — mean per-alert score from status and severity

Status: ≥ 90 Healthy, ≥ 60 Degraded, otherwise Unhealthy.
"""

from __future__ import annotations

import numpy as np

from config.alerts import AlertStatus, Severity
from puretrack.data.models import (
    AlertComponentScore,
    AlertScoreEntry,
    ComponentScore,
    DeviceComponentScore,
    DeviceStatus,
    HealthComponents,
    HealthScoreResult,
    HealthStatus,
)
from puretrack.data.repositories import AlertStore, DeviceRegistry

WEIGHTS = {
    "infra": 0.6,
    "devices": 0.2,
    "alerts": 0.2,
}

HEALTHY_MIN = 90
DEGRADED_MIN = 60

# ── Per-alert scoring ─────────────────────────────────────────────────────────

RESOLVED_SCORE = 100
ACKNOWLEDGED_SCORE = 60
ACTIVE_SCORES: dict[str, int] = {
    Severity.ADVISORY: 100,
    Severity.WARNING: 50,
    Severity.CRITICAL: 0,
}
UNKNOWN_SCORE = 100  # fail open


def _clamp(score: float) -> float:
    return float(np.clip(score, 0.0, 100.0))


def _js_round(value: float) -> int:
    """Round half up (86.5 → 87), not Python's banker's rounding."""
    return int(np.floor(value + 0.5))


def _enum_value(value) -> str:
    return getattr(value, "value", value)


def alert_score(status, severity) -> tuple[int, str]:
    """
    Score a single alert from its lifecycle status and severity.

    Resolved alerts score 100 and acknowledged ones 60 regardless of
    severity; active alerts score by severity. Unknown values fail open.
    """
    status = _enum_value(status)
    severity = _enum_value(severity)

    if status == AlertStatus.RESOLVED.value:
        return RESOLVED_SCORE, "Resolved"
    if status == AlertStatus.ACKNOWLEDGED.value:
        return ACKNOWLEDGED_SCORE, "Acknowledged"
    if status == AlertStatus.ACTIVE.value:
        if severity in ACTIVE_SCORES:
            return ACTIVE_SCORES[severity], f"Active + {severity}"
        return UNKNOWN_SCORE, "Active + Unknown Severity"
    return UNKNOWN_SCORE, "Unknown Status"


def compute_alerts_score(alerts: list) -> tuple[int, list[AlertScoreEntry]]:
    """Mean alert score (rounded), or 100 when there are no alerts."""
    if not alerts:
        return 100, []

    entries = []
    for alert in alerts:
        score, reason = alert_score(alert.status, alert.severity)
        entries.append(AlertScoreEntry(alert_id=alert.id, score=score, reason=reason))

    mean = float(np.mean([e.score for e in entries]))
    return _js_round(mean), entries


def compute_device_score(online_devices: int, total_devices: int) -> int:
    """Percentage of devices online; 100 when there are no devices."""
    if total_devices <= 0:
        return 100
    online = max(0, online_devices)
    return _js_round(100.0 * online / total_devices)


def health_status(score: float) -> HealthStatus:
    if score >= HEALTHY_MIN:
        return HealthStatus.HEALTHY
    if score >= DEGRADED_MIN:
        return HealthStatus.DEGRADED
    return HealthStatus.UNHEALTHY


# ── Main API ──────────────────────────────────────────────────────────────────

def compute_system_health(
    infra_score: float,
    online_devices: int,
    total_devices: int,
    alerts: list,
) -> HealthScoreResult:
    """
    Combine the three component scores into one weighted health score.

    overall = round(0.6 × infra + 0.2 × devices + 0.2 × alerts), each
    component clamped to [0, 100] before weighting.
    """
    alerts_raw, breakdown = compute_alerts_score(alerts)

    infra = _clamp(infra_score)
    devices = _clamp(compute_device_score(online_devices, total_devices))
    alerts_s = _clamp(alerts_raw)

    infra_c = WEIGHTS["infra"] * infra
    devices_c = WEIGHTS["devices"] * devices
    alerts_c = WEIGHTS["alerts"] * alerts_s

    overall = _js_round(infra_c + devices_c + alerts_c)

    return HealthScoreResult(
        overall_score=overall,
        status=health_status(overall),
        components=HealthComponents(
            infra=ComponentScore(
                score=infra, weight=WEIGHTS["infra"], contribution=round(infra_c, 2),
            ),
            devices=DeviceComponentScore(
                score=devices,
                weight=WEIGHTS["devices"],
                contribution=round(devices_c, 2),
                online=online_devices,
                total=total_devices,
            ),
            alerts=AlertComponentScore(
                score=alerts_s,
                weight=WEIGHTS["alerts"],
                contribution=round(alerts_c, 2),
                total_alerts=len(alerts),
                breakdown=breakdown,
            ),
        ),
    )


def compute_system_health_from_stores(
    infra_score: float,
    registry: DeviceRegistry,
    alert_store: AlertStore,
) -> HealthScoreResult:
    """Snapshot the device registry and alert store, then score."""
    devices = registry.list_devices()
    online = sum(1 for d in devices if d.status == DeviceStatus.ONLINE)
    alerts = alert_store.query()
    return compute_system_health(infra_score, online, len(devices), alerts)
