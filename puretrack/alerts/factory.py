"""
puretrack/alerts/factory.py
───────────────────────────
Builds and persists alert records from threshold and trend results.

Provides:
  - trend_severity()          : change rate → severity
  - generate_alert_content()  : message + recommended action text
  - AlertFactory              : device lookup, deduplicated persistence

Deduplication: at most one Active alert per (device_id, parameter,
alert_type). A lock picked from a fixed pool by hashing the key serializes
creation inside this process and the store's conditional write covers
concurrent writers elsewhere.
"""
from __future__ import annotations

import logging
import threading
import uuid
from datetime import UTC, datetime
from typing import Any

from config.alerts import (
    PARAMETER_NAMES,
    PARAMETER_UNITS,
    TREND_CRITICAL_RATE,
    TREND_WARNING_RATE,
    AlertStatus,
    AlertType,
    Parameter,
    Severity,
    TrendDirection,
)
from puretrack.data.models import Alert, DeviceInfo
from puretrack.data.repositories import AlertStore, DeviceRegistry

logger = logging.getLogger(__name__)

# Dedup keys hash onto a fixed set of locks; unrelated keys may share one.
LOCK_POOL_SIZE = 64


def trend_severity(change_rate: float) -> Severity:
    if change_rate > TREND_CRITICAL_RATE:
        return Severity.CRITICAL
    if change_rate > TREND_WARNING_RATE:
        return Severity.WARNING
    return Severity.ADVISORY


def format_value(parameter: Parameter, value: float) -> str:
    unit = PARAMETER_UNITS[parameter]
    return f"{value:.2f} {unit}" if unit else f"{value:.2f}"


def _location_parts(building: str | None, floor: str | None) -> tuple[str, str]:
    """(message prefix, action suffix) for a device location."""
    if building and floor:
        return f"[{building}, {floor}] ", f" at {building}, {floor}"
    if building:
        return f"[{building}] ", f" at {building}"
    return "", ""


def generate_alert_content(
    parameter: Parameter,
    value: float,
    severity: Severity,
    alert_type: AlertType,
    trend_direction: TrendDirection | None = None,
    building: str | None = None,
    floor: str | None = None,
) -> tuple[str, str]:
    """Return (message, recommended_action) for an alert."""
    param_name = PARAMETER_NAMES[parameter]
    value_str = format_value(parameter, value)
    prefix, at = _location_parts(building, floor)

    if alert_type == AlertType.THRESHOLD:
        message = f"{prefix}{param_name} has reached {severity.value.lower()} level: {value_str}"
        if severity == Severity.CRITICAL:
            action = (
                f"Immediate action required{at}. Investigate water source and "
                "treatment system. Consider temporary shutdown if necessary."
            )
        elif severity == Severity.WARNING:
            action = (
                f"Monitor closely{at} and prepare corrective actions. "
                "Schedule system inspection within 24 hours."
            )
        else:
            action = f"Continue monitoring{at}. Note for regular maintenance schedule."
        return message, action

    direction = (
        TrendDirection.INCREASING.value
        if trend_direction == TrendDirection.INCREASING
        else TrendDirection.DECREASING.value
    )
    message = f"{prefix}{param_name} is {direction} abnormally: {value_str}"
    action = (
        f"Investigate cause of {direction} trend{at}. Check system calibration "
        "and recent changes to water source or treatment."
    )
    return message, action


class AlertFactory:
    """
    Creates deduplicated Active alerts.

    Example:
        factory = AlertFactory(alert_store, device_registry)
        alert = factory.create("dev-1", Parameter.PH, AlertType.THRESHOLD,
                               Severity.CRITICAL, 9.2, threshold_value=9.0)
        if alert is None:
            ...  # an Active alert for this device/parameter/type already exists
    """

    def __init__(self, alert_store: AlertStore, registry: DeviceRegistry, clock=None):
        self.alert_store = alert_store
        self.registry = registry
        self._clock = clock or (lambda: datetime.now(tz=UTC))
        self._locks = [threading.Lock() for _ in range(LOCK_POOL_SIZE)]

    def _lock_for(self, key: tuple[str, str, str]) -> threading.Lock:
        return self._locks[hash(key) % LOCK_POOL_SIZE]

    def _lookup_device(self, device_id: str) -> DeviceInfo | None:
        try:
            return self.registry.get_device(device_id)
        except Exception as exc:
            logger.warning("Failed to fetch device information for %s: %s", device_id, exc)
            return None

    def create(
        self,
        device_id: str,
        parameter: Parameter,
        alert_type: AlertType,
        severity: Severity,
        current_value: float,
        threshold_value: float | None = None,
        trend_direction: TrendDirection | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Alert | None:
        """
        Build and persist a new Active alert.

        Returns the alert, or None when an Active alert with the same
        (device, parameter, type) already exists. Raises
        AlertPersistenceError if the store write fails.
        """
        device = self._lookup_device(device_id)
        device_name = device.name if device and device.name else device_id
        building = device.building if device else None
        floor = device.floor if device else None

        message, action = generate_alert_content(
            parameter, current_value, severity, alert_type, trend_direction, building, floor,
        )
        alert = Alert(
            id=uuid.uuid4().hex,
            device_id=device_id,
            device_name=device_name,
            parameter=parameter,
            alert_type=alert_type,
            severity=severity,
            status=AlertStatus.ACTIVE,
            current_value=current_value,
            threshold_value=threshold_value,
            trend_direction=trend_direction,
            message=message,
            recommended_action=action,
            created_at=self._clock(),
            metadata=metadata,
            device_building=building,
            device_floor=floor,
        )

        with self._lock_for(alert.dedup_key):
            created = self.alert_store.create_if_absent(alert)

        if not created:
            logger.debug("Active %s alert already open for %s/%s, skipping",
                         alert_type.value, device_id, parameter.value)
            return None

        logger.info("Alert created: %s (%s %s %s, value=%s)",
                    alert.id, device_id, parameter.value, severity.value, current_value)
        return alert
