"""
puretrack/data/models.py
────────────────────────
Pydantic v2 data models for readings, thresholds, alerts, recipients,
and health summaries.
"""
from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from config.alerts import (
    AlertStatus,
    AlertType,
    Parameter,
    Severity,
    TrendDirection,
)
from config.thresholds import DEFAULT_THRESHOLD_DOCUMENT


class DeviceStatus(str, Enum):
    ONLINE = "online"
    OFFLINE = "offline"
    MAINTENANCE = "maintenance"


class HealthStatus(str, Enum):
    HEALTHY = "Healthy"
    DEGRADED = "Degraded"
    UNHEALTHY = "Unhealthy"


class _CamelModel(BaseModel):
    """Accepts both snake_case and the camelCase keys of stored documents."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ── Readings ──────────────────────────────────────────────────────────────────

class Reading(BaseModel):
    model_config = ConfigDict(frozen=True)

    device_id: str
    tds: float
    ph: float
    turbidity: float
    timestamp: datetime

    def value(self, parameter: Parameter) -> float:
        return float(getattr(self, Parameter(parameter).value))

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> Reading:
        """
        Build a Reading from an ingestion trigger payload:
        {deviceId, tds, ph, turbidity, timestamp (epoch ms)}.

        Missing parameter values default to 0 and a missing timestamp to now.
        """
        device_id = payload.get("deviceId") or payload.get("device_id")
        if not device_id:
            raise ValueError("payload has no deviceId")

        raw_ts = payload.get("timestamp")
        if raw_ts:
            timestamp = datetime.fromtimestamp(float(raw_ts) / 1000.0, tz=UTC)
        else:
            timestamp = datetime.now(tz=UTC)

        return cls(
            device_id=str(device_id),
            tds=float(payload.get("tds") or 0.0),
            ph=float(payload.get("ph") or 0.0),
            turbidity=float(payload.get("turbidity") or 0.0),
            timestamp=timestamp,
        )


# ── Threshold configuration ───────────────────────────────────────────────────

class ParameterThreshold(_CamelModel):
    warning_min: float | None = None
    warning_max: float | None = None
    critical_min: float | None = None
    critical_max: float | None = None
    unit: str = ""


class TrendConfig(_CamelModel):
    enabled: bool = True
    threshold_percentage: float = Field(default=15.0, gt=0.0)
    time_window_minutes: float = Field(default=30.0, gt=0.0)


class AlertThresholds(_CamelModel):
    tds: ParameterThreshold
    ph: ParameterThreshold
    turbidity: ParameterThreshold
    trend_detection: TrendConfig = Field(default_factory=TrendConfig)

    def for_parameter(self, parameter: Parameter) -> ParameterThreshold:
        return getattr(self, Parameter(parameter).value)


def default_thresholds() -> AlertThresholds:
    return AlertThresholds.model_validate(DEFAULT_THRESHOLD_DOCUMENT)


# ── Devices ───────────────────────────────────────────────────────────────────

class DeviceInfo(BaseModel):
    device_id: str
    name: str
    status: DeviceStatus = DeviceStatus.ONLINE
    last_seen: datetime | None = None
    building: str | None = None
    floor: str | None = None


# ── Evaluation results ────────────────────────────────────────────────────────

class ThresholdCheckResult(BaseModel):
    exceeded: bool
    severity: Severity | None = None
    threshold: float | None = None


class TrendAnalysisResult(BaseModel):
    has_trend: bool
    direction: TrendDirection
    change_rate: float
    previous_value: float


# ── Alerts ────────────────────────────────────────────────────────────────────

class Alert(BaseModel):
    id: str
    device_id: str
    device_name: str
    parameter: Parameter
    alert_type: AlertType
    severity: Severity
    status: AlertStatus = AlertStatus.ACTIVE
    current_value: float
    threshold_value: float | None = None
    trend_direction: TrendDirection | None = None
    message: str
    recommended_action: str
    created_at: datetime
    notified_recipient_ids: set[str] = Field(default_factory=set)
    metadata: dict[str, Any] | None = None
    device_building: str | None = None
    device_floor: str | None = None
    escalated_at: datetime | None = None

    @property
    def dedup_key(self) -> tuple[str, str, str]:
        return (self.device_id, self.parameter.value, self.alert_type.value)

    @property
    def location(self) -> str:
        if self.device_building and self.device_floor:
            return f"{self.device_building}, {self.device_floor}"
        return self.device_building or ""


# ── Recipients ────────────────────────────────────────────────────────────────

class RecipientPreference(BaseModel):
    recipient_id: str
    contact_address: str
    notifications_enabled: bool = True
    severities: set[Severity] = Field(default_factory=set)
    parameters: set[Parameter] = Field(default_factory=set)   # empty = all
    devices: set[str] = Field(default_factory=set)            # empty = all
    quiet_hours_enabled: bool = False
    quiet_hours_start: str | None = None   # "HH:MM"
    quiet_hours_end: str | None = None


# ── Health score ──────────────────────────────────────────────────────────────

class ComponentScore(BaseModel):
    score: float = Field(ge=0.0, le=100.0)
    weight: float = Field(ge=0.0, le=1.0)
    contribution: float


class DeviceComponentScore(ComponentScore):
    online: int = 0
    total: int = 0


class AlertScoreEntry(BaseModel):
    alert_id: str
    score: float
    reason: str


class AlertComponentScore(ComponentScore):
    total_alerts: int = 0
    breakdown: list[AlertScoreEntry] = Field(default_factory=list)


class HealthComponents(BaseModel):
    infra: ComponentScore
    devices: DeviceComponentScore
    alerts: AlertComponentScore


class HealthScoreResult(BaseModel):
    overall_score: int = Field(ge=0, le=100)
    status: HealthStatus
    components: HealthComponents
