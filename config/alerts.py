"""
config/alerts.py
────────────────
Alert enums, severity ordering, and display configuration.
"""

from enum import Enum


class Parameter(str, Enum):
    TDS = "tds"
    PH = "ph"
    TURBIDITY = "turbidity"


class AlertType(str, Enum):
    THRESHOLD = "threshold"
    TREND = "trend"


class Severity(str, Enum):
    ADVISORY = "Advisory"
    WARNING = "Warning"
    CRITICAL = "Critical"


class AlertStatus(str, Enum):
    ACTIVE = "Active"
    ACKNOWLEDGED = "Acknowledged"
    RESOLVED = "Resolved"


class TrendDirection(str, Enum):
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"


PARAMETERS: tuple[Parameter, ...] = (Parameter.TDS, Parameter.PH, Parameter.TURBIDITY)

PARAMETER_UNITS: dict[str, str] = {
    Parameter.TDS: "ppm",
    Parameter.PH: "",
    Parameter.TURBIDITY: "NTU",
}

PARAMETER_NAMES: dict[str, str] = {
    Parameter.TDS: "TDS (Total Dissolved Solids)",
    Parameter.PH: "pH Level",
    Parameter.TURBIDITY: "Turbidity",
}

SEVERITY_COLORS: dict[str, str] = {
    Severity.ADVISORY: "#1890ff",
    Severity.WARNING: "#faad14",
    Severity.CRITICAL: "#ff4d4f",
}

# Lifecycle ordering; transitions may only move forward
STATUS_ORDER: dict[str, int] = {
    AlertStatus.ACTIVE: 0,
    AlertStatus.ACKNOWLEDGED: 1,
    AlertStatus.RESOLVED: 2,
}

# Trend change rate (%) above which a trend alert escalates
TREND_CRITICAL_RATE = 30.0
TREND_WARNING_RATE = 20.0
