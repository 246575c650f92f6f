"""
puretrack/errors.py
───────────────────
Exception hierarchy for the alerting core.
"""
from __future__ import annotations


class PureTrackError(Exception):
    """Base class for all alerting-core errors."""


class ConfigError(PureTrackError):
    """Threshold configuration could not be loaded or parsed."""


class StoreError(PureTrackError):
    """A backing store (readings, alerts, devices, preferences) failed."""


class AlertPersistenceError(StoreError):
    """An alert could not be written; fatal to that single evaluation."""


class AlertNotFoundError(StoreError):
    def __init__(self, alert_id: str):
        super().__init__(f"alert {alert_id} not found")
        self.alert_id = alert_id


class InvalidTransitionError(PureTrackError):
    def __init__(self, alert_id: str, current: str, target: str):
        super().__init__(f"alert {alert_id}: cannot move from {current} to {target}")
        self.alert_id = alert_id
        self.current = current
        self.target = target


class NotificationError(PureTrackError):
    """A notification channel failed to deliver a message."""

    def __init__(self, message: str, recipient_id: str | None = None):
        super().__init__(message)
        self.recipient_id = recipient_id
