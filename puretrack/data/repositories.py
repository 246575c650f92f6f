"""
puretrack/data/repositories.py
──────────────────────────────
Narrow repository interfaces the alerting core depends on.

The core never touches a storage technology directly; anything satisfying
these protocols (the SQLite store in store.py, a document database, a test
fake) can be plugged in.
"""
from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from typing import Protocol

from config.alerts import AlertStatus, Severity
from puretrack.data.models import (
    Alert,
    AlertThresholds,
    DeviceInfo,
    DeviceStatus,
    Reading,
    RecipientPreference,
)


class DeviceRegistry(Protocol):
    def get_device(self, device_id: str) -> DeviceInfo | None: ...

    def list_devices(self) -> list[DeviceInfo]: ...

    def update_device_status(
        self, device_id: str, status: DeviceStatus, last_seen: datetime | None = None
    ) -> None: ...


class ReadingStore(Protocol):
    def readings_in_window(
        self, device_id: str, start: datetime, end: datetime, limit: int | None = None
    ) -> list[Reading]: ...

    def insert_readings(self, readings: Iterable[Reading]) -> None: ...


class AlertStore(Protocol):
    def create_if_absent(self, alert: Alert) -> bool:
        """Persist `alert` unless an Active alert with the same dedup key exists."""
        ...

    def get(self, alert_id: str) -> Alert | None: ...

    def query(
        self,
        device_id: str | None = None,
        status: AlertStatus | None = None,
        severity: Severity | None = None,
        limit: int | None = None,
        oldest_first: bool = False,
    ) -> list[Alert]: ...

    def add_notified(self, alert_id: str, recipient_ids: Iterable[str]) -> None: ...

    def update_status(self, alert_id: str, status: AlertStatus) -> None: ...

    def mark_escalated(self, alert_ids: Iterable[str], at: datetime) -> None: ...


class PreferenceStore(Protocol):
    def list_preferences(self) -> list[RecipientPreference]: ...


class ThresholdConfigStore(Protocol):
    def load_thresholds(self) -> AlertThresholds | None:
        """Return the stored override document, or None when absent."""
        ...
