"""
puretrack/data/store.py
───────────────────────
SQLite implementations of the repository interfaces.

Provides:
  - Database              : shared connection, lock and schema
  - SQLiteReadingStore    : insert_readings() / readings_in_window()
  - SQLiteAlertStore      : conditional insert, queries, lifecycle updates
  - SQLiteDeviceRegistry  : device lookup and status updates
  - SQLitePreferenceStore : recipient notification preferences
  - SQLiteConfigStore     : optional threshold override document

Thread safety: uses check_same_thread=False + a per-database lock.
Deduplication: a partial unique index allows at most one Active alert per
(device_id, parameter, alert_type); inserts use INSERT OR IGNORE.
"""
from __future__ import annotations

import json
import sqlite3
import threading
from collections.abc import Iterable
from datetime import UTC, datetime

import pandas as pd
from pydantic import ValidationError

from config.alerts import AlertStatus, Severity
from config.settings import settings
from puretrack.data.models import (
    Alert,
    AlertThresholds,
    DeviceInfo,
    DeviceStatus,
    Reading,
    RecipientPreference,
)
from puretrack.errors import AlertNotFoundError, AlertPersistenceError, ConfigError, StoreError

# ── Schema ────────────────────────────────────────────────────────────────────

_CREATE_READINGS = """
CREATE TABLE IF NOT EXISTS readings (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    device_id   TEXT NOT NULL,
    timestamp   TEXT NOT NULL,
    tds         REAL NOT NULL,
    ph          REAL NOT NULL,
    turbidity   REAL NOT NULL
);
"""

_CREATE_ALERTS = """
CREATE TABLE IF NOT EXISTS alerts (
    id                      TEXT PRIMARY KEY,
    device_id               TEXT NOT NULL,
    device_name             TEXT NOT NULL,
    parameter               TEXT NOT NULL,
    alert_type              TEXT NOT NULL,
    severity                TEXT NOT NULL,
    status                  TEXT NOT NULL DEFAULT 'Active',
    current_value           REAL NOT NULL,
    threshold_value         REAL,
    trend_direction         TEXT,
    message                 TEXT NOT NULL,
    recommended_action      TEXT NOT NULL,
    created_at              TEXT NOT NULL,
    notified_recipient_ids  TEXT NOT NULL DEFAULT '[]',
    metadata                TEXT,
    device_building         TEXT,
    device_floor            TEXT,
    escalated_at            TEXT
);
"""

_CREATE_DEVICES = """
CREATE TABLE IF NOT EXISTS devices (
    device_id   TEXT PRIMARY KEY,
    name        TEXT NOT NULL,
    status      TEXT NOT NULL DEFAULT 'online',
    last_seen   TEXT,
    building    TEXT,
    floor       TEXT
);
"""

_CREATE_PREFERENCES = """
CREATE TABLE IF NOT EXISTS notification_preferences (
    recipient_id           TEXT PRIMARY KEY,
    contact_address        TEXT NOT NULL,
    notifications_enabled  INTEGER NOT NULL DEFAULT 1,
    severities             TEXT NOT NULL DEFAULT '[]',
    parameters             TEXT NOT NULL DEFAULT '[]',
    devices                TEXT NOT NULL DEFAULT '[]',
    quiet_hours_enabled    INTEGER NOT NULL DEFAULT 0,
    quiet_hours_start      TEXT,
    quiet_hours_end        TEXT
);
"""

_CREATE_SETTINGS = """
CREATE TABLE IF NOT EXISTS alert_settings (
    key       TEXT PRIMARY KEY,
    document  TEXT NOT NULL
);
"""

_CREATE_IDX = """
CREATE INDEX IF NOT EXISTS idx_readings_dev_ts ON readings (device_id, timestamp);
CREATE INDEX IF NOT EXISTS idx_alerts_status_sev ON alerts (status, severity);
CREATE UNIQUE INDEX IF NOT EXISTS uq_alerts_active_key
    ON alerts (device_id, parameter, alert_type) WHERE status = 'Active';
"""

_ALERT_COLUMNS = (
    "id, device_id, device_name, parameter, alert_type, severity, status, "
    "current_value, threshold_value, trend_direction, message, recommended_action, "
    "created_at, notified_recipient_ids, metadata, device_building, device_floor, escalated_at"
)


# ── Helpers ───────────────────────────────────────────────────────────────────

def _ts(value: datetime) -> str:
    """Fixed-width UTC ISO string so lexical order matches time order."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat(timespec="microseconds")


def _parse_ts(value) -> datetime | None:
    if _missing(value):
        return None
    return datetime.fromisoformat(str(value))


def _missing(value) -> bool:
    return value is None or (isinstance(value, float) and pd.isna(value))


def _opt(value):
    return None if _missing(value) else value


def _row_to_alert(row: dict) -> Alert:
    metadata = _opt(row.get("metadata"))
    return Alert(
        id=row["id"],
        device_id=row["device_id"],
        device_name=row["device_name"],
        parameter=row["parameter"],
        alert_type=row["alert_type"],
        severity=row["severity"],
        status=row["status"],
        current_value=float(row["current_value"]),
        threshold_value=_opt(row.get("threshold_value")),
        trend_direction=_opt(row.get("trend_direction")),
        message=row["message"],
        recommended_action=row["recommended_action"],
        created_at=_parse_ts(row["created_at"]),
        notified_recipient_ids=set(json.loads(row["notified_recipient_ids"] or "[]")),
        metadata=json.loads(metadata) if metadata else None,
        device_building=_opt(row.get("device_building")),
        device_floor=_opt(row.get("device_floor")),
        escalated_at=_parse_ts(row.get("escalated_at")),
    )


def _row_to_device(row: dict) -> DeviceInfo:
    return DeviceInfo(
        device_id=row["device_id"],
        name=row["name"],
        status=row["status"],
        last_seen=_parse_ts(row["last_seen"]),
        building=_opt(row["building"]),
        floor=_opt(row["floor"]),
    )


def _row_to_preference(row: dict) -> RecipientPreference:
    return RecipientPreference(
        recipient_id=row["recipient_id"],
        contact_address=row["contact_address"],
        notifications_enabled=bool(row["notifications_enabled"]),
        severities=set(json.loads(row["severities"])),
        parameters=set(json.loads(row["parameters"])),
        devices=set(json.loads(row["devices"])),
        quiet_hours_enabled=bool(row["quiet_hours_enabled"]),
        quiet_hours_start=_opt(row["quiet_hours_start"]),
        quiet_hours_end=_opt(row["quiet_hours_end"]),
    )


# ── Connection ────────────────────────────────────────────────────────────────

class Database:
    """One SQLite connection shared by all stores, guarded by an RLock."""

    def __init__(self, url: str | None = None):
        self.url = url or settings.DATABASE_URL
        self.conn = sqlite3.connect(self.url, check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        self.lock = threading.RLock()

    def initialize(self) -> None:
        """Create tables and indexes. Safe to call multiple times (idempotent)."""
        with self.lock, self.conn:
            self.conn.executescript(
                _CREATE_READINGS
                + _CREATE_ALERTS
                + _CREATE_DEVICES
                + _CREATE_PREFERENCES
                + _CREATE_SETTINGS
                + _CREATE_IDX
            )

    def close(self) -> None:
        with self.lock:
            self.conn.close()


# ── Readings ──────────────────────────────────────────────────────────────────

class SQLiteReadingStore:
    def __init__(self, db: Database):
        self.db = db

    def insert_readings(self, readings: Iterable[Reading]) -> None:
        rows = [
            (r.device_id, _ts(r.timestamp), r.tds, r.ph, r.turbidity)
            for r in readings
        ]
        if not rows:
            return
        with self.db.lock, self.db.conn:
            self.db.conn.executemany(
                """INSERT INTO readings (device_id, timestamp, tds, ph, turbidity)
                   VALUES (?,?,?,?,?)""",
                rows,
            )

    def readings_in_window(
        self,
        device_id: str,
        start: datetime,
        end: datetime,
        limit: int | None = None,
    ) -> list[Reading]:
        """
        Readings with start <= timestamp <= end, oldest first.
        With `limit`, only the most recent `limit` readings of the window.
        """
        params: list = [device_id, _ts(start), _ts(end)]
        sql = """SELECT device_id, timestamp, tds, ph, turbidity FROM readings
                 WHERE device_id = ? AND timestamp >= ? AND timestamp <= ?
                 ORDER BY timestamp DESC"""
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)

        try:
            with self.db.lock:
                df = pd.read_sql_query(sql, self.db.conn, params=params)
        except (sqlite3.Error, pd.errors.DatabaseError) as exc:
            raise StoreError(f"reading window query failed for {device_id}: {exc}") from exc

        if df.empty:
            return []
        df = df.iloc[::-1]
        return [
            Reading(
                device_id=row.device_id,
                timestamp=datetime.fromisoformat(row.timestamp),
                tds=row.tds,
                ph=row.ph,
                turbidity=row.turbidity,
            )
            for row in df.itertuples(index=False)
        ]


# ── Alerts ────────────────────────────────────────────────────────────────────

class SQLiteAlertStore:
    def __init__(self, db: Database):
        self.db = db

    def create_if_absent(self, alert: Alert) -> bool:
        row = (
            alert.id,
            alert.device_id,
            alert.device_name,
            alert.parameter.value,
            alert.alert_type.value,
            alert.severity.value,
            alert.status.value,
            alert.current_value,
            alert.threshold_value,
            alert.trend_direction.value if alert.trend_direction else None,
            alert.message,
            alert.recommended_action,
            _ts(alert.created_at),
            json.dumps(sorted(alert.notified_recipient_ids)),
            json.dumps(alert.metadata) if alert.metadata is not None else None,
            alert.device_building,
            alert.device_floor,
            _ts(alert.escalated_at) if alert.escalated_at else None,
        )
        try:
            with self.db.lock, self.db.conn:
                cursor = self.db.conn.execute(
                    f"INSERT OR IGNORE INTO alerts ({_ALERT_COLUMNS}) "
                    "VALUES (?,?,?,?,?,?,?,?,?,?,?,?,?,?,?,?,?,?)",
                    row,
                )
        except sqlite3.Error as exc:
            raise AlertPersistenceError(f"could not persist alert {alert.id}: {exc}") from exc
        return cursor.rowcount == 1

    def get(self, alert_id: str) -> Alert | None:
        with self.db.lock:
            row = self.db.conn.execute(
                f"SELECT {_ALERT_COLUMNS} FROM alerts WHERE id = ?", (alert_id,)
            ).fetchone()
        return _row_to_alert(dict(row)) if row else None

    def query(
        self,
        device_id: str | None = None,
        status: AlertStatus | None = None,
        severity: Severity | None = None,
        limit: int | None = None,
        oldest_first: bool = False,
    ) -> list[Alert]:
        """Fetch alerts with optional filters, newest first unless `oldest_first`."""
        where = ["1 = 1"]
        params: list = []

        if device_id:
            where.append("device_id = ?")
            params.append(device_id)
        if status:
            where.append("status = ?")
            params.append(AlertStatus(status).value)
        if severity:
            where.append("severity = ?")
            params.append(Severity(severity).value)

        order = "ASC" if oldest_first else "DESC"
        sql = f"""SELECT {_ALERT_COLUMNS} FROM alerts WHERE {' AND '.join(where)}
                  ORDER BY created_at {order}"""
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)

        try:
            with self.db.lock:
                df = pd.read_sql_query(sql, self.db.conn, params=params)
        except (sqlite3.Error, pd.errors.DatabaseError) as exc:
            raise StoreError(f"alert query failed: {exc}") from exc
        return [_row_to_alert(row) for row in df.to_dict(orient="records")]

    def add_notified(self, alert_id: str, recipient_ids: Iterable[str]) -> None:
        new_ids = set(recipient_ids)
        if not new_ids:
            return
        with self.db.lock, self.db.conn:
            row = self.db.conn.execute(
                "SELECT notified_recipient_ids FROM alerts WHERE id = ?", (alert_id,)
            ).fetchone()
            if row is None:
                raise AlertNotFoundError(alert_id)
            merged = set(json.loads(row["notified_recipient_ids"] or "[]")) | new_ids
            self.db.conn.execute(
                "UPDATE alerts SET notified_recipient_ids = ? WHERE id = ?",
                (json.dumps(sorted(merged)), alert_id),
            )

    def update_status(self, alert_id: str, status: AlertStatus) -> None:
        with self.db.lock, self.db.conn:
            cursor = self.db.conn.execute(
                "UPDATE alerts SET status = ? WHERE id = ?",
                (AlertStatus(status).value, alert_id),
            )
        if cursor.rowcount == 0:
            raise AlertNotFoundError(alert_id)

    def mark_escalated(self, alert_ids: Iterable[str], at: datetime) -> None:
        ids = list(alert_ids)
        if not ids:
            return
        with self.db.lock, self.db.conn:
            self.db.conn.executemany(
                "UPDATE alerts SET escalated_at = ? WHERE id = ? AND escalated_at IS NULL",
                [(_ts(at), alert_id) for alert_id in ids],
            )


# ── Devices ───────────────────────────────────────────────────────────────────

class SQLiteDeviceRegistry:
    def __init__(self, db: Database):
        self.db = db

    def upsert_device(self, device: DeviceInfo) -> None:
        with self.db.lock, self.db.conn:
            self.db.conn.execute(
                """INSERT OR REPLACE INTO devices
                   (device_id, name, status, last_seen, building, floor)
                   VALUES (?,?,?,?,?,?)""",
                (
                    device.device_id,
                    device.name,
                    device.status.value,
                    _ts(device.last_seen) if device.last_seen else None,
                    device.building,
                    device.floor,
                ),
            )

    def get_device(self, device_id: str) -> DeviceInfo | None:
        with self.db.lock:
            row = self.db.conn.execute(
                "SELECT * FROM devices WHERE device_id = ?", (device_id,)
            ).fetchone()
        return _row_to_device(dict(row)) if row else None

    def list_devices(self) -> list[DeviceInfo]:
        with self.db.lock:
            rows = self.db.conn.execute("SELECT * FROM devices ORDER BY device_id").fetchall()
        return [_row_to_device(dict(r)) for r in rows]

    def update_device_status(
        self,
        device_id: str,
        status: DeviceStatus,
        last_seen: datetime | None = None,
    ) -> None:
        with self.db.lock, self.db.conn:
            if last_seen is not None:
                self.db.conn.execute(
                    "UPDATE devices SET status = ?, last_seen = ? WHERE device_id = ?",
                    (DeviceStatus(status).value, _ts(last_seen), device_id),
                )
            else:
                self.db.conn.execute(
                    "UPDATE devices SET status = ? WHERE device_id = ?",
                    (DeviceStatus(status).value, device_id),
                )


# ── Recipient preferences ─────────────────────────────────────────────────────

class SQLitePreferenceStore:
    def __init__(self, db: Database):
        self.db = db

    def upsert_preference(self, pref: RecipientPreference) -> None:
        with self.db.lock, self.db.conn:
            self.db.conn.execute(
                """INSERT OR REPLACE INTO notification_preferences
                   (recipient_id, contact_address, notifications_enabled, severities,
                    parameters, devices, quiet_hours_enabled, quiet_hours_start,
                    quiet_hours_end)
                   VALUES (?,?,?,?,?,?,?,?,?)""",
                (
                    pref.recipient_id,
                    pref.contact_address,
                    int(pref.notifications_enabled),
                    json.dumps(sorted(s.value for s in pref.severities)),
                    json.dumps(sorted(p.value for p in pref.parameters)),
                    json.dumps(sorted(pref.devices)),
                    int(pref.quiet_hours_enabled),
                    pref.quiet_hours_start,
                    pref.quiet_hours_end,
                ),
            )

    def list_preferences(self) -> list[RecipientPreference]:
        with self.db.lock:
            rows = self.db.conn.execute(
                "SELECT * FROM notification_preferences ORDER BY recipient_id"
            ).fetchall()
        return [_row_to_preference(dict(r)) for r in rows]


# ── Threshold config document ─────────────────────────────────────────────────

_THRESHOLDS_KEY = "thresholds"


class SQLiteConfigStore:
    def __init__(self, db: Database):
        self.db = db

    def save_thresholds(self, thresholds: AlertThresholds) -> None:
        document = thresholds.model_dump(mode="json", by_alias=True)
        with self.db.lock, self.db.conn:
            self.db.conn.execute(
                "INSERT OR REPLACE INTO alert_settings (key, document) VALUES (?, ?)",
                (_THRESHOLDS_KEY, json.dumps(document)),
            )

    def load_thresholds(self) -> AlertThresholds | None:
        with self.db.lock:
            row = self.db.conn.execute(
                "SELECT document FROM alert_settings WHERE key = ?", (_THRESHOLDS_KEY,)
            ).fetchone()
        if row is None:
            return None
        try:
            return AlertThresholds.model_validate(json.loads(row["document"]))
        except (ValueError, ValidationError) as exc:
            raise ConfigError(f"invalid threshold document: {exc}") from exc
