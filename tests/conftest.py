"""
tests/conftest.py
─────────────────
Shared pytest fixtures for the PureTrack alerting test suite.
"""
import asyncio
import os
import pytest
from datetime import datetime, timedelta, timezone

# Use in-memory SQLite for tests
os.environ.setdefault("DATABASE_URL", ":memory:")
os.environ.setdefault("HISTORY_HOURS", "2")
os.environ.setdefault("SIMULATION_SEED", "42")


class FakeChannel:
    """Records sends; contacts in `fail` raise, contacts in `slow` sleep."""

    def __init__(self, fail=(), slow=(), delay=0.0):
        self.fail = set(fail)
        self.slow = set(slow)
        self.delay = delay
        self.sent: list[tuple[str, str, str]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def send(self, contact, subject, body_html):
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if contact in self.slow:
                await asyncio.sleep(self.delay)
            else:
                await asyncio.sleep(0)
            if contact in self.fail:
                raise RuntimeError(f"mailbox {contact} unavailable")
            self.sent.append((contact, subject, body_html))
        finally:
            self.in_flight -= 1

    @property
    def contacts(self) -> list[str]:
        return [c for c, _, _ in self.sent]


@pytest.fixture
def now() -> datetime:
    return datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def db():
    from puretrack.data.store import Database
    database = Database(":memory:")
    database.initialize()
    yield database
    database.close()


@pytest.fixture
def reading_store(db):
    from puretrack.data.store import SQLiteReadingStore
    return SQLiteReadingStore(db)


@pytest.fixture
def alert_store(db):
    from puretrack.data.store import SQLiteAlertStore
    return SQLiteAlertStore(db)


@pytest.fixture
def registry(db):
    from puretrack.data.store import SQLiteDeviceRegistry
    return SQLiteDeviceRegistry(db)


@pytest.fixture
def preference_store(db):
    from puretrack.data.store import SQLitePreferenceStore
    return SQLitePreferenceStore(db)


@pytest.fixture
def config_store(db):
    from puretrack.data.store import SQLiteConfigStore
    return SQLiteConfigStore(db)


@pytest.fixture
def device(registry, now):
    from puretrack.data.models import DeviceInfo
    info = DeviceInfo(
        device_id="PT-001",
        name="Main Intake",
        building="Building A",
        floor="Ground Floor",
        last_seen=now,
    )
    registry.upsert_device(info)
    return info


@pytest.fixture
def channel() -> FakeChannel:
    return FakeChannel()


@pytest.fixture
def make_reading(now):
    from puretrack.data.models import Reading

    def _make(minutes_ago=0.0, device_id="PT-001", tds=280.0, ph=7.2, turbidity=1.2):
        return Reading(
            device_id=device_id,
            timestamp=now - timedelta(minutes=minutes_ago),
            tds=tds,
            ph=ph,
            turbidity=turbidity,
        )
    return _make


@pytest.fixture
def make_alert(now):
    import uuid
    from config.alerts import AlertStatus, AlertType, Parameter, Severity
    from puretrack.data.models import Alert

    def _make(
        device_id="PT-001",
        parameter=Parameter.PH,
        alert_type=AlertType.THRESHOLD,
        severity=Severity.CRITICAL,
        status=AlertStatus.ACTIVE,
        age=timedelta(0),
        message="pH Level has reached critical level: 9.20",
        **extra,
    ):
        return Alert(
            id=uuid.uuid4().hex,
            device_id=device_id,
            device_name="Main Intake",
            parameter=parameter,
            alert_type=alert_type,
            severity=severity,
            status=status,
            current_value=9.2,
            threshold_value=9.0,
            message=message,
            recommended_action="Immediate action required.",
            created_at=now - age,
            **extra,
        )
    return _make


@pytest.fixture
def make_pref():
    from config.alerts import Severity
    from puretrack.data.models import RecipientPreference

    def _make(recipient_id="r1", **overrides):
        fields = {
            "recipient_id": recipient_id,
            "contact_address": f"{recipient_id}@example.com",
            "severities": {Severity.ADVISORY, Severity.WARNING, Severity.CRITICAL},
        }
        fields.update(overrides)
        return RecipientPreference(**fields)
    return _make
