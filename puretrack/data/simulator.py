"""
puretrack/data/simulator.py
───────────────────────────
Synthetic water-quality data generator for a small sensor fleet.

Generates:
  - `hours` of readings every `interval_minutes` per device
  - Embedded contamination events (0–2 per device over the period)
  - Fresh "real-time" readings via generate_realtime_reading()
  - A demo fleet with recipient preferences for seeding a database

Design:
  - Reproducible with SIMULATION_SEED for consistent demos
  - Events have random start/duration within the later part of the window
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

import numpy as np
import pandas as pd

from config.alerts import Parameter, Severity
from config.settings import settings
from puretrack.data.contamination import ContaminationMode, intrusion, ph_shift, sediment
from puretrack.data.models import DeviceInfo, DeviceStatus, Reading, RecipientPreference
from puretrack.data.store import Database, SQLiteDeviceRegistry, SQLitePreferenceStore, SQLiteReadingStore

# ── Demo fleet ────────────────────────────────────────────────────────────────

DEMO_DEVICES: list[DeviceInfo] = [
    DeviceInfo(device_id="PT-001", name="Main Intake", building="Building A", floor="Ground Floor"),
    DeviceInfo(device_id="PT-002", name="Treatment Outlet", building="Building A", floor="Floor 2"),
    DeviceInfo(device_id="PT-003", name="Cafeteria Tap", building="Building B"),
]

BASELINES: dict[str, float] = {
    "tds": 280.0,
    "ph": 7.2,
    "turbidity": 1.2,
}

# Noise scales for normal operation (σ)
NOISE: dict[str, float] = {
    "tds": 6.0,
    "ph": 0.04,
    "turbidity": 0.08,
}

MODES = list(ContaminationMode)


@dataclass
class ContaminationEvent:
    mode: ContaminationMode
    start_step: int
    duration_steps: int
    severity: float   # fraction of the profile reached at the end (0..1)


def _plan_events(total_steps: int, rng: np.random.Generator) -> list[ContaminationEvent]:
    """Randomly plan 0–2 non-overlapping events in the second half of the window."""
    n_events = int(rng.integers(0, 3))
    events: list[ContaminationEvent] = []
    cursor = total_steps // 2

    for _ in range(n_events):
        if cursor >= total_steps - 2:
            break
        start = int(rng.integers(cursor, total_steps - 1))
        duration = min(int(rng.integers(6, 36)), total_steps - start)
        events.append(ContaminationEvent(
            mode=MODES[int(rng.integers(0, len(MODES)))],
            start_step=start,
            duration_steps=duration,
            severity=float(rng.uniform(0.5, 1.0)),
        ))
        cursor = start + duration

    return events


def _event_progress(step: int, event: ContaminationEvent) -> float | None:
    """Normalized progress t ∈ [0, 1] if the step falls within the event, else None."""
    if event.start_step <= step < event.start_step + event.duration_steps:
        raw = (step - event.start_step) / event.duration_steps
        return float(raw * event.severity)
    return None


def _generate_reading(
    device_id: str,
    step: int,
    ts: datetime,
    events: list[ContaminationEvent],
    rng: np.random.Generator,
) -> Reading:
    tds = BASELINES["tds"] + rng.normal(0, NOISE["tds"])
    ph = BASELINES["ph"] + rng.normal(0, NOISE["ph"])
    turbidity = BASELINES["turbidity"] + rng.normal(0, NOISE["turbidity"])

    for event in events:
        t = _event_progress(step, event)
        if t is None:
            continue
        if event.mode == ContaminationMode.INTRUSION:
            tds, turbidity = intrusion(t, BASELINES["tds"], BASELINES["turbidity"], rng)
        elif event.mode == ContaminationMode.ACID:
            ph = ph_shift(t, BASELINES["ph"], 5.0, rng)
        elif event.mode == ContaminationMode.ALKALINE:
            ph = ph_shift(t, BASELINES["ph"], 9.6, rng)
        elif event.mode == ContaminationMode.SEDIMENT:
            turbidity = sediment(t, BASELINES["turbidity"], rng)
        break  # only one active event at a time

    return Reading(
        device_id=device_id,
        timestamp=ts,
        tds=round(float(np.clip(tds, 0.0, 5_000.0)), 1),
        ph=round(float(np.clip(ph, 0.0, 14.0)), 2),
        turbidity=round(float(np.clip(turbidity, 0.0, 100.0)), 2),
    )


# ── Public API ────────────────────────────────────────────────────────────────

def generate_history(
    seed: int = settings.SIMULATION_SEED,
    hours: int = settings.HISTORY_HOURS,
    interval_minutes: int = 5,
    devices: list[DeviceInfo] | None = None,
    end: datetime | None = None,
) -> dict[str, list[Reading]]:
    """
    Generate readings every `interval_minutes` over the last `hours` for
    each device. Returns dict keyed by device_id, oldest first.
    """
    rng = np.random.default_rng(seed)
    devices = devices or DEMO_DEVICES
    total_steps = hours * 60 // interval_minutes
    end_ts = (end or datetime.now(tz=UTC)).replace(second=0, microsecond=0)
    start_ts = end_ts - timedelta(minutes=interval_minutes * (total_steps - 1))
    timestamps = [start_ts + timedelta(minutes=interval_minutes * s) for s in range(total_steps)]

    history: dict[str, list[Reading]] = {}
    for device in devices:
        events = _plan_events(total_steps, rng)
        history[device.device_id] = [
            _generate_reading(device.device_id, s, timestamps[s], events, rng)
            for s in range(total_steps)
        ]
    return history


def generate_realtime_reading(
    device_id: str,
    rng: np.random.Generator | None = None,
    now: datetime | None = None,
) -> Reading:
    """Single fresh reading under normal conditions."""
    rng = rng or np.random.default_rng()
    ts = (now or datetime.now(tz=UTC)).replace(microsecond=0)
    return _generate_reading(device_id, 0, ts, [], rng)


def demo_preferences() -> list[RecipientPreference]:
    return [
        RecipientPreference(
            recipient_id="ops-lead",
            contact_address="ops-lead@puretrack.local",
            severities={Severity.WARNING, Severity.CRITICAL},
        ),
        RecipientPreference(
            recipient_id="facilities-a",
            contact_address="facilities-a@puretrack.local",
            severities={Severity.ADVISORY, Severity.WARNING, Severity.CRITICAL},
            devices={"PT-001", "PT-002"},
        ),
        RecipientPreference(
            recipient_id="lab",
            contact_address="lab@puretrack.local",
            severities={Severity.CRITICAL},
            parameters={Parameter.PH, Parameter.TURBIDITY},
            quiet_hours_enabled=True,
            quiet_hours_start="00:00",
            quiet_hours_end="06:00",
        ),
    ]


def seed_demo(db: Database, seed: int = settings.SIMULATION_SEED, end: datetime | None = None) -> int:
    """Seed devices, recipients and reading history. Returns the number of readings stored."""
    registry = SQLiteDeviceRegistry(db)
    for device in DEMO_DEVICES:
        registry.upsert_device(device.model_copy(update={"status": DeviceStatus.ONLINE}))

    preferences = SQLitePreferenceStore(db)
    for pref in demo_preferences():
        preferences.upsert_preference(pref)

    history = generate_history(seed=seed, end=end)
    reading_store = SQLiteReadingStore(db)
    total = 0
    for device_id, readings in history.items():
        reading_store.insert_readings(readings)
        registry.update_device_status(device_id, DeviceStatus.ONLINE, last_seen=readings[-1].timestamp)
        total += len(readings)
    return total


def to_dataframe(readings: list[Reading]) -> pd.DataFrame:
    """Convert a list of Readings to a pandas DataFrame."""
    return pd.DataFrame([r.model_dump() for r in readings])
