"""
app.py
──────
PureTrack Alerting — Application Entry Point.

Startup sequence:
  1. Configure logging and initialize the SQLite database
  2. Seed demo devices, recipients and reading history
  3. Wire the reading handler, notification channel and sweeps
  4. Replay simulated live readings through the pipeline
  5. Start the background sweeps (or run them once with --once)
"""
import argparse
import asyncio
import logging
import time
from datetime import UTC, datetime, timedelta

import numpy as np

from config.settings import settings
from puretrack.alerts.factory import AlertFactory
from puretrack.analytics.health_index import compute_system_health_from_stores
from puretrack.analytics.thresholds import ThresholdConfigProvider
from puretrack.analytics.trends import summarize_trends
from puretrack.data.simulator import DEMO_DEVICES, generate_realtime_reading, seed_demo
from puretrack.data.store import (
    Database,
    SQLiteAlertStore,
    SQLiteConfigStore,
    SQLiteDeviceRegistry,
    SQLitePreferenceStore,
    SQLiteReadingStore,
)
from puretrack.jobs.offline_devices import OfflineDeviceSweep
from puretrack.jobs.scheduler import IntervalScheduler
from puretrack.jobs.stale_alerts import NotificationEscalator, StaleAlertSweep
from puretrack.log import configure_logging
from puretrack.notifications.channels import LoggingChannel, SMTPEmailChannel
from puretrack.notifications.dispatcher import NotificationDispatcher
from puretrack.pipeline import ReadingHandler

logger = logging.getLogger("puretrack.app")


def build_channel():
    if settings.SMTP_HOST:
        return SMTPEmailChannel()
    logger.info("SMTP_HOST not set, notifications will only be logged")
    return LoggingChannel()


async def replay(handler: ReadingHandler, rounds: int, seed: int) -> int:
    rng = np.random.default_rng(seed)
    created = 0
    for _ in range(rounds):
        readings = [generate_realtime_reading(d.device_id, rng) for d in DEMO_DEVICES]
        results = await asyncio.gather(*(handler.handle(r) for r in readings))
        created += sum(len(alerts) for alerts in results)
    return created


def main() -> None:
    parser = argparse.ArgumentParser(description="PureTrack water-quality alerting")
    parser.add_argument("--rounds", type=int, default=3, help="simulated live reading rounds")
    parser.add_argument("--once", action="store_true", help="run the sweeps once and exit")
    args = parser.parse_args()

    # ── 1. Logging + database ─────────────────────────────────────────────────
    configure_logging()
    db = Database()
    db.initialize()

    # ── 2. Demo data ──────────────────────────────────────────────────────────
    logger.info("Seeding simulation data...")
    count = seed_demo(db)
    logger.info("Database ready (%d readings).", count)

    # ── 3. Wiring ─────────────────────────────────────────────────────────────
    reading_store = SQLiteReadingStore(db)
    alert_store = SQLiteAlertStore(db)
    registry = SQLiteDeviceRegistry(db)
    preference_store = SQLitePreferenceStore(db)
    channel = build_channel()

    handler = ReadingHandler(
        provider=ThresholdConfigProvider(SQLiteConfigStore(db)),
        reading_store=reading_store,
        registry=registry,
        factory=AlertFactory(alert_store, registry),
        preference_store=preference_store,
        dispatcher=NotificationDispatcher(channel, alert_store),
    )
    stale_sweep = StaleAlertSweep(alert_store, NotificationEscalator(channel, preference_store))
    offline_sweep = OfflineDeviceSweep(registry)

    end = datetime.now(tz=UTC)
    for device in DEMO_DEVICES:
        history = reading_store.readings_in_window(
            device.device_id, end - timedelta(hours=settings.HISTORY_HOURS), end,
        )
        summary = summarize_trends(history)
        logger.info("%s trends: %s", device.device_id,
                    ", ".join(f"{p.value}={d.value}" for p, d in summary.items()))

    # ── 4. Live readings ──────────────────────────────────────────────────────
    created = asyncio.run(replay(handler, args.rounds, settings.SIMULATION_SEED))
    logger.info("Replay raised %d alert(s).", created)

    health = compute_system_health_from_stores(100.0, registry, alert_store)
    logger.info("System health: %d (%s)", health.overall_score, health.status.value)

    # ── 5. Sweeps ─────────────────────────────────────────────────────────────
    if args.once:
        stale_sweep.run()
        offline_sweep.run()
        db.close()
        return

    scheduler = IntervalScheduler()
    scheduler.add_job("stale-alerts", stale_sweep.run, settings.STALE_SWEEP_INTERVAL_SECONDS,
                      run_immediately=True)
    scheduler.add_job("offline-devices", offline_sweep.run, settings.OFFLINE_SWEEP_INTERVAL_SECONDS)
    scheduler.start()
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        logger.info("Shutting down...")
    finally:
        scheduler.stop()
        db.close()


if __name__ == "__main__":
    main()
