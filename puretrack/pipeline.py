"""
puretrack/pipeline.py
─────────────────────
Per-reading alert pipeline.

For each incoming reading:
  1. Record the reading and mark the device online (best-effort)
  2. Load thresholds (cached, defaults on failure)
  3. For every parameter, concurrently and independently:
       threshold check → alert → recipients → dispatch
       trend analysis  → alert → recipients → dispatch
  4. Return the alerts created

A failure in one check is logged and does not touch the others, including
the other check for the same parameter.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime
from typing import Any

from config.alerts import PARAMETERS, AlertType, Parameter
from puretrack.alerts.factory import AlertFactory, trend_severity
from puretrack.analytics.thresholds import ThresholdConfigProvider, check_threshold
from puretrack.analytics.trends import analyze_trend
from puretrack.data.models import Alert, AlertThresholds, DeviceStatus, Reading
from puretrack.data.repositories import DeviceRegistry, PreferenceStore, ReadingStore
from puretrack.notifications.dispatcher import NotificationDispatcher
from puretrack.notifications.recipients import filter_recipients

logger = logging.getLogger(__name__)


class ReadingHandler:
    """
    Consumes sensor readings and raises alerts.

    Example:
        handler = ReadingHandler(provider, readings, registry, factory,
                                 preferences, dispatcher)
        alerts = asyncio.run(handler.handle(reading))
    """

    def __init__(
        self,
        provider: ThresholdConfigProvider,
        reading_store: ReadingStore,
        registry: DeviceRegistry,
        factory: AlertFactory,
        preference_store: PreferenceStore,
        dispatcher: NotificationDispatcher,
        clock=None,
    ):
        self.provider = provider
        self.reading_store = reading_store
        self.registry = registry
        self.factory = factory
        self.preference_store = preference_store
        self.dispatcher = dispatcher
        self._clock = clock or (lambda: datetime.now(tz=UTC))

    # ── Entry points ──────────────────────────────────────────────────────────

    async def handle_payload(self, payload: dict[str, Any]) -> list[Alert]:
        return await self.handle(Reading.from_payload(payload))

    async def handle(self, reading: Reading) -> list[Alert]:
        await asyncio.to_thread(self._record, reading)
        thresholds = self.provider.get()
        now = self._clock()

        checks = [
            (parameter, alert_type, evaluate)
            for parameter in PARAMETERS
            for alert_type, evaluate in (
                (AlertType.THRESHOLD, self._evaluate_threshold),
                (AlertType.TREND, self._evaluate_trend),
            )
        ]
        outcomes = await asyncio.gather(
            *(evaluate(reading, parameter, thresholds, now) for parameter, _, evaluate in checks),
            return_exceptions=True,
        )

        created: list[Alert] = []
        for (parameter, alert_type, _), outcome in zip(checks, outcomes):
            if isinstance(outcome, BaseException):
                logger.error("%s evaluation of %s for %s failed: %s",
                             alert_type.value, parameter.value, reading.device_id, outcome)
            elif outcome is not None:
                created.append(outcome)
        return created

    # ── Steps ─────────────────────────────────────────────────────────────────

    def _record(self, reading: Reading) -> None:
        try:
            self.reading_store.insert_readings([reading])
        except Exception as exc:
            logger.error("Failed to store reading for %s: %s", reading.device_id, exc)
        try:
            self.registry.update_device_status(
                reading.device_id, DeviceStatus.ONLINE, last_seen=reading.timestamp,
            )
        except Exception as exc:
            logger.warning("Failed to mark %s online: %s", reading.device_id, exc)

    async def _evaluate_threshold(
        self,
        reading: Reading,
        parameter: Parameter,
        thresholds: AlertThresholds,
        now: datetime,
    ) -> Alert | None:
        value = reading.value(parameter)
        check = check_threshold(parameter, value, thresholds)
        if not check.exceeded:
            return None

        alert = await asyncio.to_thread(
            self.factory.create,
            reading.device_id, parameter, AlertType.THRESHOLD, check.severity, value,
            threshold_value=check.threshold,
        )
        if alert is not None:
            await self._notify(alert, now)
        return alert

    async def _evaluate_trend(
        self,
        reading: Reading,
        parameter: Parameter,
        thresholds: AlertThresholds,
        now: datetime,
    ) -> Alert | None:
        value = reading.value(parameter)
        trend = await asyncio.to_thread(
            analyze_trend,
            reading.device_id, parameter, value,
            thresholds.trend_detection, self.reading_store, now,
        )
        if trend is None:
            return None

        alert = await asyncio.to_thread(
            self.factory.create,
            reading.device_id, parameter, AlertType.TREND,
            trend_severity(trend.change_rate), value,
            trend_direction=trend.direction,
            metadata={
                "previousValue": trend.previous_value,
                "changeRate": round(trend.change_rate, 2),
            },
        )
        if alert is not None:
            await self._notify(alert, now)
        return alert

    async def _notify(self, alert: Alert, now: datetime) -> None:
        try:
            preferences = await asyncio.to_thread(self.preference_store.list_preferences)
        except Exception as exc:
            logger.error("Failed to load recipients for alert %s: %s", alert.id, exc)
            return

        recipients = filter_recipients(alert, preferences, now.astimezone())
        if not recipients:
            logger.info("No eligible recipients for alert %s", alert.id)
            return
        await self.dispatcher.dispatch(alert, recipients, sent_at=now)
