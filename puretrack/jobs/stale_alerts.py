"""
puretrack/jobs/stale_alerts.py
──────────────────────────────
Scheduled sweep for Critical alerts left Active too long.

Each run:
  1. Query Active + Critical alerts, oldest first
  2. Alerts older than `stale_after` are stale
  3. Stale alerts not yet escalated are handed to the escalator
  4. Escalated alerts are stamped with `escalated_at` so later runs skip them

Overlapping runs are rejected (skipped=True) rather than queued. Store
failures and escalations where every digest failed are logged and leave the
alerts unmarked, so the next tick retries.
"""
from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Protocol

from config.alerts import AlertStatus, Severity
from config.settings import settings
from puretrack.data.models import Alert, RecipientPreference
from puretrack.data.repositories import AlertStore, PreferenceStore
from puretrack.errors import NotificationError
from puretrack.notifications.channels import NotificationChannel
from puretrack.notifications.recipients import is_within_quiet_hours, matches_alert
from puretrack.notifications.templates import render_stale_alert_notification

logger = logging.getLogger(__name__)


@dataclass
class SweepResult:
    stale_alert_ids: list[str] = field(default_factory=list)
    escalated_alert_ids: list[str] = field(default_factory=list)
    skipped: bool = False


class Escalator(Protocol):
    def escalate(self, alerts: list[Alert], now: datetime) -> None: ...


# ── Escalation ────────────────────────────────────────────────────────────────

class NotificationEscalator:
    """
    Sends each eligible recipient one digest of the stale alerts that match
    their subscription. Quiet hours and the enabled flag apply as for new
    alerts. A failed send is logged and counted; the rest continue.
    If no digest gets through, NotificationError is raised so the sweep
    leaves the alerts unmarked for the next run.
    """

    def __init__(
        self,
        channel: NotificationChannel,
        preference_store: PreferenceStore,
        timeout: float = settings.NOTIFY_TIMEOUT_SECONDS,
    ):
        self.channel = channel
        self.preference_store = preference_store
        self.timeout = timeout
        self.last_sent = 0
        self.last_failed = 0

    def group_by_recipient(
        self,
        alerts: list[Alert],
        preferences: list[RecipientPreference],
        hour: int,
    ) -> dict[str, tuple[RecipientPreference, list[Alert]]]:
        groups: dict[str, tuple[RecipientPreference, list[Alert]]] = {}
        for pref in preferences:
            if is_within_quiet_hours(pref, hour):
                continue
            matching = [a for a in alerts if matches_alert(pref, a)]
            if matching:
                groups[pref.recipient_id] = (pref, matching)
        return groups

    async def _send_digests(self, groups, now: datetime) -> tuple[int, int]:
        sent = failed = 0
        for recipient_id, (pref, alerts) in groups.items():
            subject, body = render_stale_alert_notification(alerts, now)
            try:
                await asyncio.wait_for(
                    self.channel.send(pref.contact_address, subject, body),
                    timeout=self.timeout,
                )
                sent += 1
            except asyncio.TimeoutError:
                failed += 1
                logger.error("Stale-alert digest to %s timed out", recipient_id)
            except Exception as exc:
                failed += 1
                logger.error("Failed to send stale-alert digest to %s: %s", recipient_id, exc)
        return sent, failed

    def escalate(self, alerts: list[Alert], now: datetime) -> None:
        preferences = self.preference_store.list_preferences()
        groups = self.group_by_recipient(alerts, preferences, now.astimezone().hour)
        if not groups:
            logger.info("No eligible recipients for %d stale alerts", len(alerts))
            self.last_sent = self.last_failed = 0
            return
        self.last_sent, self.last_failed = asyncio.run(self._send_digests(groups, now))
        logger.info("Stale-alert digests: %d sent, %d failed", self.last_sent, self.last_failed)
        if self.last_sent == 0 and self.last_failed > 0:
            raise NotificationError(f"all {self.last_failed} stale-alert digests failed")


# ── Sweep ─────────────────────────────────────────────────────────────────────

class StaleAlertSweep:

    def __init__(
        self,
        alert_store: AlertStore,
        escalator: Escalator | None = None,
        stale_after: timedelta = timedelta(hours=settings.STALE_ALERT_HOURS),
    ):
        self.alert_store = alert_store
        self.escalator = escalator
        self.stale_after = stale_after
        self._running = threading.Lock()

    def find_stale(self, alerts: list[Alert], now: datetime) -> list[Alert]:
        cutoff = now - self.stale_after
        return [a for a in alerts if a.created_at < cutoff]

    def run(self, now: datetime | None = None) -> SweepResult:
        if not self._running.acquire(blocking=False):
            logger.warning("Stale-alert sweep already running, skipping this tick")
            return SweepResult(skipped=True)
        try:
            return self._run(now or datetime.now(tz=UTC))
        finally:
            self._running.release()

    def _run(self, now: datetime) -> SweepResult:
        result = SweepResult()
        try:
            active = self.alert_store.query(
                status=AlertStatus.ACTIVE, severity=Severity.CRITICAL, oldest_first=True,
            )
        except Exception as exc:
            logger.error("Stale-alert sweep could not query alerts: %s", exc)
            return result

        stale = self.find_stale(active, now)
        result.stale_alert_ids = [a.id for a in stale]
        pending = [a for a in stale if a.escalated_at is None]

        if pending and self.escalator is not None:
            try:
                self.escalator.escalate(pending, now)
            except Exception as exc:
                logger.error("Escalation of %d stale alerts failed: %s", len(pending), exc)
                return result

        if pending:
            try:
                self.alert_store.mark_escalated([a.id for a in pending], now)
            except Exception as exc:
                logger.error("Failed to record escalation of stale alerts: %s", exc)
                return result
            result.escalated_alert_ids = [a.id for a in pending]

        logger.info("Stale-alert sweep: %d stale, %d newly escalated",
                    len(result.stale_alert_ids), len(result.escalated_alert_ids))
        return result

