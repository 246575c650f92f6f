"""
puretrack/notifications/dispatcher.py
─────────────────────────────────────
Concurrent fan-out of a single alert to its eligible recipients.

  - at most `max_concurrency` sends in flight
  - each send bounded by `timeout` seconds
  - one recipient failing never affects the others
  - successful recipient ids are unioned into the alert's notified set
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime

from config.settings import settings
from puretrack.data.models import Alert, RecipientPreference
from puretrack.data.repositories import AlertStore
from puretrack.notifications.channels import NotificationChannel
from puretrack.notifications.templates import render_alert_notification

logger = logging.getLogger(__name__)


@dataclass
class DispatchReport:
    alert_id: str
    succeeded: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)

    @property
    def attempted(self) -> int:
        return len(self.succeeded) + len(self.failed)


class NotificationDispatcher:

    def __init__(
        self,
        channel: NotificationChannel,
        alert_store: AlertStore,
        max_concurrency: int = settings.NOTIFY_MAX_CONCURRENCY,
        timeout: float = settings.NOTIFY_TIMEOUT_SECONDS,
    ):
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self.channel = channel
        self.alert_store = alert_store
        self.max_concurrency = max_concurrency
        self.timeout = timeout

    async def _send_one(
        self,
        semaphore: asyncio.Semaphore,
        recipient: RecipientPreference,
        subject: str,
        body_html: str,
    ) -> bool:
        async with semaphore:
            try:
                await asyncio.wait_for(
                    self.channel.send(recipient.contact_address, subject, body_html),
                    timeout=self.timeout,
                )
                return True
            except asyncio.TimeoutError:
                logger.error("Notification to %s timed out after %ss",
                             recipient.recipient_id, self.timeout)
            except Exception as exc:
                logger.error("Failed to send notification to %s: %s",
                             recipient.recipient_id, exc)
            return False

    async def dispatch(
        self,
        alert: Alert,
        recipients: list[RecipientPreference],
        sent_at: datetime | None = None,
    ) -> DispatchReport:
        report = DispatchReport(alert_id=alert.id)

        pending = []
        for recipient in recipients:
            if recipient.recipient_id in alert.notified_recipient_ids:
                report.skipped.append(recipient.recipient_id)
            else:
                pending.append(recipient)

        if not pending:
            return report

        subject, body_html = render_alert_notification(alert, sent_at or datetime.now(tz=UTC))
        semaphore = asyncio.Semaphore(self.max_concurrency)
        outcomes = await asyncio.gather(
            *(self._send_one(semaphore, r, subject, body_html) for r in pending)
        )

        for recipient, ok in zip(pending, outcomes):
            (report.succeeded if ok else report.failed).append(recipient.recipient_id)

        if report.succeeded:
            try:
                self.alert_store.add_notified(alert.id, report.succeeded)
            except Exception as exc:
                logger.error("Failed to record notified recipients for alert %s: %s",
                             alert.id, exc)

        logger.info("Alert %s dispatched: %d sent, %d failed, %d skipped",
                    alert.id, len(report.succeeded), len(report.failed), len(report.skipped))
        return report
