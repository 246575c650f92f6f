"""
puretrack/notifications/recipients.py
─────────────────────────────────────
Per-recipient notification filtering.

A recipient is eligible for an alert iff all hold:
  - notifications are enabled
  - the alert severity is in the recipient's severities
  - parameters is empty or contains the alert parameter
  - devices is empty or contains the alert device
  - the recipient is not inside quiet hours

Quiet hours compare only the hour component of start/end against the
current local hour: active when start_hour <= hour < end_hour. The window
does not wrap, so a range crossing midnight (22:00–06:00) is never active.
Known limitation pending a product decision.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime

from puretrack.data.models import Alert, RecipientPreference

logger = logging.getLogger(__name__)


def _hour_of(value: str) -> int:
    return int(value.split(":")[0])


def is_within_quiet_hours(pref: RecipientPreference, hour: int) -> bool:
    if not (pref.quiet_hours_enabled and pref.quiet_hours_start and pref.quiet_hours_end):
        return False
    try:
        start_hour = _hour_of(pref.quiet_hours_start)
        end_hour = _hour_of(pref.quiet_hours_end)
    except ValueError:
        logger.warning("Ignoring malformed quiet hours for %s: %r–%r",
                       pref.recipient_id, pref.quiet_hours_start, pref.quiet_hours_end)
        return False
    return start_hour <= hour < end_hour


def matches_alert(pref: RecipientPreference, alert: Alert) -> bool:
    """Subscription filters only (enabled, severity, parameter, device)."""
    if not pref.notifications_enabled:
        return False
    if alert.severity not in pref.severities:
        return False
    if pref.parameters and alert.parameter not in pref.parameters:
        return False
    if pref.devices and alert.device_id not in pref.devices:
        return False
    return True


def is_eligible(pref: RecipientPreference, alert: Alert, hour: int) -> bool:
    return matches_alert(pref, alert) and not is_within_quiet_hours(pref, hour)


def filter_recipients(
    alert: Alert,
    preferences: Iterable[RecipientPreference],
    now: datetime | None = None,
) -> list[RecipientPreference]:
    """Recipients eligible for `alert` at local time `now`."""
    hour = (now or datetime.now()).hour
    return [p for p in preferences if is_eligible(p, alert, hour)]
