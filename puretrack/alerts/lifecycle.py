"""
puretrack/alerts/lifecycle.py
─────────────────────────────
Operator-driven alert status transitions.

  Active → Acknowledged → Resolved
  Active → Resolved

Repeating a transition is a no-op; moving backwards is rejected.
"""
from __future__ import annotations

import logging

from config.alerts import STATUS_ORDER, AlertStatus
from puretrack.data.models import Alert
from puretrack.data.repositories import AlertStore
from puretrack.errors import AlertNotFoundError, InvalidTransitionError

logger = logging.getLogger(__name__)


def can_transition(current: AlertStatus, target: AlertStatus) -> bool:
    return STATUS_ORDER[target] >= STATUS_ORDER[current]


def transition(store: AlertStore, alert_id: str, target: AlertStatus) -> Alert:
    alert = store.get(alert_id)
    if alert is None:
        raise AlertNotFoundError(alert_id)

    if alert.status == target:
        return alert
    if not can_transition(alert.status, target):
        raise InvalidTransitionError(alert_id, alert.status.value, target.value)

    store.update_status(alert_id, target)
    logger.info("Alert %s: %s → %s", alert_id, alert.status.value, target.value)
    return alert.model_copy(update={"status": target})


def acknowledge(store: AlertStore, alert_id: str) -> Alert:
    return transition(store, alert_id, AlertStatus.ACKNOWLEDGED)


def resolve(store: AlertStore, alert_id: str) -> Alert:
    return transition(store, alert_id, AlertStatus.RESOLVED)
