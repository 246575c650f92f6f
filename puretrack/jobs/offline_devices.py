"""
puretrack/jobs/offline_devices.py
─────────────────────────────────
Marks online devices offline when they stop reporting.
"""
from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta

from config.settings import settings
from puretrack.data.models import DeviceInfo, DeviceStatus
from puretrack.data.repositories import DeviceRegistry

logger = logging.getLogger(__name__)


class OfflineDeviceSweep:

    def __init__(
        self,
        registry: DeviceRegistry,
        offline_after: timedelta = timedelta(minutes=settings.OFFLINE_THRESHOLD_MINUTES),
    ):
        self.registry = registry
        self.offline_after = offline_after

    def is_overdue(self, device: DeviceInfo, now: datetime) -> bool:
        """Online devices with no last_seen, or one older than the cutoff."""
        if device.status != DeviceStatus.ONLINE:
            return False
        return device.last_seen is None or device.last_seen < now - self.offline_after

    def run(self, now: datetime | None = None) -> list[str]:
        """Returns the ids of devices marked offline by this run."""
        now = now or datetime.now(tz=UTC)
        try:
            devices = self.registry.list_devices()
        except Exception as exc:
            logger.error("Offline-device sweep could not list devices: %s", exc)
            return []

        marked: list[str] = []
        for device in devices:
            if not self.is_overdue(device, now):
                continue
            try:
                self.registry.update_device_status(device.device_id, DeviceStatus.OFFLINE)
            except Exception as exc:
                logger.error("Failed to mark %s offline: %s", device.device_id, exc)
                continue
            marked.append(device.device_id)

        if marked:
            logger.info("Marked %d device(s) offline: %s", len(marked), ", ".join(marked))
        return marked
