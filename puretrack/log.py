"""
puretrack/log.py
────────────────
Process-wide logging setup. Modules log through logging.getLogger(__name__);
only the entry point calls configure_logging().
"""
from __future__ import annotations

import logging

from config.settings import settings

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(
        level=(level or settings.LOG_LEVEL).upper(),
        format=LOG_FORMAT,
    )
