"""
config/settings.py
──────────────────
Application configuration loaded from environment variables.
"""
import os
from dataclasses import dataclass


@dataclass
class Settings:
    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Database (SQLite path; ":memory:" for tests)
    DATABASE_URL: str = os.getenv("DATABASE_URL", "puretrack.db")

    # Threshold config cache
    CONFIG_CACHE_TTL_SECONDS: float = float(os.getenv("CONFIG_CACHE_TTL_SECONDS", "60"))

    # Trend analysis: max samples read from the window
    TREND_WINDOW_LIMIT: int = int(os.getenv("TREND_WINDOW_LIMIT", "10"))

    # Stale-alert sweep
    STALE_ALERT_HOURS: float = float(os.getenv("STALE_ALERT_HOURS", "2"))
    STALE_SWEEP_INTERVAL_SECONDS: float = float(os.getenv("STALE_SWEEP_INTERVAL_SECONDS", "3600"))

    # Offline-device sweep
    OFFLINE_THRESHOLD_MINUTES: float = float(os.getenv("OFFLINE_THRESHOLD_MINUTES", "10"))
    OFFLINE_SWEEP_INTERVAL_SECONDS: float = float(os.getenv("OFFLINE_SWEEP_INTERVAL_SECONDS", "300"))

    # Notification fan-out
    NOTIFY_MAX_CONCURRENCY: int = int(os.getenv("NOTIFY_MAX_CONCURRENCY", "5"))
    NOTIFY_TIMEOUT_SECONDS: float = float(os.getenv("NOTIFY_TIMEOUT_SECONDS", "10"))

    # SMTP transport
    SMTP_HOST: str = os.getenv("SMTP_HOST", "")
    SMTP_PORT: int = int(os.getenv("SMTP_PORT", "587"))
    SMTP_USER: str = os.getenv("SMTP_USER", "")
    SMTP_PASSWORD: str = os.getenv("SMTP_PASSWORD", "")
    MAIL_FROM: str = os.getenv("MAIL_FROM", "noreply@puretrack.local")

    # Simulation
    SIMULATION_SEED: int = int(os.getenv("SIMULATION_SEED", "42"))
    HISTORY_HOURS: int = int(os.getenv("HISTORY_HOURS", "6"))


settings = Settings()
