"""
puretrack/notifications/channels.py
───────────────────────────────────
Delivery transports for rendered notifications.

A channel sends one message to one contact and raises NotificationError on
failure. Channels are built once at startup and injected into the
dispatcher and escalator.
"""
from __future__ import annotations

import asyncio
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Protocol

from config.settings import settings
from puretrack.errors import NotificationError

logger = logging.getLogger(__name__)


class NotificationChannel(Protocol):
    async def send(self, contact: str, subject: str, body_html: str) -> None: ...


class SMTPEmailChannel:
    """HTML email over SMTP; the blocking client runs in a worker thread."""

    def __init__(
        self,
        host: str = settings.SMTP_HOST,
        port: int = settings.SMTP_PORT,
        username: str = settings.SMTP_USER,
        password: str = settings.SMTP_PASSWORD,
        sender: str = settings.MAIL_FROM,
        use_tls: bool = True,
        timeout: float = settings.NOTIFY_TIMEOUT_SECONDS,
    ):
        if not host:
            raise ValueError("SMTP host is required")
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.sender = sender
        self.use_tls = use_tls
        self.timeout = timeout

    def _build_message(self, contact: str, subject: str, body_html: str) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["From"] = self.sender
        msg["To"] = contact
        msg["Subject"] = subject
        msg.attach(MIMEText(body_html, "html"))
        return msg

    def _send_sync(self, contact: str, subject: str, body_html: str) -> None:
        msg = self._build_message(contact, subject, body_html)
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
            if self.use_tls:
                server.starttls()
            if self.username and self.password:
                server.login(self.username, self.password)
            server.send_message(msg)

    async def send(self, contact: str, subject: str, body_html: str) -> None:
        try:
            await asyncio.to_thread(self._send_sync, contact, subject, body_html)
        except (smtplib.SMTPException, OSError) as exc:
            raise NotificationError(f"SMTP delivery to {contact} failed: {exc}") from exc


class LoggingChannel:
    """Development transport: logs the subject line instead of sending."""

    def __init__(self):
        self.sent: list[tuple[str, str]] = []

    async def send(self, contact: str, subject: str, body_html: str) -> None:
        self.sent.append((contact, subject))
        logger.info("[notify] to=%s subject=%s", contact, subject)
