# app/infra/notification_channels.py
"""
Delivery channels for pet status notifications.

- Email - SMTP with STARTTLS
- SMS   - Twilio Programmable Messaging

Both providers expose blocking client libraries, so the actual network call
runs in the default executor.  A channel without credentials reports
``is_configured() == False`` and raises ``ChannelNotConfiguredError`` from
``send``; the dispatcher records that as a skip rather than a failure.

Usage:
    email, sms = build_channels(settings)
    await email.send("owner@example.com", message)
"""
from __future__ import annotations

import abc
import asyncio
import smtplib
from email.mime.text import MIMEText

from app.config import Settings
from app.core.lost_found.errors import ChannelNotConfiguredError, ChannelSendError
from app.core.lost_found.masking import mask_contact, mask_phone
from app.core.lost_found.templates import RenderedMessage, format_sms_body
from app.infra.logging_config import get_logger

logger = get_logger(__name__)


class NotificationChannel(abc.ABC):
    """Abstract base class for notification channels"""

    @property
    @abc.abstractmethod
    def name(self) -> str:
        """Channel name for logging/metrics"""
        pass

    @abc.abstractmethod
    def is_configured(self) -> bool:
        """Check if channel is properly configured"""
        pass

    @abc.abstractmethod
    async def send(self, to: str, message: RenderedMessage) -> None:
        """
        Deliver one message.

        Raises:
            ChannelNotConfiguredError: credentials missing
            ChannelSendError: provider rejected or could not be reached
        """
        pass


class EmailChannel(NotificationChannel):
    """Plain-text email via SMTP (STARTTLS + login)."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    @property
    def name(self) -> str:
        return "email"

    def is_configured(self) -> bool:
        return self._settings.email_enabled

    async def send(self, to: str, message: RenderedMessage) -> None:
        if not self.is_configured():
            raise ChannelNotConfiguredError("Email channel not configured")

        msg = MIMEText(message.text, "plain", "utf-8")
        msg["From"] = self._settings.email_sender
        msg["To"] = to
        msg["Subject"] = message.subject

        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, self._send_smtp, msg)
        except (smtplib.SMTPException, OSError) as exc:
            raise ChannelSendError(f"SMTP send failed: {type(exc).__name__}: {exc}") from exc

        logger.debug(f"Email handed to SMTP: to={mask_contact(to)}", extra={"channel": self.name})

    def _send_smtp(self, msg: MIMEText) -> None:
        """Send email via SMTP (blocking)"""
        s = self._settings
        with smtplib.SMTP(s.smtp_host, s.smtp_port, timeout=s.channel_timeout_seconds) as server:
            server.starttls()
            server.login(s.smtp_user, s.smtp_password)
            server.send_message(msg)


class SmsChannel(NotificationChannel):
    """
    SMS via Twilio.

    The body is the subject plus a truncated text (see ``format_sms_body``);
    long-form details live in the email.
    """

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._client = None

    @property
    def name(self) -> str:
        return "sms"

    def is_configured(self) -> bool:
        return self._settings.sms_enabled

    def _get_client(self):
        """Get or create Twilio client."""
        if self._client is None:
            from twilio.rest import Client
            self._client = Client(
                self._settings.twilio_account_sid,
                self._settings.twilio_auth_token,
            )
        return self._client

    async def send(self, to: str, message: RenderedMessage) -> None:
        if not self.is_configured():
            raise ChannelNotConfiguredError("SMS channel not configured")

        body = format_sms_body(message)
        loop = asyncio.get_running_loop()
        try:
            result = await loop.run_in_executor(None, self._send_twilio, to, body)
        except Exception as exc:
            # TwilioRestException, connection errors, etc.
            raise ChannelSendError(f"Twilio send failed: {type(exc).__name__}: {exc}") from exc

        sid = getattr(result, "sid", None) or ""
        logger.debug(
            f"Twilio message sent: sid={sid[:8]}***, to={mask_phone(to)}",
            extra={"channel": self.name},
        )

    def _send_twilio(self, to: str, body: str):
        client = self._get_client()
        return client.messages.create(
            to=to,
            from_=self._settings.twilio_from_number,
            body=body,
        )


def build_channels(settings: Settings) -> tuple[EmailChannel, SmsChannel]:
    """Create the email and SMS channels, warning about missing credentials."""
    email = EmailChannel(settings)
    sms = SmsChannel(settings)
    for channel in (email, sms):
        if not channel.is_configured():
            logger.warning(
                f"Notification channel '{channel.name}' not configured, sends will be skipped"
            )
    return email, sms
