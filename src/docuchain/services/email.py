"""Outbound email for one-time codes.

SMTP calls are blocking, so :meth:`EmailService.send` runs them in a worker
thread. When no SMTP host is configured the message is logged instead of sent
(development mode).
"""
from __future__ import annotations

import asyncio
import logging
import re
import smtplib
import ssl
import time
from dataclasses import dataclass, field
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import make_msgid

from docuchain.core.settings import Settings, settings
from docuchain.services.errors import EmailDeliveryError, InvalidEmail

logger = logging.getLogger(__name__)

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def is_valid_email(email: str | None) -> bool:
    """Return True if `email` has the shape local@domain.tld."""
    return bool(email) and bool(_EMAIL_RE.match(email or ""))


def normalize_email(email: str) -> str:
    """Return the canonical lowercase form of an email address."""
    return email.strip().lower()


def redact_email(email: str) -> str:
    """Redact an email address for logging."""
    if "@" not in email:
        return "redacted"
    local, domain = email.split("@", 1)
    return f"{local[:2]}***@{domain}"


@dataclass(frozen=True)
class EmailDelivery:
    """Outcome reported by the SMTP server."""

    message_id: str
    accepted: list[str] = field(default_factory=list)
    rejected: list[str] = field(default_factory=list)


class EmailService:
    """SMTP email transport."""

    def __init__(self, config: Settings | None = None) -> None:
        self.config = config or settings

    @property
    def is_configured(self) -> bool:
        """Check if email sending is properly configured."""
        return bool(self.config.smtp_host and self.config.smtp_from_email)

    def _build_message(self, to: str, subject: str, text: str, html: str | None) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self.config.smtp_from_email or ""
        msg["To"] = to
        msg["Message-ID"] = make_msgid(domain=self.config.smtp_host or None)
        msg["X-Auto-Response-Suppress"] = "OOF, AutoReply"
        msg["X-Feedback-ID"] = f"verify-email-{int(time.time() * 1000)}"
        msg["X-Mailer"] = "DocuChain Email Service"
        msg.attach(MIMEText(text, "plain"))
        if html:
            msg.attach(MIMEText(html, "html"))
        return msg

    def _send_sync(self, msg: MIMEMultipart, to: str) -> dict[str, tuple[int, bytes]]:
        context = ssl.create_default_context()
        host = self.config.smtp_host or ""
        timeout = self.config.smtp_timeout_seconds
        sender = self.config.smtp_from_email or ""

        if self.config.smtp_use_tls:
            with smtplib.SMTP(host, self.config.smtp_port, timeout=timeout) as server:
                server.starttls(context=context)
                if self.config.smtp_user and self.config.smtp_password:
                    server.login(self.config.smtp_user, self.config.smtp_password)
                return server.sendmail(sender, [to], msg.as_string())

        with smtplib.SMTP_SSL(host, self.config.smtp_port, context=context, timeout=timeout) as server:
            if self.config.smtp_user and self.config.smtp_password:
                server.login(self.config.smtp_user, self.config.smtp_password)
            return server.sendmail(sender, [to], msg.as_string())

    async def send(
        self,
        *,
        to: str,
        subject: str,
        text: str,
        html: str | None = None,
    ) -> EmailDelivery:
        """Send one message.

        Raises:
            InvalidEmail: The recipient address is malformed.
            EmailDeliveryError: The server refused the recipient or the transport failed.
        """
        if not is_valid_email(to):
            raise InvalidEmail("Invalid email address format")

        msg = self._build_message(to, subject, text, html)
        message_id = str(msg["Message-ID"])

        if not self.is_configured:
            logger.info(
                "Email dev mode: to=%s subject=%r (not sent, SMTP not configured)",
                redact_email(to),
                subject,
            )
            return EmailDelivery(message_id=message_id, accepted=[to])

        try:
            refused = await asyncio.to_thread(self._send_sync, msg, to)
        except smtplib.SMTPRecipientsRefused as exc:
            logger.warning("Email recipient refused: %s", redact_email(to))
            raise EmailDeliveryError(f"Email was rejected: {redact_email(to)}") from exc
        except smtplib.SMTPAuthenticationError as exc:
            logger.error("SMTP authentication failed for host %s", self.config.smtp_host)
            raise EmailDeliveryError("SMTP authentication failed") from exc
        except smtplib.SMTPException as exc:
            logger.error("SMTP error sending to %s: %s", redact_email(to), exc)
            raise EmailDeliveryError(f"SMTP error: {type(exc).__name__}") from exc
        except (OSError, TimeoutError) as exc:
            logger.error("Failed to connect to SMTP server %s: %s", self.config.smtp_host, exc)
            raise EmailDeliveryError("Failed to connect to SMTP server") from exc

        rejected = sorted(refused)
        accepted = [to] if to not in refused else []
        if not accepted:
            raise EmailDeliveryError(f"Email was rejected: {redact_email(to)}")

        logger.info("Email sent to %s (%s)", redact_email(to), message_id)
        return EmailDelivery(message_id=message_id, accepted=accepted, rejected=rejected)


class _EmailServiceSingleton:
    _instance: EmailService | None = None

    @classmethod
    def get_instance(cls) -> EmailService:
        if cls._instance is None:
            cls._instance = EmailService()
        return cls._instance


def get_email_service() -> EmailService:
    """Return a singleton email service."""
    return _EmailServiceSingleton.get_instance()
