"""
Email service with provider abstraction.

Supports SMTP (default) and the Resend API. The provider is built from an
explicit ``Settings`` instance. Delivery failures are logged and reported as
``False``; they never propagate to the request that triggered them.
"""

from __future__ import annotations

import hashlib
import ssl
from abc import ABC, abstractmethod
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import TYPE_CHECKING

import structlog

from napft.email.templates import contact_acknowledgement, contact_notification

if TYPE_CHECKING:
    from redis.asyncio import Redis

    from napft.config import Settings

logger = structlog.get_logger()


class BaseEmailProvider(ABC):
    """Abstract base class for email delivery providers."""

    name = "base"

    @abstractmethod
    async def send(
        self,
        to_email: str,
        subject: str,
        html_body: str,
        text_body: str,
        reply_to: str | None = None,
    ) -> bool:
        """Send an email. Returns True on success."""
        ...


def _sender(settings: Settings) -> str:
    return f"{settings.email_from_name} <{settings.email_from_address}>"


class SMTPProvider(BaseEmailProvider):
    """Deliver through an SMTP relay with aiosmtplib (STARTTLS when enabled)."""

    name = "smtp"

    def __init__(self, settings: Settings) -> None:
        self.host = settings.smtp_host
        self.port = settings.smtp_port
        self.username = settings.smtp_username or None
        self.password = settings.smtp_password or None
        self.use_tls = settings.smtp_use_tls
        self.sender = _sender(settings)

    def build_message(
        self, to_email: str, subject: str, html_body: str, text_body: str, reply_to: str | None
    ) -> MIMEMultipart:
        message = MIMEMultipart("alternative")
        message["From"] = self.sender
        message["To"] = to_email
        message["Subject"] = subject
        if reply_to:
            message["Reply-To"] = reply_to
        message.attach(MIMEText(text_body, "plain", "utf-8"))
        message.attach(MIMEText(html_body, "html", "utf-8"))
        return message

    async def send(
        self,
        to_email: str,
        subject: str,
        html_body: str,
        text_body: str,
        reply_to: str | None = None,
    ) -> bool:
        import aiosmtplib

        message = self.build_message(to_email, subject, html_body, text_body, reply_to)
        try:
            await aiosmtplib.send(
                message,
                hostname=self.host,
                port=self.port,
                username=self.username,
                password=self.password,
                start_tls=self.use_tls,
                tls_context=ssl.create_default_context() if self.use_tls else None,
            )
        except Exception:
            logger.exception("email_send_failed", to=to_email, provider=self.name)
            return False
        logger.info("email_sent", to=to_email, subject=subject, provider=self.name)
        return True


class ResendProvider(BaseEmailProvider):
    """Deliver through the Resend HTTP API."""

    name = "resend"
    API_URL = "https://api.resend.com/emails"

    def __init__(self, settings: Settings, timeout: float = 10.0) -> None:
        self.api_key = settings.resend_api_key
        self.sender = _sender(settings)
        self.timeout = timeout

    async def send(
        self,
        to_email: str,
        subject: str,
        html_body: str,
        text_body: str,
        reply_to: str | None = None,
    ) -> bool:
        import httpx

        payload: dict[str, object] = {
            "from": self.sender,
            "to": [to_email],
            "subject": subject,
            "html": html_body,
            "text": text_body,
        }
        if reply_to:
            payload["reply_to"] = reply_to

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    self.API_URL,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                    json=payload,
                )
                response.raise_for_status()
        except Exception:
            logger.exception("email_send_failed", to=to_email, provider=self.name)
            return False
        logger.info("email_sent", to=to_email, subject=subject, provider=self.name)
        return True


_PROVIDERS: dict[str, type[SMTPProvider] | type[ResendProvider]] = {
    "smtp": SMTPProvider,
    "resend": ResendProvider,
}


def create_provider(settings: Settings) -> BaseEmailProvider:
    """Create the email provider named by ``settings.email_provider``.

    Raises:
        ValueError: Unknown provider name.
    """
    provider_name = settings.email_provider.lower()
    provider_cls = _PROVIDERS.get(provider_name)
    if provider_cls is None:
        msg = f"Unsupported email provider: {provider_name}"
        raise ValueError(msg)
    return provider_cls(settings)


class EmailService:
    """
    High-level email service for NapFT.

    Handles per-recipient rate limiting and template rendering.
    """

    RATE_LIMIT_MAX = 5
    RATE_LIMIT_WINDOW = 3600

    def __init__(
        self,
        settings: Settings,
        provider: BaseEmailProvider | None = None,
        redis: Redis | None = None,
    ) -> None:
        self.settings = settings
        self.provider = provider or create_provider(settings)
        self._redis = redis

    async def _check_rate_limit(self, email: str) -> bool:
        """Check if we can send another email to this address."""
        if self._redis is None:
            return True
        key = f"napft:email_rate:{hashlib.sha256(email.lower().encode()).hexdigest()}"
        count = await self._redis.incr(key)
        if count == 1:
            await self._redis.expire(key, self.RATE_LIMIT_WINDOW)
        return count <= self.RATE_LIMIT_MAX

    async def send_email(
        self,
        to: str,
        subject: str,
        html_body: str,
        text_body: str,
        reply_to: str | None = None,
    ) -> bool:
        """
        Send an email with rate limiting.

        Returns True if sent, False if rate limited or failed.
        """
        if not await self._check_rate_limit(to):
            logger.warning("email_rate_limited", to=to, subject=subject)
            return False
        return await self.provider.send(to, subject, html_body, text_body, reply_to=reply_to)

    async def send_contact_notification(self, name: str, email: str, message: str) -> bool:
        """Forward a contact form submission to the support inbox, then acknowledge the sender."""
        subject, html_body, text_body = contact_notification(name, email, message)
        delivered = await self.send_email(
            self.settings.contact_recipient, subject, html_body, text_body, reply_to=email
        )
        if delivered:
            subject, html_body, text_body = contact_acknowledgement(name)
            await self.send_email(email, subject, html_body, text_body)
        return delivered
