"""Email delivery for account verification and password reset links."""

import logging
from abc import ABC, abstractmethod
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

import aiosmtplib
import httpx
from rich.console import Console
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from spendee.config import settings

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"

# Transient delivery failures are retried; rejections are not
SMTP_RETRYABLE = (aiosmtplib.SMTPConnectError, aiosmtplib.SMTPServerDisconnected, TimeoutError)
RESEND_RETRYABLE = (httpx.TransportError,)
RETRY_ATTEMPTS = 3
RETRY_WAIT = wait_exponential(multiplier=0.5, min=0.5, max=4)


def _retrying(retryable: tuple[type[BaseException], ...]) -> AsyncRetrying:
    return AsyncRetrying(
        stop=stop_after_attempt(RETRY_ATTEMPTS),
        wait=RETRY_WAIT,
        retry=retry_if_exception_type(retryable),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )


class EmailBackend(ABC):
    """Abstract base class for email backends."""

    @abstractmethod
    async def send(
        self,
        to: str,
        subject: str,
        html: str,
        text: str | None = None,
    ) -> bool:
        """Send an email.

        Args:
            to: Recipient email address
            subject: Email subject
            html: HTML content
            text: Plain text alternative

        Returns:
            True if the message was handed off successfully
        """
        pass


class ConsoleEmailBackend(EmailBackend):
    """Prints emails to stdout instead of sending them (development).

    Bodies carry live token links and never reach the log.
    """

    def __init__(self, console: Console | None = None):
        self.console = console or Console()

    async def send(
        self,
        to: str,
        subject: str,
        html: str,
        text: str | None = None,
    ) -> bool:
        divider = "=" * 60
        self.console.print(
            f"{divider}\nEMAIL (console backend - not sent)\n{divider}\n"
            f"To: {to}\nSubject: {subject}\n{divider}\n{text or html}\n{divider}",
            markup=False,
            highlight=False,
        )
        logger.info(f"Email to {to} printed to console: {subject}")
        return True


class SMTPEmailBackend(EmailBackend):
    """Email backend using SMTP."""

    def __init__(
        self,
        host: str,
        port: int,
        username: str,
        password: str,
        use_tls: bool = True,
        from_address: str = "",
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.from_address = from_address

    def build_message(self, to: str, subject: str, html: str, text: str | None) -> MIMEMultipart:
        message = MIMEMultipart("alternative")
        message["From"] = self.from_address
        message["To"] = to
        message["Subject"] = subject
        # Clients render the last part they understand, so plain text goes first
        if text:
            message.attach(MIMEText(text, "plain"))
        message.attach(MIMEText(html, "html"))
        return message

    async def send(
        self,
        to: str,
        subject: str,
        html: str,
        text: str | None = None,
    ) -> bool:
        message = self.build_message(to, subject, html, text)
        try:
            async for attempt in _retrying(SMTP_RETRYABLE):
                with attempt:
                    await aiosmtplib.send(
                        message,
                        hostname=self.host,
                        port=self.port,
                        username=self.username or None,
                        password=self.password or None,
                        start_tls=self.use_tls,
                    )
        except Exception as e:
            logger.error(f"SMTP delivery to {to} failed: {e}")
            return False

        logger.info(f"Email sent via SMTP to {to}")
        return True


class ResendEmailBackend(EmailBackend):
    """Email backend using the Resend HTTP API."""

    def __init__(self, api_key: str, from_address: str):
        self.api_key = api_key
        self.from_address = from_address

    async def send(
        self,
        to: str,
        subject: str,
        html: str,
        text: str | None = None,
    ) -> bool:
        payload = {
            "from": self.from_address,
            "to": [to],
            "subject": subject,
            "html": html,
            "text": text,
        }
        async with httpx.AsyncClient(timeout=30.0) as client:
            try:
                async for attempt in _retrying(RESEND_RETRYABLE):
                    with attempt:
                        response = await client.post(
                            RESEND_API_URL,
                            headers={"Authorization": f"Bearer {self.api_key}"},
                            json=payload,
                        )
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                logger.error(f"Resend rejected email to {to}: {e.response.status_code} {e.response.text}")
                return False
            except Exception as e:
                logger.error(f"Resend delivery to {to} failed: {e}")
                return False

        logger.info(f"Email sent via Resend to {to}")
        return True


def get_email_backend() -> EmailBackend:
    """Get the configured email backend."""
    if settings.email_backend == "console":
        return ConsoleEmailBackend()
    elif settings.email_backend == "smtp":
        return SMTPEmailBackend(
            host=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_username,
            password=settings.smtp_password,
            use_tls=settings.smtp_use_tls,
            from_address=settings.email_from,
        )
    elif settings.email_backend == "resend":
        return ResendEmailBackend(
            api_key=settings.resend_api_key,
            from_address=settings.email_from,
        )
    else:
        raise ValueError(f"Unknown email backend: {settings.email_backend}")


def _format_duration(seconds: int) -> str:
    """Human wording for a link lifetime, e.g. "24 hours" or "1 hour"."""
    if seconds % 3600 == 0:
        hours = seconds // 3600
        return f"{hours} hour" if hours == 1 else f"{hours} hours"
    minutes = max(1, seconds // 60)
    return f"{minutes} minute" if minutes == 1 else f"{minutes} minutes"


def _render_link_email(heading: str, intro: str, button: str, link: str, expires_in: str) -> tuple[str, str]:
    """Render the HTML and plain text bodies for a single-link email."""
    html = f"""
<!DOCTYPE html>
<html>
<head><meta charset="utf-8"></head>
<body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
    <h2 style="color: #1a1a1a;">{heading}</h2>
    <p>{intro}</p>
    <p style="text-align: center; margin: 30px 0;">
        <a href="{link}" style="background: #059669; color: white; padding: 12px 30px; border-radius: 6px; text-decoration: none;">{button}</a>
    </p>
    <p>This link expires in {expires_in}.</p>
    <p style="color: #666; font-size: 12px;">
        If the button doesn't work, paste this link into your browser:<br>
        <a href="{link}" style="word-break: break-all;">{link}</a>
    </p>
</body>
</html>
"""
    text = f"""{heading}

{intro}

{link}

This link expires in {expires_in}.
"""
    return html, text


class EmailService:
    """Sends the application's transactional emails."""

    def __init__(self, backend: EmailBackend | None = None):
        self._backend = backend

    @property
    def backend(self) -> EmailBackend:
        """Lazy-load the backend."""
        if self._backend is None:
            self._backend = get_email_backend()
        return self._backend

    async def send_verification_email(self, to: str, verification_url: str) -> bool:
        """Send the link that confirms a new account's email address."""
        html, text = _render_link_email(
            heading="Please verify your email",
            intro=f"Thanks for signing up for {settings.app_name}! Click below to verify your email.",
            button="Verify Email",
            link=verification_url,
            expires_in=_format_duration(settings.verify_email_ttl_seconds),
        )
        return await self.backend.send(
            to=to, subject="Please verify your email", html=html, text=text
        )

    async def send_password_reset_email(self, to: str, reset_url: str) -> bool:
        """Send a password reset link."""
        html, text = _render_link_email(
            heading="Reset your password",
            intro="You requested a password reset. If this wasn't you, ignore this email.",
            button="Reset password",
            link=reset_url,
            expires_in=_format_duration(settings.reset_password_ttl_seconds),
        )
        return await self.backend.send(to=to, subject="Reset your password", html=html, text=text)


# Global email service instance
email_service = EmailService()
