"""Email service tests."""

from unittest.mock import AsyncMock, MagicMock, patch

import aiosmtplib
import httpx
import pytest
from tenacity import wait_none

from spendee.services.email import (
    ConsoleEmailBackend,
    EmailService,
    ResendEmailBackend,
    SMTPEmailBackend,
    _format_duration,
    get_email_backend,
)


class TestConsoleEmailBackend:
    """Tests for console email backend."""

    @pytest.mark.asyncio
    async def test_send_prints_email(self, caplog):
        """Test that console backend prints the email and keeps the body out of the log."""
        import io
        import logging

        from rich.console import Console

        output = io.StringIO()
        backend = ConsoleEmailBackend(console=Console(file=output, width=200))
        link = "http://localhost:3000/api/verify-email?token=abc123"

        with caplog.at_level(logging.INFO):
            result = await backend.send(
                to="test@example.com",
                subject="Test Subject",
                html=f"<p>{link}</p>",
                text=link,
            )

        assert result is True
        assert "test@example.com" in output.getvalue()
        assert "Test Subject" in output.getvalue()
        assert link in output.getvalue()
        assert "test@example.com" in caplog.text
        assert "abc123" not in caplog.text

    @pytest.mark.asyncio
    async def test_send_without_text(self):
        """Test sending without plain text falls back to HTML."""
        backend = ConsoleEmailBackend()

        result = await backend.send(
            to="test@example.com",
            subject="Test",
            html="<p>HTML content</p>",
        )

        assert result is True


class TestSMTPEmailBackend:
    """Tests for SMTP email backend."""

    @pytest.mark.asyncio
    async def test_send_success(self):
        """Test successful SMTP send."""
        backend = SMTPEmailBackend(
            host="smtp.example.com",
            port=587,
            username="user",
            password="pass",
            from_address="noreply@example.com",
        )

        with patch("spendee.services.email.aiosmtplib.send", new_callable=AsyncMock) as mock_send:
            result = await backend.send(
                to="test@example.com",
                subject="Test",
                html="<p>Hello</p>",
                text="Hello",
            )

            assert result is True
            mock_send.assert_called_once()

    @pytest.mark.asyncio
    async def test_send_failure(self):
        """Test SMTP send failure."""
        backend = SMTPEmailBackend(
            host="smtp.example.com",
            port=587,
            username="user",
            password="pass",
            from_address="noreply@example.com",
        )

        with patch(
            "spendee.services.email.aiosmtplib.send",
            new_callable=AsyncMock,
            side_effect=Exception("Connection failed"),
        ):
            result = await backend.send(
                to="test@example.com",
                subject="Test",
                html="<p>Hello</p>",
            )

            assert result is False


class TestResendEmailBackend:
    """Tests for Resend email backend."""

    @pytest.mark.asyncio
    async def test_send_success(self):
        """Test successful Resend send."""
        backend = ResendEmailBackend(
            api_key="re_test_key",
            from_address="noreply@example.com",
        )

        mock_response = MagicMock()
        mock_response.raise_for_status = MagicMock()

        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = mock_response

            result = await backend.send(
                to="test@example.com",
                subject="Test",
                html="<p>Hello</p>",
                text="Hello",
            )

            assert result is True
            mock_post.assert_called_once()
            call_kwargs = mock_post.call_args[1]
            assert call_kwargs["json"]["to"] == ["test@example.com"]
            assert call_kwargs["json"]["subject"] == "Test"

    @pytest.mark.asyncio
    async def test_send_http_error(self):
        """Test Resend HTTP error handling."""
        backend = ResendEmailBackend(
            api_key="re_test_key",
            from_address="noreply@example.com",
        )

        mock_response = MagicMock()
        mock_response.status_code = 401
        mock_response.text = "Unauthorized"
        mock_response.raise_for_status.side_effect = httpx.HTTPStatusError(
            "Unauthorized",
            request=MagicMock(),
            response=mock_response,
        )

        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = mock_response

            result = await backend.send(
                to="test@example.com",
                subject="Test",
                html="<p>Hello</p>",
            )

            assert result is False

    @pytest.mark.asyncio
    async def test_send_network_error(self):
        """Test Resend network error handling."""
        backend = ResendEmailBackend(
            api_key="re_test_key",
            from_address="noreply@example.com",
        )

        with patch(
            "httpx.AsyncClient.post",
            new_callable=AsyncMock,
            side_effect=Exception("Network error"),
        ):
            result = await backend.send(
                to="test@example.com",
                subject="Test",
                html="<p>Hello</p>",
            )

            assert result is False


class TestGetEmailBackend:
    """Tests for get_email_backend factory."""

    def test_console_backend(self):
        """Test console backend selection."""
        with patch("spendee.services.email.settings") as mock_settings:
            mock_settings.email_backend = "console"

            backend = get_email_backend()

            assert isinstance(backend, ConsoleEmailBackend)

    def test_smtp_backend(self):
        """Test SMTP backend selection."""
        with patch("spendee.services.email.settings") as mock_settings:
            mock_settings.email_backend = "smtp"
            mock_settings.smtp_host = "smtp.example.com"
            mock_settings.smtp_port = 587
            mock_settings.smtp_username = "user"
            mock_settings.smtp_password = "pass"
            mock_settings.smtp_use_tls = True
            mock_settings.email_from = "noreply@example.com"

            backend = get_email_backend()

            assert isinstance(backend, SMTPEmailBackend)
            assert backend.host == "smtp.example.com"

    def test_resend_backend(self):
        """Test Resend backend selection."""
        with patch("spendee.services.email.settings") as mock_settings:
            mock_settings.email_backend = "resend"
            mock_settings.resend_api_key = "re_test_key"
            mock_settings.email_from = "noreply@example.com"

            backend = get_email_backend()

            assert isinstance(backend, ResendEmailBackend)
            assert backend.api_key == "re_test_key"

    def test_invalid_backend(self):
        """Test invalid backend raises error."""
        with patch("spendee.services.email.settings") as mock_settings:
            mock_settings.email_backend = "invalid"

            with pytest.raises(ValueError, match="Unknown email backend"):
                get_email_backend()


class TestEmailService:
    """Tests for EmailService."""

    @pytest.mark.asyncio
    async def test_send_verification_email(self):
        mock_backend = AsyncMock()
        mock_backend.send.return_value = True

        service = EmailService(backend=mock_backend)

        result = await service.send_verification_email(
            to="test@example.com",
            verification_url="http://localhost:3000/verify-email?token=abc123",
        )

        assert result is True
        call_kwargs = mock_backend.send.call_args[1]
        assert call_kwargs["to"] == "test@example.com"
        assert call_kwargs["subject"] == "Please verify your email"
        assert "verify-email?token=abc123" in call_kwargs["html"]
        assert "24 hours" in call_kwargs["text"]

    @pytest.mark.asyncio
    async def test_send_password_reset_email(self):
        mock_backend = AsyncMock()
        mock_backend.send.return_value = True

        service = EmailService(backend=mock_backend)

        await service.send_password_reset_email(
            to="test@example.com",
            reset_url="http://localhost:3000/reset-password?token=xyz789",
        )

        call_kwargs = mock_backend.send.call_args[1]
        assert call_kwargs["subject"] == "Reset your password"
        assert "xyz789" in call_kwargs["text"]
        assert "1 hour." in call_kwargs["text"]

    @pytest.mark.asyncio
    async def test_backend_failure_is_reported(self):
        mock_backend = AsyncMock()
        mock_backend.send.return_value = False

        service = EmailService(backend=mock_backend)

        result = await service.send_password_reset_email(
            to="test@example.com", reset_url="http://localhost:3000/reset-password?token=x"
        )

        assert result is False

    def test_lazy_backend_loading(self):
        """Backend is created on first use and then reused."""
        service = EmailService()

        with patch("spendee.services.email.get_email_backend") as mock_get_backend:
            mock_get_backend.return_value = ConsoleEmailBackend()

            backend = service.backend
            assert isinstance(backend, ConsoleEmailBackend)

            assert service.backend is backend
            mock_get_backend.assert_called_once()


class TestSMTPMessage:
    def test_plain_text_part_comes_first(self):
        backend = SMTPEmailBackend(
            host="smtp.example.com",
            port=587,
            username="",
            password="",
            from_address="noreply@example.com",
        )

        message = backend.build_message("to@example.com", "Hi", "<p>Hi</p>", "Hi")

        assert message["To"] == "to@example.com"
        assert [part.get_content_type() for part in message.get_payload()] == [
            "text/plain",
            "text/html",
        ]


def test_format_duration():
    assert _format_duration(86400) == "24 hours"
    assert _format_duration(3600) == "1 hour"
    assert _format_duration(300) == "5 minutes"


@pytest.mark.asyncio
async def test_resend_retries_transport_errors():
    backend = ResendEmailBackend(api_key="re_test_key", from_address="noreply@example.com")

    mock_response = MagicMock()
    mock_response.raise_for_status = MagicMock()

    with (
        patch("spendee.services.email.RETRY_WAIT", wait_none()),
        patch(
            "httpx.AsyncClient.post",
            new_callable=AsyncMock,
            side_effect=[httpx.ConnectError("refused"), mock_response],
        ) as mock_post,
    ):
        result = await backend.send(to="test@example.com", subject="Test", html="<p>Hi</p>")

    assert result is True
    assert mock_post.call_count == 2


@pytest.mark.asyncio
async def test_smtp_gives_up_after_retries():
    backend = SMTPEmailBackend(
        host="smtp.example.com", port=587, username="", password="", from_address="a@example.com"
    )

    with (
        patch("spendee.services.email.RETRY_WAIT", wait_none()),
        patch(
            "spendee.services.email.aiosmtplib.send",
            new_callable=AsyncMock,
            side_effect=aiosmtplib.SMTPConnectError("down"),
        ) as mock_send,
    ):
        result = await backend.send(to="test@example.com", subject="Test", html="<p>Hi</p>")

    assert result is False
    assert mock_send.call_count == 3
