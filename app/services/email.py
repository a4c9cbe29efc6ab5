from __future__ import annotations

from email.message import EmailMessage
import logging
import smtplib
import ssl
from typing import Optional, Protocol

from app.config import Settings

LOGGER = logging.getLogger(__name__)


class EmailSendError(RuntimeError):
    pass


class EmailTransport(Protocol):
    def send(
        self, address: str, subject: str, body: str, html: Optional[str] = None
    ) -> None:
        ...

    def verify(self) -> None:
        ...


def mask_address(address: str) -> str:
    """Keep the first character of the local part and the whole domain."""
    cleaned = address.strip()
    local, sep, domain = cleaned.partition("@")
    if not local:
        return "***" + sep + domain
    return f"{local[:1]}***{sep}{domain}"


def _build_message(
    sender: str, recipient: str, subject: str, body: str, html: Optional[str]
) -> EmailMessage:
    message = EmailMessage()
    message["From"] = sender
    message["To"] = recipient
    message["Subject"] = subject
    message.set_content(body)
    if html:
        message.add_alternative(html, subtype="html")
    return message


class SmtpTransport:
    def __init__(
        self,
        host: str,
        port: int,
        sender: str,
        username: str = "",
        password: str = "",
        timeout: int = 10,
    ) -> None:
        if not sender:
            raise EmailSendError("OTP email sender is not configured")
        self._host = host
        self._port = port
        self._sender = sender
        self._username = username
        self._password = password
        self._timeout = timeout

    def send(
        self, address: str, subject: str, body: str, html: Optional[str] = None
    ) -> None:
        message = _build_message(self._sender, address, subject, body, html)
        context = ssl.create_default_context()
        try:
            with smtplib.SMTP(self._host, self._port, timeout=self._timeout) as smtp:
                smtp.starttls(context=context)
                if self._username and self._password:
                    smtp.login(self._username, self._password)
                smtp.send_message(message)
        except smtplib.SMTPException as exc:
            LOGGER.error("SMTP error sending to %s: %s", mask_address(address), exc)
            raise EmailSendError("Failed to send OTP email") from exc
        except OSError as exc:
            raise EmailSendError("Failed to reach SMTP server") from exc

    def verify(self) -> None:
        """Open a session and authenticate without sending anything."""
        context = ssl.create_default_context()
        try:
            with smtplib.SMTP(self._host, self._port, timeout=self._timeout) as smtp:
                smtp.starttls(context=context)
                if self._username and self._password:
                    smtp.login(self._username, self._password)
                smtp.noop()
        except smtplib.SMTPException as exc:
            raise EmailSendError(f"SMTP check failed: {exc}") from exc
        except OSError as exc:
            raise EmailSendError("Failed to reach SMTP server") from exc


class ConsoleTransport:
    """Development transport: writes the message to the log instead of sending."""

    def __init__(self, sender: str = "") -> None:
        self._sender = sender or "no-reply@localhost"

    def send(
        self, address: str, subject: str, body: str, html: Optional[str] = None
    ) -> None:
        LOGGER.warning(
            "Email (console backend) from=%s to=%s subject=%s\n%s",
            self._sender,
            address,
            subject,
            body,
        )

    def verify(self) -> None:
        return None


def build_transport(settings: Settings) -> EmailTransport:
    backend = settings.email_backend
    if backend == "smtp":
        return SmtpTransport(
            host=settings.smtp_host,
            port=settings.smtp_port,
            sender=settings.otp_email_sender,
            username=settings.smtp_user,
            password=settings.smtp_password,
            timeout=settings.smtp_timeout_seconds,
        )
    if backend == "console":
        return ConsoleTransport(settings.otp_email_sender)
    raise EmailSendError(f"Unknown email backend: {backend}")
