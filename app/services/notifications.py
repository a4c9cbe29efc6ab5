from __future__ import annotations

import html as html_lib
import logging

from app.services.email import EmailSendError, EmailTransport, mask_address

LOGGER = logging.getLogger(__name__)


class NotificationGateway:
    """Delivers login codes through an email transport.

    ``send`` reports delivery as a boolean; the transport's errors are logged
    here and never retried, a new login attempt issues a new code instead.
    """

    def __init__(
        self,
        transport: EmailTransport,
        product_name: str,
        subject: str,
        ttl_seconds: int,
    ) -> None:
        self._transport = transport
        self._product_name = product_name
        self._subject = subject
        self._ttl_seconds = ttl_seconds

    def send(self, address: str, code: str) -> bool:
        subject = f"{self._product_name} {self._subject}"
        try:
            self._transport.send(
                address,
                subject,
                self._build_body(code),
                html=self._build_html(code),
            )
        except EmailSendError as exc:
            LOGGER.error("OTP delivery to %s failed: %s", mask_address(address), exc)
            return False
        LOGGER.info("OTP delivered to %s", mask_address(address))
        return True

    def check(self) -> bool:
        """Verify the transport can reach its server; never raises."""
        try:
            self._transport.verify()
        except EmailSendError as exc:
            LOGGER.error("Email service check failed: %s", exc)
            return False
        LOGGER.info("Email service is ready")
        return True

    def _expiry_label(self) -> str:
        if self._ttl_seconds < 60:
            return f"{self._ttl_seconds} second(s)"
        return f"{self._ttl_seconds // 60} minute(s)"

    def _build_body(self, code: str) -> str:
        return (
            f"A login attempt was made to your {self._product_name} admin account.\n\n"
            f"Your one-time password is {code}.\n"
            f"It expires in {self._expiry_label()}.\n\n"
            "If you did not request this login, ignore this email and contact "
            "support immediately."
        )

    def _build_html(self, code: str) -> str:
        product = html_lib.escape(self._product_name)
        return (
            '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">'
            f"<h1>{product}</h1>"
            "<h2>Admin Login Verification</h2>"
            f"<p>A login attempt was made to your {product} admin account. "
            "Use the following one-time password to complete your login:</p>"
            '<div style="font-size: 32px; font-weight: bold; letter-spacing: 8px; '
            f"font-family: 'Courier New', monospace;\">{html_lib.escape(code)}</div>"
            f"<p>This OTP expires in {self._expiry_label()}.</p>"
            "<p><strong>Security notice:</strong> if you did not request this login, "
            "ignore this email and contact support immediately.</p>"
            "</div>"
        )
