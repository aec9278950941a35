"""Outgoing account e-mails over SMTP."""

import logging
import smtplib
from email.mime.text import MIMEText

from app.config import get_settings

logger = logging.getLogger("account_service")


class EmailService:
    """Sends activation and password reset e-mails."""

    def send_account_activation(self, email: str, token: str) -> None:
        self._send(email, "Account Activation", f"Token is {token}")

    def send_password_reset(self, email: str, token: str) -> None:
        self._send(email, "Password Reset", f"Your password reset token is {token}")

    def _send(self, to_email: str, subject: str, body: str) -> None:
        settings = get_settings()
        message = MIMEText(body, "plain", "utf-8")
        message["From"] = settings.MAIL_FROM
        message["To"] = to_email
        message["Subject"] = subject
        self._deliver(message)
        logger.info("Sent '%s' e-mail to %s", subject, to_email)

    def _deliver(self, message: MIMEText) -> None:
        """Hand the message to the SMTP server. Transport errors propagate."""
        settings = get_settings()
        with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=10) as server:
            if settings.SMTP_USE_TLS:
                server.starttls()
            if settings.SMTP_USERNAME:
                server.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD)
            server.send_message(message)


_email_service: EmailService | None = None


def get_email_service() -> EmailService:
    """Get singleton e-mail service instance."""
    global _email_service
    if _email_service is None:
        _email_service = EmailService()
    return _email_service
