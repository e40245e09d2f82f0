"""
Outbound notifications: OTP emails to users and alerts to the payout admin.

NOTIFIER_BACKEND=smtp sends real mail; the default "log" backend only writes the
message to the application log (local development and tests).
"""

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

from config import (
    ADMIN_ALERT_EMAIL,
    MAIL_FROM,
    NOTIFIER_BACKEND,
    SMTP_HOST,
    SMTP_PASSWORD,
    SMTP_PORT,
    SMTP_TIMEOUT_SECONDS,
    SMTP_USE_TLS,
    SMTP_USERNAME,
)
from core.errors import DeliveryError

logger = logging.getLogger(__name__)

OTP_SUBJECT = "Your OTP Code"


def otp_text(code: str, expiry_minutes: int) -> str:
    return f"Your EarnRewardzz code is: {code}. Valid for {expiry_minutes} minutes."


class LogNotifier:
    def send_otp(self, *, email: str, code: str, expiry_minutes: int) -> None:
        # Never log the code outside development
        logger.info(f"OTP email queued (log backend) | to={email} | expires_in={expiry_minutes}m")
        logger.debug(f"OTP for {email}: {code}")

    def notify_admin(self, *, subject: str, body: str) -> None:
        logger.info(f"ADMIN ALERT | {subject} | {body}")


class SmtpNotifier:
    def __init__(
        self,
        host: str = SMTP_HOST,
        port: int = SMTP_PORT,
        username: str = SMTP_USERNAME,
        password: str = SMTP_PASSWORD,
        use_tls: bool = SMTP_USE_TLS,
        sender: str = MAIL_FROM,
        admin_email: Optional[str] = ADMIN_ALERT_EMAIL,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.sender = sender
        self.admin_email = admin_email

    def _send(self, to_email: str, subject: str, text: str):
        msg = MIMEMultipart()
        msg["From"] = self.sender
        msg["To"] = to_email
        msg["Subject"] = subject
        msg.attach(MIMEText(text, "plain"))

        try:
            with smtplib.SMTP(self.host, self.port, timeout=SMTP_TIMEOUT_SECONDS) as server:
                if self.use_tls:
                    server.starttls()
                if self.username:
                    server.login(self.username, self.password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as exc:
            logger.error(f"Email delivery failed | to={to_email} | subject={subject} | error={exc}")
            raise DeliveryError() from exc

    def send_otp(self, *, email: str, code: str, expiry_minutes: int) -> None:
        self._send(email, OTP_SUBJECT, otp_text(code, expiry_minutes))
        logger.info(f"OTP email sent | to={email}")

    def notify_admin(self, *, subject: str, body: str) -> None:
        if not self.admin_email:
            logger.info(f"ADMIN ALERT (no ADMIN_ALERT_EMAIL set) | {subject} | {body}")
            return
        self._send(self.admin_email, subject, body)


def build_notifier(backend: str = NOTIFIER_BACKEND):
    if backend == "smtp":
        return SmtpNotifier()
    if backend == "log":
        return LogNotifier()
    raise ValueError(f"Unknown NOTIFIER_BACKEND: {backend}")


_notifier = None


def get_notifier():
    """FastAPI dependency; tests override it to capture outgoing codes."""
    global _notifier
    if _notifier is None:
        _notifier = build_notifier()
    return _notifier
