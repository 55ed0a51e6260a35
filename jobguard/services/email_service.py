"""
Outgoing mail.

SMTPMailer delivers through the configured server; LoggingMailer is used
when SMTP is not configured and only writes the message to the log.
Mail is sent from background tasks, so a delivery failure is logged and
never undoes the operation that triggered it.
"""

import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Protocol

from jobguard.config import settings
from jobguard.utils.logging_config import StructuredLogger, metrics

logger = StructuredLogger(__name__)


@dataclass
class OutgoingEmail:
    to: str
    subject: str
    body: str


class Mailer(Protocol):
    def send(self, message: OutgoingEmail) -> None:
        ...


class SMTPMailer:
    def __init__(
        self,
        host: str,
        port: int,
        username: str,
        password: str,
        use_tls: bool = True,
        from_name: str = "JobGuard",
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.from_name = from_name

    def _build(self, message: OutgoingEmail) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = f"{self.from_name} <{self.username}>"
        msg["To"] = message.to
        msg["Subject"] = message.subject
        msg.set_content(message.body)
        return msg

    def send(self, message: OutgoingEmail) -> None:
        with smtplib.SMTP(self.host, self.port, timeout=10) as smtp:
            if self.use_tls:
                smtp.starttls()
            if self.username:
                smtp.login(self.username, self.password)
            smtp.send_message(self._build(message))


class LoggingMailer:
    def send(self, message: OutgoingEmail) -> None:
        logger.info("Email (not sent, SMTP not configured)", to=message.to, subject=message.subject)


def send_email_quietly(mailer: Mailer, message: OutgoingEmail) -> None:
    """Background-task entry point: failures are logged, never raised."""
    try:
        mailer.send(message)
        metrics.increment("email.sent")
    except (smtplib.SMTPException, OSError) as e:
        metrics.increment("email.failed")
        logger.error("Email delivery failed", to=message.to, subject=message.subject, error=str(e))


def password_reset_email(to: str, reset_url: str) -> OutgoingEmail:
    return OutgoingEmail(
        to=to,
        subject="Password reset token",
        body=(
            "You are receiving this email because you (or someone else) has requested "
            "the reset of a password. Please make a PUT request to:\n\n"
            f"{reset_url}\n\n"
            f"This link expires in {settings.reset_token_expire_minutes} minutes."
        ),
    )


def _default_mailer() -> Mailer:
    if settings.smtp_host:
        return SMTPMailer(
            host=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_email,
            password=settings.smtp_password,
            use_tls=settings.smtp_use_tls,
            from_name=settings.from_name,
        )
    return LoggingMailer()


_mailer = _default_mailer()


def get_mailer() -> Mailer:
    """FastAPI dependency; tests swap in a RecordingMailer."""
    return _mailer
