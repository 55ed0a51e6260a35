"""Tests for outgoing mail."""

import smtplib

from jobguard.services import email_service
from jobguard.services.email_service import OutgoingEmail, password_reset_email, send_email_quietly
from jobguard.utils.logging_config import metrics


class FailingMailer:
    def send(self, message):
        raise smtplib.SMTPServerDisconnected("connection lost")


class TestSendEmailQuietly:
    """Delivery failures are logged and counted, never raised."""

    def test_success(self, mailer):
        send_email_quietly(mailer, OutgoingEmail("a@acme-corp.com", "Hi", "Body"))
        assert len(mailer.sent) == 1
        assert metrics.get_stats()["counters"]["email.sent"] == 1

    def test_failure_is_swallowed(self):
        send_email_quietly(FailingMailer(), OutgoingEmail("a@acme-corp.com", "Hi", "Body"))
        assert metrics.get_stats()["counters"]["email.failed"] == 1


class TestMessages:
    def test_password_reset_email(self):
        message = password_reset_email("a@acme-corp.com", "http://testserver/reset/abc")
        assert message.to == "a@acme-corp.com"
        assert "http://testserver/reset/abc" in message.body
        assert "10 minutes" in message.body

    def test_smtp_message_headers(self):
        mailer = email_service.SMTPMailer("smtp.acme-corp.com", 587, "noreply@acme-corp.com", "secret")
        built = mailer._build(OutgoingEmail("a@acme-corp.com", "Subject line", "Body"))
        assert built["From"] == "JobGuard <noreply@acme-corp.com>"
        assert built["Subject"] == "Subject line"

    def test_logging_mailer_when_smtp_unset(self, monkeypatch):
        monkeypatch.setattr(email_service.settings, "smtp_host", "")
        assert isinstance(email_service._default_mailer(), email_service.LoggingMailer)
