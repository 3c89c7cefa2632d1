import smtplib

import pytest

from attendqr import config, mailer


class FakeSMTP:
    sent = []
    fail_login = False

    def __init__(self, host, port, timeout=None):
        self.host = host
        self.port = port

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self):
        pass

    def login(self, username, password):
        if FakeSMTP.fail_login:
            raise smtplib.SMTPAuthenticationError(535, b"bad credentials")

    def sendmail(self, sender, recipients, message):
        FakeSMTP.sent.append((sender, recipients, message))


@pytest.fixture
def smtp(monkeypatch):
    FakeSMTP.sent = []
    FakeSMTP.fail_login = False
    monkeypatch.setattr(config, "MAIL_USERNAME", "noreply@example.com")
    monkeypatch.setattr(config, "MAIL_PASSWORD", "secret")
    monkeypatch.setattr(config, "MAIL_SENDER", "noreply@example.com")
    monkeypatch.setattr(mailer.smtplib, "SMTP", FakeSMTP)
    return FakeSMTP


def test_send_skipped_when_mail_is_not_configured(monkeypatch):
    monkeypatch.setattr(config, "MAIL_USERNAME", "")
    assert mailer.send_welcome_email("alice@example.com", "alice1234") is False


def test_welcome_email_includes_credentials(smtp):
    assert mailer.send_welcome_email("alice@example.com", "alice1234") is True

    sender, recipients, message = smtp.sent[0]
    assert sender == "noreply@example.com"
    assert recipients == ["alice@example.com"]
    assert "alice1234" in message


def test_enrollment_email_escapes_class_name(smtp):
    mailer.send_enrollment_email("alice@example.com", "Maths <Advanced>")
    assert "Maths &lt;Advanced&gt;" in smtp.sent[0][2]


def test_smtp_failure_returns_false(smtp):
    smtp.fail_login = True
    assert mailer.send_enrollment_email("alice@example.com", "CSC101") is False
    assert smtp.sent == []
