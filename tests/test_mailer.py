"""Tests for SMTP delivery of verification emails."""

from __future__ import annotations

import smtplib

import pytest

from models.user import User
from services import mailer


class FakeSMTP:
    instances: list["FakeSMTP"] = []

    def __init__(self, host, port, timeout=None):
        self.host = host
        self.port = port
        self.actions = []
        self.sent = []
        FakeSMTP.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self):
        self.actions.append("starttls")

    def login(self, username, password):
        self.actions.append(("login", username, password))

    def send_message(self, message):
        self.sent.append(message)


@pytest.fixture()
def smtp(app, monkeypatch):
    FakeSMTP.instances = []
    monkeypatch.setattr(smtplib, "SMTP", FakeSMTP)
    app.config.update(
        MAIL_SUPPRESS_SEND=False,
        MAIL_HOST="smtp.test",
        MAIL_PORT=2525,
        MAIL_USERNAME="mailer",
        MAIL_PASSWORD="pw",
        FRONTEND_URL="https://app.example/",
    )
    return FakeSMTP


def test_verification_email_is_sent_over_starttls(app, smtp):
    user = User(email="jane@example.com", name="Jane")

    with app.app_context():
        mailer.send_verification_email(user, "abc123")

    server = smtp.instances[0]
    assert (server.host, server.port) == ("smtp.test", 2525)
    assert server.actions == ["starttls", ("login", "mailer", "pw")]
    message = server.sent[0]
    assert message["Subject"] == "Verify Your Email Address"
    assert message["To"] == "jane@example.com"
    assert "https://app.example/verify-email?token=abc123" in message.get_body(("plain",)).get_content()
    assert "verify-email?token=abc123" in message.get_body(("html",)).get_content()


def test_authentication_failure_is_reported(app, smtp, monkeypatch):
    def _reject(self, username, password):
        raise smtplib.SMTPAuthenticationError(535, b"bad credentials")

    monkeypatch.setattr(FakeSMTP, "login", _reject)

    with app.app_context():
        with pytest.raises(mailer.MailDeliveryError):
            mailer.send_verification_email(User(email="jane@example.com", name="Jane"), "abc123")


def test_suppressed_mail_goes_to_outbox(app):
    with app.app_context():
        mailer.send_verification_email(User(email="jane@example.com", name="Jane"), "abc123")

    assert [m["To"] for m in app.extensions["mail_outbox"]] == ["jane@example.com"]
