from __future__ import annotations

import logging
import smtplib

from conftest import RecordingNotifier
from vaultdrop.config import Settings
from vaultdrop.main import build_notifier
from vaultdrop.services.notifier import (
    NotificationDispatcher,
    NullNotifier,
    SMTPNotifier,
    read_receipt_body,
)


def test_receipt_body_mentions_reference():
    assert read_receipt_body(None) == "Your message has been viewed and destroyed."
    assert read_receipt_body("invoice #4") == (
        'Your message with reference name: "invoice #4" has been viewed and destroyed.'
    )


def test_smtp_email_headers():
    notifier = SMTPNotifier("smtp.example.com", 587, "bot@example.com", "pw")
    email = notifier.build_email("reader@example.com", "ref")

    assert email["To"] == "reader@example.com"
    assert email["From"] == "bot@example.com"
    assert email["Subject"] == "Your message has been read."
    assert "ref" in email.get_content()


def test_smtp_send_uses_starttls_and_login(monkeypatch):
    calls = []

    class FakeSMTP:
        def __init__(self, host, port, timeout):
            calls.append(("connect", host, port))

        def __enter__(self):
            return self

        def __exit__(self, *exc):
            return False

        def starttls(self):
            calls.append(("starttls",))

        def login(self, user, password):
            calls.append(("login", user, password))

        def send_message(self, email):
            calls.append(("send", email["To"]))

    monkeypatch.setattr(smtplib, "SMTP", FakeSMTP)
    result = SMTPNotifier("smtp.example.com", 587, "bot@example.com", "pw").send("r@example.com", None)

    assert result.ok
    assert calls == [
        ("connect", "smtp.example.com", 587),
        ("starttls",),
        ("login", "bot@example.com", "pw"),
        ("send", "r@example.com"),
    ]


def test_smtp_failure_is_reported_not_raised(monkeypatch):
    class RefusingSMTP:
        def __init__(self, *args, **kwargs):
            raise smtplib.SMTPConnectError(421, b"go away")

    monkeypatch.setattr(smtplib, "SMTP", RefusingSMTP)
    result = SMTPNotifier("smtp.example.com", 587, "u", "p").send("r@example.com", None)

    assert not result.ok
    assert "go away" in result.error


def test_null_notifier_reports_disabled():
    result = NullNotifier().send("r@example.com", None)
    assert not result.ok
    assert result.error == "notifications disabled"


def test_build_notifier_needs_credentials():
    assert isinstance(build_notifier(Settings()), NullNotifier)
    notifier = build_notifier(Settings(email_username="u@example.com", email_password="pw"))
    assert isinstance(notifier, SMTPNotifier)


def test_dispatch_returns_immediately_and_logs_failure(caplog):
    notifier = RecordingNotifier(ok=False)
    dispatcher = NotificationDispatcher(notifier)

    with caplog.at_level(logging.WARNING, logger="vaultdrop.services.notifier"):
        future = dispatcher.dispatch("r@example.com", "ref")
        dispatcher.shutdown(wait=True)

    assert future.result().error == "smtp down"
    assert notifier.sent == [("r@example.com", "ref")]
    assert "not sent" in caplog.text


def test_dispatch_after_shutdown_is_dropped():
    notifier = RecordingNotifier()
    dispatcher = NotificationDispatcher(notifier)
    dispatcher.shutdown()

    assert dispatcher.dispatch("r@example.com") is None
    assert notifier.sent == []
