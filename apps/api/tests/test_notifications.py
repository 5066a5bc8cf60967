"""Tests for notification templates and backends."""

from datetime import datetime
from unittest.mock import MagicMock

import pytest

from sealsign_api.errors import NotificationError
from sealsign_api.notifications import templates
from sealsign_api.notifications.service import (
    CeleryNotifier,
    LogNotifier,
    MemoryNotifier,
    TemplateNotifier,
    build_notifier,
)


def test_invite_template_escapes_message():
    subject, html = templates.render(
        templates.SIGNING_INVITE,
        document_title="Lease",
        message="<script>alert(1)</script>",
        signing_url="https://app/sign/r1?token=t",
        expires_in_days=30,
        expires_on="2026-02-14",
    )

    assert subject == "Signature requested: Lease"
    assert "<script>" not in html
    assert "&lt;script&gt;" in html
    assert 'href="https://app/sign/r1?token=t"' in html
    assert "2026-02-14" in html


def test_invite_template_without_date_shows_days():
    _, html = templates.render(
        templates.SIGNING_INVITE,
        document_title="Lease",
        message=None,
        signing_url="https://app/sign/r1",
        expires_in_days=30,
        expires_on=None,
    )
    assert "expires in 30 days" in html


def test_missing_context_is_an_error():
    with pytest.raises(Exception):
        templates.render(templates.DECLINE_REQUESTER, document_title="Lease")


def test_completion_notices_go_to_both_parties():
    notifier = MemoryNotifier()

    notifier.send_completion_notices("owner@x.com", "signer@x.com", "Lease", signed_at=datetime(2026, 1, 15, 12))

    assert [m.kind for m in notifier.to("owner@x.com")] == [templates.COMPLETION_REQUESTER]
    assert [m.kind for m in notifier.to("signer@x.com")] == [templates.COMPLETION_SIGNER]
    assert "2026-01-15T12:00:00" in notifier.to("owner@x.com")[0].html


def test_completion_without_requester_contact_still_thanks_signer():
    notifier = MemoryNotifier()

    notifier.send_completion_notices(None, "signer@x.com", "Lease")

    assert [m.to for m in notifier.sent] == ["signer@x.com"]


def test_decline_notice():
    notifier = MemoryNotifier()

    notifier.send_decline_notice("owner@x.com", "signer@x.com", "Lease", reason="Wrong amount")
    notifier.send_decline_notice(None, "signer@x.com", "Lease")

    [message] = notifier.sent
    assert message.subject == "Signature declined: Lease"
    assert "Wrong amount" in message.html


def test_memory_notifier_failure():
    with pytest.raises(NotificationError):
        MemoryNotifier(fail=True).send_signing_invite("s@x.com", "https://app/sign/r1")


def test_template_notifier_requires_a_transport():
    with pytest.raises(TypeError):
        TemplateNotifier(expires_in_days=30)


def test_celery_notifier_enqueues_send_email():
    celery_app = MagicMock()
    notifier = CeleryNotifier(celery_app=celery_app)

    notifier.send_signing_invite("s@x.com", "https://app/sign/r1", document_title="Lease")

    name = celery_app.send_task.call_args.args[0]
    kwargs = celery_app.send_task.call_args.kwargs["kwargs"]
    assert name == "sealsign_worker.tasks.send_email"
    assert kwargs["to"] == "s@x.com"
    assert kwargs["kind"] == templates.SIGNING_INVITE
    assert kwargs["subject"] == "Signature requested: Lease"
    assert "correlation_id" in kwargs


def test_celery_notifier_wraps_broker_errors():
    celery_app = MagicMock()
    celery_app.send_task.side_effect = ConnectionError("redis down")

    with pytest.raises(NotificationError):
        CeleryNotifier(celery_app=celery_app).send_signing_invite("s@x.com", "https://app/sign/r1")


def test_build_notifier():
    assert isinstance(build_notifier("log"), LogNotifier)
    assert isinstance(build_notifier("MEMORY"), MemoryNotifier)
    assert isinstance(build_notifier("celery"), CeleryNotifier)
    with pytest.raises(ValueError):
        build_notifier("pigeon")
