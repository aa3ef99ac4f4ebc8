from __future__ import annotations

import pytest
from fastapi import HTTPException

from efiledb.apps.notifications import models, providers, service


def test_notify_users_skips_actor_blanks_and_duplicates(db_session, make_user):
    actor = make_user("XEN")
    first = make_user("SE")
    second = make_user("AEE")

    created = service.notify_users(
        db_session,
        user_ids=[first.id, None, actor.id, first.id, second.id],
        type="FILE_MARKED",
        message="File WTR/2026/0001 has been marked to you",
        exclude_user_id=actor.id,
    )
    db_session.commit()

    assert [note.user_id for note in created] == [first.id, second.id]
    assert service.list_notifications(db_session, user_id=actor.id) == []


def test_mark_read_is_owner_only(db_session, make_user):
    owner = make_user("XEN")
    other = make_user("AEE")
    (note,) = service.notify_users(db_session, user_ids=[owner.id], type="FILE_MARKED", message="m")
    db_session.commit()

    with pytest.raises(HTTPException) as exc:
        service.mark_read(db_session, notification_id=note.id, user_id=other.id)
    assert exc.value.status_code == 404

    read = service.mark_read(db_session, notification_id=note.id, user_id=owner.id)
    db_session.commit()
    assert read.is_read is True
    assert read.read_at is not None
    assert service.list_notifications(db_session, user_id=owner.id, unread_only=True) == []


def test_send_message_through_log_provider(db_session, monkeypatch):
    monkeypatch.setenv("NOTIFICATIONS_EMAIL_PROVIDER", "log")

    log = service.send_message(
        db_session,
        channel="email",
        template_key="signature_otp",
        recipient="officer@example.com",
        subject="Your e-filing verification code",
        context={"code": "123456", "user_name": "Officer"},
    )

    assert log.status == models.DeliveryStatus.SENT
    assert log.sent_at is not None
    assert log.context_json == {"code": "***", "user_name": "Officer"}


def test_provider_failure_is_recorded(db_session, monkeypatch):
    class Broken(providers.MessageProvider):
        def send(self, **kwargs):
            raise RuntimeError("gateway down")

    monkeypatch.setattr(providers, "get_message_provider", lambda channel: (Broken(), True))

    log = service.send_message(
        db_session,
        channel="sms",
        template_key="signature_otp",
        recipient="03001234567",
        subject="code",
        context={},
    )
    assert log.status == models.DeliveryStatus.FAILED
    assert log.error == "gateway down"

    with pytest.raises(RuntimeError):
        service.send_message(
            db_session,
            channel="sms",
            template_key="signature_otp",
            recipient="03001234567",
            subject="code",
            context={},
            critical=True,
        )


def test_unknown_provider_name_is_rejected(monkeypatch):
    monkeypatch.setenv("NOTIFICATIONS_SMS_PROVIDER", "pigeon")

    with pytest.raises(ValueError):
        providers.get_message_provider("sms")
