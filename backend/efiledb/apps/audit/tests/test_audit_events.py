from __future__ import annotations

import pytest

from efiledb.apps.audit import schemas
from efiledb.apps.audit import services as audit_services


def test_log_event_writes_record(db_session, make_user):
    actor = make_user("XEN", full_name="Sana XEN")

    event = audit_services.log_event(
        db_session,
        actor_user_id=actor.id,
        entity_type="efiling_file",
        entity_id="file-1",
        action=audit_services.ADD_COMMENT,
        after={"comment_id": "c-1"},
        metadata={"source": "test"},
    )
    db_session.commit()

    read = schemas.AuditEventRead.model_validate(event)
    assert read.actor_name == "Sana XEN"
    assert read.after == {"comment_id": "c-1"}
    assert read.metadata == {"source": "test"}


def test_entity_id_is_stored_as_text(db_session):
    event = audit_services.log_event(
        db_session,
        actor_user_id=None,
        entity_type="work_request",
        entity_id=42,
        action=audit_services.REQUEST_CREATED,
    )
    assert event.entity_id == "42"


def test_list_audit_events_filters(db_session, make_user):
    actor = make_user("AEE")
    for entity_id, action, actor_id in (("a", "ADD_PAGE", actor.id), ("a", "DELETE_PAGE", None), ("b", "ADD_PAGE", None)):
        audit_services.log_event(
            db_session,
            actor_user_id=actor_id,
            entity_type="efiling_file",
            entity_id=entity_id,
            action=action,
        )
    db_session.commit()

    assert len(audit_services.list_audit_events(db_session, entity_id="a")) == 2
    assert len(audit_services.list_audit_events(db_session, action="ADD_PAGE")) == 2
    assert len(audit_services.list_audit_events(db_session, actor_user_id=actor.id)) == 1
    assert len(audit_services.list_audit_events(db_session, limit=1)) == 1


def test_file_history_includes_status_changes(db_session, make_user, make_file):
    creator = make_user("XEN")
    file = make_file(creator)
    audit_services.log_event(
        db_session,
        actor_user_id=creator.id,
        entity_type="efiling_file_status",
        entity_id=file.id,
        action="transition",
    )
    audit_services.log_event(
        db_session,
        actor_user_id=None,
        entity_type="work_request",
        entity_id=file.id,
        action=audit_services.REQUEST_CREATED,
    )
    db_session.commit()

    actions = [event.action for event in audit_services.file_history(db_session, file.id)]
    assert actions[0] == audit_services.FILE_CREATED
    assert "transition" in actions
    assert audit_services.REQUEST_CREATED not in actions


def test_non_critical_failures_are_swallowed(db_session, monkeypatch):
    def boom(db, **values):
        raise RuntimeError("db down")

    monkeypatch.setattr(audit_services, "_write_event", boom)

    assert (
        audit_services.log_event(
            db_session, actor_user_id=None, entity_type="efiling_file", entity_id="x", action="ADD_PAGE"
        )
        is None
    )
    with pytest.raises(RuntimeError):
        audit_services.log_event(
            db_session,
            actor_user_id=None,
            entity_type="efiling_file",
            entity_id="x",
            action="transition",
            critical=True,
        )
