from __future__ import annotations

import pytest

from efiledb.apps.audit import models as audit_models
from efiledb.apps.workflow import TransitionError, allowed_targets, apply_transition, check_transition


def test_valid_transition_writes_audit_event(db_session):
    apply_transition(
        db_session,
        actor_user_id=None,
        entity_type="efiling_file",
        entity_id="file-1",
        from_state="TEAM_INTERNAL",
        to_state="EXTERNAL",
        before_obj={"assigned_to": None},
        after_obj={"sender_may_mark": True, "requires_signature": False},
    )

    event = db_session.query(audit_models.AuditEvent).one()
    assert event.action == "transition"
    assert event.before["state"] == "TEAM_INTERNAL"
    assert event.after["state"] == "EXTERNAL"


def test_unknown_transition_is_rejected(db_session):
    with pytest.raises(TransitionError) as exc:
        apply_transition(
            db_session,
            actor_user_id=None,
            entity_type="efiling_file_status",
            entity_id="file-1",
            from_state="COMPLETED",
            to_state="IN_PROGRESS",
            before_obj=None,
            after_obj=None,
        )
    assert exc.value.code == "invalid_transition"


def test_guards_report_missing_signature(db_session):
    with pytest.raises(TransitionError) as exc:
        apply_transition(
            db_session,
            actor_user_id=None,
            entity_type="efiling_file",
            entity_id="file-1",
            from_state="TEAM_INTERNAL",
            to_state="EXTERNAL",
            before_obj=None,
            after_obj={"sender_may_mark": True, "requires_signature": True, "sender_has_signed": False},
        )
    assert exc.value.code == "missing_requirements"
    assert exc.value.detail == [
        {"field": "signature", "reason": "E-signature required before marking forward"}
    ]


def test_completion_guard_requires_ceo(db_session):
    with pytest.raises(TransitionError) as exc:
        apply_transition(
            db_session,
            actor_user_id=None,
            entity_type="efiling_file_status",
            entity_id="file-1",
            from_state="IN_PROGRESS",
            to_state="COMPLETED",
            before_obj=None,
            after_obj={"completed_by_role": "SE", "in_review": True},
        )
    fields = [item["field"] for item in exc.value.detail]
    assert fields == ["completed_by_role"]


def test_allowed_targets_follow_registry():
    assert allowed_targets("efiling_file", "EXTERNAL") == ["EXTERNAL", "RETURNED_TO_CREATOR"]
    assert allowed_targets("efiling_file_status", "COMPLETED") == []
    assert allowed_targets("unknown", "DRAFT") == []


def test_check_transition_is_a_dry_run(db_session):
    failures = check_transition(
        db_session,
        entity_type="efiling_file",
        from_state="TEAM_INTERNAL",
        to_state="EXTERNAL",
        before_obj=None,
        after_obj={"sender_may_mark": False},
    )

    assert failures == [{"field": "from_user_id", "reason": "Not assigned to file"}]
    assert db_session.query(audit_models.AuditEvent).count() == 0


def test_conflict_payload():
    error = TransitionError(code="missing_requirements", detail=[{"field": "signature", "reason": "x"}])
    assert error.as_detail() == {"code": "missing_requirements", "errors": [{"field": "signature", "reason": "x"}]}
