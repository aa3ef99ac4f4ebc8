from __future__ import annotations

import pytest
from fastapi import HTTPException

from efiledb import security
from efiledb.apps.audit import models as audit_models
from efiledb.apps.efiling import marking
from efiledb.apps.efiling import services as efiling_services
from efiledb.apps.signatures import models, schemas, services
from efiledb.apps.workflow import permissions


def _stage(db_session, file, user, **payload):
    payload.setdefault("type", "text")
    payload.setdefault("content", "A. Khan")
    return services.stage_signature(
        db_session, file=file, data=schemas.SignatureCreate(**payload), actor=user
    )


def test_stage_then_commit_records_signature(db_session, make_user, make_file):
    creator = make_user("XEN")
    file = make_file(creator)

    stage = _stage(db_session, file, creator, font="Dancing Script", position={"page": 1})
    token, jti, _expires = security.create_verification_token(user_id=creator.id, method="sms")
    signature = services.commit_signature(
        db_session, file=file, stage_id=stage.id, verification_token=token, actor=creator
    )
    db_session.commit()

    assert signature.is_active is True
    assert signature.type == models.SignatureKind.TEXT
    assert signature.font == "Dancing Script"
    assert signature.position == {"page": 1}
    assert signature.verification_method == "sms"
    assert signature.verification_jti == jti
    assert stage.committed_at is not None
    assert [s.id for s in services.list_file_signatures(db_session, file.id)] == [signature.id]

    event = (
        db_session.query(audit_models.AuditEvent)
        .filter_by(entity_id=file.id, action="ADD_SIGNATURE")
        .one()
    )
    assert event.metadata_json == {"verification_method": "sms"}


def test_verification_token_is_single_use(db_session, make_user, make_file):
    creator = make_user("XEN")
    file = make_file(creator)
    token, _jti, _expires = security.create_verification_token(user_id=creator.id, method="email")
    stage = _stage(db_session, file, creator)
    services.commit_signature(db_session, file=file, stage_id=stage.id, verification_token=token, actor=creator)
    db_session.commit()

    with pytest.raises(HTTPException) as exc:
        services.commit_signature(
            db_session, file=file, stage_id=stage.id, verification_token=token, actor=creator
        )
    assert exc.value.status_code == 403
    assert exc.value.detail == "Verification token has already been used"


def test_token_for_another_user_is_rejected(db_session, make_user, make_file):
    creator = make_user("XEN")
    other = make_user("AEE")
    file = make_file(creator)
    stage = _stage(db_session, file, creator)
    token, _jti, _expires = security.create_verification_token(user_id=other.id, method="sms")

    with pytest.raises(HTTPException) as exc:
        services.commit_signature(
            db_session, file=file, stage_id=stage.id, verification_token=token, actor=creator
        )
    assert exc.value.status_code == 403


def test_cannot_sign_twice_without_mark_back(db_session, make_user, make_file, sign_file):
    creator = make_user("XEN")
    file = make_file(creator)
    sign_file(file, creator)

    with pytest.raises(HTTPException) as exc:
        _stage(db_session, file, creator)
    assert exc.value.status_code == 409
    assert exc.value.detail == services.ALREADY_SIGNED_DETAIL


def test_resign_after_mark_back_replaces_previous(db_session, make_user, make_file, sign_file):
    creator = make_user("XEN")
    se = make_user("SE")
    file = make_file(creator)
    first = sign_file(file, creator)
    marking.mark_to(db_session, file=file, actor=creator, user_ids=[se.id])
    db_session.commit()
    sign_file(file, se)
    marking.mark_to(db_session, file=file, actor=se, user_ids=[creator.id])
    db_session.commit()

    second = sign_file(file, creator, content="A. Khan (revised)")

    db_session.refresh(first)
    assert first.is_active is False
    assert second.is_active is True
    active_users = [s.user_id for s in services.list_file_signatures(db_session, file.id)]
    assert sorted(active_users) == sorted([creator.id, se.id])


def test_image_signature_requires_data_url(db_session, make_user, make_file):
    creator = make_user("XEN")
    file = make_file(creator)

    with pytest.raises(HTTPException) as exc:
        _stage(db_session, file, creator, type="image", content="https://example.com/sig.png")
    assert exc.value.status_code == 400

    stage = _stage(db_session, file, creator, type="image", content="/uploads/signatures/u/sig.png")
    assert stage.payload["type"] == "image"


def test_creator_cannot_sign_while_file_is_external(db_session, make_user, make_file, sign_file):
    creator = make_user("XEN")
    se = make_user("SE")
    file = make_file(creator)
    sign_file(file, creator)
    marking.mark_to(db_session, file=file, actor=creator, user_ids=[se.id])
    db_session.commit()

    with pytest.raises(HTTPException) as exc:
        _stage(db_session, file, creator)
    assert exc.value.status_code == 403


def test_forwarded_signer_signs_again_after_return(db_session, make_user, make_file, sign_file):
    creator = make_user("XEN")
    se = make_user("SE")
    ce = make_user("CE")
    file = make_file(creator)
    sign_file(file, creator)
    marking.mark_to(db_session, file=file, actor=creator, user_ids=[se.id])
    db_session.commit()
    sign_file(file, se)
    marking.mark_to(db_session, file=file, actor=se, user_ids=[ce.id])
    db_session.commit()

    with pytest.raises(HTTPException):
        _stage(db_session, file, se)

    sign_file(file, ce)
    marking.mark_to(db_session, file=file, actor=ce, user_ids=[se.id])
    db_session.commit()

    perms = efiling_services.get_permissions(db_session, file, se)
    assert perms.can_sign_again is True
    assert permissions.derive_affordances(perms).can_sign is True
    second = sign_file(file, se, content="S. Engineer (again)")
    assert second.user_id == se.id

    perms = efiling_services.get_permissions(db_session, file, se)
    assert perms.can_sign_again is False
    assert permissions.derive_affordances(perms).reasons["sign"] == "Already signed"
