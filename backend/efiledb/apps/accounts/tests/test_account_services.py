from __future__ import annotations

import pytest
from fastapi import HTTPException
from jose import jwt

from efiledb import security
from efiledb.apps.accounts import schemas, services


def _new_user(department, **overrides):
    values = {
        "email": "New.Officer@KWSC.org",
        "full_name": "  Naveed Officer ",
        "department_id": department.id,
        "password": "correct-horse",
        "role_code": "aee",
    }
    values.update(overrides)
    return schemas.UserCreate(**values)


def test_create_user_hashes_and_normalises(db_session, department):
    services.ensure_role(db_session, "AEE", "Assistant Executive Engineer")

    user = services.create_user(db_session, _new_user(department))
    db_session.commit()

    assert user.email == "new.officer@kwsc.org"
    assert user.full_name == "Naveed Officer"
    assert user.role_code == "AEE"
    assert user.hashed_password.startswith("$argon2")
    assert services.get_user_by_email(db_session, "NEW.OFFICER@kwsc.org").id == user.id


def test_create_user_rejections(db_session, department):
    services.ensure_role(db_session, "AEE")
    services.create_user(db_session, _new_user(department))

    with pytest.raises(HTTPException) as duplicate:
        services.create_user(db_session, _new_user(department))
    assert duplicate.value.status_code == 409

    with pytest.raises(HTTPException) as bad_role:
        services.create_user(db_session, _new_user(department, email="b@kwsc.org", role_code="WIZARD"))
    assert bad_role.value.status_code == 400

    with pytest.raises(HTTPException) as bad_department:
        services.create_user(db_session, _new_user(department, email="c@kwsc.org", department_id="missing"))
    assert bad_department.value.detail == "Department not found"


def test_authenticate_and_token(db_session, department):
    services.ensure_role(db_session, "AEE")
    user = services.create_user(db_session, _new_user(department))
    db_session.commit()

    assert services.authenticate_user(db_session, email="new.officer@kwsc.org", password="wrong-pass") is None
    assert services.authenticate_user(db_session, email="nobody@kwsc.org", password="correct-horse") is None

    logged_in = services.authenticate_user(db_session, email=" New.Officer@kwsc.org", password="correct-horse")
    assert logged_in.id == user.id
    assert logged_in.last_login_at is not None

    token, expires_in = services.issue_access_token_for_user(user)
    claims = jwt.decode(token, security.SECRET_KEY, algorithms=[security.JWT_ALGORITHM])
    assert claims["sub"] == user.id
    assert claims["role"] == "AEE"
    assert expires_in == security.ACCESS_TOKEN_EXPIRE_MINUTES * 60


def test_inactive_user_cannot_log_in(db_session, department):
    services.ensure_role(db_session, "AEE")
    user = services.create_user(db_session, _new_user(department))
    user.is_active = False
    db_session.commit()

    assert services.authenticate_user(db_session, email=user.email, password="correct-horse") is None


def test_legacy_bcrypt_hash_still_verifies():
    import bcrypt

    legacy = bcrypt.hashpw(b"old-secret", bcrypt.gensalt()).decode("utf-8")

    assert security.verify_password("old-secret", legacy)
    assert not security.verify_password("other", legacy)
    assert not security.verify_password("old-secret", "plain-text")


def test_list_users_filters(db_session, make_user):
    xen = make_user("XEN", full_name="Zafar XEN")
    make_user("AEE", full_name="Amna AEE")
    make_user("AEE", full_name="Retired AEE", is_active=False)

    assert [u.full_name for u in services.list_users(db_session)] == ["Amna AEE", "Zafar XEN"]
    assert [u.id for u in services.list_users(db_session, role_code="xen")] == [xen.id]
    assert len(services.list_users(db_session, active_only=False, role_code="AEE")) == 2
    assert [u.full_name for u in services.list_users(db_session, search="zafar")] == ["Zafar XEN"]


def test_team_membership(db_session, make_user):
    manager = make_user("SE_WATER")
    assistant = make_user("AEE")

    with pytest.raises(HTTPException) as own:
        services.add_team_member(db_session, manager_id=manager.id, team_member_id=manager.id)
    assert own.value.status_code == 400

    with pytest.raises(HTTPException) as unknown:
        services.add_team_member(db_session, manager_id=manager.id, team_member_id="ghost")
    assert unknown.value.status_code == 404

    first = services.add_team_member(db_session, manager_id=manager.id, team_member_id=assistant.id, team_role="member")
    again = services.add_team_member(
        db_session, manager_id=manager.id, team_member_id=assistant.id, team_role="se_assistant"
    )
    db_session.commit()

    assert again.id == first.id
    assert again.team_role == "SE_ASSISTANT"
    assert services.get_team_member_ids(db_session, manager.id) == {assistant.id}
    assert services.is_team_member(db_session, manager.id, assistant.id)
    assert services.get_team_member_ids(db_session, None) == set()
    assert [m.team_member_id for m in services.list_team(db_session, manager.id)] == [assistant.id]


def test_assisted_manager_requires_assistant_role_and_se_or_ce(db_session, make_user):
    se = make_user("SE_WATER")
    xen = make_user("XEN")
    helper = make_user("AEE")

    services.add_team_member(db_session, manager_id=xen.id, team_member_id=helper.id, team_role="ASSISTANT")
    assert services.get_assisted_manager(db_session, helper.id) is None

    services.add_team_member(db_session, manager_id=se.id, team_member_id=helper.id, team_role="MEMBER")
    assert services.get_assisted_manager(db_session, helper.id) is None

    services.add_team_member(db_session, manager_id=se.id, team_member_id=helper.id, team_role="ASSISTANT")
    manager, team_role = services.get_assisted_manager(db_session, helper.id)
    assert manager.id == se.id
    assert team_role == "ASSISTANT"


def test_session_scope_rolls_back_on_error():
    from efiledb.apps.accounts import models
    from efiledb.database import Base, session_scope, write_engine

    Base.metadata.create_all(bind=write_engine)

    with pytest.raises(RuntimeError):
        with session_scope() as db:
            db.add(models.Department(code="TMP", name="Temporary"))
            db.flush()
            raise RuntimeError("abort")

    with session_scope() as db:
        assert db.query(models.Department).filter(models.Department.code == "TMP").count() == 0
