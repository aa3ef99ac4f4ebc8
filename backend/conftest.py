from __future__ import annotations

import os
import sys
import tempfile
from itertools import count
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

ROOT = Path(__file__).resolve().parent
sys.path.append(str(ROOT))

os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["DATABASE_WRITE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ.setdefault("EFILING_UPLOAD_DIR", tempfile.mkdtemp(prefix="efiledb-uploads-"))
os.environ["NOTIFICATIONS_SMS_PROVIDER"] = "none"
os.environ["NOTIFICATIONS_EMAIL_PROVIDER"] = "none"
os.environ["EFILING_IDENTITY_VERIFIER"] = "none"

import efiledb  # noqa: E402,F401  registers every model on Base.metadata
from efiledb.database import Base  # noqa: E402
from efiledb.apps.accounts import models as account_models  # noqa: E402
from efiledb.apps.accounts import services as account_services  # noqa: E402
from efiledb.apps.efiling import schemas as efiling_schemas  # noqa: E402
from efiledb.apps.efiling import services as efiling_services  # noqa: E402


@pytest.fixture()
def db_session():
    engine = create_engine("sqlite+pysqlite:///:memory:")
    Base.metadata.create_all(bind=engine)
    TestingSession = sessionmaker(
        bind=engine,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
    )
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture()
def department(db_session):
    dept = account_models.Department(code="WTR", name="Water Supply")
    db_session.add(dept)
    db_session.commit()
    return dept


@pytest.fixture()
def make_user(db_session, department):
    """Factory: make_user("AEE") -> active user with that role in the test department."""
    seq = count(1)

    def _make(role_code: str = "AEE", *, full_name=None, department_id=None, is_superuser=False, is_active=True):
        n = next(seq)
        role = account_services.ensure_role(db_session, role_code, role_code)
        user = account_models.User(
            email=f"user{n}@example.com",
            full_name=full_name or f"{role_code} User {n}",
            phone=f"0300000000{n}",
            hashed_password="x",
            role_id=role.id,
            department_id=department_id or department.id,
            is_superuser=is_superuser,
            is_active=is_active,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make


@pytest.fixture()
def make_file(db_session):
    def _make(creator, subject: str = "Road repair in block 7", **kwargs):
        file = efiling_services.create_file(
            db_session,
            data=efiling_schemas.FileCreate(subject=subject, **kwargs),
            actor=creator,
        )
        db_session.commit()
        db_session.refresh(file)
        return file

    return _make


@pytest.fixture()
def sign_file(db_session):
    """Stage and commit a typed signature the way verify-auth + sign do."""
    from efiledb import security
    from efiledb.apps.signatures import schemas as signature_schemas
    from efiledb.apps.signatures import services as signature_services

    def _sign(file, user, content: str = "Signed"):
        stage = signature_services.stage_signature(
            db_session,
            file=file,
            data=signature_schemas.SignatureCreate(type="text", content=content),
            actor=user,
        )
        token, _jti, _expires = security.create_verification_token(user_id=user.id, method="sms")
        signature = signature_services.commit_signature(
            db_session,
            file=file,
            stage_id=stage.id,
            verification_token=token,
            actor=user,
        )
        db_session.commit()
        return signature

    return _sign


@pytest.fixture()
def reference_data(db_session, department):
    """
    Lookup rows for the intake form: a division-based department (id 5,
    division 12) and a town-based one (id 3).
    """
    from types import SimpleNamespace

    from efiledb.apps.reference import models as reference_models

    town = reference_models.Town(town="Saddar")
    other_town = reference_models.Town(town="Korangi", is_active=False)
    db_session.add_all([town, other_town])
    db_session.flush()
    subtowns = [
        reference_models.Subtown(town_id=town.id, subtown="Garden"),
        reference_models.Subtown(town_id=town.id, subtown="Burns Road"),
    ]
    division = reference_models.Division(id=12, name="Bulk Water", code="BW", department_id=department.id)
    retired = reference_models.Division(id=13, name="Old Works", code="OW", is_active=False)
    water = reference_models.ComplaintType(id=5, type_name="Water Supply", division_id=12)
    roads = reference_models.ComplaintType(id=3, type_name="Roads")
    db_session.add_all(subtowns + [division, retired, water, roads])
    db_session.flush()
    subtype = reference_models.ComplaintSubtype(complaint_type_id=3, subtype_name="Pothole")
    division_engineer = reference_models.Agent(
        name="Asif (XEN Bulk)", role=reference_models.AgentRole.EXECUTIVE_ENGINEER, division_id=12, complaint_type_id=5
    )
    town_engineer = reference_models.Agent(
        name="Bilal (XEN Saddar)", role=reference_models.AgentRole.EXECUTIVE_ENGINEER, town_id=town.id, complaint_type_id=3
    )
    contractor = reference_models.Agent(name="Crescent Builders", role=reference_models.AgentRole.CONTRACTOR)
    inactive_engineer = reference_models.Agent(
        name="Dawood (retired)", role=reference_models.AgentRole.EXECUTIVE_ENGINEER, town_id=town.id, is_active=False
    )
    sm_person = reference_models.SocialMediaPerson(name="Desk Officer")
    db_session.add_all([subtype, division_engineer, town_engineer, contractor, inactive_engineer, sm_person])
    db_session.commit()
    return SimpleNamespace(
        town=town,
        subtowns=subtowns,
        division=division,
        water=water,
        roads=roads,
        subtype=subtype,
        division_engineer=division_engineer,
        town_engineer=town_engineer,
        contractor=contractor,
        sm_person=sm_person,
    )
