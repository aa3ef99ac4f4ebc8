from __future__ import annotations

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from efiledb import security
from efiledb.apps.accounts import models as account_models
from efiledb.apps.accounts import services as account_services
from efiledb.database import Base, get_read_db, get_write_db
from efiledb.main import app


@pytest.fixture()
def api():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSession = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

    def override_db():
        db = TestingSession()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_write_db] = override_db
    app.dependency_overrides[get_read_db] = override_db

    db = TestingSession()
    department = account_models.Department(code="WTR", name="Water Supply")
    db.add(department)
    db.flush()
    role = account_services.ensure_role(db, "XEN", "Executive Engineer")
    db.add(
        account_models.User(
            email="xen@kwsc.org",
            full_name="Sana XEN",
            phone="03001112222",
            role_id=role.id,
            department_id=department.id,
            is_active=True,
            hashed_password=security.get_password_hash("correct-horse"),
        )
    )
    db.commit()
    db.close()

    try:
        with TestClient(app) as client:
            yield client
    finally:
        app.dependency_overrides.clear()
        engine.dispose()


def _login(client):
    response = client.post("/auth/login", json={"email": "xen@kwsc.org", "password": "correct-horse"})
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


def test_health(api):
    assert api.get("/health").json() == {"status": "ok"}


def test_login_failures_and_auth_required(api):
    response = api.post("/auth/login", json={"email": "xen@kwsc.org", "password": "wrong-horse"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Incorrect email or password."
    assert api.get("/api/efiling/files").status_code == 401


def test_create_file_and_read_permissions(api):
    headers = _login(api)
    assert api.get("/auth/me", headers=headers).json()["role_code"] == "XEN"

    created = api.post("/api/efiling/files", json={"subject": "Pump house repair"}, headers=headers)
    assert created.status_code == 201
    file = created.json()
    assert file["file_number"].startswith("WTR/")

    perms = api.get(f"/api/efiling/files/{file['id']}/permissions", headers=headers).json()
    assert perms["canEdit"] is True
    assert perms["workflow_state"] == "TEAM_INTERNAL"
    assert "affordances" in perms
    assert perms["next_states"] == ["EXTERNAL", "RETURNED_TO_CREATOR", "TEAM_INTERNAL"]

    pages = api.get(f"/api/efiling/files/{file['id']}/pages", headers=headers).json()
    page_id = pages["pages"][0]["id"]
    refused = api.delete(f"/api/efiling/files/{file['id']}/pages/{page_id}", headers=headers)
    assert refused.status_code == 400


def test_file_history_endpoint(api):
    headers = _login(api)
    file = api.post("/api/efiling/files", json={"subject": "Valve replacement"}, headers=headers).json()

    history = api.get(f"/api/efiling/audit/files/{file['id']}", headers=headers)

    assert history.status_code == 200
    assert history.json()[0]["action"] == "FILE_CREATED"
    assert history.json()[0]["actor_name"] == "Sana XEN"
    assert api.get("/api/efiling/audit/files/missing", headers=headers).status_code == 404
