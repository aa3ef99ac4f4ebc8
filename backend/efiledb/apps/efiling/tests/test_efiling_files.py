from __future__ import annotations

import pytest
from fastapi import HTTPException

from efiledb.apps.audit import models as audit_models
from efiledb.apps.efiling import models, schemas, services
from efiledb.apps.workflow import permissions
from efiledb.utils.timestamps import utcnow


def test_create_file_numbers_by_department_and_year(db_session, make_user, make_file):
    creator = make_user("XEN")

    first = make_file(creator, subject="Pipeline leakage")
    second = make_file(creator, subject="Pump replacement")

    year = utcnow().year
    assert first.file_number == f"WTR/{year}/0001"
    assert second.file_number == f"WTR/{year}/0002"
    assert first.status == models.FileStatus.DRAFT
    assert first.workflow_state == permissions.TEAM_INTERNAL
    assert first.is_within_team is True
    assert first.assigned_to is None

    sequence = db_session.query(models.FileNumberSequence).filter_by(prefix=f"WTR/{year}/").one()
    assert sequence.last_value == 2


def test_file_number_sequence_seeds_from_issued_numbers(db_session, make_user, department):
    creator = make_user("XEN")
    db_session.add(
        models.EfilingFile(
            file_number="WTR/2021/0041",
            subject="Imported file",
            department_id=department.id,
            created_by=creator.id,
        )
    )
    db_session.flush()

    assert services.next_file_number(db_session, department, 2021) == "WTR/2021/0042"
    assert services.next_file_number(db_session, department, 2021) == "WTR/2021/0043"
    assert services.next_file_number(db_session, department, 2022) == "WTR/2022/0001"


def test_create_file_starts_with_one_page(db_session, make_user, make_file):
    creator = make_user("XEN")

    file = make_file(creator, subject="Sewer overflow")

    pages = db_session.query(models.DocumentPage).filter_by(file_id=file.id).all()
    assert file.page_count == 1
    assert [page.page_number for page in pages] == [1]
    assert pages[0].content["subject"] == "Sewer overflow"

    event = db_session.query(audit_models.AuditEvent).filter_by(entity_id=file.id).one()
    assert event.action == "FILE_CREATED"


def test_create_file_rejects_unknown_department(db_session, make_user):
    creator = make_user("XEN")

    with pytest.raises(HTTPException) as exc:
        services.create_file(
            db_session,
            data=schemas.FileCreate(subject="Orphan", department_id="missing"),
            actor=creator,
        )
    assert exc.value.status_code == 400


def test_create_file_links_existing_work_request_only(db_session, make_user):
    creator = make_user("XEN")

    with pytest.raises(HTTPException) as exc:
        services.create_file(
            db_session,
            data=schemas.FileCreate(subject="From complaint", work_request_id=999),
            actor=creator,
        )
    assert exc.value.detail == "Work request not found"


def test_list_files_scopes_to_involved_users(db_session, make_user, make_file):
    creator = make_user("XEN")
    stranger = make_user("XEN")
    admin = make_user("SYS_ADMIN")
    file = make_file(creator, subject="Water tanker request")

    assert [f.id for f in services.list_files(db_session, user=creator)] == [file.id]
    assert services.list_files(db_session, user=stranger) == []
    assert [f.id for f in services.list_files(db_session, user=admin)] == [file.id]
    assert services.list_files(db_session, user=creator, scope="assigned") == []


def test_list_files_search_and_status_filter(db_session, make_user, make_file):
    creator = make_user("XEN")
    make_file(creator, subject="Water tanker request")
    make_file(creator, subject="Road repair")

    found = services.list_files(db_session, user=creator, search="tanker")
    assert [f.subject for f in found] == ["Water tanker request"]
    assert len(services.list_files(db_session, user=creator, status_filter="draft")) == 2

    with pytest.raises(HTTPException) as exc:
        services.list_files(db_session, user=creator, status_filter="archived")
    assert exc.value.status_code == 400


def test_file_detail_includes_sla_view(db_session, make_user, make_file):
    creator = make_user("XEN")
    file = make_file(creator)

    detail = services.file_detail(file)

    assert detail.sla.status == "TEAM_INTERNAL"
    assert detail.sla.deadline is None
    assert detail.department_name == "Water Supply"
