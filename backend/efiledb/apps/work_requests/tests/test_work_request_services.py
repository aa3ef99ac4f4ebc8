from __future__ import annotations

import pytest
from fastapi import HTTPException

from efiledb.apps.audit import models as audit_models
from efiledb.apps.work_requests import intake, schemas, services


def _payload(**overrides):
    values = {
        "complaint_type_id": "3",
        "contact_number": "03001234567",
        "address": "Plot 4, Block B",
        "description": "Main line leaking",
        "nature_of_work": "Pipe repair",
        "creator_type": "socialmedia",
    }
    values.update(overrides)
    return schemas.WorkRequestCreate(**values)


def test_intake_form_modes(db_session, reference_data):
    division_form = services.intake_form(db_session, complaint_type_id="5")
    assert division_form.mode == "division"
    assert division_form.division_id == 12
    assert "division_id" in [f["name"] for f in division_form.fields]

    town_form = services.intake_form(db_session, complaint_type_id=3)
    assert town_form.mode == "town"
    assert town_form.division_id is None

    assert services.intake_form(db_session).mode == "town"

    with pytest.raises(HTTPException) as exc:
        services.intake_form(db_session, complaint_type_id="99")
    assert exc.value.status_code == 404


def test_division_request_drops_town_fields(db_session, reference_data, make_user):
    actor = make_user("CLERK")
    data = _payload(
        complaint_type_id="5",
        town_id=reference_data.town.id,
        subtown_ids=[s.id for s in reference_data.subtowns],
        creator_id=reference_data.sm_person.id,
    )

    request = services.create_request(db_session, data=data, actor=actor)
    db_session.commit()

    assert request.division_id == 12
    assert request.town_id is None
    assert request.subtown_ids == []
    assert request.creator_id == str(reference_data.sm_person.id)
    assert request.status == "Pending"
    events = (
        db_session.query(audit_models.AuditEvent)
        .filter(audit_models.AuditEvent.entity_type == "work_request")
        .all()
    )
    assert events[0].entity_id == str(request.id)
    assert events[0].after["mode"] == "division"


def test_town_request_links_deduplicated(db_session, reference_data, make_user):
    actor = make_user("CLERK")
    first, second = reference_data.subtowns
    data = _payload(
        town_id=str(reference_data.town.id),
        subtown_ids=[first.id, first.id, second.id],
        assigned_sm_agents=[reference_data.sm_person.id, reference_data.sm_person.id],
        additional_locations=[
            {"latitude": 24.86, "longitude": 67.01, "description": "Gate"},
            {"latitude": 24.87},
        ],
        creator_type="user",
        creator_id=actor.id,
    )

    request = services.create_request(db_session, data=data, actor=actor)
    db_session.commit()

    read = schemas.WorkRequestRead.model_validate(request)
    assert read.town_name == "Saddar"
    assert read.division_id is None
    assert sorted(read.subtown_ids) == sorted([first.id, second.id])
    assert read.assigned_sm_agents == [reference_data.sm_person.id]
    assert [(loc.latitude, loc.description) for loc in read.locations] == [(24.86, "Gate")]


def test_field_errors_are_422(db_session, reference_data, make_user):
    data = _payload(contact_number="123", address=" ")

    with pytest.raises(HTTPException) as exc:
        services.create_request(db_session, data=data, actor=make_user("CLERK"))

    assert exc.value.status_code == 422
    assert exc.value.detail["message"] == "Validation failed"
    assert exc.value.detail["errors"] == {
        "town_id": intake.TOWN_REQUIRED,
        "contact_number": intake.PHONE_INVALID,
        "address": intake.ADDRESS_REQUIRED,
    }


def test_missing_creator_is_400(db_session, reference_data, make_user):
    data = _payload(town_id=reference_data.town.id, creator_type=None)

    with pytest.raises(HTTPException) as exc:
        services.create_request(db_session, data=data, actor=make_user("CLERK"))

    assert exc.value.status_code == 400
    assert exc.value.detail == {"error": "Missing required fields", "details": ["creator_id", "creator_type"]}


def test_invalid_creator_type(db_session, reference_data, make_user):
    data = _payload(town_id=reference_data.town.id, creator_type="robot", creator_id="1")

    with pytest.raises(HTTPException) as exc:
        services.create_request(db_session, data=data, actor=make_user("CLERK"))

    assert exc.value.status_code == 400
    assert exc.value.detail["received"] == "robot"


def test_unknown_agent_creator(db_session, reference_data, make_user):
    data = _payload(town_id=reference_data.town.id, creator_type="agent", creator_id=999)

    with pytest.raises(HTTPException) as exc:
        services.create_request(db_session, data=data, actor=make_user("CLERK"))

    assert exc.value.detail == {"error": "Invalid agent ID", "received": "999"}


def test_agent_creator_fills_assignment(db_session, reference_data, make_user):
    actor = make_user("CLERK")
    contractor = reference_data.contractor
    engineer = reference_data.town_engineer

    by_contractor = services.create_request(
        db_session,
        data=_payload(town_id=reference_data.town.id, creator_type="agent", creator_id=str(contractor.id)),
        actor=actor,
    )
    by_engineer = services.create_request(
        db_session,
        data=_payload(
            town_id=reference_data.town.id,
            creator_type="agent",
            creator_id=engineer.id,
            description="Sewer overflow",
        ),
        actor=actor,
    )
    db_session.commit()

    assert by_contractor.contractor_id == contractor.id
    assert by_engineer.executive_engineer_id == engineer.id

    rows, total = services.list_requests(db_session, creator_id=str(contractor.id), creator_type="agent")
    assert total == 1 and rows[0].id == by_contractor.id

    rows, total = services.list_requests(db_session, search="sewer")
    assert [row.id for row in rows] == [by_engineer.id]

    rows, total = services.list_requests(db_session, page=2, limit=1)
    assert total == 2 and len(rows) == 1

    with pytest.raises(HTTPException) as exc:
        services.get_request_or_404(db_session, 12345)
    assert exc.value.detail == "Request not found"
