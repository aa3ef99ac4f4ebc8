from __future__ import annotations

import pytest
from fastapi import HTTPException

from efiledb.apps.reference import models, schemas, services


def test_active_towns_and_subtowns(db_session, reference_data):
    assert [town.town for town in services.list_towns(db_session)] == ["Saddar"]
    names = [row.subtown for row in services.list_subtowns(db_session, town_id=reference_data.town.id)]
    assert names == ["Burns Road", "Garden"]


def test_divisions_filtering(db_session, reference_data, department):
    assert [d.id for d in services.list_divisions(db_session, is_active=True)] == [12]
    assert [d.id for d in services.list_divisions(db_session, department_id=department.id)] == [12]
    assert len(services.list_divisions(db_session)) == 2

    with pytest.raises(HTTPException) as exc:
        services.get_division_or_404(db_session, 99)
    assert exc.value.status_code == 404


def test_division_list_shape(db_session, reference_data):
    payload = schemas.DivisionList(
        divisions=[schemas.DivisionRead.model_validate(d) for d in services.list_divisions(db_session)]
    ).model_dump()

    assert payload["success"] is True
    assert payload["divisions"][0]["name"] == "Bulk Water"


def test_complaint_types_expose_division(db_session, reference_data):
    types = {t.id: t for t in services.list_complaint_types(db_session)}

    assert types[5].division_id == 12
    assert types[5].division_name == "Bulk Water"
    assert types[3].division_id is None
    assert [s.subtype_name for s in services.list_complaint_subtypes(db_session, complaint_type_id=3)] == ["Pothole"]


def test_agents_filtered_by_role_and_area(db_session, reference_data):
    engineers = services.list_agents(db_session, role=models.AgentRole.EXECUTIVE_ENGINEER)
    assert {a.name for a in engineers} == {"Asif (XEN Bulk)", "Bilal (XEN Saddar)"}

    by_division = services.list_agents(
        db_session, role=models.AgentRole.EXECUTIVE_ENGINEER, division_id=12, complaint_type_id=5
    )
    assert [a.id for a in by_division] == [reference_data.division_engineer.id]

    by_town = services.list_agents(db_session, role=1, town_id=reference_data.town.id)
    assert [a.id for a in by_town] == [reference_data.town_engineer.id]

    contractor = services.get_agent_or_404(db_session, reference_data.contractor.id)
    read = schemas.AgentRead.model_validate(contractor)
    assert read.role == models.AgentRole.CONTRACTOR
    assert read.town_name is None


def test_social_media_people(db_session, reference_data):
    assert [p.name for p in services.list_social_media_people(db_session)] == ["Desk Officer"]
