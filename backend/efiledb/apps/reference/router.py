# backend/efiledb/apps/reference/router.py
"""
Read-only lookups for the work-request intake cascade:
department -> division or town -> subtown -> executive engineers.
"""

from __future__ import annotations

from typing import List, Optional, Union

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from efiledb.database import get_read_db
from efiledb.security import get_current_active_user

from . import schemas, services

router = APIRouter(
    prefix="/api",
    tags=["reference"],
    dependencies=[Depends(get_current_active_user)],
)


@router.get("/towns", response_model=List[schemas.TownRead])
def list_towns(db: Session = Depends(get_read_db)):
    return services.list_towns(db)


@router.get("/towns/subtowns", response_model=List[schemas.SubtownRead])
def list_subtowns(town_id: Optional[int] = None, db: Session = Depends(get_read_db)):
    return services.list_subtowns(db, town_id=town_id)


@router.get("/complaints/getalltypes", response_model=List[schemas.ComplaintTypeRead])
def list_complaint_types(db: Session = Depends(get_read_db)):
    return services.list_complaint_types(db)


@router.get("/complaints/subtypes", response_model=List[schemas.ComplaintSubtypeRead])
def list_complaint_subtypes(
    complaint_type_id: Optional[int] = None,
    db: Session = Depends(get_read_db),
):
    return services.list_complaint_subtypes(db, complaint_type_id=complaint_type_id)


@router.get(
    "/efiling/divisions",
    response_model=Union[schemas.DivisionRead, schemas.DivisionList],
)
def list_divisions(
    id: Optional[int] = None,
    is_active: Optional[bool] = None,
    department_id: Optional[str] = None,
    db: Session = Depends(get_read_db),
):
    if id is not None:
        return schemas.DivisionRead.model_validate(services.get_division_or_404(db, id))
    divisions = services.list_divisions(db, is_active=is_active, department_id=department_id)
    return schemas.DivisionList(divisions=[schemas.DivisionRead.model_validate(d) for d in divisions])


@router.get("/agents", response_model=Union[schemas.AgentRead, List[schemas.AgentRead]])
def list_agents(
    id: Optional[int] = None,
    role: Optional[int] = None,
    town_id: Optional[int] = None,
    division_id: Optional[int] = None,
    complaint_type_id: Optional[int] = None,
    db: Session = Depends(get_read_db),
):
    if id is not None:
        return schemas.AgentRead.model_validate(services.get_agent_or_404(db, id))
    agents = services.list_agents(
        db,
        role=role,
        town_id=town_id,
        division_id=division_id,
        complaint_type_id=complaint_type_id,
    )
    return [schemas.AgentRead.model_validate(agent) for agent in agents]


@router.get("/socialmediaperson", response_model=List[schemas.SocialMediaPersonRead])
def list_social_media_people(db: Session = Depends(get_read_db)):
    return services.list_social_media_people(db)
