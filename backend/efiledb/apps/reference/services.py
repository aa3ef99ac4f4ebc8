# backend/efiledb/apps/reference/services.py

from __future__ import annotations

from typing import List, Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from . import models


def list_towns(db: Session) -> List[models.Town]:
    return (
        db.query(models.Town)
        .filter(models.Town.is_active.is_(True))
        .order_by(models.Town.town.asc())
        .all()
    )


def list_subtowns(db: Session, *, town_id: Optional[int] = None) -> List[models.Subtown]:
    query = db.query(models.Subtown)
    if town_id is not None:
        query = query.filter(models.Subtown.town_id == town_id)
    return query.order_by(models.Subtown.subtown.asc()).all()


def list_divisions(
    db: Session,
    *,
    is_active: Optional[bool] = None,
    department_id: Optional[str] = None,
) -> List[models.Division]:
    query = db.query(models.Division)
    if is_active is not None:
        query = query.filter(models.Division.is_active.is_(is_active))
    if department_id:
        query = query.filter(models.Division.department_id == department_id)
    return query.order_by(models.Division.name.asc()).all()


def get_division_or_404(db: Session, division_id: int) -> models.Division:
    division = db.get(models.Division, division_id)
    if not division:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Division not found")
    return division


def list_complaint_types(db: Session) -> List[models.ComplaintType]:
    return db.query(models.ComplaintType).order_by(models.ComplaintType.type_name.asc()).all()


def list_complaint_subtypes(
    db: Session, *, complaint_type_id: Optional[int] = None
) -> List[models.ComplaintSubtype]:
    query = db.query(models.ComplaintSubtype)
    if complaint_type_id is not None:
        query = query.filter(models.ComplaintSubtype.complaint_type_id == complaint_type_id)
    return query.order_by(models.ComplaintSubtype.subtype_name.asc()).all()


def list_agents(
    db: Session,
    *,
    role: Optional[int] = None,
    town_id: Optional[int] = None,
    division_id: Optional[int] = None,
    complaint_type_id: Optional[int] = None,
) -> List[models.Agent]:
    """
    Agents filtered server-side. The intake form asks for executive
    engineers (role 1) by town or division plus department.
    """
    query = db.query(models.Agent).filter(models.Agent.is_active.is_(True))
    if role is not None:
        query = query.filter(models.Agent.role == role)
    if town_id is not None:
        query = query.filter(models.Agent.town_id == town_id)
    if division_id is not None:
        query = query.filter(models.Agent.division_id == division_id)
    if complaint_type_id is not None:
        query = query.filter(models.Agent.complaint_type_id == complaint_type_id)
    return query.order_by(models.Agent.name.asc()).all()


def get_agent_or_404(db: Session, agent_id: int) -> models.Agent:
    agent = db.get(models.Agent, agent_id)
    if not agent:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Agent not found")
    return agent


def list_social_media_people(db: Session) -> List[models.SocialMediaPerson]:
    return (
        db.query(models.SocialMediaPerson)
        .filter(models.SocialMediaPerson.is_active.is_(True))
        .order_by(models.SocialMediaPerson.name.asc())
        .all()
    )
