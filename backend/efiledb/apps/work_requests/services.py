# backend/efiledb/apps/work_requests/services.py

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from fastapi import HTTPException, status
from sqlalchemy import or_
from sqlalchemy.orm import Session

from efiledb.apps.accounts import models as account_models
from efiledb.apps.audit import services as audit_services
from efiledb.apps.reference import models as reference_models

from . import intake, models, schemas

logger = logging.getLogger(__name__)

SERVER_REQUIRED_FIELDS = (
    "complaint_type_id",
    "contact_number",
    "address",
    "description",
    "creator_id",
    "creator_type",
)


def _bad_request(detail: Any) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


def get_department(db: Session, complaint_type_id: Any) -> Optional[reference_models.ComplaintType]:
    type_id = intake.normalize_int(complaint_type_id)
    if type_id is None:
        return None
    return db.get(reference_models.ComplaintType, type_id)


def intake_form(db: Session, *, complaint_type_id: Any = None) -> schemas.IntakeFormRead:
    department = get_department(db, complaint_type_id)
    if complaint_type_id not in (None, "") and department is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Department not found")
    mode = intake.intake_mode(department)
    return schemas.IntakeFormRead(
        mode=mode.value,
        department_id=department.id if department else None,
        division_id=department.division_id if department else None,
        fields=[field.as_dict() for field in intake.build_layout(mode)],
    )


def _check_creator(db: Session, creator_type: str, creator_id: str) -> Optional[reference_models.Agent]:
    """Returns the agent row for agent creators; raises 400 when the creator is unknown."""
    if creator_type == models.CreatorType.USER.value:
        found = db.get(account_models.User, creator_id) is not None
        agent = None
    else:
        number = intake.normalize_int(creator_id)
        if creator_type == models.CreatorType.AGENT.value:
            agent = db.get(reference_models.Agent, number) if number is not None else None
            found = agent is not None
        else:
            agent = None
            found = number is not None and db.get(reference_models.SocialMediaPerson, number) is not None
    if not found:
        raise _bad_request({"error": f"Invalid {creator_type} ID", "received": creator_id})
    return agent


def _check_server_rules(payload: Dict[str, Any]) -> None:
    missing = [field for field in SERVER_REQUIRED_FIELDS if payload.get(field) in (None, "")]
    if payload.get("town_id") is None and payload.get("division_id") is None:
        missing.insert(0, "town_id")
    if missing:
        raise _bad_request({"error": "Missing required fields", "details": missing})

    allowed = [item.value for item in models.CreatorType]
    if payload["creator_type"] not in allowed:
        raise _bad_request(
            {
                "error": "Invalid creator type. Must be user, agent, or socialmedia",
                "received": payload["creator_type"],
            }
        )


def create_request(
    db: Session,
    *,
    data: schemas.WorkRequestCreate,
    actor: account_models.User,
) -> models.WorkRequest:
    values = data.model_dump()
    department = get_department(db, values.get("complaint_type_id"))
    mode = intake.intake_mode(department)
    payload = intake.normalize_submission(values, mode, department)

    errors = intake.validate(payload, mode)
    if errors:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"message": "Validation failed", "errors": errors},
        )

    if payload.get("creator_id") is not None:
        payload["creator_id"] = str(payload["creator_id"]).strip()
    _check_server_rules(payload)
    if department is None:
        raise _bad_request({"error": "Department not found", "received": payload["complaint_type_id"]})

    creator_type = payload["creator_type"]
    agent = _check_creator(db, creator_type, payload["creator_id"])
    executive_engineer_id = payload["executive_engineer_id"]
    contractor_id = payload["contractor_id"]
    if agent is not None:
        if agent.role == reference_models.AgentRole.CONTRACTOR:
            contractor_id = agent.id
        elif agent.role == reference_models.AgentRole.EXECUTIVE_ENGINEER:
            executive_engineer_id = agent.id

    request = models.WorkRequest(
        complaint_type_id=payload["complaint_type_id"],
        complaint_subtype_id=payload["complaint_subtype_id"],
        town_id=payload["town_id"],
        subtown_id=payload["subtown_id"],
        division_id=payload["division_id"],
        contact_number=payload["contact_number"],
        address=payload["address"],
        description=payload["description"],
        nature_of_work=payload.get("nature_of_work") or None,
        file_type=payload.get("file_type") or None,
        budget_code=payload.get("budget_code") or None,
        latitude=payload.get("latitude"),
        longitude=payload.get("longitude"),
        executive_engineer_id=executive_engineer_id,
        contractor_id=contractor_id,
        creator_id=payload["creator_id"],
        creator_type=creator_type,
        status="Pending",
    )
    # Subtown links only make sense for town-based requests.
    if payload["division_id"] is None:
        for subtown_id in dict.fromkeys(payload["subtown_ids"]):
            request.subtowns.append(models.WorkRequestSubtown(subtown_id=subtown_id))
    for agent_id in dict.fromkeys(payload["assigned_sm_agents"]):
        request.sm_agents.append(models.WorkRequestSmAgent(socialmedia_agent_id=agent_id))
    for location in payload.get("additional_locations") or []:
        if location.get("latitude") is None or location.get("longitude") is None:
            continue
        request.locations.append(
            models.WorkRequestLocation(
                latitude=location["latitude"],
                longitude=location["longitude"],
                description=location.get("description"),
            )
        )
    db.add(request)
    db.flush()

    audit_services.log_event(
        db,
        actor_user_id=actor.id,
        entity_type="work_request",
        entity_id=str(request.id),
        action=audit_services.REQUEST_CREATED,
        after={
            "complaint_type_id": request.complaint_type_id,
            "mode": mode.value,
            "creator_type": creator_type,
            "creator_id": request.creator_id,
        },
    )
    logger.info(
        "Work request created",
        extra={"request_id": request.id, "mode": mode.value, "creator_type": creator_type},
    )
    return request


def get_request_or_404(db: Session, request_id: int) -> models.WorkRequest:
    request = db.get(models.WorkRequest, request_id)
    if not request:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Request not found")
    return request


def list_requests(
    db: Session,
    *,
    page: int = 1,
    limit: int = 20,
    search: Optional[str] = None,
    status_filter: Optional[str] = None,
    creator_id: Optional[str] = None,
    creator_type: Optional[str] = None,
    complaint_type_id: Optional[int] = None,
) -> Tuple[List[models.WorkRequest], int]:
    """
    Paged listing. For an agent creator the filter matches the requests the
    agent is assigned to as contractor or executive engineer.
    """
    query = db.query(models.WorkRequest)
    if creator_id and creator_type == models.CreatorType.AGENT.value:
        agent_id = intake.normalize_int(creator_id)
        query = query.filter(
            or_(
                models.WorkRequest.contractor_id == agent_id,
                models.WorkRequest.executive_engineer_id == agent_id,
            )
        )
    elif creator_id and creator_type:
        query = query.filter(
            models.WorkRequest.creator_id == str(creator_id),
            models.WorkRequest.creator_type == creator_type,
        )
    if status_filter:
        query = query.filter(models.WorkRequest.status == status_filter)
    if complaint_type_id is not None:
        query = query.filter(models.WorkRequest.complaint_type_id == complaint_type_id)
    if search:
        like = f"%{search.strip()}%"
        query = query.filter(
            or_(
                models.WorkRequest.address.ilike(like),
                models.WorkRequest.description.ilike(like),
                models.WorkRequest.contact_number.ilike(like),
            )
        )

    total = query.count()
    rows = (
        query.order_by(models.WorkRequest.created_at.desc(), models.WorkRequest.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return rows, total
