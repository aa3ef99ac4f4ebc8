# backend/efiledb/apps/efiling/services.py

"""
File registry services and the bridge between ORM rows and the pure
permission resolver in efiledb.apps.workflow.permissions.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import FrozenSet, List, Optional

from fastapi import HTTPException, status
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from efiledb import security
from efiledb.apps.accounts import models as account_models
from efiledb.apps.accounts import services as account_services
from efiledb.apps.audit import services as audit_services
from efiledb.apps.notifications import service as notification_service
from efiledb.apps.signatures import models as signature_models
from efiledb.apps.work_requests import models as request_models
from efiledb.apps.workflow import apply_transition, permissions
from efiledb.utils.identifiers import format_file_number
from efiledb.utils.timestamps import as_utc, utcnow

from . import models, schemas, sla

logger = logging.getLogger(__name__)


def _forbidden(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


def enum_value(value) -> Optional[str]:
    if value is None:
        return None
    return getattr(value, "value", value)


# ---------------------------------------------------------------------------
# Lookup
# ---------------------------------------------------------------------------


def get_file_or_404(db: Session, file_id: str) -> models.EfilingFile:
    file = db.get(models.EfilingFile, file_id)
    if not file:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")
    return file


def get_latest_movement(db: Session, file_id: str) -> Optional[models.FileMovement]:
    return (
        db.query(models.FileMovement)
        .filter(models.FileMovement.file_id == file_id)
        .order_by(models.FileMovement.created_at.desc(), models.FileMovement.id.desc())
        .first()
    )


def get_signer_ids(db: Session, file_id: str) -> FrozenSet[str]:
    rows = (
        db.query(signature_models.FileSignature.user_id)
        .filter(
            signature_models.FileSignature.file_id == file_id,
            signature_models.FileSignature.is_active.is_(True),
        )
        .all()
    )
    return frozenset(row[0] for row in rows if row[0])


def get_resign_ids(db: Session, file_id: str) -> FrozenSet[str]:
    """Signers the file was marked to after their latest active signature."""
    last_signed = dict(
        db.query(
            signature_models.FileSignature.user_id,
            func.max(signature_models.FileSignature.timestamp),
        )
        .filter(
            signature_models.FileSignature.file_id == file_id,
            signature_models.FileSignature.is_active.is_(True),
        )
        .group_by(signature_models.FileSignature.user_id)
        .all()
    )
    if not last_signed:
        return frozenset()
    last_received = (
        db.query(models.FileMovement.to_user_id, func.max(models.FileMovement.created_at))
        .filter(
            models.FileMovement.file_id == file_id,
            models.FileMovement.to_user_id.in_(list(last_signed)),
        )
        .group_by(models.FileMovement.to_user_id)
        .all()
    )
    return frozenset(
        user_id
        for user_id, received_at in last_received
        if received_at is not None and as_utc(received_at) > as_utc(last_signed[user_id])
    )


def marked_user_ids(db: Session, file_id: str) -> List[str]:
    rows = (
        db.query(models.FileMovement.to_user_id)
        .filter(models.FileMovement.file_id == file_id, models.FileMovement.to_user_id.isnot(None))
        .distinct()
        .all()
    )
    return [row[0] for row in rows]


# ---------------------------------------------------------------------------
# Permission contexts
# ---------------------------------------------------------------------------


def build_file_context(db: Session, file: models.EfilingFile) -> permissions.FileContext:
    movement = get_latest_movement(db, file.id)
    movement_ctx = None
    if movement is not None:
        movement_ctx = permissions.MovementContext(
            from_user_id=movement.from_user_id,
            to_user_id=movement.to_user_id,
            from_role_code=movement.from_user.role_code if movement.from_user else "",
            is_return_to_creator=bool(movement.is_return_to_creator),
        )
    return permissions.FileContext(
        file_id=file.id,
        created_by=file.created_by,
        assigned_to=file.assigned_to,
        workflow_state=file.workflow_state,
        is_within_team=file.is_within_team,
        creator_team_member_ids=frozenset(account_services.get_team_member_ids(db, file.created_by)),
        latest_movement=movement_ctx,
        signer_ids=get_signer_ids(db, file.id),
        resign_ids=get_resign_ids(db, file.id),
    )


def build_user_context(db: Session, user: account_models.User) -> permissions.UserContext:
    assisted = account_services.get_assisted_manager(db, user.id)
    manager, team_role = assisted if assisted else (None, None)
    return permissions.UserContext(
        user_id=user.id,
        role_code=user.role_code,
        department_name=user.department_name,
        is_superuser=security.is_admin_user(user),
        team_role=team_role,
        manager_id=manager.id if manager else None,
        manager_role_code=manager.role_code if manager else None,
    )


def get_permissions(
    db: Session, file: models.EfilingFile, user: account_models.User
) -> permissions.PermissionSet:
    return permissions.resolve_permissions(build_file_context(db, file), build_user_context(db, user))


def require_not_at_higher_level(perms: permissions.PermissionSet, action: str) -> None:
    if perms.is_file_at_higher_level and not perms.is_admin:
        raise _forbidden(f"Cannot {action} while the file is with a higher authority")


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


def _highest_issued(db: Session, prefix: str) -> int:
    rows = (
        db.query(models.EfilingFile.file_number)
        .filter(models.EfilingFile.file_number.like(f"{prefix}%"))
        .all()
    )
    highest = 0
    for (number,) in rows:
        tail = number.rsplit("/", 1)[-1]
        if tail.isdigit():
            highest = max(highest, int(tail))
    return highest


def next_file_number(db: Session, department: account_models.Department, year: int) -> str:
    """
    Reserve the next `DEPT/YEAR/NNNN` number.

    The prefix's sequence row is locked until the caller commits. A missing
    row is seeded from the numbers already issued under that prefix.
    """
    code = (department.code or "GEN").upper()
    prefix = f"{code}/{year}/"
    sequence = (
        db.query(models.FileNumberSequence)
        .filter(models.FileNumberSequence.prefix == prefix)
        .with_for_update()
        .first()
    )
    if sequence is None:
        sequence = models.FileNumberSequence(prefix=prefix, last_value=_highest_issued(db, prefix))
        db.add(sequence)
    sequence.last_value += 1
    db.flush()
    return format_file_number(code, year, sequence.last_value)


def create_file(
    db: Session,
    *,
    data: schemas.FileCreate,
    actor: account_models.User,
) -> models.EfilingFile:
    department_id = data.department_id or actor.department_id
    if not department_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Department is required")
    department = db.get(account_models.Department, department_id)
    if not department:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Department not found")
    if data.category_id and not db.get(models.FileCategory, data.category_id):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="File category not found")
    if data.work_request_id is not None and not db.get(request_models.WorkRequest, data.work_request_id):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Work request not found")

    now = utcnow()
    subject = data.subject.strip()
    file = models.EfilingFile(
        file_number=next_file_number(db, department, now.year),
        subject=subject,
        department_id=department.id,
        category_id=data.category_id,
        priority=(data.priority or "high").lower(),
        confidentiality_level=data.confidentiality_level or "normal",
        status=models.FileStatus.DRAFT,
        remarks=data.remarks,
        created_by=actor.id,
        work_request_id=data.work_request_id,
        page_count=1,
    )
    db.add(file)
    db.flush()

    db.add(
        models.FileWorkflowState(
            file_id=file.id,
            creator_id=actor.id,
            current_state=models.WorkflowState.TEAM_INTERNAL,
            is_within_team=True,
        )
    )
    db.add(
        models.DocumentPage(
            file_id=file.id,
            page_number=1,
            title=subject,
            content={
                "title": subject,
                "subject": subject,
                "date": now.date().isoformat(),
                "matter": "",
                "footer": "",
            },
            page_type=models.PageType.MAIN,
            created_by=actor.id,
        )
    )
    db.flush()
    db.refresh(file)

    audit_services.log_event(
        db,
        actor_user_id=actor.id,
        entity_type="efiling_file",
        entity_id=file.id,
        action=audit_services.FILE_CREATED,
        after={"file_number": file.file_number, "subject": subject},
    )
    return file


def list_files(
    db: Session,
    *,
    user: account_models.User,
    scope: Optional[str] = None,
    status_filter: Optional[str] = None,
    search: Optional[str] = None,
    skip: int = 0,
    limit: int = 50,
) -> List[models.EfilingFile]:
    """
    Files the user created, holds, or was marked at some point. Admins see
    everything unless a scope is requested.
    """
    query = db.query(models.EfilingFile)
    marked_subquery = (
        db.query(models.FileMovement.file_id)
        .filter(models.FileMovement.to_user_id == user.id)
        .subquery()
    )

    if scope == "created":
        query = query.filter(models.EfilingFile.created_by == user.id)
    elif scope == "assigned":
        query = query.filter(models.EfilingFile.assigned_to == user.id)
    elif scope == "marked":
        query = query.filter(models.EfilingFile.id.in_(marked_subquery))
    elif not security.is_admin_user(user):
        query = query.filter(
            or_(
                models.EfilingFile.created_by == user.id,
                models.EfilingFile.assigned_to == user.id,
                models.EfilingFile.id.in_(marked_subquery),
            )
        )

    if status_filter:
        try:
            query = query.filter(models.EfilingFile.status == models.FileStatus(status_filter.upper()))
        except ValueError:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid status filter")
    if search:
        like = f"%{search.strip()}%"
        query = query.filter(
            or_(models.EfilingFile.subject.ilike(like), models.EfilingFile.file_number.ilike(like))
        )

    files = (
        query.order_by(models.EfilingFile.created_at.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )
    now = utcnow()
    for file in files:
        sla.refresh_status(file, now=now)
    return files


def file_detail(file: models.EfilingFile, *, now: Optional[datetime] = None) -> schemas.FileDetail:
    detail = schemas.FileDetail.model_validate(file)
    detail.sla = schemas.SlaView(**sla.effective_sla(file, now=now))
    return detail


# ---------------------------------------------------------------------------
# Completion
# ---------------------------------------------------------------------------


def complete_file(
    db: Session,
    *,
    file: models.EfilingFile,
    actor: account_models.User,
    remarks: Optional[str] = None,
) -> models.EfilingFile:
    """
    Close a file. Only CEO roles holding the file, marked on it, or with the
    clock paused for their review may do so.
    """
    was_marked = actor.id in marked_user_ids(db, file.id)
    in_review = file.assigned_to == actor.id or was_marked or bool(file.sla_paused)
    from_status = enum_value(file.status)

    apply_transition(
        db,
        actor_user_id=actor.id,
        entity_type="efiling_file_status",
        entity_id=file.id,
        from_state=from_status,
        to_state=models.FileStatus.COMPLETED.value,
        before_obj={"assigned_to": file.assigned_to},
        after_obj={"completed_by_role": actor.role_code, "in_review": in_review},
    )

    now = utcnow()
    if file.sla_paused:
        sla.resume(db, file, now=now)
    file.status = models.FileStatus.COMPLETED
    file.sla_status = models.SlaStatus.COMPLETED
    file.completed_at = now
    db.add(file)
    db.add(
        models.FileMovement(
            file_id=file.id,
            from_user_id=actor.id,
            to_user_id=None,
            from_department_id=actor.department_id,
            action_type=models.MovementAction.COMPLETED,
            remarks=remarks,
        )
    )

    audit_services.log_event(
        db,
        actor_user_id=actor.id,
        entity_type="efiling_file",
        entity_id=file.id,
        action=audit_services.FILE_COMPLETED,
        before={"status": from_status},
        after={"status": models.FileStatus.COMPLETED.value, "remarks": remarks},
    )
    notification_service.notify_users(
        db,
        user_ids=[file.created_by, file.assigned_to],
        type="FILE_COMPLETED",
        message=f"File {file.file_number} has been completed by {actor.full_name}",
        file_id=file.id,
        exclude_user_id=actor.id,
    )
    db.flush()
    return file
