# backend/efiledb/apps/efiling/marking.py

"""
Mark-to: hand a file to one or more officers.

The first recipient becomes the holder (assigned_to). Every recipient gets
a movement row and an in-app notification.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from efiledb.apps.accounts import models as account_models
from efiledb.apps.audit import services as audit_services
from efiledb.apps.notifications import service as notification_service
from efiledb.apps.workflow import apply_transition, permissions, roles
from efiledb.utils.timestamps import utcnow

from . import models, services, sla

logger = logging.getLogger(__name__)

SIGNATURE_REQUIRED_DETAIL = "E-signature required before marking forward"


def _load_recipients(
    db: Session,
    user_ids: Sequence[str],
    *,
    actor: account_models.User,
) -> List[account_models.User]:
    bypass = roles.bypasses_routing_checks(actor.role_code)
    recipients: List[account_models.User] = []
    for user_id in user_ids:
        user = db.get(account_models.User, user_id)
        if user is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Recipient {user_id} not found",
            )
        if not bypass:
            if not user.is_active:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"Recipient {user.full_name} is not an active user",
                )
            if user.id == actor.id:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="You cannot mark a file to yourself",
                )
        recipients.append(user)
    return recipients


def mark_to(
    db: Session,
    *,
    file: models.EfilingFile,
    actor: account_models.User,
    user_ids: Sequence[str],
    remarks: Optional[str] = None,
) -> Tuple[models.EfilingFile, List[models.FileMovement], str]:
    recipient_ids = list(dict.fromkeys(uid for uid in (user_ids or []) if uid))
    if not recipient_ids:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="At least one recipient is required",
        )
    if file.status == models.FileStatus.COMPLETED:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Completed files cannot be marked",
        )

    file_ctx = services.build_file_context(db, file)
    perms = permissions.resolve_permissions(file_ctx, services.build_user_context(db, actor))
    sender_may_mark = perms.is_admin or permissions.can_mark_file(file_ctx, actor.id)
    if not sender_may_mark:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You are not allowed to mark this file",
        )

    recipients = _load_recipients(db, recipient_ids, actor=actor)
    first = recipients[0]

    from_state = file.workflow_state or permissions.TEAM_INTERNAL
    to_state = permissions.next_workflow_state(file_ctx, actor.id, first.id)
    requires_signature = not perms.is_admin and (
        perms.requires_signature_for_marking
        or roles.requires_signature_before_marking(
            actor.role_code,
            first.role_code,
            workflow_state=to_state,
            team_movement=to_state == permissions.TEAM_INTERNAL,
        )
    )
    if requires_signature and not perms.has_signed:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=SIGNATURE_REQUIRED_DETAIL)

    apply_transition(
        db,
        actor_user_id=actor.id,
        entity_type="efiling_file",
        entity_id=file.id,
        from_state=from_state,
        to_state=to_state,
        before_obj={"assigned_to": file.assigned_to, "created_by": file.created_by},
        after_obj={
            "to_user_id": first.id,
            "created_by": file.created_by,
            "sender_may_mark": sender_may_mark,
            "requires_signature": requires_signature,
            "sender_has_signed": perms.has_signed,
        },
    )

    now = utcnow()
    is_return = to_state == permissions.RETURNED_TO_CREATOR
    movements: List[models.FileMovement] = []
    for recipient in recipients:
        returned = is_return and recipient.id == file.created_by
        movement = models.FileMovement(
            file_id=file.id,
            from_user_id=actor.id,
            to_user_id=recipient.id,
            from_department_id=actor.department_id,
            to_department_id=recipient.department_id,
            action_type=models.MovementAction.RETURNED if returned else models.MovementAction.MARKED,
            remarks=remarks,
            is_return_to_creator=returned,
            created_at=now,
        )
        db.add(movement)
        movements.append(movement)

    workflow = file.workflow
    if workflow is None:
        workflow = models.FileWorkflowState(file_id=file.id, creator_id=file.created_by)
        file.workflow = workflow
    workflow.current_state = models.WorkflowState(to_state)
    workflow.current_assigned_to = first.id
    workflow.is_within_team = to_state == permissions.TEAM_INTERNAL
    if to_state == permissions.EXTERNAL:
        if not workflow.tat_started:
            workflow.tat_started = True
            workflow.tat_started_at = now
        workflow.last_external_mark_at = now
    db.add(workflow)

    previous_status = services.enum_value(file.status)
    file.assigned_to = first.id
    if file.status == models.FileStatus.DRAFT:
        apply_transition(
            db,
            actor_user_id=actor.id,
            entity_type="efiling_file_status",
            entity_id=file.id,
            from_state=previous_status,
            to_state=models.FileStatus.IN_PROGRESS.value,
            before_obj=None,
            after_obj=None,
            critical=False,
        )
        file.status = models.FileStatus.IN_PROGRESS

    if file.sla_paused and roles.is_ceo_role(actor.role_code):
        # Pushes the deadline back by the pause; an external forward then
        # replaces it with a fresh deadline for the new holder.
        sla.resume(db, file, now=now)
    if to_state == permissions.EXTERNAL:
        hours = sla.get_sla_hours(db, actor.role_code, first.role_code)
        sla.start_clock(file, hours=hours, now=now)
    if roles.is_ceo_role(first.role_code):
        sla.pause(db, file, paused_by=actor.id, now=now)
    db.add(file)

    names = ", ".join(recipient.full_name for recipient in recipients)
    notification_service.notify_users(
        db,
        user_ids=[recipient.id for recipient in recipients],
        type="FILE_RETURNED" if is_return else "FILE_MARKED",
        message=f"File {file.file_number} has been marked to you by {actor.full_name}",
        file_id=file.id,
        priority=file.priority,
        action_required=True,
        exclude_user_id=actor.id,
    )
    if file.created_by not in recipient_ids:
        notification_service.notify_users(
            db,
            user_ids=[file.created_by],
            type="FILE_MOVED",
            message=f"File {file.file_number} was marked to {names}",
            file_id=file.id,
            exclude_user_id=actor.id,
        )

    audit_services.log_event(
        db,
        actor_user_id=actor.id,
        entity_type="efiling_file",
        entity_id=file.id,
        action=audit_services.FILE_MARKED,
        before={"assigned_to": file_ctx.assigned_to, "workflow_state": from_state},
        after={"to_user_ids": recipient_ids, "workflow_state": to_state},
        metadata={"remarks": remarks} if remarks else None,
    )
    db.flush()
    logger.info(
        "File marked",
        extra={"file_id": file.id, "from_state": from_state, "to_state": to_state, "recipients": len(recipients)},
    )
    return file, movements, to_state
