# backend/efiledb/apps/efiling/timeline.py

from __future__ import annotations

from typing import List

from sqlalchemy.orm import Session

from efiledb.apps.signatures import models as signature_models
from efiledb.utils.timestamps import as_utc

from . import models, schemas

_MOVEMENT_EVENTS = {
    models.MovementAction.MARKED: "MARKED",
    models.MovementAction.RETURNED: "RETURNED",
    models.MovementAction.COMPLETED: "COMPLETED",
}


def _name(user) -> str:
    return user.full_name if user else ""


def build_timeline(db: Session, file: models.EfilingFile) -> List[schemas.TimelineEvent]:
    """Everything that happened to a file, oldest first."""
    events: List[schemas.TimelineEvent] = [
        schemas.TimelineEvent(
            type="CREATED",
            timestamp=as_utc(file.created_at),
            user_id=file.created_by,
            user_name=_name(file.creator),
            description=f"File {file.file_number} created",
            details={"subject": file.subject},
        )
    ]

    movements = (
        db.query(models.FileMovement)
        .filter(models.FileMovement.file_id == file.id)
        .all()
    )
    for movement in movements:
        kind = _MOVEMENT_EVENTS[movement.action_type]
        if kind == "COMPLETED":
            description = "File completed"
        elif kind == "RETURNED":
            description = f"Returned to {_name(movement.to_user)}"
        else:
            description = f"Marked to {_name(movement.to_user)}"
        events.append(
            schemas.TimelineEvent(
                type=kind,
                timestamp=as_utc(movement.created_at),
                user_id=movement.from_user_id,
                user_name=_name(movement.from_user),
                description=description,
                details={"to_user_id": movement.to_user_id, "remarks": movement.remarks},
            )
        )

    signatures = (
        db.query(signature_models.FileSignature)
        .filter(signature_models.FileSignature.file_id == file.id)
        .all()
    )
    for signature in signatures:
        events.append(
            schemas.TimelineEvent(
                type="SIGNED",
                timestamp=as_utc(signature.timestamp),
                user_id=signature.user_id,
                user_name=signature.user_name,
                description=f"Signed by {signature.user_name}",
                details={"signature_id": signature.id, "is_active": signature.is_active},
            )
        )

    comments = (
        db.query(models.FileComment)
        .filter(models.FileComment.file_id == file.id, models.FileComment.is_active.is_(True))
        .all()
    )
    for comment in comments:
        events.append(
            schemas.TimelineEvent(
                type="COMMENTED",
                timestamp=as_utc(comment.timestamp),
                user_id=comment.user_id,
                user_name=comment.user_name,
                description=comment.text[:200],
                details={"comment_id": comment.id},
            )
        )

    additions = (
        db.query(models.PageAddition)
        .filter(models.PageAddition.file_id == file.id)
        .all()
    )
    for addition in additions:
        events.append(
            schemas.TimelineEvent(
                type="PAGE_ADDED",
                timestamp=as_utc(addition.created_at),
                user_id=addition.added_by,
                user_name=_name(addition.user),
                description=f"Page added ({addition.addition_type})",
                details={"page_id": addition.page_id, "addition_type": addition.addition_type},
            )
        )

    events.sort(key=lambda event: event.timestamp)
    return events
