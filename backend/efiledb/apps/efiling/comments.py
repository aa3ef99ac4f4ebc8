# backend/efiledb/apps/efiling/comments.py

"""Flat comment log on a file. Deletes are soft."""

from __future__ import annotations

from typing import List

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from efiledb import security
from efiledb.apps.accounts import models as account_models
from efiledb.apps.audit import services as audit_services
from efiledb.apps.workflow import roles
from efiledb.utils.timestamps import utcnow

from . import models, services


def _get_comment_or_404(db: Session, file_id: str, comment_id: str) -> models.FileComment:
    comment = (
        db.query(models.FileComment)
        .filter(
            models.FileComment.id == comment_id,
            models.FileComment.file_id == file_id,
            models.FileComment.is_active.is_(True),
        )
        .first()
    )
    if not comment:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Comment not found")
    return comment


def _ensure_can_moderate(comment: models.FileComment, user: account_models.User) -> None:
    if comment.user_id == user.id:
        return
    if security.is_admin_user(user) or roles.can_moderate_comments(user.role_code):
        return
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="You can only modify your own comments",
    )


def list_comments(db: Session, file_id: str) -> List[models.FileComment]:
    return (
        db.query(models.FileComment)
        .filter(
            models.FileComment.file_id == file_id,
            models.FileComment.is_active.is_(True),
        )
        .order_by(models.FileComment.timestamp.asc())
        .all()
    )


def add_comment(
    db: Session,
    *,
    file: models.EfilingFile,
    text: str,
    actor: account_models.User,
) -> models.FileComment:
    perms = services.get_permissions(db, file, actor)
    services.require_not_at_higher_level(perms, "comment")
    if not perms.can_add_comment:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have permission to comment on this file",
        )
    body = text.strip()
    if not body:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Comment text is required")

    comment = models.FileComment(
        file_id=file.id,
        user_id=actor.id,
        user_name=actor.full_name,
        user_role=actor.role_code or None,
        text=body,
    )
    db.add(comment)
    db.flush()
    audit_services.log_event(
        db,
        actor_user_id=actor.id,
        entity_type="efiling_file",
        entity_id=file.id,
        action=audit_services.ADD_COMMENT,
        after={"comment_id": comment.id},
    )
    return comment


def edit_comment(
    db: Session,
    *,
    file: models.EfilingFile,
    comment_id: str,
    text: str,
    actor: account_models.User,
) -> models.FileComment:
    comment = _get_comment_or_404(db, file.id, comment_id)
    _ensure_can_moderate(comment, actor)
    body = text.strip()
    if not body:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Comment text is required")

    before = comment.text
    comment.text = body
    comment.edited = True
    comment.edited_at = utcnow()
    db.add(comment)
    audit_services.log_event(
        db,
        actor_user_id=actor.id,
        entity_type="efiling_file",
        entity_id=file.id,
        action=audit_services.EDIT_COMMENT,
        before={"comment_id": comment.id, "text": before},
        after={"comment_id": comment.id, "text": body},
    )
    db.flush()
    return comment


def delete_comment(
    db: Session,
    *,
    file: models.EfilingFile,
    comment_id: str,
    actor: account_models.User,
) -> None:
    comment = _get_comment_or_404(db, file.id, comment_id)
    _ensure_can_moderate(comment, actor)
    comment.is_active = False
    db.add(comment)
    audit_services.log_event(
        db,
        actor_user_id=actor.id,
        entity_type="efiling_file",
        entity_id=file.id,
        action=audit_services.DELETE_COMMENT,
        before={"comment_id": comment.id},
    )
