"""
Audit trail for e-filing actions.

Every file-level action is recorded against ``entity_type="efiling_file"``
with the file id; lifecycle status changes use ``efiling_file_status``.
Work requests are recorded as ``work_request`` with the integer id as text.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from . import models

logger = logging.getLogger(__name__)

FILE_CREATED = "FILE_CREATED"
FILE_MARKED = "FILE_MARKED"
FILE_COMPLETED = "FILE_COMPLETED"
ADD_PAGE = "ADD_PAGE"
UPDATE_PAGE = "UPDATE_PAGE"
DELETE_PAGE = "DELETE_PAGE"
SAVE_DOCUMENT = "SAVE_DOCUMENT"
ADD_SIGNATURE = "ADD_SIGNATURE"
ADD_COMMENT = "ADD_COMMENT"
EDIT_COMMENT = "EDIT_COMMENT"
DELETE_COMMENT = "DELETE_COMMENT"
ADD_ATTACHMENT = "ADD_ATTACHMENT"
DELETE_ATTACHMENT = "DELETE_ATTACHMENT"
REQUEST_CREATED = "REQUEST_CREATED"

FILE_ENTITY_TYPES = ("efiling_file", "efiling_file_status")


def _write_event(db: Session, **values: Any) -> models.AuditEvent:
    event = models.AuditEvent(**values)
    db.add(event)
    db.flush()
    return event


def log_event(
    db: Session,
    *,
    actor_user_id: Optional[str],
    entity_type: str,
    entity_id: Any,
    action: str,
    before: Optional[Dict[str, Any]] = None,
    after: Optional[Dict[str, Any]] = None,
    correlation_id: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
    critical: bool = False,
) -> Optional[models.AuditEvent]:
    """
    Record one action. Signature commits and workflow transitions pass
    ``critical=True`` and fail with the write; anything else is logged and
    dropped so the user's action still goes through.
    """
    try:
        return _write_event(
            db,
            entity_type=entity_type,
            entity_id=str(entity_id),
            action=action,
            actor_user_id=actor_user_id,
            before=before,
            after=after,
            correlation_id=correlation_id,
            metadata_json=metadata,
        )
    except Exception:
        logger.warning(
            "Failed to log audit event",
            extra={"entity_type": entity_type, "entity_id": str(entity_id), "action": action, "critical": critical},
        )
        if critical:
            raise
        return None


def list_audit_events(
    db: Session,
    *,
    entity_type: Optional[str] = None,
    entity_id: Optional[str] = None,
    action: Optional[str] = None,
    actor_user_id: Optional[str] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    limit: int = 200,
) -> List[models.AuditEvent]:
    query = db.query(models.AuditEvent)
    if entity_type:
        query = query.filter(models.AuditEvent.entity_type == entity_type)
    if entity_id:
        query = query.filter(models.AuditEvent.entity_id == entity_id)
    if action:
        query = query.filter(models.AuditEvent.action == action)
    if actor_user_id:
        query = query.filter(models.AuditEvent.actor_user_id == actor_user_id)
    if start:
        query = query.filter(models.AuditEvent.occurred_at >= start)
    if end:
        query = query.filter(models.AuditEvent.occurred_at <= end)
    return query.order_by(models.AuditEvent.occurred_at.desc()).limit(limit).all()


def file_history(db: Session, file_id: str) -> List[models.AuditEvent]:
    """Oldest-first trail of one file, lifecycle changes included."""
    return (
        db.query(models.AuditEvent)
        .filter(
            models.AuditEvent.entity_type.in_(FILE_ENTITY_TYPES),
            models.AuditEvent.entity_id == file_id,
        )
        .order_by(models.AuditEvent.occurred_at.asc(), models.AuditEvent.id.asc())
        .all()
    )
