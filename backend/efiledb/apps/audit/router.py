from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from efiledb.apps.accounts.models import User
from efiledb.apps.efiling import services as efiling_services
from efiledb.database import get_read_db
from efiledb.security import get_current_active_user, require_roles

from . import schemas, services

router = APIRouter(prefix="/api/efiling/audit", tags=["audit"])


@router.get("", response_model=List[schemas.AuditEventRead])
def list_audit_events(
    entity_type: Optional[str] = None,
    entity_id: Optional[str] = None,
    action: Optional[str] = None,
    actor_user_id: Optional[str] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    limit: int = 200,
    db: Session = Depends(get_read_db),
    current_user: User = Depends(require_roles("SYS_ADMIN", "CHIEF_IT_OFFICER")),
):
    return services.list_audit_events(
        db,
        entity_type=entity_type,
        entity_id=entity_id,
        action=action,
        actor_user_id=actor_user_id,
        start=start,
        end=end,
        limit=min(max(limit, 1), 1000),
    )


@router.get("/files/{file_id}", response_model=List[schemas.AuditEventRead])
def get_file_history(
    file_id: str,
    db: Session = Depends(get_read_db),
    current_user: User = Depends(get_current_active_user),
):
    """Audit trail of one file for anyone who can view it."""
    file = efiling_services.get_file_or_404(db, file_id)
    if not efiling_services.get_permissions(db, file, current_user).can_view:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You cannot view this file")
    return services.file_history(db, file.id)
