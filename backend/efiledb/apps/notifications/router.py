from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from efiledb.database import get_db
from efiledb.security import get_current_active_user
from efiledb.apps.accounts.models import User

from . import schemas, service


router = APIRouter(prefix="/api/efiling/notifications", tags=["notifications"])


@router.get("", response_model=List[schemas.NotificationRead])
def list_my_notifications(
    unread_only: bool = False,
    limit: int = 50,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    return service.list_notifications(
        db,
        user_id=current_user.id,
        unread_only=unread_only,
        limit=min(max(limit, 1), 200),
    )


@router.post("/{notification_id}/read", response_model=schemas.NotificationRead)
def mark_notification_read(
    notification_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    notification = service.mark_read(db, notification_id=notification_id, user_id=current_user.id)
    db.commit()
    return notification
