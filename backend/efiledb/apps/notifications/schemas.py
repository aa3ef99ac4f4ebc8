from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class NotificationRead(BaseModel):
    id: str
    user_id: str
    file_id: Optional[str] = None
    type: str
    message: str
    priority: str
    action_required: bool
    is_read: bool
    read_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True
