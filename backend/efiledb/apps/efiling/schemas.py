# backend/efiledb/apps/efiling/schemas.py

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, model_validator

from .models import FileStatus, MovementAction, PageType, SlaStatus


# ---------------------------------------------------------------------------
# Files
# ---------------------------------------------------------------------------


class FileCreate(BaseModel):
    subject: str = Field(..., min_length=1, max_length=500)
    department_id: Optional[str] = None
    category_id: Optional[str] = None
    priority: str = "high"
    confidentiality_level: str = "normal"
    remarks: Optional[str] = None
    work_request_id: Optional[int] = None


class FileRead(BaseModel):
    id: str
    file_number: str
    subject: str
    department_id: str
    department_name: str = ""
    category_id: Optional[str] = None
    priority: str
    confidentiality_level: str
    status: FileStatus
    remarks: Optional[str] = None
    created_by: str
    assigned_to: Optional[str] = None
    work_request_id: Optional[int] = None
    workflow_state: Optional[str] = None
    is_within_team: bool = False
    sla_deadline: Optional[datetime] = None
    sla_status: Optional[SlaStatus] = None
    sla_paused: bool = False
    sla_accumulated_hours: float = 0.0
    sla_pause_count: int = 0
    page_count: int = 0
    created_at: datetime
    updated_at: datetime
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SlaView(BaseModel):
    status: str
    deadline: Optional[datetime] = None
    remaining_hours: Optional[float] = None
    paused_at: Optional[datetime] = None
    accumulated_hours: float = 0.0
    pause_count: int = 0


class FileDetail(FileRead):
    sla: Optional[SlaView] = None


class CompleteRequest(BaseModel):
    remarks: Optional[str] = None


# ---------------------------------------------------------------------------
# Pages / document
# ---------------------------------------------------------------------------


class PageContent(BaseModel):
    title: str = ""
    subject: str = ""
    date: str = ""
    matter: str = ""
    footer: str = ""


class PageCreate(BaseModel):
    title: Optional[str] = Field(default=None, max_length=255)
    content: Optional[PageContent] = None
    page_type: PageType = PageType.MAIN

    @model_validator(mode="after")
    def _title_or_content(self) -> "PageCreate":
        if not (self.title or "").strip() and self.content is None:
            raise ValueError("Page title or content is required")
        return self


class PageUpdate(BaseModel):
    title: Optional[str] = Field(default=None, max_length=255)
    content: PageContent


class PageRead(BaseModel):
    id: str
    file_id: str
    page_number: int
    title: Optional[str] = None
    content: Dict[str, Any]
    page_type: PageType
    created_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class PageAdditionRead(BaseModel):
    id: str
    page_id: str
    added_by: Optional[str] = None
    user_name: str = ""
    role_code: Optional[str] = None
    addition_type: str
    created_at: datetime


class PageList(BaseModel):
    pages: List[PageRead]
    additions: List[PageAdditionRead] = []


class ApplyTemplateRequest(BaseModel):
    template_id: str


class DocumentSave(BaseModel):
    content: Dict[str, Any]
    template_id: Optional[str] = None


class DocumentRead(BaseModel):
    id: str
    file_id: str
    content: Dict[str, Any]
    template_id: Optional[str] = None
    version: int
    updated_by: Optional[str] = None
    updated_at: datetime

    class Config:
        from_attributes = True


# ---------------------------------------------------------------------------
# Comments / attachments
# ---------------------------------------------------------------------------


class CommentCreate(BaseModel):
    text: str = Field(..., min_length=1, max_length=10000)


class CommentUpdate(BaseModel):
    text: str = Field(..., min_length=1, max_length=10000)


class CommentRead(BaseModel):
    id: str
    file_id: str
    user_id: Optional[str] = None
    user_name: str
    user_role: Optional[str] = None
    text: str
    timestamp: datetime
    edited: bool
    edited_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class AttachmentRead(BaseModel):
    id: str
    file_id: str
    file_name: str
    file_url: str
    file_type: str
    file_size: int
    uploaded_by: Optional[str] = None
    uploaded_at: datetime

    class Config:
        from_attributes = True


# ---------------------------------------------------------------------------
# Movement / timeline
# ---------------------------------------------------------------------------


class MarkToRequest(BaseModel):
    user_ids: List[str] = []
    remarks: Optional[str] = None


class MovementRead(BaseModel):
    id: str
    file_id: str
    from_user_id: Optional[str] = None
    to_user_id: Optional[str] = None
    action_type: MovementAction
    remarks: Optional[str] = None
    is_return_to_creator: bool
    created_at: datetime

    class Config:
        from_attributes = True


class MarkToResult(BaseModel):
    file: FileRead
    movements: List[MovementRead]
    workflow_state: str


class TimelineEvent(BaseModel):
    type: str
    timestamp: datetime
    user_id: Optional[str] = None
    user_name: str = ""
    description: str
    details: Dict[str, Any] = {}
