# backend/efiledb/apps/templates/schemas.py

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class TemplateBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    template_type: str = "note"
    title: Optional[str] = None
    subject: Optional[str] = None
    main_content: Optional[str] = None
    category_id: Optional[str] = None
    department_id: Optional[str] = None
    role_id: Optional[str] = None
    is_system_template: bool = False


class TemplateCreate(TemplateBase):
    pass


class TemplateUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    template_type: Optional[str] = None
    title: Optional[str] = None
    subject: Optional[str] = None
    main_content: Optional[str] = None
    category_id: Optional[str] = None
    department_id: Optional[str] = None
    role_id: Optional[str] = None
    is_system_template: Optional[bool] = None
    is_active: Optional[bool] = None


class TemplateRead(TemplateBase):
    id: str
    is_active: bool
    usage_count: int
    last_used_at: Optional[datetime] = None
    created_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class TemplateUse(TemplateRead):
    main_content_html: str = ""
