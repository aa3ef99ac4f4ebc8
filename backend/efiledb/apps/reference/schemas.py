# backend/efiledb/apps/reference/schemas.py

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel


class TownRead(BaseModel):
    id: int
    town: str

    class Config:
        from_attributes = True


class SubtownRead(BaseModel):
    id: int
    town_id: int
    subtown: str

    class Config:
        from_attributes = True


class DivisionRead(BaseModel):
    id: int
    name: str
    code: Optional[str] = None
    ce_type: Optional[str] = None
    department_id: Optional[str] = None
    description: Optional[str] = None
    is_active: bool

    class Config:
        from_attributes = True


class DivisionList(BaseModel):
    success: bool = True
    divisions: List[DivisionRead]


class ComplaintTypeRead(BaseModel):
    id: int
    type_name: str
    description: Optional[str] = None
    division_id: Optional[int] = None
    division_name: Optional[str] = None

    class Config:
        from_attributes = True


class ComplaintSubtypeRead(BaseModel):
    id: int
    complaint_type_id: int
    subtype_name: str

    class Config:
        from_attributes = True


class AgentRead(BaseModel):
    id: int
    name: str
    email: Optional[str] = None
    contact_number: Optional[str] = None
    designation: Optional[str] = None
    role: int
    town_id: Optional[int] = None
    division_id: Optional[int] = None
    complaint_type_id: Optional[int] = None
    town_name: Optional[str] = None
    division_name: Optional[str] = None
    complaint_type_name: Optional[str] = None

    class Config:
        from_attributes = True


class SocialMediaPersonRead(BaseModel):
    id: int
    name: str
    email: Optional[str] = None
    contact_number: Optional[str] = None

    class Config:
        from_attributes = True
