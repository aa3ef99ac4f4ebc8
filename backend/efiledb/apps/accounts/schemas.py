# backend/efiledb/apps/accounts/schemas.py

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field


class RoleRead(BaseModel):
    id: str
    code: str
    name: str
    is_active: bool

    class Config:
        from_attributes = True


class DepartmentRead(BaseModel):
    id: str
    code: str
    name: str
    is_active: bool

    class Config:
        from_attributes = True


class UserBase(BaseModel):
    email: EmailStr
    full_name: str = Field(..., min_length=1, max_length=255)
    phone: Optional[str] = None
    designation: Optional[str] = None
    department_id: Optional[str] = None
    town_id: Optional[int] = None
    division_id: Optional[int] = None


class UserCreate(UserBase):
    password: str = Field(..., min_length=8)
    role_code: Optional[str] = None
    is_superuser: bool = False


class UserRead(BaseModel):
    id: str
    email: str
    full_name: str
    phone: Optional[str] = None
    designation: Optional[str] = None
    role_code: str = ""
    role_name: str = ""
    department_id: Optional[str] = None
    department_name: str = ""
    town_id: Optional[int] = None
    division_id: Optional[int] = None
    is_active: bool
    is_superuser: bool
    created_at: datetime

    class Config:
        from_attributes = True


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserRead


class TeamMembershipCreate(BaseModel):
    manager_id: str
    team_member_id: str
    team_role: str = "ASSISTANT"


class TeamMemberRead(BaseModel):
    id: str
    manager_id: str
    team_member_id: str
    team_role: str
    is_active: bool
    member: UserRead

    class Config:
        from_attributes = True


class TeamRead(BaseModel):
    manager: UserRead
    members: List[TeamMemberRead] = []
