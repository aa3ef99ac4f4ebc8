# backend/efiledb/apps/work_requests/schemas.py

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field

# Form values arrive as strings from select inputs; the intake rules coerce them.
LooseId = Optional[Union[int, str]]


class LocationIn(BaseModel):
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    description: Optional[str] = None


class WorkRequestCreate(BaseModel):
    complaint_type_id: LooseId = None
    complaint_subtype_id: LooseId = None
    town_id: LooseId = None
    subtown_id: LooseId = None
    division_id: LooseId = None
    subtown_ids: List[LooseId] = Field(default_factory=list)
    assigned_sm_agents: List[LooseId] = Field(default_factory=list)

    contact_number: Optional[str] = None
    address: Optional[str] = None
    description: Optional[str] = None
    nature_of_work: Optional[str] = None
    file_type: Optional[str] = None
    budget_code: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    additional_locations: List[LocationIn] = Field(default_factory=list)

    executive_engineer_id: LooseId = None
    contractor_id: LooseId = None
    creator_id: Optional[Union[str, int]] = None
    creator_type: Optional[str] = None


class LocationRead(BaseModel):
    id: int
    latitude: float
    longitude: float
    description: Optional[str] = None

    class Config:
        from_attributes = True


class WorkRequestRead(BaseModel):
    id: int
    complaint_type_id: int
    complaint_type_name: Optional[str] = None
    complaint_subtype_id: Optional[int] = None
    town_id: Optional[int] = None
    town_name: Optional[str] = None
    subtown_id: Optional[int] = None
    division_id: Optional[int] = None
    division_name: Optional[str] = None
    subtown_ids: List[int] = Field(default_factory=list)
    assigned_sm_agents: List[int] = Field(default_factory=list)

    contact_number: str
    address: str
    description: str
    nature_of_work: Optional[str] = None
    file_type: Optional[str] = None
    budget_code: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    locations: List[LocationRead] = Field(default_factory=list)

    executive_engineer_id: Optional[int] = None
    executive_engineer_name: Optional[str] = None
    contractor_id: Optional[int] = None
    contractor_name: Optional[str] = None
    creator_id: str
    creator_type: str
    status: str
    created_at: datetime

    class Config:
        from_attributes = True


class WorkRequestPage(BaseModel):
    data: List[WorkRequestRead]
    total: int


class IntakeFormRead(BaseModel):
    mode: str
    department_id: Optional[int] = None
    division_id: Optional[int] = None
    fields: List[Dict[str, Any]]
