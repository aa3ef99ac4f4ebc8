# backend/efiledb/apps/work_requests/router.py

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from efiledb.apps.accounts.models import User
from efiledb.database import get_db, get_read_db
from efiledb.security import get_current_active_user

from . import schemas, services

router = APIRouter(
    prefix="/api/requests",
    tags=["work_requests"],
    dependencies=[Depends(get_current_active_user)],
)


@router.get("/intake-form", response_model=schemas.IntakeFormRead)
def get_intake_form(complaint_type_id: Optional[str] = None, db: Session = Depends(get_read_db)):
    return services.intake_form(db, complaint_type_id=complaint_type_id)


@router.get("", response_model=schemas.WorkRequestPage)
def list_requests(
    page: int = 1,
    limit: int = 20,
    search: Optional[str] = None,
    status_filter: Optional[str] = None,
    creator_id: Optional[str] = None,
    creator_type: Optional[str] = None,
    complaint_type_id: Optional[int] = None,
    db: Session = Depends(get_read_db),
):
    rows, total = services.list_requests(
        db,
        page=max(page, 1),
        limit=min(max(limit, 1), 100),
        search=search,
        status_filter=status_filter,
        creator_id=creator_id,
        creator_type=creator_type,
        complaint_type_id=complaint_type_id,
    )
    return schemas.WorkRequestPage(
        data=[schemas.WorkRequestRead.model_validate(row) for row in rows],
        total=total,
    )


@router.post("", response_model=schemas.WorkRequestRead, status_code=status.HTTP_201_CREATED)
def create_request(
    payload: schemas.WorkRequestCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    request = services.create_request(db, data=payload, actor=current_user)
    db.commit()
    db.refresh(request)
    return request


@router.get("/{request_id}", response_model=schemas.WorkRequestRead)
def get_request(request_id: int, db: Session = Depends(get_read_db)):
    return services.get_request_or_404(db, request_id)
