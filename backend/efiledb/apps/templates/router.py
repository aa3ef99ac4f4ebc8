# backend/efiledb/apps/templates/router.py

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from efiledb.apps.accounts.models import User
from efiledb.database import get_db
from efiledb.security import get_current_active_user

from . import schemas, services

router = APIRouter(prefix="/api/efiling/templates", tags=["efiling_templates"])


@router.get("", response_model=List[schemas.TemplateRead])
def list_templates(
    template_type: Optional[str] = None,
    category_id: Optional[str] = None,
    search: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    return services.list_templates(
        db,
        user=current_user,
        template_type=template_type,
        category_id=category_id,
        search=search,
    )


@router.get("/{template_id}", response_model=schemas.TemplateRead)
def get_template(
    template_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    return services.get_template_or_404(db, template_id, user=current_user)


@router.post("", response_model=schemas.TemplateRead, status_code=status.HTTP_201_CREATED)
def create_template(
    payload: schemas.TemplateCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    template = services.create_template(db, data=payload, user=current_user)
    db.commit()
    db.refresh(template)
    return template


@router.put("/{template_id}", response_model=schemas.TemplateRead)
def update_template(
    template_id: str,
    payload: schemas.TemplateUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    template = services.get_template_or_404(db, template_id, user=current_user)
    template = services.update_template(db, template=template, data=payload, user=current_user)
    db.commit()
    db.refresh(template)
    return template


@router.delete("/{template_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_template(
    template_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    template = services.get_template_or_404(db, template_id, user=current_user)
    services.delete_template(db, template=template, user=current_user)
    db.commit()


@router.post("/{template_id}/use", response_model=schemas.TemplateUse)
def use_template(
    template_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    template = services.get_template_or_404(db, template_id, user=current_user)
    services.record_use(db, template)
    db.commit()
    db.refresh(template)
    return services.render_for_use(template)
