# backend/efiledb/apps/templates/services.py

from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import HTTPException, status
from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from efiledb import security
from efiledb.apps.accounts import models as account_models
from efiledb.utils.html_text import text_to_html
from efiledb.utils.timestamps import utcnow

from . import models, schemas

logger = logging.getLogger(__name__)


def _visible_query(db: Session, user: account_models.User):
    query = db.query(models.DocumentTemplate)
    if security.is_admin_user(user):
        return query
    Template = models.DocumentTemplate
    scoped = and_(
        Template.is_active.is_(True),
        or_(Template.department_id.is_(None), Template.department_id == user.department_id),
        or_(Template.role_id.is_(None), Template.role_id == user.role_id),
    )
    return query.filter(or_(Template.created_by == user.id, scoped))


def _ensure_can_modify(template: models.DocumentTemplate, user: account_models.User) -> None:
    if security.is_admin_user(user):
        return
    if template.is_system_template:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only administrators can modify system templates",
        )
    if template.created_by != user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only modify your own templates",
        )


def list_templates(
    db: Session,
    *,
    user: account_models.User,
    template_type: Optional[str] = None,
    category_id: Optional[str] = None,
    search: Optional[str] = None,
    include_inactive: bool = False,
) -> List[models.DocumentTemplate]:
    query = _visible_query(db, user)
    if not include_inactive:
        query = query.filter(models.DocumentTemplate.is_active.is_(True))
    if template_type:
        query = query.filter(models.DocumentTemplate.template_type == template_type)
    if category_id:
        query = query.filter(models.DocumentTemplate.category_id == category_id)
    if search:
        like = f"%{search.strip()}%"
        query = query.filter(
            or_(models.DocumentTemplate.name.ilike(like), models.DocumentTemplate.subject.ilike(like))
        )
    return query.order_by(
        models.DocumentTemplate.usage_count.desc(),
        models.DocumentTemplate.name.asc(),
    ).all()


def get_template_or_404(
    db: Session, template_id: str, *, user: account_models.User
) -> models.DocumentTemplate:
    template = (
        _visible_query(db, user)
        .filter(models.DocumentTemplate.id == template_id)
        .first()
    )
    if not template:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Template not found")
    return template


def create_template(
    db: Session, *, data: schemas.TemplateCreate, user: account_models.User
) -> models.DocumentTemplate:
    if data.is_system_template and not security.is_admin_user(user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only administrators can create system templates",
        )
    template = models.DocumentTemplate(**data.model_dump(), created_by=user.id, is_active=True)
    db.add(template)
    db.flush()
    return template


def update_template(
    db: Session,
    *,
    template: models.DocumentTemplate,
    data: schemas.TemplateUpdate,
    user: account_models.User,
) -> models.DocumentTemplate:
    _ensure_can_modify(template, user)
    changes = data.model_dump(exclude_unset=True)
    if changes.get("is_system_template") and not security.is_admin_user(user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only administrators can create system templates",
        )
    for key, value in changes.items():
        setattr(template, key, value)
    db.add(template)
    db.flush()
    return template


def delete_template(
    db: Session, *, template: models.DocumentTemplate, user: account_models.User
) -> None:
    _ensure_can_modify(template, user)
    template.is_active = False
    db.add(template)


def record_use(db: Session, template: models.DocumentTemplate) -> models.DocumentTemplate:
    template.usage_count = (template.usage_count or 0) + 1
    template.last_used_at = utcnow()
    db.add(template)
    return template


def render_for_use(template: models.DocumentTemplate) -> schemas.TemplateUse:
    payload = schemas.TemplateUse.model_validate(template)
    payload.main_content_html = text_to_html(template.main_content)
    return payload
