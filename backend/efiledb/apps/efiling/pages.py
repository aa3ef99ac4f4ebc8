# backend/efiledb/apps/efiling/pages.py

"""
Document page store.

Pages are appended with page_number = highest + 1 and never renumbered;
deleting only deactivates a page, and a file always keeps one active page.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from efiledb.apps.accounts import models as account_models
from efiledb.apps.audit import services as audit_services
from efiledb.apps.notifications import service as notification_service
from efiledb.apps.templates import services as template_services
from efiledb.apps.workflow import permissions, roles
from efiledb.utils.html_text import html_to_text, text_to_html
from efiledb.utils.timestamps import as_utc, utcnow

from . import models, schemas, services

logger = logging.getLogger(__name__)

LAST_PAGE_DETAIL = "Cannot delete the last remaining page"


def _active_pages_query(db: Session, file_id: str):
    return db.query(models.DocumentPage).filter(
        models.DocumentPage.file_id == file_id,
        models.DocumentPage.is_active.is_(True),
    )


def _get_page_or_404(db: Session, file_id: str, page_id: str) -> models.DocumentPage:
    page = (
        _active_pages_query(db, file_id)
        .filter(models.DocumentPage.id == page_id)
        .first()
    )
    if not page:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Page not found")
    return page


def _sync_page_count(db: Session, file: models.EfilingFile) -> None:
    file.page_count = _active_pages_query(db, file.id).count()
    db.add(file)


def _is_fresh_own_page(db: Session, page: models.DocumentPage, user_id: str) -> bool:
    """A page the user appended since the file last moved."""
    if page.created_by != user_id:
        return False
    movement = services.get_latest_movement(db, page.file_id)
    if movement is None:
        return True
    return as_utc(page.created_at) >= as_utc(movement.created_at)


def ensure_can_edit_page(
    db: Session,
    *,
    page: models.DocumentPage,
    perms: permissions.PermissionSet,
    user_id: str,
) -> None:
    services.require_not_at_higher_level(perms, "edit pages")
    if perms.can_edit or _is_fresh_own_page(db, page, user_id):
        return
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="You do not have permission to edit this page",
    )


# ---------------------------------------------------------------------------
# Read
# ---------------------------------------------------------------------------


def list_pages(db: Session, file: models.EfilingFile) -> schemas.PageList:
    pages = _active_pages_query(db, file.id).order_by(models.DocumentPage.page_number.asc()).all()
    additions = (
        db.query(models.PageAddition)
        .filter(models.PageAddition.file_id == file.id)
        .order_by(models.PageAddition.created_at.asc())
        .all()
    )
    return schemas.PageList(
        pages=[schemas.PageRead.model_validate(page) for page in pages],
        additions=[
            schemas.PageAdditionRead(
                id=addition.id,
                page_id=addition.page_id,
                added_by=addition.added_by,
                user_name=addition.user.full_name if addition.user else "",
                role_code=addition.role_code,
                addition_type=addition.addition_type,
                created_at=addition.created_at,
            )
            for addition in additions
        ],
    )


# ---------------------------------------------------------------------------
# Write
# ---------------------------------------------------------------------------


def add_page(
    db: Session,
    *,
    file: models.EfilingFile,
    data: schemas.PageCreate,
    actor: account_models.User,
) -> models.DocumentPage:
    user_ctx = services.build_user_context(db, actor)
    perms = permissions.resolve_permissions(services.build_file_context(db, file), user_ctx)
    if not perms.can_add_page:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have permission to add pages to this file",
        )

    highest = (
        db.query(func.max(models.DocumentPage.page_number))
        .filter(models.DocumentPage.file_id == file.id)
        .scalar()
    )
    if data.content is not None:
        content = data.content.model_dump()
    else:
        content = {"title": "", "subject": "", "date": utcnow().date().isoformat(), "matter": "", "footer": ""}
    title = (data.title or "").strip() or content.get("title") or None
    if title and not content.get("title"):
        content["title"] = title

    page = models.DocumentPage(
        file_id=file.id,
        page_number=(highest or 0) + 1,
        title=title,
        content=content,
        page_type=data.page_type,
        created_by=actor.id,
    )
    db.add(page)
    db.flush()

    # Assistants adding on behalf of the manager holding the file.
    on_behalf_of = user_ctx.manager_role_code if file.assigned_to == user_ctx.manager_id else None
    addition_type = roles.page_addition_type(
        actor.role_code,
        assisted_manager_role_code=on_behalf_of,
        is_creator=file.created_by == actor.id,
    )
    db.add(
        models.PageAddition(
            file_id=file.id,
            page_id=page.id,
            added_by=actor.id,
            role_code=actor.role_code or None,
            addition_type=addition_type,
        )
    )
    _sync_page_count(db, file)

    audit_services.log_event(
        db,
        actor_user_id=actor.id,
        entity_type="efiling_file",
        entity_id=file.id,
        action=audit_services.ADD_PAGE,
        after={"page_id": page.id, "page_number": page.page_number, "addition_type": addition_type},
    )
    notification_service.notify_users(
        db,
        user_ids=[file.created_by, file.assigned_to, *services.marked_user_ids(db, file.id)],
        type="PAGE_ADDED",
        message=f"{actor.full_name} added page {page.page_number} to file {file.file_number}",
        file_id=file.id,
        exclude_user_id=actor.id,
    )
    db.flush()
    return page


def update_page(
    db: Session,
    *,
    file: models.EfilingFile,
    page_id: str,
    data: schemas.PageUpdate,
    actor: account_models.User,
) -> models.DocumentPage:
    page = _get_page_or_404(db, file.id, page_id)
    perms = services.get_permissions(db, file, actor)
    ensure_can_edit_page(db, page=page, perms=perms, user_id=actor.id)

    before = dict(page.content or {})
    content = data.content.model_dump()
    # Single-line fields are plain text even when pasted from the editor.
    content["title"] = html_to_text(content["title"])
    content["subject"] = html_to_text(content["subject"])
    page.content = content
    if data.title is not None:
        page.title = data.title.strip() or None
    elif data.content.title:
        page.title = content["title"] or page.title
    db.add(page)

    audit_services.log_event(
        db,
        actor_user_id=actor.id,
        entity_type="efiling_file",
        entity_id=file.id,
        action=audit_services.UPDATE_PAGE,
        before={"page_id": page.id, "title": before.get("title")},
        after={"page_id": page.id, "title": page.content.get("title")},
    )
    db.flush()
    return page


def delete_page(
    db: Session,
    *,
    file: models.EfilingFile,
    page_id: str,
    actor: account_models.User,
) -> None:
    page = _get_page_or_404(db, file.id, page_id)
    perms = services.get_permissions(db, file, actor)
    ensure_can_edit_page(db, page=page, perms=perms, user_id=actor.id)

    if _active_pages_query(db, file.id).count() <= 1:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=LAST_PAGE_DETAIL)

    page.is_active = False
    db.add(page)
    db.flush()
    _sync_page_count(db, file)

    audit_services.log_event(
        db,
        actor_user_id=actor.id,
        entity_type="efiling_file",
        entity_id=file.id,
        action=audit_services.DELETE_PAGE,
        before={"page_id": page.id, "page_number": page.page_number},
    )


def merge_template_content(content: dict, template) -> dict:
    """
    Template title/subject/main_content onto a page's content. Empty
    template fields leave the page's value in place.
    """
    merged = dict(content or {})
    if (template.title or "").strip():
        merged["title"] = template.title.strip()
    if (template.subject or "").strip():
        merged["subject"] = template.subject.strip()
    matter = text_to_html(template.main_content)
    if matter:
        merged["matter"] = matter
    return merged


def apply_template(
    db: Session,
    *,
    file: models.EfilingFile,
    page_id: str,
    template_id: str,
    actor: account_models.User,
) -> models.DocumentPage:
    page = _get_page_or_404(db, file.id, page_id)
    perms = services.get_permissions(db, file, actor)
    ensure_can_edit_page(db, page=page, perms=perms, user_id=actor.id)
    template = template_services.get_template_or_404(db, template_id, user=actor)

    page.content = merge_template_content(page.content, template)
    page.title = page.content.get("title") or page.title
    db.add(page)
    template_services.record_use(db, template)

    audit_services.log_event(
        db,
        actor_user_id=actor.id,
        entity_type="efiling_file",
        entity_id=file.id,
        action=audit_services.UPDATE_PAGE,
        after={"page_id": page.id},
        metadata={"template_id": template.id},
    )
    db.flush()
    return page


# ---------------------------------------------------------------------------
# Document body
# ---------------------------------------------------------------------------


def get_document(db: Session, file: models.EfilingFile) -> models.FileDocument:
    document = (
        db.query(models.FileDocument)
        .filter(models.FileDocument.file_id == file.id)
        .first()
    )
    if not document:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Document not found")
    return document


def save_document(
    db: Session,
    *,
    file: models.EfilingFile,
    data: schemas.DocumentSave,
    actor: account_models.User,
) -> models.FileDocument:
    perms = services.get_permissions(db, file, actor)
    services.require_not_at_higher_level(perms, "save the document")
    if not perms.can_edit_document:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have permission to edit this document",
        )

    document: Optional[models.FileDocument] = (
        db.query(models.FileDocument)
        .filter(models.FileDocument.file_id == file.id)
        .first()
    )
    if document is None:
        document = models.FileDocument(file_id=file.id, version=1)
    else:
        document.version = (document.version or 1) + 1
    document.content = data.content
    if data.template_id is not None:
        document.template_id = data.template_id or None
    document.updated_by = actor.id
    db.add(document)
    db.flush()

    audit_services.log_event(
        db,
        actor_user_id=actor.id,
        entity_type="efiling_file",
        entity_id=file.id,
        action=audit_services.SAVE_DOCUMENT,
        after={"version": document.version, "template_id": document.template_id},
    )
    return document
