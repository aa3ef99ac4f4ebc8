# backend/efiledb/apps/efiling/router.py
"""
File registry and everything that hangs off a file: pages, the document
body, comments, attachments, permissions, timeline, mark-to and completion.

Signature endpoints on a file live in efiledb.apps.signatures.router.
"""

from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from sqlalchemy.orm import Session

from efiledb.apps.accounts.models import User
from efiledb.apps.workflow import TransitionError, allowed_targets, permissions
from efiledb.database import get_db
from efiledb.security import get_current_active_user

from . import attachments, comments, marking, pages, schemas, services, sla, timeline

router = APIRouter(
    prefix="/api/efiling/files",
    tags=["efiling_files"],
    dependencies=[Depends(get_current_active_user)],
)


def transition_conflict(exc: TransitionError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail=exc.as_detail(),
    )


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


@router.get("", response_model=List[schemas.FileDetail])
def list_files(
    scope: Optional[str] = None,
    status_filter: Optional[str] = None,
    search: Optional[str] = None,
    skip: int = 0,
    limit: int = 50,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    files = services.list_files(
        db,
        user=current_user,
        scope=scope,
        status_filter=status_filter,
        search=search,
        skip=max(skip, 0),
        limit=min(max(limit, 1), 200),
    )
    db.commit()
    return [services.file_detail(file) for file in files]


@router.post("", response_model=schemas.FileDetail, status_code=status.HTTP_201_CREATED)
def create_file(
    payload: schemas.FileCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    file = services.create_file(db, data=payload, actor=current_user)
    db.commit()
    db.refresh(file)
    return services.file_detail(file)


@router.get("/{file_id}", response_model=schemas.FileDetail)
def get_file(file_id: str, db: Session = Depends(get_db)):
    return services.file_detail(services.get_file_or_404(db, file_id))


@router.get("/{file_id}/sla", response_model=schemas.SlaView)
def get_file_sla(file_id: str, db: Session = Depends(get_db)):
    file = services.get_file_or_404(db, file_id)
    return schemas.SlaView(**sla.effective_sla(file))


@router.get("/{file_id}/permissions")
def get_file_permissions(
    file_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Dict[str, Any]:
    file = services.get_file_or_404(db, file_id)
    perms = services.get_permissions(db, file, current_user)
    payload = perms.as_dict()
    payload["affordances"] = asdict(permissions.derive_affordances(perms))
    payload["next_states"] = allowed_targets("efiling_file", perms.workflow_state or "")
    return payload


@router.get("/{file_id}/timeline", response_model=List[schemas.TimelineEvent])
def get_file_timeline(file_id: str, db: Session = Depends(get_db)):
    return timeline.build_timeline(db, services.get_file_or_404(db, file_id))


@router.post("/{file_id}/mark-to", response_model=schemas.MarkToResult)
def mark_file(
    file_id: str,
    payload: schemas.MarkToRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    file = services.get_file_or_404(db, file_id)
    try:
        file, movements, state = marking.mark_to(
            db,
            file=file,
            actor=current_user,
            user_ids=payload.user_ids,
            remarks=payload.remarks,
        )
    except TransitionError as exc:
        db.rollback()
        raise transition_conflict(exc)
    db.commit()
    db.refresh(file)
    return schemas.MarkToResult(
        file=schemas.FileRead.model_validate(file),
        movements=[schemas.MovementRead.model_validate(movement) for movement in movements],
        workflow_state=state,
    )


@router.post("/{file_id}/complete", response_model=schemas.FileDetail)
def complete_file(
    file_id: str,
    payload: Optional[schemas.CompleteRequest] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    file = services.get_file_or_404(db, file_id)
    try:
        services.complete_file(
            db,
            file=file,
            actor=current_user,
            remarks=payload.remarks if payload else None,
        )
    except TransitionError as exc:
        db.rollback()
        raise transition_conflict(exc)
    db.commit()
    db.refresh(file)
    return services.file_detail(file)


# ---------------------------------------------------------------------------
# Document body & pages
# ---------------------------------------------------------------------------


@router.get("/{file_id}/document", response_model=schemas.DocumentRead)
def get_document(file_id: str, db: Session = Depends(get_db)):
    return pages.get_document(db, services.get_file_or_404(db, file_id))


@router.post("/{file_id}/document", response_model=schemas.DocumentRead)
def save_document(
    file_id: str,
    payload: schemas.DocumentSave,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    file = services.get_file_or_404(db, file_id)
    document = pages.save_document(db, file=file, data=payload, actor=current_user)
    db.commit()
    db.refresh(document)
    return document


@router.get("/{file_id}/pages", response_model=schemas.PageList)
def list_pages(file_id: str, db: Session = Depends(get_db)):
    return pages.list_pages(db, services.get_file_or_404(db, file_id))


@router.post("/{file_id}/pages", response_model=schemas.PageRead, status_code=status.HTTP_201_CREATED)
def add_page(
    file_id: str,
    payload: schemas.PageCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    file = services.get_file_or_404(db, file_id)
    page = pages.add_page(db, file=file, data=payload, actor=current_user)
    db.commit()
    db.refresh(page)
    return page


@router.put("/{file_id}/pages/{page_id}", response_model=schemas.PageRead)
def update_page(
    file_id: str,
    page_id: str,
    payload: schemas.PageUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    file = services.get_file_or_404(db, file_id)
    page = pages.update_page(db, file=file, page_id=page_id, data=payload, actor=current_user)
    db.commit()
    db.refresh(page)
    return page


@router.delete("/{file_id}/pages/{page_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_page(
    file_id: str,
    page_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    file = services.get_file_or_404(db, file_id)
    pages.delete_page(db, file=file, page_id=page_id, actor=current_user)
    db.commit()


@router.post("/{file_id}/pages/{page_id}/apply-template", response_model=schemas.PageRead)
def apply_template(
    file_id: str,
    page_id: str,
    payload: schemas.ApplyTemplateRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    file = services.get_file_or_404(db, file_id)
    page = pages.apply_template(
        db,
        file=file,
        page_id=page_id,
        template_id=payload.template_id,
        actor=current_user,
    )
    db.commit()
    db.refresh(page)
    return page


# ---------------------------------------------------------------------------
# Comments
# ---------------------------------------------------------------------------


@router.get("/{file_id}/comments", response_model=List[schemas.CommentRead])
def list_comments(file_id: str, db: Session = Depends(get_db)):
    file = services.get_file_or_404(db, file_id)
    return comments.list_comments(db, file.id)


@router.post("/{file_id}/comments", response_model=schemas.CommentRead, status_code=status.HTTP_201_CREATED)
def add_comment(
    file_id: str,
    payload: schemas.CommentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    file = services.get_file_or_404(db, file_id)
    comment = comments.add_comment(db, file=file, text=payload.text, actor=current_user)
    db.commit()
    db.refresh(comment)
    return comment


@router.put("/{file_id}/comments/{comment_id}", response_model=schemas.CommentRead)
def edit_comment(
    file_id: str,
    comment_id: str,
    payload: schemas.CommentUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    file = services.get_file_or_404(db, file_id)
    comment = comments.edit_comment(
        db, file=file, comment_id=comment_id, text=payload.text, actor=current_user
    )
    db.commit()
    db.refresh(comment)
    return comment


@router.delete("/{file_id}/comments/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_comment(
    file_id: str,
    comment_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    file = services.get_file_or_404(db, file_id)
    comments.delete_comment(db, file=file, comment_id=comment_id, actor=current_user)
    db.commit()


# ---------------------------------------------------------------------------
# Attachments
# ---------------------------------------------------------------------------


@router.get("/{file_id}/attachments", response_model=List[schemas.AttachmentRead])
def list_attachments(file_id: str, db: Session = Depends(get_db)):
    file = services.get_file_or_404(db, file_id)
    return attachments.list_attachments(db, file.id)


@router.post(
    "/{file_id}/attachments",
    response_model=schemas.AttachmentRead,
    status_code=status.HTTP_201_CREATED,
)
def upload_attachment(
    file_id: str,
    upload: UploadFile = File(..., alias="file"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    file = services.get_file_or_404(db, file_id)
    attachment = attachments.upload_attachment(db, file=file, upload=upload, actor=current_user)
    db.commit()
    db.refresh(attachment)
    return attachment


@router.delete("/{file_id}/attachments/{attachment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_attachment(
    file_id: str,
    attachment_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    file = services.get_file_or_404(db, file_id)
    attachments.delete_attachment(db, file=file, attachment_id=attachment_id, actor=current_user)
    db.commit()
