# backend/efiledb/apps/efiling/attachments.py

from __future__ import annotations

from pathlib import Path
from typing import List

from fastapi import HTTPException, UploadFile, status
from sqlalchemy.orm import Session

from efiledb.apps.accounts import models as account_models
from efiledb.apps.audit import services as audit_services
from efiledb.utils import uploads
from efiledb.utils.identifiers import generate_uuid7

from . import models, services

ALLOWED_MIME_TYPES = frozenset(
    {
        "application/pdf",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "image/jpeg",
        "image/jpg",
        "image/png",
    }
)


def list_attachments(db: Session, file_id: str) -> List[models.FileAttachment]:
    return (
        db.query(models.FileAttachment)
        .filter(
            models.FileAttachment.file_id == file_id,
            models.FileAttachment.is_active.is_(True),
        )
        .order_by(models.FileAttachment.uploaded_at.desc())
        .all()
    )


def upload_attachment(
    db: Session,
    *,
    file: models.EfilingFile,
    upload: UploadFile,
    actor: account_models.User,
) -> models.FileAttachment:
    perms = services.get_permissions(db, file, actor)
    if not perms.can_add_attachment:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have permission to add attachments to this file",
        )
    content_type = (upload.content_type or "").lower()
    if content_type not in ALLOWED_MIME_TYPES:
        raise HTTPException(
            status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
            detail="Invalid file type. Allowed: PDF, Word documents, JPEG and PNG images",
        )

    original_name = Path(upload.filename or "attachment").name
    stored_name = f"{generate_uuid7()}{Path(original_name).suffix.lower()}"
    dest_path = uploads.upload_dir("attachments", file.id) / stored_name
    size = uploads.save_upload(file=upload, dest_path=dest_path)

    attachment = models.FileAttachment(
        file_id=file.id,
        file_name=original_name,
        stored_name=stored_name,
        file_url=uploads.public_url(dest_path),
        file_type=content_type,
        file_size=size,
        uploaded_by=actor.id,
    )
    db.add(attachment)
    db.flush()
    audit_services.log_event(
        db,
        actor_user_id=actor.id,
        entity_type="efiling_file",
        entity_id=file.id,
        action=audit_services.ADD_ATTACHMENT,
        after={"attachment_id": attachment.id, "file_name": original_name, "file_size": size},
    )
    return attachment


def delete_attachment(
    db: Session,
    *,
    file: models.EfilingFile,
    attachment_id: str,
    actor: account_models.User,
) -> None:
    attachment = (
        db.query(models.FileAttachment)
        .filter(
            models.FileAttachment.id == attachment_id,
            models.FileAttachment.file_id == file.id,
            models.FileAttachment.is_active.is_(True),
        )
        .first()
    )
    if not attachment:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Attachment not found")

    perms = services.get_permissions(db, file, actor)
    if not (perms.is_admin or (attachment.uploaded_by == actor.id and perms.can_add_attachment)):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only remove attachments you uploaded",
        )
    attachment.is_active = False
    db.add(attachment)
    audit_services.log_event(
        db,
        actor_user_id=actor.id,
        entity_type="efiling_file",
        entity_id=file.id,
        action=audit_services.DELETE_ATTACHMENT,
        before={"attachment_id": attachment.id, "file_name": attachment.file_name},
    )
