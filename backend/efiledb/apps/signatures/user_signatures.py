# backend/efiledb/apps/signatures/user_signatures.py

"""
Saved signature templates: at most three per user, one of them active.
Saving a type the user already has overwrites that template.
"""

from __future__ import annotations

import base64
import binascii
import re
from pathlib import Path
from typing import List, Optional

from fastapi import HTTPException, UploadFile, status
from sqlalchemy.orm import Session

from efiledb.apps.accounts import models as account_models
from efiledb.utils import uploads
from efiledb.utils.identifiers import generate_uuid7

from . import models

MAX_TEMPLATES_PER_USER = 3
ALLOWED_IMAGE_TYPES = {"image/png": ".png", "image/jpeg": ".jpg", "image/jpg": ".jpg"}
_DATA_URL = re.compile(r"^data:(image/(?:png|jpeg|jpg));base64,(.+)$", re.DOTALL)


def list_templates(db: Session, user_id: str) -> List[models.UserSignature]:
    return (
        db.query(models.UserSignature)
        .filter(models.UserSignature.user_id == user_id)
        .order_by(models.UserSignature.is_active.desc(), models.UserSignature.updated_at.desc())
        .all()
    )


def _activate(db: Session, template: models.UserSignature) -> None:
    for other in list_templates(db, template.user_id):
        other.is_active = other.id == template.id
        db.add(other)
    template.is_active = True


def _promote_latest(db: Session, user_id: str, *, exclude_id: str) -> None:
    for candidate in list_templates(db, user_id):
        if candidate.id != exclude_id:
            _activate(db, candidate)
            return


def save_template(
    db: Session,
    *,
    user: account_models.User,
    signature_type: models.TemplateKind,
    signature_name: Optional[str] = None,
    signature_data: Optional[str] = None,
    file_url: Optional[str] = None,
    font: Optional[str] = None,
    color: Optional[str] = None,
) -> models.UserSignature:
    existing = (
        db.query(models.UserSignature)
        .filter(
            models.UserSignature.user_id == user.id,
            models.UserSignature.signature_type == signature_type,
        )
        .first()
    )
    name = signature_name or f"{signature_type.value.title()} signature"
    if existing is not None:
        existing.signature_name = name
        existing.signature_data = signature_data
        existing.file_url = file_url
        existing.font = font
        existing.color = color
        db.add(existing)
        db.flush()
        return existing

    if len(list_templates(db, user.id)) >= MAX_TEMPLATES_PER_USER:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Maximum of {MAX_TEMPLATES_PER_USER} signatures allowed",
        )
    template = models.UserSignature(
        user_id=user.id,
        signature_name=name,
        signature_type=signature_type,
        signature_data=signature_data,
        file_url=file_url,
        font=font,
        color=color,
    )
    db.add(template)
    db.flush()
    _activate(db, template)
    db.flush()
    return template


def decode_data_url(data_url: str) -> tuple:
    """Split an image data URL into (mime_type, raw bytes)."""
    match = _DATA_URL.match((data_url or "").strip())
    if not match:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Signature must be a base64 PNG or JPEG data URL",
        )
    try:
        raw = base64.b64decode(match.group(2), validate=True)
    except (binascii.Error, ValueError):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Signature image is not valid base64",
        )
    return match.group(1), raw


def _signature_path(user_id: str, mime_type: str) -> Path:
    return uploads.upload_dir("signatures", user_id) / f"{generate_uuid7()}{ALLOWED_IMAGE_TYPES[mime_type]}"


def upload_signature(
    db: Session,
    *,
    user: account_models.User,
    signature_type: models.TemplateKind,
    signature_data: str,
    signature_name: Optional[str] = None,
    font: Optional[str] = None,
    color: Optional[str] = None,
) -> models.UserSignature:
    if signature_type == models.TemplateKind.TYPED:
        return save_template(
            db,
            user=user,
            signature_type=signature_type,
            signature_name=signature_name,
            signature_data=signature_data.strip(),
            font=font,
            color=color,
        )

    mime_type, raw = decode_data_url(signature_data)
    dest_path = _signature_path(user.id, mime_type)
    uploads.save_bytes(raw, dest_path)
    return save_template(
        db,
        user=user,
        signature_type=signature_type,
        signature_name=signature_name,
        file_url=uploads.public_url(dest_path),
    )


def scan_signature(
    db: Session,
    *,
    user: account_models.User,
    upload: UploadFile,
    signature_name: Optional[str] = None,
) -> models.UserSignature:
    content_type = (upload.content_type or "").lower()
    if content_type not in ALLOWED_IMAGE_TYPES:
        raise HTTPException(
            status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
            detail="Scanned signatures must be PNG or JPEG images",
        )
    dest_path = _signature_path(user.id, content_type)
    uploads.save_upload(file=upload, dest_path=dest_path)
    return save_template(
        db,
        user=user,
        signature_type=models.TemplateKind.SCANNED,
        signature_name=signature_name,
        file_url=uploads.public_url(dest_path),
    )


def manage_template(
    db: Session,
    *,
    user: account_models.User,
    action: str,
    signature_id: str,
) -> List[models.UserSignature]:
    template = db.get(models.UserSignature, signature_id)
    if not template or template.user_id != user.id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Signature not found")

    if action == "activate":
        _activate(db, template)
    elif action == "deactivate":
        template.is_active = False
        db.add(template)
        _promote_latest(db, user.id, exclude_id=template.id)
    elif action == "delete":
        was_active = template.is_active
        stored = template.file_url
        db.delete(template)
        db.flush()
        if stored and stored.startswith(uploads.UPLOAD_URL_PREFIX + "/"):
            relative = stored[len(uploads.UPLOAD_URL_PREFIX) + 1:]
            uploads.delete_if_exists(uploads.ensure_safe_path(uploads.UPLOAD_ROOT / relative))
        if was_active:
            _promote_latest(db, user.id, exclude_id=template.id)
    else:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Unknown action")
    db.flush()
    return list_templates(db, user.id)
