# backend/efiledb/apps/signatures/services.py

"""
Signature ledger.

Signing is a two-phase commit: stage the payload, then commit it with a
verification token from verify-auth / google-auth. Each token commits at
most one signature (its jti is stored on the signature row).
"""

from __future__ import annotations

import logging
import os
from datetime import timedelta
from typing import List

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from efiledb import security
from efiledb.apps.accounts import models as account_models
from efiledb.apps.audit import services as audit_services
from efiledb.apps.efiling import models as efiling_models
from efiledb.apps.efiling import services as efiling_services
from efiledb.apps.notifications import service as notification_service
from efiledb.utils.timestamps import as_utc, utcnow

from . import models, schemas

logger = logging.getLogger(__name__)

SIGNATURE_STAGE_TTL_MINUTES = int(os.getenv("SIGNATURE_STAGE_TTL_MINUTES", "15"))
ALREADY_SIGNED_DETAIL = "You have already signed this file"


def list_file_signatures(db: Session, file_id: str) -> List[models.FileSignature]:
    return (
        db.query(models.FileSignature)
        .filter(
            models.FileSignature.file_id == file_id,
            models.FileSignature.is_active.is_(True),
        )
        .order_by(models.FileSignature.timestamp.asc())
        .all()
    )


def get_active_signature(db: Session, file_id: str, user_id: str):
    return (
        db.query(models.FileSignature)
        .filter(
            models.FileSignature.file_id == file_id,
            models.FileSignature.user_id == user_id,
            models.FileSignature.is_active.is_(True),
        )
        .order_by(models.FileSignature.timestamp.desc())
        .first()
    )


def _validate_payload(data: schemas.SignatureCreate) -> None:
    content = data.content.strip()
    if data.type == models.SignatureKind.IMAGE and not (
        content.startswith("data:image/") or content.startswith("/uploads/")
    ):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Image signatures must be an image data URL or a stored signature",
        )


def _ensure_can_sign(db: Session, file: efiling_models.EfilingFile, actor: account_models.User) -> None:
    perms = efiling_services.get_permissions(db, file, actor)
    efiling_services.require_not_at_higher_level(perms, "sign")
    if not perms.can_add_signature:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have permission to sign this file",
        )
    if not perms.can_sign_again:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=ALREADY_SIGNED_DETAIL)


def stage_signature(
    db: Session,
    *,
    file: efiling_models.EfilingFile,
    data: schemas.SignatureCreate,
    actor: account_models.User,
) -> models.SignatureStage:
    _validate_payload(data)
    _ensure_can_sign(db, file, actor)
    purge_expired_stages(db, user_id=actor.id)
    stage = models.SignatureStage(
        file_id=file.id,
        user_id=actor.id,
        payload=data.model_dump(mode="json"),
        expires_at=utcnow() + timedelta(minutes=SIGNATURE_STAGE_TTL_MINUTES),
    )
    db.add(stage)
    db.flush()
    return stage


def _token_already_used(db: Session, jti: str) -> bool:
    used = (
        db.query(models.FileSignature.id)
        .filter(models.FileSignature.verification_jti == jti)
        .first()
    )
    if used:
        return True
    return (
        db.query(models.SignatureStage.id)
        .filter(
            models.SignatureStage.verification_jti == jti,
            models.SignatureStage.committed_at.isnot(None),
        )
        .first()
        is not None
    )


def commit_signature(
    db: Session,
    *,
    file: efiling_models.EfilingFile,
    stage_id: str,
    verification_token: str,
    actor: account_models.User,
) -> models.FileSignature:
    claims = security.decode_verification_token(verification_token, user_id=actor.id)
    jti = claims["jti"]
    if _token_already_used(db, jti):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Verification token has already been used",
        )

    stage = db.get(models.SignatureStage, stage_id)
    if not stage or stage.file_id != file.id or stage.user_id != actor.id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Signature stage not found")
    if stage.committed_at is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Signature already committed")
    now = utcnow()
    if as_utc(stage.expires_at) < now:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Signature stage has expired, please sign again",
        )

    _ensure_can_sign(db, file, actor)

    previous = (
        db.query(models.FileSignature)
        .filter(
            models.FileSignature.file_id == file.id,
            models.FileSignature.user_id == actor.id,
            models.FileSignature.is_active.is_(True),
        )
        .all()
    )
    for row in previous:
        row.is_active = False
        db.add(row)

    payload = stage.payload or {}
    signature = models.FileSignature(
        file_id=file.id,
        user_id=actor.id,
        user_name=actor.full_name,
        user_role=actor.role_code or None,
        type=models.SignatureKind(payload.get("type")),
        content=payload.get("content") or "",
        font=payload.get("font"),
        color=payload.get("color"),
        position=payload.get("position"),
        verification_method=claims.get("method"),
        verification_jti=jti,
        timestamp=now,
        is_active=True,
    )
    db.add(signature)
    stage.committed_at = now
    stage.verification_jti = jti
    db.add(stage)
    db.flush()

    audit_services.log_event(
        db,
        actor_user_id=actor.id,
        entity_type="efiling_file",
        entity_id=file.id,
        action=audit_services.ADD_SIGNATURE,
        before={"replaced": [row.id for row in previous]} if previous else None,
        after={"signature_id": signature.id, "type": signature.type.value},
        metadata={"verification_method": claims.get("method")},
        critical=True,
    )
    notification_service.notify_users(
        db,
        user_ids=[file.created_by, file.assigned_to],
        type="SIGNATURE_ADDED",
        message=f"{actor.full_name} signed file {file.file_number}",
        file_id=file.id,
        exclude_user_id=actor.id,
    )
    return signature


def purge_expired_stages(db: Session, *, user_id: str) -> int:
    """Drop the user's uncommitted stages past their expiry."""
    stale = (
        db.query(models.SignatureStage)
        .filter(
            models.SignatureStage.user_id == user_id,
            models.SignatureStage.committed_at.is_(None),
            models.SignatureStage.expires_at < utcnow(),
        )
        .all()
    )
    for stage in stale:
        db.delete(stage)
    return len(stale)
