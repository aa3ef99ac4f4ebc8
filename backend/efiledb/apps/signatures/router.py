# backend/efiledb/apps/signatures/router.py

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from sqlalchemy.orm import Session

from efiledb.apps.accounts.models import User
from efiledb.apps.efiling import services as efiling_services
from efiledb.apps.notifications import models as notification_models
from efiledb.database import get_db
from efiledb.security import get_current_active_user

from . import schemas, services, user_signatures, verification

router = APIRouter(
    prefix="/api/efiling",
    tags=["efiling_signatures"],
    dependencies=[Depends(get_current_active_user)],
)


# ---------------------------------------------------------------------------
# Signatures on a file
# ---------------------------------------------------------------------------


@router.get("/files/{file_id}/signatures", response_model=List[schemas.SignatureRead])
def list_file_signatures(file_id: str, db: Session = Depends(get_db)):
    file = efiling_services.get_file_or_404(db, file_id)
    return services.list_file_signatures(db, file.id)


@router.post(
    "/files/{file_id}/signatures/stage",
    response_model=schemas.SignatureStageRead,
    status_code=status.HTTP_201_CREATED,
)
def stage_signature(
    file_id: str,
    payload: schemas.SignatureCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    file = efiling_services.get_file_or_404(db, file_id)
    stage = services.stage_signature(db, file=file, data=payload, actor=current_user)
    db.commit()
    return schemas.SignatureStageRead(stage_id=stage.id, expires_at=stage.expires_at)


@router.post(
    "/files/{file_id}/signatures",
    response_model=schemas.SignatureRead,
    status_code=status.HTTP_201_CREATED,
)
def commit_signature(
    file_id: str,
    payload: schemas.SignatureCommit,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    file = efiling_services.get_file_or_404(db, file_id)
    signature = services.commit_signature(
        db,
        file=file,
        stage_id=payload.stage_id,
        verification_token=payload.verification_token,
        actor=current_user,
    )
    db.commit()
    db.refresh(signature)
    return signature


# ---------------------------------------------------------------------------
# Saved signature templates
# ---------------------------------------------------------------------------


@router.get("/signatures", response_model=List[schemas.UserSignatureRead])
def list_my_signatures(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    return user_signatures.list_templates(db, current_user.id)


@router.post(
    "/signatures/upload",
    response_model=schemas.UserSignatureRead,
    status_code=status.HTTP_201_CREATED,
)
def upload_signature(
    payload: schemas.SignatureUpload,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    template = user_signatures.upload_signature(
        db,
        user=current_user,
        signature_type=payload.signature_type,
        signature_data=payload.signature_data,
        signature_name=payload.signature_name,
        font=payload.font,
        color=payload.color,
    )
    db.commit()
    db.refresh(template)
    return template


@router.post(
    "/signatures/scan",
    response_model=schemas.UserSignatureRead,
    status_code=status.HTTP_201_CREATED,
)
def scan_signature(
    upload: UploadFile = File(..., alias="file"),
    signature_name: Optional[str] = Form(default=None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    template = user_signatures.scan_signature(
        db,
        user=current_user,
        upload=upload,
        signature_name=signature_name,
    )
    db.commit()
    db.refresh(template)
    return template


@router.post("/signatures/manage", response_model=List[schemas.UserSignatureRead])
def manage_signatures(
    payload: schemas.SignatureManage,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    templates = user_signatures.manage_template(
        db,
        user=current_user,
        action=payload.action,
        signature_id=payload.signature_id,
    )
    db.commit()
    return templates


# ---------------------------------------------------------------------------
# Identity verification
# ---------------------------------------------------------------------------


@router.post("/send-otp", response_model=schemas.SendOtpResponse)
def send_otp(
    payload: schemas.SendOtpRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    _record, _code, delivery = verification.send_otp(db, user=current_user, method=payload.method)
    db.commit()
    return schemas.SendOtpResponse(
        message="Verification code sent",
        method=payload.method,
        expires_in=verification.OTP_TTL_MINUTES * 60,
        delivered=delivery.status == notification_models.DeliveryStatus.SENT,
    )


@router.post("/authenticator/enroll", response_model=schemas.AuthenticatorEnrollmentRead)
def enroll_authenticator(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    secret, uri = verification.enroll_authenticator(db, user=current_user)
    db.commit()
    return schemas.AuthenticatorEnrollmentRead(secret=secret, otpauth_uri=uri)


@router.post("/verify-auth", response_model=schemas.VerificationTokenRead)
def verify_auth(
    payload: schemas.VerifyAuthRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    try:
        token, expires_in = verification.verify_code(
            db, user=current_user, method=payload.method, code=payload.code
        )
    finally:
        # Expired codes are removed even when verification fails.
        db.commit()
    return schemas.VerificationTokenRead(verification_token=token, expires_in=expires_in)


@router.post("/google-auth", response_model=schemas.VerificationTokenRead)
def google_auth(
    payload: schemas.GoogleAuthRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    token, expires_in = verification.verify_google(db, user=current_user, id_token=payload.id_token)
    return schemas.VerificationTokenRead(verification_token=token, expires_in=expires_in)
