# backend/efiledb/apps/signatures/verification.py

"""
Identity re-verification before signing.

SMS and e-mail codes are six digits, stored hashed, one live code per
(user, method), and deleted on first successful use. Authenticator codes are
TOTP values checked against the secret stored on the user at enrolment.
"""

from __future__ import annotations

import logging
import os
import secrets
from datetime import timedelta
from typing import Tuple

import pyotp
from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from efiledb import security
from efiledb.apps.accounts import models as account_models
from efiledb.apps.notifications import models as notification_models
from efiledb.apps.notifications import service as notification_service
from efiledb.utils.timestamps import as_utc, utcnow

from . import models, providers

logger = logging.getLogger(__name__)

OTP_TTL_MINUTES = int(os.getenv("OTP_TTL_MINUTES", "10"))
AUTHENTICATOR_ISSUER = os.getenv("AUTHENTICATOR_ISSUER", "KW&SC E-Filing")
# The previous and next 30 s steps are accepted too.
TOTP_VALID_WINDOW = 1

_CHANNELS = {
    models.VerificationMethod.SMS: notification_models.DeliveryChannel.SMS,
    models.VerificationMethod.EMAIL: notification_models.DeliveryChannel.EMAIL,
}


def generate_code() -> str:
    return f"{secrets.randbelow(10 ** 6):06d}"


def _get_code(db: Session, user_id: str, method: models.VerificationMethod):
    return (
        db.query(models.VerificationCode)
        .filter(
            models.VerificationCode.user_id == user_id,
            models.VerificationCode.method == method,
        )
        .first()
    )


def send_otp(
    db: Session,
    *,
    user: account_models.User,
    method: models.VerificationMethod,
) -> Tuple[models.VerificationCode, str, notification_models.DeliveryLog]:
    channel = _CHANNELS.get(method)
    if channel is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Use the code shown in your authenticator app",
        )
    recipient = user.phone if channel == notification_models.DeliveryChannel.SMS else user.email
    if not recipient:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No phone number on file" if channel == notification_models.DeliveryChannel.SMS else "No e-mail on file",
        )

    code = generate_code()
    expires_at = utcnow() + timedelta(minutes=OTP_TTL_MINUTES)
    record = _get_code(db, user.id, method)
    if record is None:
        record = models.VerificationCode(user_id=user.id, method=method)
    record.code_hash = security.get_password_hash(code)
    record.expires_at = expires_at
    db.add(record)
    db.flush()

    delivery = notification_service.send_message(
        db,
        channel=channel.value,
        template_key="signature_otp",
        recipient=recipient,
        subject="Your e-filing verification code",
        context={"code": code, "expires_minutes": OTP_TTL_MINUTES, "user_name": user.full_name},
    )
    return record, code, delivery


def enroll_authenticator(db: Session, *, user: account_models.User) -> Tuple[str, str]:
    """Store a fresh TOTP secret. Returns (secret, otpauth:// provisioning URI)."""
    secret = pyotp.random_base32()
    user.totp_secret = secret
    db.add(user)
    db.flush()
    uri = pyotp.TOTP(secret).provisioning_uri(name=user.email, issuer_name=AUTHENTICATOR_ISSUER)
    logger.info("Authenticator enrolled", extra={"user_id": user.id})
    return secret, uri


def _check_totp(user: account_models.User, code: str) -> None:
    if not user.totp_secret:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Authenticator app is not set up",
        )
    if not pyotp.TOTP(user.totp_secret).verify(code.strip(), valid_window=TOTP_VALID_WINDOW):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid code")


def _issue_token(user: account_models.User, method: models.VerificationMethod) -> Tuple[str, int]:
    token, _jti, expires_in = security.create_verification_token(user_id=user.id, method=method.value)
    logger.info("Identity verified for signing", extra={"user_id": user.id, "method": method.value})
    return token, expires_in


def verify_code(
    db: Session,
    *,
    user: account_models.User,
    method: models.VerificationMethod,
    code: str,
) -> Tuple[str, int]:
    """Check an OTP and exchange it for a verification token."""
    if method == models.VerificationMethod.AUTHENTICATOR:
        _check_totp(user, code)
        return _issue_token(user, method)

    record = _get_code(db, user.id, method)
    if record is None or as_utc(record.expires_at) < utcnow():
        if record is not None:
            db.delete(record)
            db.flush()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid or expired code")
    if not security.verify_password(code.strip(), record.code_hash):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid code")

    db.delete(record)
    db.flush()
    return _issue_token(user, method)


def verify_google(db: Session, *, user: account_models.User, id_token: str) -> Tuple[str, int]:
    try:
        verifier = providers.get_identity_verifier()
    except ValueError as exc:
        logger.warning("Identity verifier misconfigured", extra={"error": str(exc)})
        verifier = None
    if verifier is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Google verification is not configured",
        )
    try:
        email = verifier.verify(id_token)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc))
    if email.strip().lower() != (user.email or "").lower():
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Google account does not match the signed-in user",
        )
    return _issue_token(user, models.VerificationMethod.GOOGLE)
