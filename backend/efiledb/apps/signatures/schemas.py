# backend/efiledb/apps/signatures/schemas.py

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from .models import SignatureKind, TemplateKind, VerificationMethod


class SignatureCreate(BaseModel):
    type: SignatureKind
    content: str = Field(..., min_length=1)
    font: Optional[str] = None
    color: Optional[str] = None
    position: Optional[Dict[str, Any]] = None


class SignatureStageRead(BaseModel):
    stage_id: str
    expires_at: datetime


class SignatureCommit(BaseModel):
    stage_id: str
    verification_token: str


class SignatureRead(BaseModel):
    id: str
    file_id: str
    user_id: Optional[str] = None
    user_name: str
    user_role: Optional[str] = None
    type: SignatureKind
    content: str
    font: Optional[str] = None
    color: Optional[str] = None
    position: Optional[Dict[str, Any]] = None
    timestamp: datetime
    is_active: bool

    class Config:
        from_attributes = True


# ---------------------------------------------------------------------------
# Saved templates
# ---------------------------------------------------------------------------


class UserSignatureRead(BaseModel):
    id: str
    signature_name: str
    signature_type: TemplateKind
    signature_data: Optional[str] = None
    file_url: Optional[str] = None
    font: Optional[str] = None
    color: Optional[str] = None
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class SignatureUpload(BaseModel):
    """Drawn or typed signature. Drawn ones arrive as a base64 image data URL."""

    signature_type: TemplateKind = TemplateKind.DRAWN
    signature_name: Optional[str] = None
    signature_data: str = Field(..., min_length=1)
    font: Optional[str] = None
    color: Optional[str] = None


class SignatureManage(BaseModel):
    action: str = Field(..., pattern="^(activate|deactivate|delete)$")
    signature_id: str


# ---------------------------------------------------------------------------
# Identity verification
# ---------------------------------------------------------------------------


class SendOtpRequest(BaseModel):
    method: VerificationMethod = VerificationMethod.SMS


class SendOtpResponse(BaseModel):
    message: str
    method: VerificationMethod
    expires_in: int
    delivered: bool


class VerifyAuthRequest(BaseModel):
    method: VerificationMethod = VerificationMethod.SMS
    code: str = Field(..., min_length=4, max_length=12)


class GoogleAuthRequest(BaseModel):
    id_token: str = Field(..., min_length=1)


class AuthenticatorEnrollmentRead(BaseModel):
    secret: str
    otpauth_uri: str


class VerificationTokenRead(BaseModel):
    verification_token: str
    token_type: str = "verification"
    expires_in: int
