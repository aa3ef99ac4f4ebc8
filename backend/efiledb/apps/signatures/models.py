# backend/efiledb/apps/signatures/models.py
#
# Signature ledger for e-filing:
# - FileSignature    : a signature placed on a file (historical rows kept inactive).
# - UserSignature    : a user's saved signature templates (typed / drawn / scanned).
# - SignatureStage   : phase one of signing; committed once identity is re-verified.
# - VerificationCode : hashed OTP for identity re-verification.

from __future__ import annotations

from datetime import datetime, timezone
import enum

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Index,
    JSON,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from efiledb.database import Base
from efiledb.utils.identifiers import generate_uuid7


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SignatureKind(str, enum.Enum):
    TEXT = "text"
    IMAGE = "image"


class TemplateKind(str, enum.Enum):
    TYPED = "typed"
    DRAWN = "drawn"
    SCANNED = "scanned"


class VerificationMethod(str, enum.Enum):
    SMS = "sms"
    EMAIL = "email"
    AUTHENTICATOR = "authenticator"
    GOOGLE = "google"


class FileSignature(Base):
    __tablename__ = "efiling_signatures"
    __table_args__ = (
        Index("ix_efiling_signatures_file_user_active", "file_id", "user_id", "is_active"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid7)
    file_id = Column(
        String(36),
        ForeignKey("efiling_files.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    user_name = Column(String(255), nullable=False)
    user_role = Column(String(64), nullable=True)

    type = Column(
        SAEnum(SignatureKind, name="efiling_signature_kind_enum", native_enum=False),
        nullable=False,
    )
    # Typed text, or a data URL / stored path for image signatures.
    content = Column(Text, nullable=False)
    font = Column(String(64), nullable=True)
    color = Column(String(32), nullable=True)
    position = Column(JSON, nullable=True)

    verification_method = Column(String(32), nullable=True)
    verification_jti = Column(String(64), nullable=True, unique=True)

    timestamp = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    is_active = Column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<FileSignature file={self.file_id} user={self.user_id} active={self.is_active}>"


class UserSignature(Base):
    __tablename__ = "efiling_user_signatures"

    id = Column(String(36), primary_key=True, default=generate_uuid7)
    user_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    signature_name = Column(String(128), nullable=False)
    signature_type = Column(
        SAEnum(TemplateKind, name="efiling_signature_template_kind_enum", native_enum=False),
        nullable=False,
    )
    signature_data = Column(Text, nullable=True)
    file_url = Column(String(512), nullable=True)
    font = Column(String(64), nullable=True)
    color = Column(String(32), nullable=True)
    is_active = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    user = relationship("User", lazy="joined")


class SignatureStage(Base):
    __tablename__ = "efiling_signature_stages"

    id = Column(String(36), primary_key=True, default=generate_uuid7)
    file_id = Column(
        String(36),
        ForeignKey("efiling_files.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    payload = Column(JSON, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    committed_at = Column(DateTime(timezone=True), nullable=True)
    verification_jti = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)


class VerificationCode(Base):
    __tablename__ = "efiling_verification_codes"
    __table_args__ = (
        UniqueConstraint("user_id", "method", name="uq_efiling_verification_user_method"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid7)
    user_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    method = Column(
        SAEnum(VerificationMethod, name="efiling_verification_method_enum", native_enum=False),
        nullable=False,
    )
    code_hash = Column(String(255), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
