from __future__ import annotations

from datetime import datetime, timezone
import enum

from sqlalchemy import Boolean, Column, DateTime, Enum as SAEnum, ForeignKey, Index, JSON, String, Text

from efiledb.database import Base
from efiledb.utils.identifiers import generate_uuid7


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DeliveryStatus(str, enum.Enum):
    QUEUED = "QUEUED"
    SENT = "SENT"
    FAILED = "FAILED"
    SKIPPED_NO_PROVIDER = "SKIPPED_NO_PROVIDER"


class DeliveryChannel(str, enum.Enum):
    EMAIL = "email"
    SMS = "sms"


class Notification(Base):
    """In-app notification shown to a user about a file."""

    __tablename__ = "efiling_notifications"
    __table_args__ = (
        Index("ix_efiling_notifications_user_read", "user_id", "is_read"),
        Index("ix_efiling_notifications_user_created", "user_id", "created_at"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid7, index=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    file_id = Column(String(36), ForeignKey("efiling_files.id", ondelete="CASCADE"), nullable=True, index=True)
    type = Column(String(64), nullable=False, index=True)
    message = Column(Text, nullable=False)
    priority = Column(String(16), nullable=False, default="normal")
    action_required = Column(Boolean, nullable=False, default=False)
    is_read = Column(Boolean, nullable=False, default=False)
    read_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, index=True)

    def __repr__(self) -> str:
        return f"<Notification id={self.id} user={self.user_id} type={self.type}>"


class DeliveryLog(Base):
    """Outbound SMS / e-mail attempt (OTP codes and alerts)."""

    __tablename__ = "efiling_delivery_logs"
    __table_args__ = (
        Index("ix_efiling_delivery_logs_status_created", "status", "created_at"),
        Index("ix_efiling_delivery_logs_recipient", "recipient"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid7, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, index=True)
    sent_at = Column(DateTime(timezone=True), nullable=True)

    channel = Column(
        SAEnum(DeliveryChannel, name="delivery_channel_enum", native_enum=False),
        nullable=False,
    )
    recipient = Column(String(255), nullable=False)
    subject = Column(String(255), nullable=False)
    template_key = Column(String(128), nullable=False, index=True)
    status = Column(
        SAEnum(DeliveryStatus, name="delivery_status_enum", native_enum=False),
        nullable=False,
        index=True,
    )
    error = Column(Text, nullable=True)
    # Never store secrets (OTP codes) here; context is redacted by the service.
    context_json = Column(JSON, nullable=True)
    correlation_id = Column(String(64), nullable=True, index=True)

    def __repr__(self) -> str:
        return f"<DeliveryLog id={self.id} channel={self.channel} recipient={self.recipient} status={self.status}>"
