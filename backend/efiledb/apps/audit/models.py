from __future__ import annotations

from sqlalchemy import Column, DateTime, ForeignKey, Index, JSON, String, desc
from sqlalchemy.orm import relationship

from efiledb.database import Base
from efiledb.utils.identifiers import generate_uuid7
from efiledb.utils.timestamps import utcnow


class AuditEvent(Base):
    """
    Append-only record of who did what to a file or work request.
    ``before``/``after`` hold small JSON snapshots, never page bodies.
    """

    __tablename__ = "audit_events"
    __table_args__ = (
        Index("ix_audit_events_entity", "entity_type", "entity_id"),
        Index("ix_audit_events_action_time", "action", "occurred_at"),
        Index("ix_audit_events_time_desc", desc("occurred_at")),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid7)
    entity_type = Column(String(64), nullable=False)
    entity_id = Column(String(64), nullable=False)
    action = Column(String(64), nullable=False)
    actor_user_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    occurred_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    before = Column(JSON, nullable=True)
    after = Column(JSON, nullable=True)
    correlation_id = Column(String(64), nullable=True)
    metadata_json = Column("metadata", JSON, nullable=True)

    actor = relationship("User", lazy="joined")

    @property
    def actor_name(self):
        return self.actor.full_name if self.actor else None

    def __repr__(self) -> str:
        return f"<AuditEvent {self.action} {self.entity_type}:{self.entity_id}>"
