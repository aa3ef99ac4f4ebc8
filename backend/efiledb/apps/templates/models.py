# backend/efiledb/apps/templates/models.py

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, String, Text

from efiledb.database import Base
from efiledb.utils.identifiers import generate_uuid7


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DocumentTemplate(Base):
    """
    Reusable note-sheet text. `main_content` is stored as plain text (or
    HTML) and converted to paragraphs when applied to a page.

    Visibility for non-admins: own templates, plus templates whose
    department and role are unset or match the user.
    """

    __tablename__ = "efiling_templates"
    __table_args__ = (
        Index("ix_efiling_templates_scope", "department_id", "role_id", "is_active"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid7)
    name = Column(String(255), nullable=False)
    template_type = Column(String(64), nullable=False, default="note")
    title = Column(String(255), nullable=True)
    subject = Column(String(500), nullable=True)
    main_content = Column(Text, nullable=True)

    category_id = Column(
        String(36),
        ForeignKey("efiling_file_categories.id", ondelete="SET NULL"),
        nullable=True,
    )
    department_id = Column(
        String(36),
        ForeignKey("efiling_departments.id", ondelete="SET NULL"),
        nullable=True,
    )
    role_id = Column(
        String(36),
        ForeignKey("efiling_roles.id", ondelete="SET NULL"),
        nullable=True,
    )

    is_system_template = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    usage_count = Column(Integer, nullable=False, default=0)
    last_used_at = Column(DateTime(timezone=True), nullable=True)

    created_by = Column(
        String(36),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    def __repr__(self) -> str:
        return f"<DocumentTemplate {self.name!r} type={self.template_type}>"
