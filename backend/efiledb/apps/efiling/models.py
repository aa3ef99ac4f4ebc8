# backend/efiledb/apps/efiling/models.py
#
# E-filing core:
# - EfilingFile        : the official file and its SLA clock.
# - FileWorkflowState  : where the file sits relative to its creator's team.
# - FileMovement       : every mark-to / return / completion.
# - DocumentPage       : ordered note-sheet pages; PageAddition records who appended them.
# - FileDocument       : free-form document body with a version counter.
# - FileComment / FileAttachment.

from __future__ import annotations

from datetime import datetime, timezone
import enum
from typing import Optional

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum as SAEnum,
    Float,
    ForeignKey,
    Index,
    Integer,
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


# ---------------------------------------------------------------------------
# ENUMS
# ---------------------------------------------------------------------------


class FileStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


class SlaStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    PAUSED = "PAUSED"
    BREACHED = "BREACHED"
    COMPLETED = "COMPLETED"


class WorkflowState(str, enum.Enum):
    TEAM_INTERNAL = "TEAM_INTERNAL"
    EXTERNAL = "EXTERNAL"
    RETURNED_TO_CREATOR = "RETURNED_TO_CREATOR"


class PageType(str, enum.Enum):
    MAIN = "MAIN"
    ATTACHMENT = "ATTACHMENT"


class MovementAction(str, enum.Enum):
    MARKED = "MARKED"
    RETURNED = "RETURNED"
    COMPLETED = "COMPLETED"


# ---------------------------------------------------------------------------
# FILES
# ---------------------------------------------------------------------------


class FileCategory(Base):
    __tablename__ = "efiling_file_categories"

    id = Column(String(36), primary_key=True, default=generate_uuid7)
    code = Column(String(32), nullable=False, unique=True)
    name = Column(String(255), nullable=False)
    department_id = Column(
        String(36),
        ForeignKey("efiling_departments.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    is_active = Column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<FileCategory {self.code}>"


class FileNumberSequence(Base):
    """Last issued serial per `DEPT/YEAR/` prefix; locked while numbering."""

    __tablename__ = "efiling_file_number_sequences"

    id = Column(String(36), primary_key=True, default=generate_uuid7)
    prefix = Column(String(64), nullable=False, unique=True)
    last_value = Column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<FileNumberSequence {self.prefix}{self.last_value}>"


class EfilingFile(Base):
    """
    Official file moving between officers.

    created_by never changes; assigned_to is whoever currently holds the
    file and with it the authority to edit, sign and mark it onward.
    """

    __tablename__ = "efiling_files"
    __table_args__ = (
        Index("ix_efiling_files_assigned_status", "assigned_to", "status"),
        Index("ix_efiling_files_creator_created", "created_by", "created_at"),
        Index("ix_efiling_files_department_created", "department_id", "created_at"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid7)
    file_number = Column(String(64), nullable=False, unique=True, index=True)
    subject = Column(String(500), nullable=False)

    department_id = Column(
        String(36),
        ForeignKey("efiling_departments.id", ondelete="RESTRICT"),
        nullable=False,
    )
    category_id = Column(
        String(36),
        ForeignKey("efiling_file_categories.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    priority = Column(String(16), nullable=False, default="high")
    confidentiality_level = Column(String(16), nullable=False, default="normal")
    status = Column(
        SAEnum(FileStatus, name="efiling_file_status_enum", native_enum=False),
        nullable=False,
        default=FileStatus.DRAFT,
        index=True,
    )
    remarks = Column(Text, nullable=True)

    created_by = Column(
        String(36),
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
    )
    assigned_to = Column(
        String(36),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    work_request_id = Column(
        Integer,
        ForeignKey("work_requests.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    # SLA / TAT clock
    sla_deadline = Column(DateTime(timezone=True), nullable=True)
    sla_status = Column(
        SAEnum(SlaStatus, name="efiling_sla_status_enum", native_enum=False),
        nullable=True,
    )
    sla_paused = Column(Boolean, nullable=False, default=False)
    sla_paused_at = Column(DateTime(timezone=True), nullable=True)
    sla_accumulated_hours = Column(Float, nullable=False, default=0.0)
    sla_pause_count = Column(Integer, nullable=False, default=0)

    page_count = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    creator = relationship("User", foreign_keys=[created_by], lazy="joined")
    assignee = relationship("User", foreign_keys=[assigned_to], lazy="joined")
    department = relationship("Department", lazy="joined")
    category = relationship("FileCategory", lazy="joined")
    workflow = relationship(
        "FileWorkflowState",
        back_populates="file",
        uselist=False,
        lazy="selectin",
    )

    @property
    def workflow_state(self) -> Optional[str]:
        if self.workflow is None:
            return None
        state = self.workflow.current_state
        return state.value if isinstance(state, WorkflowState) else state

    @property
    def is_within_team(self) -> bool:
        return bool(self.workflow and self.workflow.is_within_team)

    @property
    def department_name(self) -> str:
        return self.department.name if self.department else ""

    def __repr__(self) -> str:
        return f"<EfilingFile {self.file_number} status={self.status}>"


class FileWorkflowState(Base):
    __tablename__ = "efiling_file_workflow_states"

    id = Column(String(36), primary_key=True, default=generate_uuid7)
    file_id = Column(
        String(36),
        ForeignKey("efiling_files.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    creator_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    current_assigned_to = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    current_state = Column(
        SAEnum(WorkflowState, name="efiling_workflow_state_enum", native_enum=False),
        nullable=False,
        default=WorkflowState.TEAM_INTERNAL,
    )
    is_within_team = Column(Boolean, nullable=False, default=True)
    tat_started = Column(Boolean, nullable=False, default=False)
    tat_started_at = Column(DateTime(timezone=True), nullable=True)
    last_external_mark_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    file = relationship("EfilingFile", back_populates="workflow")

    def __repr__(self) -> str:
        return f"<FileWorkflowState file={self.file_id} state={self.current_state}>"


class FileMovement(Base):
    __tablename__ = "efiling_file_movements"
    __table_args__ = (
        Index("ix_efiling_file_movements_file_created", "file_id", "created_at"),
        Index("ix_efiling_file_movements_to_user", "to_user_id"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid7)
    file_id = Column(
        String(36),
        ForeignKey("efiling_files.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    from_user_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    to_user_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    from_department_id = Column(String(36), nullable=True)
    to_department_id = Column(String(36), nullable=True)
    action_type = Column(
        SAEnum(MovementAction, name="efiling_movement_action_enum", native_enum=False),
        nullable=False,
        default=MovementAction.MARKED,
    )
    remarks = Column(Text, nullable=True)
    is_return_to_creator = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    from_user = relationship("User", foreign_keys=[from_user_id], lazy="joined")
    to_user = relationship("User", foreign_keys=[to_user_id], lazy="joined")

    def __repr__(self) -> str:
        return f"<FileMovement file={self.file_id} {self.from_user_id}->{self.to_user_id}>"


# ---------------------------------------------------------------------------
# SLA
# ---------------------------------------------------------------------------


class SlaMatrixEntry(Base):
    """
    Turnaround hours for a move between two role patterns.

    Patterns are role codes where `*` matches any run of characters
    (`SE*`, `*_BUDGET`, `*`). The first active match by sort_order wins.
    """

    __tablename__ = "efiling_sla_matrix"

    id = Column(String(36), primary_key=True, default=generate_uuid7)
    from_role_code = Column(String(64), nullable=False, default="*")
    to_role_code = Column(String(64), nullable=False, default="*")
    sla_hours = Column(Integer, nullable=False, default=24)
    sort_order = Column(Integer, nullable=False, default=100)
    is_active = Column(Boolean, nullable=False, default=True, index=True)


class SlaPauseHistory(Base):
    __tablename__ = "efiling_sla_pause_history"

    id = Column(String(36), primary_key=True, default=generate_uuid7)
    file_id = Column(
        String(36),
        ForeignKey("efiling_files.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    paused_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    resumed_at = Column(DateTime(timezone=True), nullable=True)
    pause_reason = Column(String(64), nullable=False, default="MANUAL_PAUSE")
    paused_by_user_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    duration_hours = Column(Float, nullable=True)


# ---------------------------------------------------------------------------
# DOCUMENT
# ---------------------------------------------------------------------------


class DocumentPage(Base):
    """
    One note-sheet page. `content` holds {title, subject, date, matter, footer}
    where matter is HTML.
    """

    __tablename__ = "efiling_document_pages"
    __table_args__ = (
        UniqueConstraint("file_id", "page_number", name="uq_efiling_page_number"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid7)
    file_id = Column(
        String(36),
        ForeignKey("efiling_files.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    page_number = Column(Integer, nullable=False)
    title = Column(String(255), nullable=True)
    content = Column(JSON, nullable=False, default=dict)
    page_type = Column(
        SAEnum(PageType, name="efiling_page_type_enum", native_enum=False),
        nullable=False,
        default=PageType.MAIN,
    )
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    created_by = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    def __repr__(self) -> str:
        return f"<DocumentPage file={self.file_id} #{self.page_number}>"


class PageAddition(Base):
    __tablename__ = "efiling_page_additions"

    id = Column(String(36), primary_key=True, default=generate_uuid7)
    file_id = Column(
        String(36),
        ForeignKey("efiling_files.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    page_id = Column(
        String(36),
        ForeignKey("efiling_document_pages.id", ondelete="CASCADE"),
        nullable=False,
    )
    added_by = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    role_code = Column(String(64), nullable=True)
    addition_type = Column(String(32), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    user = relationship("User", lazy="joined")


class FileDocument(Base):
    __tablename__ = "efiling_documents"

    id = Column(String(36), primary_key=True, default=generate_uuid7)
    file_id = Column(
        String(36),
        ForeignKey("efiling_files.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    content = Column(JSON, nullable=False, default=dict)
    template_id = Column(
        String(36),
        ForeignKey("efiling_templates.id", ondelete="SET NULL"),
        nullable=True,
    )
    version = Column(Integer, nullable=False, default=1)
    updated_by = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)


# ---------------------------------------------------------------------------
# COMMENTS & ATTACHMENTS
# ---------------------------------------------------------------------------


class FileComment(Base):
    __tablename__ = "efiling_comments"
    __table_args__ = (
        Index("ix_efiling_comments_file_time", "file_id", "timestamp"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid7)
    file_id = Column(
        String(36),
        ForeignKey("efiling_files.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    user_name = Column(String(255), nullable=False)
    user_role = Column(String(64), nullable=True)
    text = Column(Text, nullable=False)
    timestamp = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    edited = Column(Boolean, nullable=False, default=False)
    edited_at = Column(DateTime(timezone=True), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)


class FileAttachment(Base):
    __tablename__ = "efiling_attachments"
    __table_args__ = (
        Index("ix_efiling_attachments_file_uploaded", "file_id", "uploaded_at"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid7)
    file_id = Column(
        String(36),
        ForeignKey("efiling_files.id", ondelete="CASCADE"),
        nullable=False,
    )
    file_name = Column(String(255), nullable=False)
    stored_name = Column(String(255), nullable=False)
    file_url = Column(String(512), nullable=False)
    file_type = Column(String(128), nullable=False)
    file_size = Column(Integer, nullable=False)
    uploaded_by = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    uploaded_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    is_active = Column(Boolean, nullable=False, default=True)
