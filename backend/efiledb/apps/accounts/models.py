# backend/efiledb/apps/accounts/models.py

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
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
# ROLES & DEPARTMENTS
# ---------------------------------------------------------------------------


class Role(Base):
    """
    E-filing role, identified by its code (SE, CE, XEN, CEO, SYS_ADMIN, ...).

    Workflow rules match on the code, including prefixed variants such as
    `SE_WATER` or `CE_SEWERAGE`.
    """

    __tablename__ = "efiling_roles"

    id = Column(String(36), primary_key=True, default=generate_uuid7)
    code = Column(String(64), nullable=False, unique=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True, index=True)

    users = relationship("User", back_populates="role")

    def __repr__(self) -> str:
        return f"<Role {self.code}>"


class Department(Base):
    """
    Owning department of a file. The code prefixes file numbers.
    """

    __tablename__ = "efiling_departments"

    id = Column(String(36), primary_key=True, default=generate_uuid7)
    code = Column(
        String(32),
        nullable=False,
        unique=True,
        doc="Short code used in file numbers, e.g. 'WTR', 'BUDGET'",
    )
    name = Column(String(255), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    sort_order = Column(Integer, nullable=False, default=100)

    users = relationship("User", back_populates="department")

    def __repr__(self) -> str:
        return f"<Department {self.code}>"


# ---------------------------------------------------------------------------
# USERS
# ---------------------------------------------------------------------------


class User(Base):
    """
    E-filing user account.

    Geography (town / division) is kept as plain integer references into the
    reference-data tables so requests and agents can be matched to staff.
    """

    __tablename__ = "users"
    __table_args__ = (
        Index("idx_users_role_active", "role_id", "is_active"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid7)
    email = Column(String(255), nullable=False, unique=True, index=True)
    full_name = Column(String(255), nullable=False)
    phone = Column(String(32), nullable=True)
    designation = Column(String(255), nullable=True)

    hashed_password = Column(String(255), nullable=False)
    # Base32 secret for authenticator-app (TOTP) signing verification.
    totp_secret = Column(String(64), nullable=True)

    role_id = Column(
        String(36),
        ForeignKey("efiling_roles.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    department_id = Column(
        String(36),
        ForeignKey("efiling_departments.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    town_id = Column(Integer, nullable=True, index=True)
    division_id = Column(Integer, nullable=True, index=True)

    is_active = Column(Boolean, nullable=False, default=True, index=True)
    is_superuser = Column(Boolean, nullable=False, default=False)

    last_login_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )

    role = relationship("Role", back_populates="users", lazy="joined")
    department = relationship("Department", back_populates="users", lazy="joined")

    @property
    def role_code(self) -> str:
        return (self.role.code if self.role else "").upper()

    @property
    def role_name(self) -> str:
        return self.role.name if self.role else ""

    @property
    def department_name(self) -> str:
        return self.department.name if self.department else ""

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email} role={self.role_code or '-'}>"


class TeamMembership(Base):
    """
    Links a manager (e.g. an XEN or SE) to the staff who work files with them.

    team_role describes the member's position in that team: AO, ASSISTANT,
    SE_ASSISTANT, CE_ASSISTANT, CLERK, ...
    """

    __tablename__ = "efiling_user_teams"
    __table_args__ = (
        UniqueConstraint("manager_id", "team_member_id", name="uq_efiling_team_member"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid7)
    manager_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    team_member_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    team_role = Column(String(32), nullable=False, default="ASSISTANT")
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    manager = relationship("User", foreign_keys=[manager_id], lazy="joined")
    member = relationship("User", foreign_keys=[team_member_id], lazy="joined")

    def __repr__(self) -> str:
        return f"<TeamMembership manager={self.manager_id} member={self.team_member_id} role={self.team_role}>"
