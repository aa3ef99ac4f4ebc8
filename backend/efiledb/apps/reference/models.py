# backend/efiledb/apps/reference/models.py
#
# Lookup tables behind the work-request intake form. These keep integer keys
# because field agents and the mobile app refer to them by number.

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, SmallInteger, String, Text
from sqlalchemy.orm import relationship

from efiledb.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AgentRole:
    EXECUTIVE_ENGINEER = 1
    CONTRACTOR = 2


class Town(Base):
    __tablename__ = "town"

    id = Column(Integer, primary_key=True, autoincrement=True)
    town = Column(String(128), nullable=False, unique=True)
    is_active = Column(Boolean, nullable=False, default=True)

    subtowns = relationship("Subtown", back_populates="town_ref", lazy="selectin")


class Subtown(Base):
    __tablename__ = "subtown"

    id = Column(Integer, primary_key=True, autoincrement=True)
    town_id = Column(Integer, ForeignKey("town.id", ondelete="CASCADE"), nullable=False, index=True)
    subtown = Column(String(128), nullable=False)

    town_ref = relationship("Town", back_populates="subtowns")


class Division(Base):
    __tablename__ = "divisions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False, unique=True)
    code = Column(String(32), nullable=True, unique=True)
    ce_type = Column(String(64), nullable=True)
    department_id = Column(
        String(36),
        ForeignKey("efiling_departments.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)


class ComplaintType(Base):
    """
    A department as the intake form presents it. A type with a division is
    handled per division instead of per town.
    """

    __tablename__ = "complaint_types"

    id = Column(Integer, primary_key=True, autoincrement=True)
    type_name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    division_id = Column(Integer, ForeignKey("divisions.id", ondelete="SET NULL"), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    division = relationship("Division", lazy="joined")

    @property
    def division_name(self):
        return self.division.name if self.division else None


class ComplaintSubtype(Base):
    __tablename__ = "complaint_subtypes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    complaint_type_id = Column(
        Integer,
        ForeignKey("complaint_types.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    subtype_name = Column(String(255), nullable=False)


class Agent(Base):
    """Field agents: executive engineers (role 1) and contractors (role 2)."""

    __tablename__ = "agents"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True, unique=True)
    contact_number = Column(String(32), nullable=True)
    designation = Column(String(128), nullable=True)
    address = Column(Text, nullable=True)
    role = Column(SmallInteger, nullable=False, default=AgentRole.EXECUTIVE_ENGINEER, index=True)
    town_id = Column(Integer, ForeignKey("town.id", ondelete="SET NULL"), nullable=True, index=True)
    division_id = Column(Integer, ForeignKey("divisions.id", ondelete="SET NULL"), nullable=True, index=True)
    complaint_type_id = Column(
        Integer,
        ForeignKey("complaint_types.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    town = relationship("Town", lazy="joined")
    division = relationship("Division", lazy="joined")
    complaint_type = relationship("ComplaintType", lazy="joined")

    @property
    def town_name(self):
        return self.town.town if self.town else None

    @property
    def division_name(self):
        return self.division.name if self.division else None

    @property
    def complaint_type_name(self):
        return self.complaint_type.type_name if self.complaint_type else None


class SocialMediaPerson(Base):
    __tablename__ = "socialmediaperson"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True, unique=True)
    contact_number = Column(String(32), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
