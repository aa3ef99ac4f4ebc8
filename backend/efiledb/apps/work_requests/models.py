# backend/efiledb/apps/work_requests/models.py

from __future__ import annotations

import enum
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from efiledb.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CreatorType(str, enum.Enum):
    USER = "user"
    AGENT = "agent"
    SOCIALMEDIA = "socialmedia"


class WorkRequest(Base):
    """
    A complaint or work request raised by a user, a field agent or a social
    media person. Town-based requests carry town/subtown, division-based ones
    carry division_id only.
    """

    __tablename__ = "work_requests"

    id = Column(Integer, primary_key=True, autoincrement=True)

    complaint_type_id = Column(Integer, ForeignKey("complaint_types.id"), nullable=False, index=True)
    complaint_subtype_id = Column(Integer, ForeignKey("complaint_subtypes.id"), nullable=True)
    town_id = Column(Integer, ForeignKey("town.id"), nullable=True, index=True)
    subtown_id = Column(Integer, ForeignKey("subtown.id"), nullable=True)
    division_id = Column(Integer, ForeignKey("divisions.id"), nullable=True, index=True)

    contact_number = Column(String(32), nullable=False)
    address = Column(Text, nullable=False)
    description = Column(Text, nullable=False)
    nature_of_work = Column(String(255), nullable=True)
    file_type = Column(String(8), nullable=True)
    budget_code = Column(String(64), nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)

    executive_engineer_id = Column(Integer, ForeignKey("agents.id"), nullable=True, index=True)
    contractor_id = Column(Integer, ForeignKey("agents.id"), nullable=True, index=True)

    # User ids are UUID strings, agent and social-media ids are integers.
    creator_id = Column(String(64), nullable=False, index=True)
    creator_type = Column(String(16), nullable=False)

    status = Column(String(32), nullable=False, default="Pending", index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    complaint_type = relationship("ComplaintType", lazy="joined")
    town = relationship("Town", lazy="joined")
    division = relationship("Division", lazy="joined")
    executive_engineer = relationship("Agent", foreign_keys=[executive_engineer_id], lazy="joined")
    contractor = relationship("Agent", foreign_keys=[contractor_id], lazy="joined")

    subtowns = relationship(
        "WorkRequestSubtown",
        back_populates="work_request",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    sm_agents = relationship(
        "WorkRequestSmAgent",
        back_populates="work_request",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    locations = relationship(
        "WorkRequestLocation",
        back_populates="work_request",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="WorkRequestLocation.id",
    )

    @property
    def complaint_type_name(self):
        return self.complaint_type.type_name if self.complaint_type else None

    @property
    def town_name(self):
        return self.town.town if self.town else None

    @property
    def division_name(self):
        return self.division.name if self.division else None

    @property
    def executive_engineer_name(self):
        return self.executive_engineer.name if self.executive_engineer else None

    @property
    def contractor_name(self):
        return self.contractor.name if self.contractor else None

    @property
    def subtown_ids(self):
        return [row.subtown_id for row in self.subtowns]

    @property
    def assigned_sm_agents(self):
        return [row.socialmedia_agent_id for row in self.sm_agents]


class WorkRequestSubtown(Base):
    __tablename__ = "work_request_subtowns"

    id = Column(Integer, primary_key=True, autoincrement=True)
    work_request_id = Column(
        Integer,
        ForeignKey("work_requests.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    subtown_id = Column(Integer, ForeignKey("subtown.id"), nullable=False)

    work_request = relationship("WorkRequest", back_populates="subtowns")


class WorkRequestSmAgent(Base):
    __tablename__ = "work_request_sm_agents"

    id = Column(Integer, primary_key=True, autoincrement=True)
    work_request_id = Column(
        Integer,
        ForeignKey("work_requests.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    socialmedia_agent_id = Column(Integer, ForeignKey("socialmediaperson.id"), nullable=False)
    status = Column(String(32), nullable=False, default="pending")

    work_request = relationship("WorkRequest", back_populates="sm_agents")


class WorkRequestLocation(Base):
    __tablename__ = "work_request_locations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    work_request_id = Column(
        Integer,
        ForeignKey("work_requests.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    description = Column(Text, nullable=True)

    work_request = relationship("WorkRequest", back_populates="locations")
