"""
Routing Infrastructure Models
=============================

SQLAlchemy ORM models for the routing module.
"""

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON, Boolean, DateTime, ForeignKey, Index, Integer, String, Text,
    UniqueConstraint, Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from helpdesk.config import TeamRole
from helpdesk.infrastructure.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TeamModel(Base):
    """Maps to the 'teams' table."""
    __tablename__ = "teams"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)


class TeamMemberModel(Base):
    """Maps to the 'team_members' table."""
    __tablename__ = "team_members"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    team_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("teams.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(50), nullable=False, default=TeamRole.MEMBER)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    __table_args__ = (
        UniqueConstraint("team_id", "user_id", name="uq_team_members_team_user"),
    )


class TeamAssignmentRuleModel(Base):
    """
    Maps to the 'team_assignment_rules' table.

    ``conditions`` holds the tagged condition list as JSON.
    """
    __tablename__ = "team_assignment_rules"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    team_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("teams.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    conditions: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)


class TicketAssignmentModel(Base):
    """
    Maps to the 'ticket_assignments' table.

    Append-only. Round-robin rows carry a per-team ``rotation_seq``; the
    unique (new_team_id, rotation_seq) constraint lets only one of two
    racing assignments claim a rotation slot. Rows without a sequence
    (manual and team-only assignments) are unconstrained.
    """
    __tablename__ = "ticket_assignments"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    ticket_id: Mapped[UUID] = mapped_column(Uuid, nullable=False, index=True)
    assigned_from: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    assigned_to: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    previous_team_id: Mapped[Optional[UUID]] = mapped_column(Uuid, nullable=True)
    new_team_id: Mapped[Optional[UUID]] = mapped_column(Uuid, nullable=True)
    assigned_by: Mapped[str] = mapped_column(String(255), nullable=False)
    reason: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    rotation_seq: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    __table_args__ = (
        UniqueConstraint("new_team_id", "rotation_seq", name="uq_ticket_assignments_team_seq"),
        Index("ix_ticket_assignments_team_created", "new_team_id", "created_at"),
    )
