"""
Ticket Infrastructure Models
============================

SQLAlchemy ORM models for the tickets module.

Cross-context references (team, SLA policy, users) are soft references:
no foreign keys, matching how the store treats them.
"""

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import String, DateTime, Text, Uuid, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column

from helpdesk.infrastructure.database import Base
from helpdesk.config import Priority, TicketStatus, TicketSource, MessageType


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TicketModel(Base):
    """
    Database model for Ticket entity.

    Maps to the 'tickets' table.
    """
    __tablename__ = "tickets"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    customer_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)

    # Content
    subject: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # Attributes used for routing
    status: Mapped[str] = mapped_column(String(50), nullable=False, default=TicketStatus.NEW)
    priority: Mapped[str] = mapped_column(String(50), nullable=False, default=Priority.MEDIUM)
    source: Mapped[str] = mapped_column(String(50), nullable=False, default=TicketSource.WEB)
    category: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    customer_type: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    # Ownership
    assigned_to: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, index=True)
    team_id: Mapped[Optional[UUID]] = mapped_column(Uuid, nullable=True, index=True)

    # SLA tracking
    sla_policy_id: Mapped[Optional[UUID]] = mapped_column(Uuid, nullable=True)
    first_response_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    sla_response_due_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    sla_resolution_due_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    resolved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    __table_args__ = (
        Index("ix_tickets_status_sla_policy", "status", "sla_policy_id"),
    )


class TicketMessageModel(Base):
    """
    Database model for TicketMessage entity.

    Maps to the 'ticket_messages' table.
    """
    __tablename__ = "ticket_messages"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    ticket_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("tickets.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    sender_id: Mapped[str] = mapped_column(String(255), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    message_type: Mapped[str] = mapped_column(String(50), nullable=False, default=MessageType.REPLY)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
