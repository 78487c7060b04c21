"""
Ticket Infrastructure Repositories
==================================

SQLAlchemy implementations of the ticket repository interfaces.

Models are mapped to domain entities on the way out, with timestamps
normalized to UTC.
"""

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.config import ACTIVE_STATUSES
from helpdesk.core import RepositoryException, as_utc
from helpdesk.infrastructure.database import parse_uuid, format_uuid
from helpdesk.tickets.domain import (
    Ticket, TicketMessage, ITicketRepository, ITicketMessageRepository
)
from helpdesk.tickets.infrastructure.models import TicketModel, TicketMessageModel


def ticket_from_model(model: TicketModel) -> Ticket:
    """Convert a TicketModel row to the domain entity."""
    return Ticket(
        id=str(model.id),
        customer_id=model.customer_id,
        subject=model.subject,
        description=model.description,
        priority=model.priority,
        status=model.status,
        source=model.source,
        category=model.category,
        customer_type=model.customer_type,
        assigned_to=model.assigned_to,
        team_id=format_uuid(model.team_id),
        sla_policy_id=format_uuid(model.sla_policy_id),
        first_response_at=as_utc(model.first_response_at),
        sla_response_due_at=as_utc(model.sla_response_due_at),
        sla_resolution_due_at=as_utc(model.sla_resolution_due_at),
        resolved_at=as_utc(model.resolved_at),
        created_at=as_utc(model.created_at),
        updated_at=as_utc(model.updated_at),
    )


class SQLAlchemyTicketRepository(ITicketRepository):
    """
    SQLAlchemy implementation of ticket repository.

    Handles persistence of Ticket entities using async SQLAlchemy.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def _get_model(self, ticket_id: str) -> Optional[TicketModel]:
        ticket_uuid = parse_uuid(ticket_id)
        if ticket_uuid is None:
            return None
        return await self._session.get(TicketModel, ticket_uuid)

    async def get_by_id(self, ticket_id: str) -> Optional[Ticket]:
        """Get ticket by ID."""
        model = await self._get_model(ticket_id)
        return ticket_from_model(model) if model else None

    async def create(self, ticket: Ticket) -> Ticket:
        """Insert a new ticket."""
        model = TicketModel(
            customer_id=ticket.customer_id,
            subject=ticket.subject,
            description=ticket.description,
            status=ticket.status,
            priority=ticket.priority,
            source=ticket.source,
            category=ticket.category,
            customer_type=ticket.customer_type,
            assigned_to=ticket.assigned_to,
            team_id=parse_uuid(ticket.team_id),
            sla_policy_id=parse_uuid(ticket.sla_policy_id),
            created_at=ticket.created_at,
            updated_at=ticket.updated_at,
        )

        self._session.add(model)
        await self._session.flush()

        ticket.id = str(model.id)
        return ticket

    async def save(self, ticket: Ticket) -> Ticket:
        """
        Persist mutable fields of an existing ticket.

        ``first_response_at`` is write-once: an already stored value is
        never overwritten.
        """
        model = await self._get_model(ticket.id)
        if model is None:
            raise RepositoryException(f"Ticket {ticket.id} not found")

        model.status = ticket.status
        model.priority = ticket.priority
        model.category = ticket.category
        model.assigned_to = ticket.assigned_to
        model.team_id = parse_uuid(ticket.team_id)
        model.sla_policy_id = parse_uuid(ticket.sla_policy_id)
        model.sla_response_due_at = ticket.sla_response_due_at
        model.sla_resolution_due_at = ticket.sla_resolution_due_at
        model.resolved_at = ticket.resolved_at
        model.updated_at = ticket.updated_at

        if model.first_response_at is None:
            model.first_response_at = ticket.first_response_at
        else:
            ticket.first_response_at = as_utc(model.first_response_at)

        await self._session.flush()
        return ticket

    async def list_active_with_sla(self) -> List[Ticket]:
        """Tickets in new/open/pending with an SLA policy attached."""
        stmt = (
            select(TicketModel)
            .where(TicketModel.status.in_(ACTIVE_STATUSES))
            .where(TicketModel.sla_policy_id.is_not(None))
            .order_by(TicketModel.created_at.asc())
        )
        result = await self._session.execute(stmt)
        return [ticket_from_model(m) for m in result.scalars().all()]

    async def list_team_queue(self, team_id: str) -> List[Ticket]:
        """Active tickets of a team, oldest first."""
        team_uuid = parse_uuid(team_id)
        if team_uuid is None:
            return []

        stmt = (
            select(TicketModel)
            .where(TicketModel.team_id == team_uuid)
            .where(TicketModel.status.in_(ACTIVE_STATUSES))
            .order_by(TicketModel.created_at.asc())
        )
        result = await self._session.execute(stmt)
        return [ticket_from_model(m) for m in result.scalars().all()]


class SQLAlchemyTicketMessageRepository(ITicketMessageRepository):
    """SQLAlchemy implementation for ticket messages."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def create(self, message: TicketMessage) -> TicketMessage:
        """Insert a new message."""
        ticket_uuid = parse_uuid(message.ticket_id)
        if ticket_uuid is None:
            raise RepositoryException(f"Invalid ticket ID: {message.ticket_id}")

        model = TicketMessageModel(
            ticket_id=ticket_uuid,
            sender_id=message.sender_id,
            content=message.content,
            message_type=message.message_type,
            created_at=message.created_at,
        )
        self._session.add(model)
        await self._session.flush()

        message.id = str(model.id)
        return message

    async def list_for_ticket(self, ticket_id: str) -> List[TicketMessage]:
        """Messages of a ticket, oldest first."""
        ticket_uuid = parse_uuid(ticket_id)
        if ticket_uuid is None:
            return []

        stmt = (
            select(TicketMessageModel)
            .where(TicketMessageModel.ticket_id == ticket_uuid)
            .order_by(TicketMessageModel.created_at.asc())
        )
        result = await self._session.execute(stmt)
        return [
            TicketMessage(
                id=str(m.id),
                ticket_id=str(m.ticket_id),
                sender_id=m.sender_id,
                content=m.content,
                message_type=m.message_type,
                created_at=as_utc(m.created_at),
            )
            for m in result.scalars().all()
        ]
