"""Tickets infrastructure: ORM models and SQLAlchemy repositories."""

from helpdesk.tickets.infrastructure.models import TicketModel, TicketMessageModel
from helpdesk.tickets.infrastructure.repositories import (
    SQLAlchemyTicketRepository,
    SQLAlchemyTicketMessageRepository,
    ticket_from_model,
)

__all__ = [
    "TicketModel",
    "TicketMessageModel",
    "SQLAlchemyTicketRepository",
    "SQLAlchemyTicketMessageRepository",
    "ticket_from_model",
]
