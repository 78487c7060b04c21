"""
Tickets Domain Layer
====================

Contains:
- Entities: Ticket (with the first-response invariant), TicketMessage
- Repository interfaces shared with the routing and SLA contexts
"""

from helpdesk.tickets.domain.entities import Ticket, TicketMessage, StatusChange
from helpdesk.tickets.domain.repositories import ITicketRepository, ITicketMessageRepository

__all__ = [
    "Ticket",
    "TicketMessage",
    "StatusChange",
    "ITicketRepository",
    "ITicketMessageRepository",
]
