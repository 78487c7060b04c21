"""Tickets application layer: lifecycle service and DTOs."""

from helpdesk.tickets.application.services import TicketService
from helpdesk.tickets.application.dto import (
    TicketCreateDTO,
    StatusUpdateDTO,
    MessageCreateDTO,
    ReassignDTO,
    TicketResponse,
    TicketMessageResponse,
)

__all__ = [
    "TicketService",
    "TicketCreateDTO",
    "StatusUpdateDTO",
    "MessageCreateDTO",
    "ReassignDTO",
    "TicketResponse",
    "TicketMessageResponse",
]
