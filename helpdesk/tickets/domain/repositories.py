"""
Ticket Repository Interfaces
============================

Abstractions over ticket persistence. They live in the domain layer
because the routing and SLA contexts read and update tickets too.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from helpdesk.tickets.domain.entities import Ticket, TicketMessage


class ITicketRepository(ABC):
    """Interface for ticket data access."""

    @abstractmethod
    async def get_by_id(self, ticket_id: str) -> Optional[Ticket]:
        """Get ticket by ID."""

    @abstractmethod
    async def create(self, ticket: Ticket) -> Ticket:
        """Insert a new ticket and return it with its generated ID."""

    @abstractmethod
    async def save(self, ticket: Ticket) -> Ticket:
        """Persist mutable fields of an existing ticket."""

    @abstractmethod
    async def list_active_with_sla(self) -> List[Ticket]:
        """Tickets in new/open/pending that have an SLA policy attached."""

    @abstractmethod
    async def list_team_queue(self, team_id: str) -> List[Ticket]:
        """Active tickets of a team, oldest first."""


class ITicketMessageRepository(ABC):
    """Interface for ticket message data access."""

    @abstractmethod
    async def create(self, message: TicketMessage) -> TicketMessage:
        """Insert a new message."""

    @abstractmethod
    async def list_for_ticket(self, ticket_id: str) -> List[TicketMessage]:
        """Messages of a ticket, oldest first."""
