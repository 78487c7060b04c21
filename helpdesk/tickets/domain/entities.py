"""
Ticket Domain Entities
======================

Pure Python domain entities for support tickets.

The ticket owns the first-response invariant: ``first_response_at`` moves
from unset to set exactly once, on the first status change away from
``new`` or the first reply-type message, whichever comes first.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from helpdesk.config import (
    Priority, TicketStatus, TicketSource, MessageType,
    ACTIVE_STATUSES, TERMINAL_STATUSES, VALID_STATUSES, VALID_PRIORITIES,
    VALID_SOURCES, VALID_MESSAGE_TYPES,
)
from helpdesk.core import ValidationException, utc_now


@dataclass
class StatusChange:
    """Outcome of a status transition, consumed by the inline SLA checks."""
    previous_status: str
    new_status: str
    first_response_recorded: bool = False
    entered_terminal: bool = False


@dataclass
class Ticket:
    """
    Ticket entity representing a customer support request.

    Contains only domain logic, no infrastructure.
    """

    id: Optional[str]
    customer_id: str
    subject: str
    description: str
    priority: str = Priority.MEDIUM
    status: str = TicketStatus.NEW
    source: str = TicketSource.WEB
    category: Optional[str] = None
    customer_type: Optional[str] = None

    # Ownership
    assigned_to: Optional[str] = None
    team_id: Optional[str] = None

    # SLA tracking
    sla_policy_id: Optional[str] = None
    first_response_at: Optional[datetime] = None
    sla_response_due_at: Optional[datetime] = None
    sla_resolution_due_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None

    # Timestamps
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def __post_init__(self):
        """Validate vocabulary fields on initialization."""
        if self.priority not in VALID_PRIORITIES:
            raise ValidationException(f"Unknown priority '{self.priority}'")
        if self.status not in VALID_STATUSES:
            raise ValidationException(f"Unknown status '{self.status}'")
        if self.source not in VALID_SOURCES:
            raise ValidationException(f"Unknown source '{self.source}'")

    @property
    def is_active(self) -> bool:
        """Ticket still needs work (new, open or pending)."""
        return self.status in ACTIVE_STATUSES

    @property
    def is_terminal(self) -> bool:
        """Ticket is resolved or closed."""
        return self.status in TERMINAL_STATUSES

    @property
    def has_sla(self) -> bool:
        return self.sla_policy_id is not None

    def mark_first_response(self, timestamp: Optional[datetime] = None) -> bool:
        """
        Record the first response time.

        Returns:
            True if this call recorded it, False if it was already set.
        """
        if self.first_response_at is not None:
            return False
        self.first_response_at = timestamp or utc_now()
        self.updated_at = self.first_response_at
        return True

    def change_status(self, new_status: str, timestamp: Optional[datetime] = None) -> StatusChange:
        """Move the ticket to ``new_status``; transitions are not restricted."""
        if new_status not in VALID_STATUSES:
            raise ValidationException(f"Unknown status '{new_status}'")

        now = timestamp or utc_now()
        change = StatusChange(previous_status=self.status, new_status=new_status)

        if self.status == TicketStatus.NEW and new_status != TicketStatus.NEW:
            change.first_response_recorded = self.mark_first_response(now)

        if new_status in TERMINAL_STATUSES and self.status not in TERMINAL_STATUSES:
            change.entered_terminal = True
            if self.resolved_at is None:
                self.resolved_at = now
        elif new_status in ACTIVE_STATUSES:
            # Reopened
            self.resolved_at = None

        self.status = new_status
        self.updated_at = now
        return change

    def attach_sla(
        self,
        policy_id: str,
        response_due_at: datetime,
        resolution_due_at: datetime
    ) -> None:
        """Overwrite the SLA policy and deadlines."""
        self.sla_policy_id = policy_id
        self.sla_response_due_at = response_due_at
        self.sla_resolution_due_at = resolution_due_at
        self.updated_at = utc_now()

    def assign(self, team_id: Optional[str], assigned_to: Optional[str]) -> None:
        self.team_id = team_id
        self.assigned_to = assigned_to
        self.updated_at = utc_now()


@dataclass
class TicketMessage:
    """A message on a ticket's conversation thread."""

    id: Optional[str]
    ticket_id: str
    sender_id: str
    content: str
    message_type: str = MessageType.REPLY
    created_at: datetime = field(default_factory=utc_now)

    def __post_init__(self):
        if self.message_type not in VALID_MESSAGE_TYPES:
            raise ValidationException(f"Unknown message type '{self.message_type}'")

    @property
    def is_reply(self) -> bool:
        return self.message_type == MessageType.REPLY
