"""
SLA Domain Entities
===================

Pure Python domain entities for SLA tracking.

Following Domain-Driven Design principles, these entities contain
business logic and are free of infrastructure concerns.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from helpdesk.config import (
    NotificationType, SLAState,
    VALID_PRIORITIES, VALID_BREACH_TYPES,
)
from helpdesk.core import ValidationException, utc_now


@dataclass
class SLAPolicy:
    """
    Named response/resolution time budget for one ticket priority.

    Resolution time is not required to exceed response time.
    """

    id: Optional[str]
    name: str
    priority: str
    response_time_minutes: int
    resolution_time_minutes: int
    is_active: bool = True
    description: Optional[str] = None
    created_by: Optional[str] = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def __post_init__(self):
        if self.priority not in VALID_PRIORITIES:
            raise ValidationException(f"Unknown priority '{self.priority}'")
        if self.response_time_minutes < 1 or self.resolution_time_minutes < 1:
            raise ValidationException(
                "SLA times must be at least one minute",
                {
                    "response_time_minutes": self.response_time_minutes,
                    "resolution_time_minutes": self.resolution_time_minutes
                }
            )

    @property
    def resolution_shorter_than_response(self) -> bool:
        return self.resolution_time_minutes < self.response_time_minutes


@dataclass
class SLABreach:
    """
    A logged SLA breach. At most one exists per (ticket, breach type).
    """

    id: Optional[str]
    ticket_id: str
    policy_id: Optional[str]
    breach_type: str
    expected_time: datetime
    actual_time: datetime
    created_at: datetime = field(default_factory=utc_now)
    policy_name: Optional[str] = None

    def __post_init__(self):
        if self.breach_type not in VALID_BREACH_TYPES:
            raise ValidationException(f"Unknown breach type '{self.breach_type}'")

    @property
    def overdue_minutes(self) -> float:
        return (self.actual_time - self.expected_time).total_seconds() / 60


@dataclass
class Notification:
    """In-app notification for a single user."""

    id: Optional[str]
    user_id: str
    type: str
    content: Dict[str, Any]
    read: bool = False
    created_at: datetime = field(default_factory=utc_now)

    @classmethod
    def for_breach(cls, user_id: str, breach: SLABreach) -> "Notification":
        return cls(
            id=None,
            user_id=user_id,
            type=NotificationType.SLA_BREACH,
            content={
                "ticket_id": breach.ticket_id,
                "breach_type": breach.breach_type,
                "expected_time": breach.expected_time.isoformat(),
                "actual_time": breach.actual_time.isoformat(),
            },
            created_at=breach.actual_time,
        )


@dataclass
class SLAClockStatus:
    """State of one SLA clock (response or resolution) at a point in time."""

    breach_type: str
    deadline: datetime
    state: str
    remaining_seconds: float
    percentage_remaining: float
    met_at: Optional[datetime] = None


@dataclass
class TicketSLAStatus:
    """
    SLA snapshot of a ticket.

    Clocks are None when the ticket has no deadline for them.
    """

    ticket_id: str
    policy_id: Optional[str]
    evaluated_at: datetime
    response: Optional[SLAClockStatus] = None
    resolution: Optional[SLAClockStatus] = None

    @property
    def overall_state(self) -> Optional[str]:
        """Worst state across both clocks."""
        severity = [SLAState.BREACHED, SLAState.AT_RISK, SLAState.ON_TRACK, SLAState.MET]
        states = [c.state for c in (self.response, self.resolution) if c is not None]
        for state in severity:
            if state in states:
                return state
        return None

    @property
    def next_deadline(self) -> Optional[datetime]:
        """Earliest deadline of a clock that is still running."""
        running = [
            c.deadline for c in (self.response, self.resolution)
            if c is not None and c.state in (SLAState.ON_TRACK, SLAState.AT_RISK)
        ]
        return min(running) if running else None
