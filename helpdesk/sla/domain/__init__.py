"""
SLA Domain Layer
================

Contains:
- Entities: SLAPolicy, SLABreach, Notification, TicketSLAStatus
- Value Objects: SLACalculator, DueBreach

No infrastructure dependencies - pure Python business logic.
"""

from helpdesk.sla.domain.entities import (
    SLAPolicy, SLABreach, Notification, SLAClockStatus, TicketSLAStatus
)
from helpdesk.sla.domain.value_objects import SLACalculator, DueBreach

__all__ = [
    # Entities
    "SLAPolicy",
    "SLABreach",
    "Notification",
    "SLAClockStatus",
    "TicketSLAStatus",
    # Value Objects
    "SLACalculator",
    "DueBreach",
]
