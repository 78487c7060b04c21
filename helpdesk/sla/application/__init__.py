"""
SLA Application Layer
=====================

Contains:
- Services: SLAPolicyService, SLAService, BreachDetectionService
- Repository interfaces
- DTOs: request/response models for the API
"""

from helpdesk.sla.application.services import (
    ISLAPolicyRepository,
    IBreachLogRepository,
    INotificationRepository,
    SLAPolicyService,
    SLAService,
    BreachDetectionService,
)
from helpdesk.sla.application.dto import (
    SLAPolicyCreateDTO,
    SLAPolicyUpdateDTO,
    AttachPolicyDTO,
    SLAPolicyResponse,
    SLABreachResponse,
    SLAClockResponse,
    TicketSLAStatusResponse,
    SweepSummaryResponse,
    NotificationResponse,
)

__all__ = [
    # Interfaces
    "ISLAPolicyRepository",
    "IBreachLogRepository",
    "INotificationRepository",
    # Services
    "SLAPolicyService",
    "SLAService",
    "BreachDetectionService",
    # DTOs
    "SLAPolicyCreateDTO",
    "SLAPolicyUpdateDTO",
    "AttachPolicyDTO",
    "SLAPolicyResponse",
    "SLABreachResponse",
    "SLAClockResponse",
    "TicketSLAStatusResponse",
    "SweepSummaryResponse",
    "NotificationResponse",
]
