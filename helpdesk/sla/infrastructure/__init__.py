"""
SLA Infrastructure Layer
========================

Contains:
- ORM models: SLA policies, breach log, notifications
- SQLAlchemy repositories
- SLAScheduler for the background breach sweep
"""

from helpdesk.sla.infrastructure.models import SLAPolicyModel, SLABreachLogModel, NotificationModel
from helpdesk.sla.infrastructure.repositories import (
    SQLAlchemySLAPolicyRepository,
    SQLAlchemyBreachLogRepository,
    SQLAlchemyNotificationRepository,
)
from helpdesk.sla.infrastructure.external import SLAScheduler

__all__ = [
    "SLAPolicyModel",
    "SLABreachLogModel",
    "NotificationModel",
    "SQLAlchemySLAPolicyRepository",
    "SQLAlchemyBreachLogRepository",
    "SQLAlchemyNotificationRepository",
    "SLAScheduler",
]
