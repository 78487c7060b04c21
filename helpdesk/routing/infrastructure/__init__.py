"""Routing infrastructure: ORM models, repositories, keyword file watcher."""

from helpdesk.routing.infrastructure.models import (
    TeamModel, TeamMemberModel, TeamAssignmentRuleModel, TicketAssignmentModel
)
from helpdesk.routing.infrastructure.repositories import (
    SQLAlchemyTeamRepository,
    SQLAlchemyTeamMemberRepository,
    SQLAlchemyAssignmentRuleRepository,
    SQLAlchemyTicketAssignmentRepository,
)
from helpdesk.routing.infrastructure.external import KeywordConfigManager, keyword_manager

__all__ = [
    "TeamModel", "TeamMemberModel", "TeamAssignmentRuleModel", "TicketAssignmentModel",
    "SQLAlchemyTeamRepository", "SQLAlchemyTeamMemberRepository",
    "SQLAlchemyAssignmentRuleRepository", "SQLAlchemyTicketAssignmentRepository",
    "KeywordConfigManager", "keyword_manager",
]
