"""Routing application layer: services, repository interfaces and DTOs."""

from helpdesk.routing.application.services import (
    ITeamRepository,
    ITeamMemberRepository,
    IAssignmentRuleRepository,
    ITicketAssignmentRepository,
    IClassifierProvider,
    StaticClassifierProvider,
    RoundRobinAssigner,
    RoutingService,
    TeamService,
    AssignmentRuleService,
)

__all__ = [
    "ITeamRepository", "ITeamMemberRepository", "IAssignmentRuleRepository",
    "ITicketAssignmentRepository", "IClassifierProvider", "StaticClassifierProvider",
    "RoundRobinAssigner", "RoutingService", "TeamService", "AssignmentRuleService",
]
