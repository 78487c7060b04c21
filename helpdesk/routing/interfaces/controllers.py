"""
Routing Controllers (API Routes)
================================

FastAPI routes for teams, members, assignment rules and routing reads.

Controllers are thin - they delegate to application services.
"""

from typing import List

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.infrastructure.database import get_session
from helpdesk.routing.application import (
    TeamService, AssignmentRuleService, RoutingService, RoundRobinAssigner,
)
from helpdesk.routing.application.dto import (
    TeamCreateDTO, TeamResponse, TeamMemberCreateDTO, TeamMemberUpdateDTO,
    TeamMemberResponse, RuleCreateDTO, RuleUpdateDTO, RuleResponse,
    ClassifyRequest, ClassifyResponse, TicketAssignmentResponse,
)
from helpdesk.routing.infrastructure import (
    SQLAlchemyTeamRepository,
    SQLAlchemyTeamMemberRepository,
    SQLAlchemyAssignmentRuleRepository,
    SQLAlchemyTicketAssignmentRepository,
    keyword_manager,
)
from helpdesk.tickets.application.dto import TicketResponse
from helpdesk.tickets.infrastructure.repositories import SQLAlchemyTicketRepository
from helpdesk.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/routing", tags=["Routing"])


# ========== Dependencies ==========

async def get_team_service(session: AsyncSession = Depends(get_session)) -> TeamService:
    return TeamService(SQLAlchemyTeamRepository(session), SQLAlchemyTeamMemberRepository(session))


async def get_rule_service(session: AsyncSession = Depends(get_session)) -> AssignmentRuleService:
    return AssignmentRuleService(
        SQLAlchemyAssignmentRuleRepository(session), SQLAlchemyTeamRepository(session)
    )


async def get_routing_service(session: AsyncSession = Depends(get_session)) -> RoutingService:
    assignment_repo = SQLAlchemyTicketAssignmentRepository(session)
    assigner = RoundRobinAssigner(SQLAlchemyTeamMemberRepository(session), assignment_repo)
    return RoutingService(
        SQLAlchemyAssignmentRuleRepository(session),
        assignment_repo,
        SQLAlchemyTicketRepository(session),
        assigner,
        classifier_provider=keyword_manager,
    )


# ========== Teams ==========

@router.get("/teams", response_model=List[TeamResponse], summary="List teams")
async def list_teams(service: TeamService = Depends(get_team_service)):
    return await service.list_teams()


@router.post(
    "/teams",
    response_model=TeamResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create team"
)
async def create_team(request: TeamCreateDTO, service: TeamService = Depends(get_team_service)):
    return await service.create_team(request)


@router.get(
    "/teams/{team_id}/members",
    response_model=List[TeamMemberResponse],
    summary="List team members",
    description="All memberships of the team, including inactive ones."
)
async def list_members(team_id: str, service: TeamService = Depends(get_team_service)):
    return await service.list_members(team_id)


@router.post(
    "/teams/{team_id}/members",
    response_model=TeamMemberResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add team member"
)
async def add_member(
    team_id: str,
    request: TeamMemberCreateDTO,
    service: TeamService = Depends(get_team_service)
):
    return await service.add_member(team_id, request)


@router.patch(
    "/teams/{team_id}/members/{user_id}",
    response_model=TeamMemberResponse,
    summary="Update team member",
    description="Change a member's role or take them out of rotation with `is_active=false`."
)
async def update_member(
    team_id: str,
    user_id: str,
    request: TeamMemberUpdateDTO,
    service: TeamService = Depends(get_team_service)
):
    return await service.update_member(team_id, user_id, request)


@router.delete(
    "/teams/{team_id}/members/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove team member"
)
async def remove_member(team_id: str, user_id: str, service: TeamService = Depends(get_team_service)):
    await service.remove_member(team_id, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ========== Assignment rules ==========

@router.get(
    "/teams/{team_id}/rules",
    response_model=List[RuleResponse],
    summary="List assignment rules of a team"
)
async def list_rules(team_id: str, service: AssignmentRuleService = Depends(get_rule_service)):
    rules = await service.list_rules(team_id)
    return [RuleResponse.from_domain(r) for r in rules]


@router.post(
    "/teams/{team_id}/rules",
    response_model=RuleResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create assignment rule",
    description="""
    Create a rule routing matching new tickets to this team.

    **Condition kinds**: `category`, `priority`, `source`, `customer_type`.
    Values within a kind are alternatives; all kinds on a rule must match.
    An empty value list places no constraint. Unknown kinds are rejected.

    Rules of all teams are evaluated together, highest `priority` first.
    """
)
async def create_rule(
    team_id: str,
    request: RuleCreateDTO,
    service: AssignmentRuleService = Depends(get_rule_service)
):
    rule = await service.create_rule(team_id, request)
    return RuleResponse.from_domain(rule)


@router.patch("/rules/{rule_id}", response_model=RuleResponse, summary="Update assignment rule")
async def update_rule(
    rule_id: str,
    request: RuleUpdateDTO,
    service: AssignmentRuleService = Depends(get_rule_service)
):
    rule = await service.update_rule(rule_id, request)
    return RuleResponse.from_domain(rule)


@router.delete("/rules/{rule_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete assignment rule")
async def delete_rule(rule_id: str, service: AssignmentRuleService = Depends(get_rule_service)):
    await service.delete_rule(rule_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ========== Routing reads ==========

@router.get(
    "/teams/{team_id}/queue",
    response_model=List[TicketResponse],
    summary="Team ticket queue",
    description="Active (new, open, pending) tickets of the team, oldest first."
)
async def team_queue(
    team_id: str,
    session: AsyncSession = Depends(get_session),
    service: TeamService = Depends(get_team_service)
):
    await service.get_team(team_id)
    return await SQLAlchemyTicketRepository(session).list_team_queue(team_id)


@router.get(
    "/tickets/{ticket_id}/assignments",
    response_model=List[TicketAssignmentResponse],
    summary="Ticket assignment history",
    description="Assignment history of a ticket, newest first."
)
async def ticket_assignments(ticket_id: str, service: RoutingService = Depends(get_routing_service)):
    return await service.history(ticket_id)


@router.post("/classify", response_model=ClassifyResponse, summary="Classify ticket text")
async def classify(request: ClassifyRequest, service: RoutingService = Depends(get_routing_service)):
    return ClassifyResponse(category=service.classify(request.subject, request.description))


routing_router = router
