"""
Ticket Controllers (API Routes)
===============================

FastAPI routes for the ticket lifecycle.

Controllers are thin - they delegate to TicketService.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.infrastructure.database import get_session
from helpdesk.routing.application.dto import TicketAssignmentResponse
from helpdesk.routing.infrastructure import SQLAlchemyTeamRepository
from helpdesk.routing.interfaces.controllers import get_routing_service
from helpdesk.shared.api.dependencies import get_current_user_id
from helpdesk.sla.infrastructure import SQLAlchemySLAPolicyRepository
from helpdesk.sla.application import SLAService
from helpdesk.sla.services import build_breach_detector
from helpdesk.tickets.application import (
    TicketService, TicketCreateDTO, StatusUpdateDTO, MessageCreateDTO, ReassignDTO,
    TicketResponse, TicketMessageResponse,
)
from helpdesk.tickets.infrastructure import SQLAlchemyTicketRepository, SQLAlchemyTicketMessageRepository

router = APIRouter(prefix="/tickets", tags=["Tickets"])


# ========== Example payloads for Swagger ==========

TICKET_CREATE_EXAMPLE = {
    "subject": "Where is my order?",
    "description": "I ordered a jacket last week and the tracking number shows nothing.",
    "priority": "high",
    "source": "email",
    "customer_type": "vip"
}


# ========== Dependencies ==========

async def get_ticket_service(session: AsyncSession = Depends(get_session)) -> TicketService:
    ticket_repo = SQLAlchemyTicketRepository(session)
    return TicketService(
        session,
        ticket_repo,
        SQLAlchemyTicketMessageRepository(session),
        SQLAlchemyTeamRepository(session),
        await get_routing_service(session),
        SLAService(SQLAlchemySLAPolicyRepository(session), ticket_repo),
        build_breach_detector(session),
    )


# ========== Route Handlers ==========

@router.post(
    "",
    response_model=TicketResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create ticket",
    description="""
    Submit a ticket as the acting user (`X-User-ID`).

    The ticket is classified, routed to the team of the highest-priority
    matching assignment rule, given to the next team member in rotation and
    gets an SLA policy attached (explicit `sla_policy_id`, or the active
    policy for its priority).

    If any step after storing fails, the response is a 500 carrying the
    stored ticket's id; steps completed before the failure are kept.
    """,
    openapi_extra={
        "requestBody": {"content": {"application/json": {"example": TICKET_CREATE_EXAMPLE}}}
    }
)
async def create_ticket(
    request: TicketCreateDTO,
    actor_id: Optional[str] = Depends(get_current_user_id),
    service: TicketService = Depends(get_ticket_service)
):
    return await service.create_ticket(request, actor_id)


@router.get("/{ticket_id}", response_model=TicketResponse, summary="Get ticket")
async def get_ticket(ticket_id: str, service: TicketService = Depends(get_ticket_service)):
    return await service.get_ticket(ticket_id)


@router.patch(
    "/{ticket_id}/status",
    response_model=TicketResponse,
    summary="Change ticket status",
    description="Leaving `new` records the first response; resolving checks the resolution SLA."
)
async def change_status(
    ticket_id: str,
    request: StatusUpdateDTO,
    actor_id: Optional[str] = Depends(get_current_user_id),
    service: TicketService = Depends(get_ticket_service)
):
    return await service.change_status(ticket_id, request.status, actor_id)


@router.get("/{ticket_id}/messages", response_model=List[TicketMessageResponse], summary="List messages")
async def list_messages(ticket_id: str, service: TicketService = Depends(get_ticket_service)):
    return await service.list_messages(ticket_id)


@router.post(
    "/{ticket_id}/messages",
    response_model=TicketMessageResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add message",
    description="The first `reply` records the ticket's first response. Notes do not."
)
async def add_message(
    ticket_id: str,
    request: MessageCreateDTO,
    actor_id: Optional[str] = Depends(get_current_user_id),
    service: TicketService = Depends(get_ticket_service)
):
    return await service.add_message(ticket_id, actor_id, request.content, request.message_type)


@router.patch(
    "/{ticket_id}/assignment",
    response_model=TicketAssignmentResponse,
    summary="Reassign ticket"
)
async def reassign(
    ticket_id: str,
    request: ReassignDTO,
    actor_id: Optional[str] = Depends(get_current_user_id),
    service: TicketService = Depends(get_ticket_service)
):
    return await service.reassign(ticket_id, request.team_id, request.assigned_to, actor_id, request.reason)


tickets_router = router
