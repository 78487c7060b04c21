"""
SLA Controllers (API Routes)
============================

FastAPI routes for SLA policies, per-ticket SLA state and the breach sweep.

Controllers are thin - they delegate to application services.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from helpdesk.infrastructure.database import get_session, get_session_factory
from helpdesk.shared.api.dependencies import get_current_user_id, require_current_user_id
from helpdesk.shared.infrastructure.logging import get_logger
from helpdesk.sla.application import (
    SLAPolicyService, SLAService, BreachDetectionService,
    SLAPolicyCreateDTO, SLAPolicyUpdateDTO, AttachPolicyDTO,
    SLAPolicyResponse, SLABreachResponse, TicketSLAStatusResponse,
    SweepSummaryResponse, NotificationResponse,
)
from helpdesk.sla.infrastructure import SQLAlchemySLAPolicyRepository, SQLAlchemyNotificationRepository
from helpdesk.sla.services import SLAMonitor, build_breach_detector
from helpdesk.tickets.application.dto import TicketResponse
from helpdesk.tickets.infrastructure.repositories import SQLAlchemyTicketRepository

logger = get_logger(__name__)
router = APIRouter(prefix="/sla", tags=["SLA"])


# ========== Example payloads for Swagger ==========

TICKET_SLA_STATUS_EXAMPLE = {
    "ticket_id": "123e4567-e89b-12d3-a456-426614174000",
    "policy_id": "0b7c3f9e-8a59-4d47-9a53-8f5e2f1b6c11",
    "evaluated_at": "2024-01-15T10:30:00Z",
    "response": {
        "deadline": "2024-01-15T11:00:00Z",
        "state": "on_track",
        "remaining_seconds": 1800,
        "percentage_remaining": 50.0,
        "met_at": None
    },
    "resolution": {
        "deadline": "2024-01-15T18:00:00Z",
        "state": "on_track",
        "remaining_seconds": 27000,
        "percentage_remaining": 93.75,
        "met_at": None
    },
    "overall_state": "on_track",
    "next_deadline": "2024-01-15T11:00:00Z"
}


# ========== Dependencies ==========

async def get_policy_service(session: AsyncSession = Depends(get_session)) -> SLAPolicyService:
    return SLAPolicyService(SQLAlchemySLAPolicyRepository(session))


async def get_sla_service(session: AsyncSession = Depends(get_session)) -> SLAService:
    return SLAService(SQLAlchemySLAPolicyRepository(session), SQLAlchemyTicketRepository(session))


async def get_breach_detector(session: AsyncSession = Depends(get_session)) -> BreachDetectionService:
    return build_breach_detector(session)


# ========== Policies ==========

@router.get("/policies", response_model=List[SLAPolicyResponse], summary="List SLA policies")
async def list_policies(
    active_only: bool = Query(False, description="Only active policies"),
    service: SLAPolicyService = Depends(get_policy_service)
):
    return await service.list_policies(active_only=active_only)


@router.post(
    "/policies",
    response_model=SLAPolicyResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create SLA policy",
    description="""
    Create a response/resolution time budget for one ticket priority.

    New tickets of that priority get the most recently created active
    policy attached automatically, unless the ticket names a policy.
    A resolution time shorter than the response time is accepted.
    """
)
async def create_policy(
    request: SLAPolicyCreateDTO,
    actor_id: Optional[str] = Depends(get_current_user_id),
    service: SLAPolicyService = Depends(get_policy_service)
):
    return await service.create_policy(request, actor_id)


@router.get("/policies/{policy_id}", response_model=SLAPolicyResponse, summary="Get SLA policy")
async def get_policy(policy_id: str, service: SLAPolicyService = Depends(get_policy_service)):
    return await service.get_policy(policy_id)


@router.patch(
    "/policies/{policy_id}",
    response_model=SLAPolicyResponse,
    summary="Update SLA policy",
    description="Deadlines already computed on tickets are not changed."
)
async def update_policy(
    policy_id: str,
    request: SLAPolicyUpdateDTO,
    service: SLAPolicyService = Depends(get_policy_service)
):
    return await service.update_policy(policy_id, request)


@router.post("/policies/{policy_id}/toggle", response_model=SLAPolicyResponse, summary="Toggle SLA policy")
async def toggle_policy(policy_id: str, service: SLAPolicyService = Depends(get_policy_service)):
    return await service.toggle_policy(policy_id)


@router.delete("/policies/{policy_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete SLA policy")
async def delete_policy(policy_id: str, service: SLAPolicyService = Depends(get_policy_service)):
    await service.delete_policy(policy_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ========== Tickets ==========

@router.post(
    "/tickets/{ticket_id}/policy",
    response_model=TicketResponse,
    summary="Attach SLA policy to ticket",
    description="Computes both deadlines from now. Re-attaching restarts the clocks."
)
async def attach_policy(
    ticket_id: str,
    request: AttachPolicyDTO,
    service: SLAService = Depends(get_sla_service)
):
    return await service.attach_policy(ticket_id, request.policy_id)


@router.get(
    "/tickets/{ticket_id}/status",
    response_model=TicketSLAStatusResponse,
    summary="Get ticket SLA status",
    responses={
        200: {"content": {"application/json": {"example": TICKET_SLA_STATUS_EXAMPLE}}},
        404: {"description": "Ticket not found"}
    }
)
async def ticket_sla_status(ticket_id: str, service: SLAService = Depends(get_sla_service)):
    # Built explicitly so the computed overall_state / next_deadline are included
    return TicketSLAStatusResponse.model_validate(await service.get_status(ticket_id))


@router.get(
    "/tickets/{ticket_id}/breaches",
    response_model=List[SLABreachResponse],
    summary="Ticket breach history",
    description="Logged breaches of a ticket, newest first."
)
async def ticket_breaches(ticket_id: str, detector: BreachDetectionService = Depends(get_breach_detector)):
    return await detector.list_breaches(ticket_id)


# ========== Sweep & notifications ==========

@router.post(
    "/sweep",
    response_model=SweepSummaryResponse,
    summary="Run breach sweep now",
    description="Runs the same sweep as the background scheduler and returns its summary."
)
async def run_sweep(session_factory: async_sessionmaker = Depends(get_session_factory)):
    summary = await SLAMonitor(session_factory).check_all_active_tickets()
    return SweepSummaryResponse(
        tickets_checked=summary.tickets_checked,
        breaches_logged=summary.breaches_logged,
        failures=summary.failures,
        duration_ms=summary.duration_ms,
    )


@router.get(
    "/notifications",
    response_model=List[NotificationResponse],
    summary="Notifications of the acting user"
)
async def my_notifications(
    unread_only: bool = Query(False),
    user_id: str = Depends(require_current_user_id),
    session: AsyncSession = Depends(get_session)
):
    return await SQLAlchemyNotificationRepository(session).list_for_user(user_id, unread_only)


sla_router = router
