"""
Ticket Application Services
===========================

Ticket lifecycle orchestration.

Creation is not one transaction: the ticket is stored first, then rule
selection, team assignment, member assignment and SLA attachment each
commit on their own. A failing step is rolled back alone and reported with
the ticket id; what was committed before it stays.
"""

from typing import List, Optional

from helpdesk.core import (
    Clock, ResourceNotFoundException, TicketRoutingException, UnauthenticatedException, utc_now
)
from helpdesk.routing.application.services import ITeamRepository, RoutingService
from helpdesk.routing.domain import RoutingContext, TicketAssignment
from helpdesk.shared.infrastructure.logging import get_logger
from helpdesk.sla.application.services import BreachDetectionService, SLAService
from helpdesk.tickets.application.dto import TicketCreateDTO
from helpdesk.tickets.domain import (
    Ticket, TicketMessage, ITicketRepository, ITicketMessageRepository
)

logger = get_logger(__name__)


class TicketService:
    """
    Ticket creation, status changes, messages and manual reassignment.

    ``transaction`` is the unit the steps commit and roll back on; in the
    API it is the request's AsyncSession.
    """

    def __init__(
        self,
        transaction,
        ticket_repository: ITicketRepository,
        message_repository: ITicketMessageRepository,
        team_repository: ITeamRepository,
        routing_service: RoutingService,
        sla_service: SLAService,
        breach_detector: BreachDetectionService,
        clock: Clock = utc_now
    ):
        self._tx = transaction
        self._ticket_repo = ticket_repository
        self._message_repo = message_repository
        self._team_repo = team_repository
        self._routing = routing_service
        self._sla = sla_service
        self._breaches = breach_detector
        self._clock = clock

    async def get_ticket(self, ticket_id: str) -> Ticket:
        ticket = await self._ticket_repo.get_by_id(ticket_id)
        if ticket is None:
            raise ResourceNotFoundException("Ticket", ticket_id)
        return ticket

    async def create_ticket(self, request: TicketCreateDTO, actor_id: Optional[str]) -> Ticket:
        """
        Store a new ticket, then route it and attach an SLA policy.

        Raises:
            UnauthenticatedException: without an acting user
            ResourceNotFoundException: if an explicitly requested policy is missing
            TicketRoutingException: the ticket was stored but a later step failed
        """
        if not actor_id:
            raise UnauthenticatedException("create a ticket")

        explicit_policy = None
        if request.sla_policy_id:
            explicit_policy = await self._sla.get_policy(request.sla_policy_id)

        now = self._clock()
        ticket = Ticket(
            id=None,
            customer_id=actor_id,
            subject=request.subject,
            description=request.description,
            priority=request.priority,
            source=request.source,
            customer_type=request.customer_type,
            category=self._routing.classify(request.subject, request.description),
            created_at=now,
            updated_at=now,
        )
        await self._ticket_repo.create(ticket)
        await self._tx.commit()

        logger.info(
            "Ticket created",
            extra={"ticket_id": ticket.id, "category": ticket.category, "priority": ticket.priority}
        )

        step = "rule_selection"
        try:
            context = RoutingContext(
                category=ticket.category,
                priority=ticket.priority,
                source=ticket.source,
                customer_type=ticket.customer_type,
            )
            rule = await self._routing.select_rule(context)

            if rule is not None:
                step = "team_assignment"
                await self._routing.assign_team(ticket, rule.team_id, actor_id, reason=f"rule:{rule.name}")
                await self._tx.commit()

                step = "member_assignment"
                await self._routing.assign_member(ticket, actor_id)
                await self._tx.commit()

            step = "sla_attach"
            policy = explicit_policy or await self._sla.default_policy_for(ticket.priority)
            if policy is not None:
                await self._sla.attach(ticket, policy)
                await self._tx.commit()

        except Exception as e:
            await self._tx.rollback()
            logger.error(
                "Ticket routing step failed",
                extra={"ticket_id": ticket.id, "step": step, "error": str(e)},
                exc_info=True
            )
            raise TicketRoutingException(ticket.id, step, e) from e

        return ticket

    async def change_status(self, ticket_id: str, new_status: str, actor_id: Optional[str]) -> Ticket:
        """
        Change status. Leaving ``new`` records the first response; entering
        resolved/closed records resolution. Both run the inline SLA check.
        """
        if not actor_id:
            raise UnauthenticatedException("change ticket status")

        ticket = await self.get_ticket(ticket_id)
        change = ticket.change_status(new_status, self._clock())
        await self._ticket_repo.save(ticket)
        await self._tx.commit()

        logger.info(
            "Ticket status changed",
            extra={
                "ticket_id": ticket.id,
                "previous_status": change.previous_status,
                "new_status": change.new_status,
                "actor_id": actor_id
            }
        )

        if change.first_response_recorded:
            await self._inline_check(ticket, self._breaches.check_first_response)
        if change.entered_terminal:
            await self._inline_check(ticket, self._breaches.check_resolution)

        return ticket

    async def add_message(
        self,
        ticket_id: str,
        sender_id: Optional[str],
        content: str,
        message_type: str
    ) -> TicketMessage:
        """Add a message; the first reply records the first response."""
        if not sender_id:
            raise UnauthenticatedException("post a message")

        ticket = await self.get_ticket(ticket_id)
        message = TicketMessage(
            id=None,
            ticket_id=ticket.id,
            sender_id=sender_id,
            content=content,
            message_type=message_type,
            created_at=self._clock(),
        )
        await self._message_repo.create(message)

        recorded = message.is_reply and ticket.mark_first_response(message.created_at)
        if recorded:
            await self._ticket_repo.save(ticket)
        await self._tx.commit()

        if recorded:
            await self._inline_check(ticket, self._breaches.check_first_response)

        return message

    async def list_messages(self, ticket_id: str) -> List[TicketMessage]:
        await self.get_ticket(ticket_id)
        return await self._message_repo.list_for_ticket(ticket_id)

    async def reassign(
        self,
        ticket_id: str,
        team_id: Optional[str],
        assigned_to: Optional[str],
        actor_id: Optional[str],
        reason: Optional[str] = None
    ) -> TicketAssignment:
        """Manual assignment. A missing ``team_id`` keeps the current team."""
        if not actor_id:
            raise UnauthenticatedException("reassign a ticket")

        ticket = await self.get_ticket(ticket_id)
        if team_id is not None and await self._team_repo.get_by_id(team_id) is None:
            raise ResourceNotFoundException("Team", team_id)

        assignment = await self._routing.reassign(
            ticket, team_id or ticket.team_id, assigned_to, actor_id, reason
        )
        await self._tx.commit()
        logger.info(
            "Ticket reassigned",
            extra={"ticket_id": ticket.id, "team_id": assignment.new_team_id, "assigned_to": assigned_to}
        )
        return assignment

    async def _inline_check(self, ticket: Ticket, check) -> None:
        """Breach checks never fail the user's action; errors are only logged."""
        try:
            await check(ticket)
            await self._tx.commit()
        except Exception as e:
            await self._tx.rollback()
            logger.error(
                "Inline SLA check failed",
                extra={"ticket_id": ticket.id, "error": str(e)},
                exc_info=True
            )
