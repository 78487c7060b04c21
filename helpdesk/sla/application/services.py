"""
SLA Application Services
========================

Application services orchestrate business logic and coordinate between
domain entities and repositories.

Following SOLID principles:
- Single Responsibility: Each service has one clear purpose
- Dependency Inversion: Depend on abstractions (repositories), not concrete implementations
"""

from abc import ABC, abstractmethod
from dataclasses import replace
from datetime import datetime
from typing import List, Optional

from helpdesk.config import settings
from helpdesk.core import Clock, ResourceNotFoundException, utc_now
from helpdesk.routing.application.services import ITeamMemberRepository
from helpdesk.shared.infrastructure.logging import get_logger
from helpdesk.sla.application.dto import SLAPolicyCreateDTO, SLAPolicyUpdateDTO
from helpdesk.sla.domain import (
    SLAPolicy, SLABreach, Notification, TicketSLAStatus, SLACalculator, DueBreach
)
from helpdesk.tickets.domain import Ticket, ITicketRepository

logger = get_logger(__name__)


# ========== Repository Interfaces (Dependency Inversion) ==========

class ISLAPolicyRepository(ABC):
    """Interface for SLA policy data access."""

    @abstractmethod
    async def create(self, policy: SLAPolicy) -> SLAPolicy:
        """Create new policy."""

    @abstractmethod
    async def get_by_id(self, policy_id: str) -> Optional[SLAPolicy]:
        """Get policy by ID."""

    @abstractmethod
    async def save(self, policy: SLAPolicy) -> SLAPolicy:
        """Persist policy changes."""

    @abstractmethod
    async def delete(self, policy_id: str) -> bool:
        """Delete a policy; False if it did not exist."""

    @abstractmethod
    async def list(self, active_only: bool = False) -> List[SLAPolicy]:
        """List policies, newest first."""

    @abstractmethod
    async def get_active_for_priority(self, priority: str) -> Optional[SLAPolicy]:
        """Most recently created active policy for a ticket priority."""


class IBreachLogRepository(ABC):
    """Interface for the SLA breach log."""

    @abstractmethod
    async def insert_if_absent(self, breach: SLABreach) -> bool:
        """
        Insert a breach unless one exists for (ticket_id, breach_type).

        Returns:
            True if this call inserted the row.
        """

    @abstractmethod
    async def list_for_ticket(self, ticket_id: str) -> List[SLABreach]:
        """Breaches of a ticket, newest first."""


class INotificationRepository(ABC):
    """Interface for notification data access."""

    @abstractmethod
    async def create_many(self, notifications: List[Notification]) -> int:
        """Insert notifications, returning how many were written."""

    @abstractmethod
    async def list_for_user(self, user_id: str, unread_only: bool = False) -> List[Notification]:
        """Notifications of a user, newest first."""


# ========== Application Services ==========

class SLAPolicyService:
    """SLA policy catalog management."""

    def __init__(self, policy_repository: ISLAPolicyRepository, clock: Clock = utc_now):
        self._policy_repo = policy_repository
        self._clock = clock

    @staticmethod
    def _warn_if_inverted(policy: SLAPolicy) -> None:
        if policy.resolution_shorter_than_response:
            logger.warning(
                "SLA policy resolution time is shorter than response time",
                extra={
                    "policy_id": policy.id,
                    "response_time_minutes": policy.response_time_minutes,
                    "resolution_time_minutes": policy.resolution_time_minutes
                }
            )

    async def create_policy(self, request: SLAPolicyCreateDTO, actor_id: Optional[str] = None) -> SLAPolicy:
        now = self._clock()
        policy = SLAPolicy(
            id=None,
            name=request.name,
            description=request.description,
            priority=request.priority,
            response_time_minutes=request.response_time_minutes,
            resolution_time_minutes=request.resolution_time_minutes,
            is_active=request.is_active,
            created_by=actor_id,
            created_at=now,
            updated_at=now,
        )
        policy = await self._policy_repo.create(policy)
        self._warn_if_inverted(policy)
        logger.info("SLA policy created", extra={"policy_id": policy.id, "priority": policy.priority})
        return policy

    async def list_policies(self, active_only: bool = False) -> List[SLAPolicy]:
        return await self._policy_repo.list(active_only=active_only)

    async def get_policy(self, policy_id: str) -> SLAPolicy:
        policy = await self._policy_repo.get_by_id(policy_id)
        if policy is None:
            raise ResourceNotFoundException("SLA policy", policy_id)
        return policy

    async def update_policy(self, policy_id: str, request: SLAPolicyUpdateDTO) -> SLAPolicy:
        """
        Apply a partial update.

        Deadlines already on tickets are not recomputed; re-attach the
        policy to restart a ticket's clocks.
        """
        policy = await self.get_policy(policy_id)

        changes = {
            name: value
            for name, value in request.model_dump(exclude_unset=True).items()
            if value is not None or name == "description"
        }
        policy = replace(policy, **changes, updated_at=self._clock())

        policy = await self._policy_repo.save(policy)
        self._warn_if_inverted(policy)
        return policy

    async def toggle_policy(self, policy_id: str) -> SLAPolicy:
        """Flip ``is_active``."""
        policy = await self.get_policy(policy_id)
        policy.is_active = not policy.is_active
        policy.updated_at = self._clock()
        return await self._policy_repo.save(policy)

    async def delete_policy(self, policy_id: str) -> None:
        if not await self._policy_repo.delete(policy_id):
            raise ResourceNotFoundException("SLA policy", policy_id)


class SLAService:
    """
    Attaches policies to tickets and reports their SLA status.
    """

    def __init__(
        self,
        policy_repository: ISLAPolicyRepository,
        ticket_repository: ITicketRepository,
        clock: Clock = utc_now
    ):
        self._policy_repo = policy_repository
        self._ticket_repo = ticket_repository
        self._clock = clock

    async def _get_ticket(self, ticket_id: str) -> Ticket:
        ticket = await self._ticket_repo.get_by_id(ticket_id)
        if ticket is None:
            raise ResourceNotFoundException("Ticket", ticket_id)
        return ticket

    async def attach_policy(self, ticket_id: str, policy_id: str) -> Ticket:
        """
        Attach a policy and compute deadlines from now.

        Calling again recomputes both deadlines from the new now.

        Raises:
            ResourceNotFoundException: if the ticket or policy is missing
        """
        ticket = await self._get_ticket(ticket_id)
        policy = await self.get_policy(policy_id)
        return await self.attach(ticket, policy)

    async def get_policy(self, policy_id: str) -> SLAPolicy:
        policy = await self._policy_repo.get_by_id(policy_id)
        if policy is None:
            raise ResourceNotFoundException("SLA policy", policy_id)
        return policy

    async def attach(self, ticket: Ticket, policy: SLAPolicy) -> Ticket:
        response_due, resolution_due = SLACalculator.calculate_deadlines(self._clock(), policy)
        ticket.attach_sla(policy.id, response_due, resolution_due)
        await self._ticket_repo.save(ticket)

        logger.info(
            "SLA policy attached",
            extra={
                "ticket_id": ticket.id,
                "policy_id": policy.id,
                "response_due_at": response_due.isoformat(),
                "resolution_due_at": resolution_due.isoformat()
            }
        )
        return ticket

    async def default_policy_for(self, priority: str) -> Optional[SLAPolicy]:
        """Policy auto-attached to new tickets of this priority, if any."""
        if not settings.auto_attach_sla_policy:
            return None
        return await self._policy_repo.get_active_for_priority(priority)

    async def get_status(self, ticket_id: str) -> TicketSLAStatus:
        ticket = await self._get_ticket(ticket_id)
        policy = None
        if ticket.sla_policy_id is not None:
            policy = await self._policy_repo.get_by_id(ticket.sla_policy_id)
        return SLACalculator.evaluate(
            ticket, self._clock(), settings.sla_warning_threshold_percent, policy
        )


class BreachDetectionService:
    """
    Detects SLA breaches and logs each (ticket, breach type) at most once.

    Used inline when a first response or terminal status is recorded,
    and per ticket by the periodic sweep.
    """

    def __init__(
        self,
        ticket_repository: ITicketRepository,
        breach_repository: IBreachLogRepository,
        notification_repository: INotificationRepository,
        member_repository: ITeamMemberRepository,
        clock: Clock = utc_now
    ):
        self._ticket_repo = ticket_repository
        self._breach_repo = breach_repository
        self._notification_repo = notification_repository
        self._member_repo = member_repository
        self._clock = clock

    async def log_breach(
        self,
        ticket_id: str,
        policy_id: Optional[str],
        breach_type: str,
        expected_time: datetime,
        team_id: Optional[str] = None
    ) -> bool:
        """
        Log a breach and notify the ticket's team.

        Notifications are only sent by the call that actually inserted
        the breach row.

        Returns:
            True if the breach was newly logged.
        """
        breach = SLABreach(
            id=None,
            ticket_id=ticket_id,
            policy_id=policy_id,
            breach_type=breach_type,
            expected_time=expected_time,
            actual_time=self._clock(),
        )

        if not await self._breach_repo.insert_if_absent(breach):
            logger.debug(
                "SLA breach already logged",
                extra={"ticket_id": ticket_id, "breach_type": breach_type}
            )
            return False

        logger.warning(
            "SLA breach logged",
            extra={
                "ticket_id": ticket_id,
                "policy_id": policy_id,
                "breach_type": breach_type,
                "expected_time": expected_time.isoformat(),
                "actual_time": breach.actual_time.isoformat()
            }
        )

        if team_id is None:
            ticket = await self._ticket_repo.get_by_id(ticket_id)
            team_id = ticket.team_id if ticket else None

        if team_id is not None:
            await self._notify_team(team_id, breach)

        return True

    async def _notify_team(self, team_id: str, breach: SLABreach) -> int:
        members = await self._member_repo.list_members(team_id, active_only=True)
        notifications = [Notification.for_breach(m.user_id, breach) for m in members]
        if not notifications:
            return 0

        sent = await self._notification_repo.create_many(notifications)
        logger.info(
            "SLA breach notifications created",
            extra={"ticket_id": breach.ticket_id, "team_id": team_id, "recipients": sent}
        )
        return sent

    async def _log_due(self, ticket: Ticket, due: Optional[DueBreach]) -> bool:
        if due is None:
            return False
        return await self.log_breach(
            ticket.id, ticket.sla_policy_id, due.breach_type, due.expected_time, ticket.team_id
        )

    async def check_first_response(self, ticket: Ticket) -> bool:
        """Inline response check at the moment the first response was recorded."""
        if not ticket.has_sla or ticket.first_response_at is None:
            return False
        return await self._log_due(ticket, SLACalculator.response_breach(ticket, ticket.first_response_at))

    async def check_resolution(self, ticket: Ticket) -> bool:
        """Inline resolution check on entering resolved/closed."""
        if not ticket.has_sla:
            return False
        return await self._log_due(ticket, SLACalculator.resolution_breach(ticket, self._clock()))

    async def check_ticket(self, ticket: Ticket) -> int:
        """Sweep check for one active ticket. Returns breaches newly logged."""
        logged = 0
        for due in SLACalculator.detect_breaches(ticket, self._clock()):
            if await self._log_due(ticket, due):
                logged += 1
        return logged

    async def list_breaches(self, ticket_id: str) -> List[SLABreach]:
        return await self._breach_repo.list_for_ticket(ticket_id)
