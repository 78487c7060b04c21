"""
Routing Application Services
============================

Application services orchestrate routing decisions and coordinate between
domain services and repositories.

Following SOLID principles:
- Single Responsibility: classification, rule selection, rotation and CRUD
  each live in their own service
- Dependency Inversion: services depend on repository interfaces
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from helpdesk.config import settings, ROUND_ROBIN_REASON, TeamRole
from helpdesk.core import (
    Clock, RepositoryException, ResourceNotFoundException, ValidationException, utc_now
)
from helpdesk.routing.domain import (
    Team, TeamMember, TeamAssignmentRule, TicketAssignment,
    RoutingContext, TicketClassifier, RuleEvaluator, RoundRobinSelector,
    parse_conditions,
)
from helpdesk.routing.application.dto import (
    TeamCreateDTO, TeamMemberCreateDTO, TeamMemberUpdateDTO,
    RuleCreateDTO, RuleUpdateDTO,
)
from helpdesk.shared.infrastructure.logging import get_logger
from helpdesk.tickets.domain import Ticket, ITicketRepository

logger = get_logger(__name__)


# ========== Repository Interfaces (Dependency Inversion) ==========

class ITeamRepository(ABC):
    """Interface for team data access."""

    @abstractmethod
    async def create(self, team: Team) -> Team:
        """Create new team."""

    @abstractmethod
    async def get_by_id(self, team_id: str) -> Optional[Team]:
        """Get team by ID."""

    @abstractmethod
    async def get_by_name(self, name: str) -> Optional[Team]:
        """Get team by unique name."""

    @abstractmethod
    async def list(self) -> List[Team]:
        """List teams ordered by name."""


class ITeamMemberRepository(ABC):
    """Interface for team membership data access."""

    @abstractmethod
    async def add(self, member: TeamMember) -> TeamMember:
        """Add a user to a team."""

    @abstractmethod
    async def get(self, team_id: str, user_id: str) -> Optional[TeamMember]:
        """Get one membership."""

    @abstractmethod
    async def save(self, member: TeamMember) -> TeamMember:
        """Persist role / active flag changes."""

    @abstractmethod
    async def remove(self, team_id: str, user_id: str) -> bool:
        """Delete a membership; False if it did not exist."""

    @abstractmethod
    async def list_members(
        self,
        team_id: str,
        active_only: bool = True,
        roles: Optional[List[str]] = None
    ) -> List[TeamMember]:
        """List memberships of a team, optionally filtered by role."""


class IAssignmentRuleRepository(ABC):
    """Interface for assignment rule data access."""

    @abstractmethod
    async def create(self, rule: TeamAssignmentRule) -> TeamAssignmentRule:
        """Create new rule."""

    @abstractmethod
    async def get_by_id(self, rule_id: str) -> Optional[TeamAssignmentRule]:
        """Get rule by ID."""

    @abstractmethod
    async def save(self, rule: TeamAssignmentRule) -> TeamAssignmentRule:
        """Persist rule changes."""

    @abstractmethod
    async def delete(self, rule_id: str) -> bool:
        """Delete a rule; False if it did not exist."""

    @abstractmethod
    async def list_for_team(self, team_id: str) -> List[TeamAssignmentRule]:
        """Rules of one team, priority descending."""

    @abstractmethod
    async def list_active(self) -> List[TeamAssignmentRule]:
        """Active rules of all teams, priority descending."""


class ITicketAssignmentRepository(ABC):
    """Interface for the append-only assignment history."""

    @abstractmethod
    async def create(self, assignment: TicketAssignment) -> TicketAssignment:
        """Append a history row without a rotation sequence."""

    @abstractmethod
    async def insert_rotation(self, assignment: TicketAssignment) -> bool:
        """
        Append a round-robin row, claiming ``assignment.rotation_seq``.

        Returns False if another writer already holds that sequence number.
        """

    @abstractmethod
    async def get_last_assignee(self, team_id: str) -> Optional[str]:
        """``assigned_to`` of the team's most recent row that has one."""

    @abstractmethod
    async def get_last_rotation_seq(self, team_id: str) -> int:
        """Highest rotation sequence used by the team, 0 if none."""

    @abstractmethod
    async def list_for_ticket(self, ticket_id: str) -> List[TicketAssignment]:
        """Assignment history of a ticket, newest first."""


class IClassifierProvider(ABC):
    """Source of the current ticket classifier."""

    @abstractmethod
    def get_classifier(self) -> TicketClassifier:
        """Get the classifier built from the current keyword sets."""


class StaticClassifierProvider(IClassifierProvider):
    """Classifier with fixed keyword sets."""

    def __init__(self, classifier: Optional[TicketClassifier] = None):
        self._classifier = classifier or TicketClassifier()

    def get_classifier(self) -> TicketClassifier:
        return self._classifier


# ========== Application Services ==========

class RoundRobinAssigner:
    """
    Picks the next team member for a ticket.

    There is no stored cursor: the last assignee is read back from the
    assignment history on every call. The write claims the next per-team
    rotation sequence number, so when two assignments race only one wins
    the slot and the loser re-reads the history and tries again.
    """

    def __init__(
        self,
        member_repository: ITeamMemberRepository,
        assignment_repository: ITicketAssignmentRepository,
        include_leads: Optional[bool] = None,
        max_attempts: Optional[int] = None,
        clock: Clock = utc_now
    ):
        self._member_repo = member_repository
        self._assignment_repo = assignment_repository
        self._include_leads = (
            settings.round_robin_include_leads if include_leads is None else include_leads
        )
        self._max_attempts = max_attempts or settings.round_robin_max_attempts
        self._clock = clock

    async def candidate_ids(self, team_id: str) -> List[str]:
        """Active rotation candidates of a team in stable order."""
        roles = [TeamRole.MEMBER, TeamRole.LEAD] if self._include_leads else [TeamRole.MEMBER]
        members = await self._member_repo.list_members(team_id, active_only=True, roles=roles)
        return RoundRobinSelector.stable_order(m.user_id for m in members)

    async def next_member(self, team_id: str) -> Optional[str]:
        """Preview the next assignee without recording anything."""
        candidates = await self.candidate_ids(team_id)
        last = await self._assignment_repo.get_last_assignee(team_id)
        return RoundRobinSelector.next_member(candidates, last)

    async def assign_next(
        self,
        team_id: str,
        ticket_id: str,
        actor_id: str,
        assigned_from: Optional[str] = None
    ) -> Optional[TicketAssignment]:
        """
        Record the next member of ``team_id`` as assignee of the ticket.

        Returns:
            The recorded assignment, or None when the team has no
            eligible members.

        Raises:
            RepositoryException: if every attempt lost the rotation race
        """
        for attempt in range(1, self._max_attempts + 1):
            candidates = await self.candidate_ids(team_id)
            if not candidates:
                logger.info(
                    "No rotation candidates, leaving ticket team-only",
                    extra={"team_id": team_id, "ticket_id": ticket_id}
                )
                return None

            # Sequence before assignee: a rotation committed between the two
            # reads takes slot last_seq + 1 and makes this insert conflict.
            last_seq = await self._assignment_repo.get_last_rotation_seq(team_id)
            last_assigned = await self._assignment_repo.get_last_assignee(team_id)
            next_user = RoundRobinSelector.next_member(candidates, last_assigned)

            assignment = TicketAssignment(
                id=None,
                ticket_id=ticket_id,
                assigned_by=actor_id,
                assigned_from=assigned_from,
                assigned_to=next_user,
                previous_team_id=team_id,
                new_team_id=team_id,
                reason=ROUND_ROBIN_REASON,
                rotation_seq=last_seq + 1,
                created_at=self._clock(),
            )

            if await self._assignment_repo.insert_rotation(assignment):
                logger.info(
                    "Round-robin assignment recorded",
                    extra={
                        "team_id": team_id,
                        "ticket_id": ticket_id,
                        "assigned_to": next_user,
                        "previous_assignee": last_assigned,
                        "rotation_seq": assignment.rotation_seq
                    }
                )
                return assignment

            logger.warning(
                "Rotation slot taken by a concurrent assignment, retrying",
                extra={"team_id": team_id, "rotation_seq": last_seq + 1, "attempt": attempt}
            )

        raise RepositoryException(
            f"Could not claim a rotation slot for team {team_id}",
            {"team_id": team_id, "attempts": self._max_attempts}
        )


class RoutingService:
    """
    Routes a new ticket: classification, rule selection, team and member
    assignment. Each step is a separate call so the caller can commit in
    between; team and member assignment fail independently.
    """

    def __init__(
        self,
        rule_repository: IAssignmentRuleRepository,
        assignment_repository: ITicketAssignmentRepository,
        ticket_repository: ITicketRepository,
        assigner: RoundRobinAssigner,
        classifier_provider: Optional[IClassifierProvider] = None,
        evaluator: Optional[RuleEvaluator] = None,
        clock: Clock = utc_now
    ):
        self._rule_repo = rule_repository
        self._assignment_repo = assignment_repository
        self._ticket_repo = ticket_repository
        self._assigner = assigner
        self._classifier_provider = classifier_provider or StaticClassifierProvider()
        self._evaluator = evaluator or RuleEvaluator()
        self._clock = clock

    def classify(self, subject: Optional[str], description: Optional[str]) -> str:
        return self._classifier_provider.get_classifier().classify(subject, description)

    async def select_rule(self, context: RoutingContext) -> Optional[TeamAssignmentRule]:
        """
        Highest-priority active rule matching the ticket, across all teams.

        A miss is not an error: it is logged and the ticket stays unrouted.
        """
        rules = await self._rule_repo.list_active()
        rule = self._evaluator.select(context, rules)

        if rule is None:
            logger.info(
                "No assignment rule matched; ticket left unrouted",
                extra={
                    "category": context.category,
                    "priority": context.priority,
                    "source": context.source,
                    "rules_evaluated": len(rules)
                }
            )
        else:
            logger.info(
                "Assignment rule matched",
                extra={"rule_id": rule.id, "rule_name": rule.name, "team_id": rule.team_id}
            )
        return rule

    async def assign_team(
        self,
        ticket: Ticket,
        team_id: str,
        actor_id: str,
        reason: Optional[str] = None
    ) -> TicketAssignment:
        """Move the ticket to a team and record it in the history."""
        assignment = TicketAssignment(
            id=None,
            ticket_id=ticket.id,
            assigned_by=actor_id,
            assigned_from=ticket.assigned_to,
            assigned_to=None,
            previous_team_id=ticket.team_id,
            new_team_id=team_id,
            reason=reason,
            created_at=self._clock(),
        )
        await self._assignment_repo.create(assignment)

        ticket.assign(team_id, None)
        await self._ticket_repo.save(ticket)
        return assignment

    async def assign_member(self, ticket: Ticket, actor_id: str) -> Optional[TicketAssignment]:
        """Round-robin the ticket to the next member of its team."""
        if ticket.team_id is None:
            return None

        assignment = await self._assigner.assign_next(
            ticket.team_id, ticket.id, actor_id, assigned_from=ticket.assigned_to
        )
        if assignment is None:
            return None

        ticket.assign(ticket.team_id, assignment.assigned_to)
        await self._ticket_repo.save(ticket)
        return assignment

    async def reassign(
        self,
        ticket: Ticket,
        team_id: Optional[str],
        assigned_to: Optional[str],
        actor_id: str,
        reason: Optional[str] = None
    ) -> TicketAssignment:
        """Manual assignment of team and/or member."""
        assignment = TicketAssignment(
            id=None,
            ticket_id=ticket.id,
            assigned_by=actor_id,
            assigned_from=ticket.assigned_to,
            assigned_to=assigned_to,
            previous_team_id=ticket.team_id,
            new_team_id=team_id,
            reason=reason or "manual",
            created_at=self._clock(),
        )
        await self._assignment_repo.create(assignment)

        ticket.assign(team_id, assigned_to)
        await self._ticket_repo.save(ticket)
        return assignment

    async def history(self, ticket_id: str) -> List[TicketAssignment]:
        return await self._assignment_repo.list_for_ticket(ticket_id)


class TeamService:
    """Team and membership management."""

    def __init__(self, team_repository: ITeamRepository, member_repository: ITeamMemberRepository):
        self._team_repo = team_repository
        self._member_repo = member_repository

    async def create_team(self, request: TeamCreateDTO) -> Team:
        if await self._team_repo.get_by_name(request.name):
            raise ValidationException(f"Team '{request.name}' already exists")
        team = Team(id=None, name=request.name, description=request.description, is_active=request.is_active)
        return await self._team_repo.create(team)

    async def list_teams(self) -> List[Team]:
        return await self._team_repo.list()

    async def get_team(self, team_id: str) -> Team:
        team = await self._team_repo.get_by_id(team_id)
        if team is None:
            raise ResourceNotFoundException("Team", team_id)
        return team

    async def add_member(self, team_id: str, request: TeamMemberCreateDTO) -> TeamMember:
        await self.get_team(team_id)
        if await self._member_repo.get(team_id, request.user_id):
            raise ValidationException(f"User {request.user_id} is already a member of team {team_id}")
        member = TeamMember(team_id=team_id, user_id=request.user_id, role=request.role)
        return await self._member_repo.add(member)

    async def list_members(self, team_id: str) -> List[TeamMember]:
        await self.get_team(team_id)
        return await self._member_repo.list_members(team_id, active_only=False)

    async def update_member(self, team_id: str, user_id: str, request: TeamMemberUpdateDTO) -> TeamMember:
        member = await self._member_repo.get(team_id, user_id)
        if member is None:
            raise ResourceNotFoundException("Team member", user_id)
        if request.role is not None:
            member.role = request.role
        if request.is_active is not None:
            member.is_active = request.is_active
        return await self._member_repo.save(member)

    async def remove_member(self, team_id: str, user_id: str) -> None:
        if not await self._member_repo.remove(team_id, user_id):
            raise ResourceNotFoundException("Team member", user_id)


class AssignmentRuleService:
    """Assignment rule management. Conditions are validated on write."""

    def __init__(self, rule_repository: IAssignmentRuleRepository, team_repository: ITeamRepository):
        self._rule_repo = rule_repository
        self._team_repo = team_repository

    async def list_rules(self, team_id: str) -> List[TeamAssignmentRule]:
        return await self._rule_repo.list_for_team(team_id)

    async def create_rule(self, team_id: str, request: RuleCreateDTO) -> TeamAssignmentRule:
        if await self._team_repo.get_by_id(team_id) is None:
            raise ResourceNotFoundException("Team", team_id)

        rule = TeamAssignmentRule(
            id=None,
            team_id=team_id,
            name=request.name,
            description=request.description,
            priority=request.priority,
            is_active=request.is_active,
            conditions=parse_conditions(request.conditions),
        )
        rule = await self._rule_repo.create(rule)
        logger.info("Assignment rule created", extra={"rule_id": rule.id, "team_id": team_id})
        return rule

    async def update_rule(self, rule_id: str, request: RuleUpdateDTO) -> TeamAssignmentRule:
        rule = await self._rule_repo.get_by_id(rule_id)
        if rule is None:
            raise ResourceNotFoundException("Assignment rule", rule_id)

        if request.name is not None:
            rule.name = request.name
        if request.description is not None:
            rule.description = request.description
        if request.priority is not None:
            rule.priority = request.priority
        if request.is_active is not None:
            rule.is_active = request.is_active
        if request.conditions is not None:
            rule.conditions = parse_conditions(request.conditions)

        return await self._rule_repo.save(rule)

    async def delete_rule(self, rule_id: str) -> None:
        if not await self._rule_repo.delete(rule_id):
            raise ResourceNotFoundException("Assignment rule", rule_id)
