"""
Routing Infrastructure Repositories
===================================

SQLAlchemy implementations of the routing repository interfaces.
"""

from typing import List, Optional
from uuid import uuid4

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.core import RepositoryException, as_utc, utc_now
from helpdesk.infrastructure.database import parse_uuid, format_uuid, insert_ignore_conflict
from helpdesk.routing.application.services import (
    ITeamRepository, ITeamMemberRepository, IAssignmentRuleRepository,
    ITicketAssignmentRepository,
)
from helpdesk.routing.domain import (
    Team, TeamMember, TeamAssignmentRule, TicketAssignment,
    parse_conditions, dump_conditions,
)
from helpdesk.routing.infrastructure.models import (
    TeamModel, TeamMemberModel, TeamAssignmentRuleModel, TicketAssignmentModel,
)


def _team_from_model(model: TeamModel) -> Team:
    return Team(
        id=str(model.id),
        name=model.name,
        description=model.description,
        is_active=model.is_active,
        created_at=as_utc(model.created_at),
    )


def _member_from_model(model: TeamMemberModel) -> TeamMember:
    return TeamMember(
        id=str(model.id),
        team_id=str(model.team_id),
        user_id=model.user_id,
        role=model.role,
        is_active=model.is_active,
        created_at=as_utc(model.created_at),
    )


def _rule_from_model(model: TeamAssignmentRuleModel) -> TeamAssignmentRule:
    return TeamAssignmentRule(
        id=str(model.id),
        team_id=str(model.team_id),
        name=model.name,
        description=model.description,
        priority=model.priority,
        is_active=model.is_active,
        conditions=parse_conditions(model.conditions),
        created_at=as_utc(model.created_at),
        updated_at=as_utc(model.updated_at),
    )


def _assignment_from_model(model: TicketAssignmentModel) -> TicketAssignment:
    return TicketAssignment(
        id=str(model.id),
        ticket_id=str(model.ticket_id),
        assigned_by=model.assigned_by,
        assigned_from=model.assigned_from,
        assigned_to=model.assigned_to,
        previous_team_id=format_uuid(model.previous_team_id),
        new_team_id=format_uuid(model.new_team_id),
        reason=model.reason,
        rotation_seq=model.rotation_seq,
        created_at=as_utc(model.created_at),
    )


class SQLAlchemyTeamRepository(ITeamRepository):
    """SQLAlchemy implementation of team repository."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def create(self, team: Team) -> Team:
        model = TeamModel(
            name=team.name,
            description=team.description,
            is_active=team.is_active,
            created_at=team.created_at,
        )
        self._session.add(model)
        await self._session.flush()

        team.id = str(model.id)
        return team

    async def get_by_id(self, team_id: str) -> Optional[Team]:
        team_uuid = parse_uuid(team_id)
        if team_uuid is None:
            return None
        model = await self._session.get(TeamModel, team_uuid)
        return _team_from_model(model) if model else None

    async def get_by_name(self, name: str) -> Optional[Team]:
        stmt = select(TeamModel).where(TeamModel.name == name)
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return _team_from_model(model) if model else None

    async def list(self) -> List[Team]:
        result = await self._session.execute(select(TeamModel).order_by(TeamModel.name.asc()))
        return [_team_from_model(m) for m in result.scalars().all()]


class SQLAlchemyTeamMemberRepository(ITeamMemberRepository):
    """SQLAlchemy implementation of team membership repository."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def _get_model(self, team_id: str, user_id: str) -> Optional[TeamMemberModel]:
        team_uuid = parse_uuid(team_id)
        if team_uuid is None:
            return None
        stmt = select(TeamMemberModel).where(
            TeamMemberModel.team_id == team_uuid,
            TeamMemberModel.user_id == user_id,
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def add(self, member: TeamMember) -> TeamMember:
        team_uuid = parse_uuid(member.team_id)
        if team_uuid is None:
            raise RepositoryException(f"Invalid team ID: {member.team_id}")

        model = TeamMemberModel(
            team_id=team_uuid,
            user_id=member.user_id,
            role=member.role,
            is_active=member.is_active,
            created_at=member.created_at,
        )
        self._session.add(model)
        await self._session.flush()

        member.id = str(model.id)
        return member

    async def get(self, team_id: str, user_id: str) -> Optional[TeamMember]:
        model = await self._get_model(team_id, user_id)
        return _member_from_model(model) if model else None

    async def save(self, member: TeamMember) -> TeamMember:
        model = await self._get_model(member.team_id, member.user_id)
        if model is None:
            raise RepositoryException(f"Member {member.user_id} of team {member.team_id} not found")

        model.role = member.role
        model.is_active = member.is_active
        await self._session.flush()
        return member

    async def remove(self, team_id: str, user_id: str) -> bool:
        model = await self._get_model(team_id, user_id)
        if model is None:
            return False
        await self._session.delete(model)
        await self._session.flush()
        return True

    async def list_members(
        self,
        team_id: str,
        active_only: bool = True,
        roles: Optional[List[str]] = None
    ) -> List[TeamMember]:
        team_uuid = parse_uuid(team_id)
        if team_uuid is None:
            return []

        stmt = select(TeamMemberModel).where(TeamMemberModel.team_id == team_uuid)
        if active_only:
            stmt = stmt.where(TeamMemberModel.is_active.is_(True))
        if roles:
            stmt = stmt.where(TeamMemberModel.role.in_(roles))
        stmt = stmt.order_by(TeamMemberModel.user_id.asc())

        result = await self._session.execute(stmt)
        return [_member_from_model(m) for m in result.scalars().all()]


class SQLAlchemyAssignmentRuleRepository(IAssignmentRuleRepository):
    """SQLAlchemy implementation of assignment rule repository."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def _get_model(self, rule_id: str) -> Optional[TeamAssignmentRuleModel]:
        rule_uuid = parse_uuid(rule_id)
        if rule_uuid is None:
            return None
        return await self._session.get(TeamAssignmentRuleModel, rule_uuid)

    async def create(self, rule: TeamAssignmentRule) -> TeamAssignmentRule:
        team_uuid = parse_uuid(rule.team_id)
        if team_uuid is None:
            raise RepositoryException(f"Invalid team ID: {rule.team_id}")

        model = TeamAssignmentRuleModel(
            team_id=team_uuid,
            name=rule.name,
            description=rule.description,
            priority=rule.priority,
            is_active=rule.is_active,
            conditions=dump_conditions(rule.conditions),
            created_at=rule.created_at,
            updated_at=rule.updated_at,
        )
        self._session.add(model)
        await self._session.flush()

        rule.id = str(model.id)
        return rule

    async def get_by_id(self, rule_id: str) -> Optional[TeamAssignmentRule]:
        model = await self._get_model(rule_id)
        return _rule_from_model(model) if model else None

    async def save(self, rule: TeamAssignmentRule) -> TeamAssignmentRule:
        model = await self._get_model(rule.id)
        if model is None:
            raise RepositoryException(f"Assignment rule {rule.id} not found")

        rule.updated_at = utc_now()
        model.name = rule.name
        model.description = rule.description
        model.priority = rule.priority
        model.is_active = rule.is_active
        model.conditions = dump_conditions(rule.conditions)
        model.updated_at = rule.updated_at

        await self._session.flush()
        return rule

    async def delete(self, rule_id: str) -> bool:
        rule_uuid = parse_uuid(rule_id)
        if rule_uuid is None:
            return False
        result = await self._session.execute(
            delete(TeamAssignmentRuleModel).where(TeamAssignmentRuleModel.id == rule_uuid)
        )
        return result.rowcount > 0

    async def list_for_team(self, team_id: str) -> List[TeamAssignmentRule]:
        team_uuid = parse_uuid(team_id)
        if team_uuid is None:
            return []

        stmt = (
            select(TeamAssignmentRuleModel)
            .where(TeamAssignmentRuleModel.team_id == team_uuid)
            .order_by(TeamAssignmentRuleModel.priority.desc())
        )
        result = await self._session.execute(stmt)
        return [_rule_from_model(m) for m in result.scalars().all()]

    async def list_active(self) -> List[TeamAssignmentRule]:
        stmt = (
            select(TeamAssignmentRuleModel)
            .where(TeamAssignmentRuleModel.is_active.is_(True))
            .order_by(TeamAssignmentRuleModel.priority.desc())
        )
        result = await self._session.execute(stmt)
        return [_rule_from_model(m) for m in result.scalars().all()]


class SQLAlchemyTicketAssignmentRepository(ITicketAssignmentRepository):
    """
    SQLAlchemy implementation of the assignment history.

    Rows are only ever inserted.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    def _values(self, assignment: TicketAssignment) -> dict:
        ticket_uuid = parse_uuid(assignment.ticket_id)
        if ticket_uuid is None:
            raise RepositoryException(f"Invalid ticket ID: {assignment.ticket_id}")
        return {
            "ticket_id": ticket_uuid,
            "assigned_by": assignment.assigned_by,
            "assigned_from": assignment.assigned_from,
            "assigned_to": assignment.assigned_to,
            "previous_team_id": parse_uuid(assignment.previous_team_id),
            "new_team_id": parse_uuid(assignment.new_team_id),
            "reason": assignment.reason,
            "rotation_seq": assignment.rotation_seq,
            "created_at": assignment.created_at,
        }

    async def create(self, assignment: TicketAssignment) -> TicketAssignment:
        model = TicketAssignmentModel(**self._values(assignment))
        self._session.add(model)
        await self._session.flush()

        assignment.id = str(model.id)
        return assignment

    async def insert_rotation(self, assignment: TicketAssignment) -> bool:
        if assignment.rotation_seq is None:
            raise RepositoryException("Round-robin assignment requires a rotation sequence")

        row_id = uuid4()
        values = self._values(assignment)
        values["id"] = row_id

        inserted = await insert_ignore_conflict(
            self._session,
            TicketAssignmentModel,
            values,
            ["new_team_id", "rotation_seq"],
        )
        if inserted:
            assignment.id = str(row_id)
        return inserted

    async def get_last_assignee(self, team_id: str) -> Optional[str]:
        team_uuid = parse_uuid(team_id)
        if team_uuid is None:
            return None

        stmt = (
            select(TicketAssignmentModel.assigned_to)
            .where(TicketAssignmentModel.new_team_id == team_uuid)
            .where(TicketAssignmentModel.assigned_to.is_not(None))
            .order_by(
                TicketAssignmentModel.created_at.desc(),
                TicketAssignmentModel.rotation_seq.desc().nulls_last(),
            )
            .limit(1)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_last_rotation_seq(self, team_id: str) -> int:
        team_uuid = parse_uuid(team_id)
        if team_uuid is None:
            return 0

        stmt = select(func.max(TicketAssignmentModel.rotation_seq)).where(
            TicketAssignmentModel.new_team_id == team_uuid
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none() or 0

    async def list_for_ticket(self, ticket_id: str) -> List[TicketAssignment]:
        ticket_uuid = parse_uuid(ticket_id)
        if ticket_uuid is None:
            return []

        stmt = (
            select(TicketAssignmentModel)
            .where(TicketAssignmentModel.ticket_id == ticket_uuid)
            .order_by(TicketAssignmentModel.created_at.desc())
        )
        result = await self._session.execute(stmt)
        return [_assignment_from_model(m) for m in result.scalars().all()]
