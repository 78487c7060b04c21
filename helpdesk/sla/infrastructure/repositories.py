"""
SLA Infrastructure Repositories
===============================

Concrete implementations of repository interfaces using SQLAlchemy.

This layer contains the data access logic - how we store and retrieve
entities from the database.
"""

from typing import List, Optional
from uuid import uuid4

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.core import RepositoryException, as_utc
from helpdesk.infrastructure.database import parse_uuid, format_uuid, insert_ignore_conflict
from helpdesk.sla.application.services import (
    ISLAPolicyRepository, IBreachLogRepository, INotificationRepository
)
from helpdesk.sla.domain import SLAPolicy, SLABreach, Notification
from helpdesk.sla.infrastructure.models import SLAPolicyModel, SLABreachLogModel, NotificationModel


def _policy_from_model(model: SLAPolicyModel) -> SLAPolicy:
    return SLAPolicy(
        id=str(model.id),
        name=model.name,
        description=model.description,
        priority=model.priority,
        response_time_minutes=model.response_time_minutes,
        resolution_time_minutes=model.resolution_time_minutes,
        is_active=model.is_active,
        created_by=model.created_by,
        created_at=as_utc(model.created_at),
        updated_at=as_utc(model.updated_at),
    )


class SQLAlchemySLAPolicyRepository(ISLAPolicyRepository):
    """
    SQLAlchemy implementation of SLA policy repository.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def _get_model(self, policy_id: str) -> Optional[SLAPolicyModel]:
        policy_uuid = parse_uuid(policy_id)
        if policy_uuid is None:
            return None
        return await self._session.get(SLAPolicyModel, policy_uuid)

    async def create(self, policy: SLAPolicy) -> SLAPolicy:
        model = SLAPolicyModel(
            name=policy.name,
            description=policy.description,
            priority=policy.priority,
            response_time_minutes=policy.response_time_minutes,
            resolution_time_minutes=policy.resolution_time_minutes,
            is_active=policy.is_active,
            created_by=policy.created_by,
            created_at=policy.created_at,
            updated_at=policy.updated_at,
        )
        self._session.add(model)
        await self._session.flush()

        policy.id = str(model.id)
        return policy

    async def get_by_id(self, policy_id: str) -> Optional[SLAPolicy]:
        model = await self._get_model(policy_id)
        return _policy_from_model(model) if model else None

    async def save(self, policy: SLAPolicy) -> SLAPolicy:
        model = await self._get_model(policy.id)
        if model is None:
            raise RepositoryException(f"SLA policy {policy.id} not found")

        model.name = policy.name
        model.description = policy.description
        model.priority = policy.priority
        model.response_time_minutes = policy.response_time_minutes
        model.resolution_time_minutes = policy.resolution_time_minutes
        model.is_active = policy.is_active
        model.updated_at = policy.updated_at

        await self._session.flush()
        return policy

    async def delete(self, policy_id: str) -> bool:
        policy_uuid = parse_uuid(policy_id)
        if policy_uuid is None:
            return False
        result = await self._session.execute(
            delete(SLAPolicyModel).where(SLAPolicyModel.id == policy_uuid)
        )
        return result.rowcount > 0

    async def list(self, active_only: bool = False) -> List[SLAPolicy]:
        stmt = select(SLAPolicyModel)
        if active_only:
            stmt = stmt.where(SLAPolicyModel.is_active.is_(True))
        stmt = stmt.order_by(SLAPolicyModel.created_at.desc())

        result = await self._session.execute(stmt)
        return [_policy_from_model(m) for m in result.scalars().all()]

    async def get_active_for_priority(self, priority: str) -> Optional[SLAPolicy]:
        stmt = (
            select(SLAPolicyModel)
            .where(SLAPolicyModel.priority == priority)
            .where(SLAPolicyModel.is_active.is_(True))
            .order_by(SLAPolicyModel.created_at.desc())
            .limit(1)
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return _policy_from_model(model) if model else None


class SQLAlchemyBreachLogRepository(IBreachLogRepository):
    """
    SQLAlchemy implementation of the breach log.

    Inserts go through ON CONFLICT DO NOTHING on (ticket_id, breach_type),
    so concurrent detectors cannot log the same breach twice.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def insert_if_absent(self, breach: SLABreach) -> bool:
        ticket_uuid = parse_uuid(breach.ticket_id)
        if ticket_uuid is None:
            raise RepositoryException(f"Invalid ticket ID: {breach.ticket_id}")

        row_id = uuid4()
        inserted = await insert_ignore_conflict(
            self._session,
            SLABreachLogModel,
            {
                "id": row_id,
                "ticket_id": ticket_uuid,
                "policy_id": parse_uuid(breach.policy_id),
                "breach_type": breach.breach_type,
                "expected_time": breach.expected_time,
                "actual_time": breach.actual_time,
                "created_at": breach.created_at,
            },
            ["ticket_id", "breach_type"],
        )
        if inserted:
            breach.id = str(row_id)
        return inserted

    async def list_for_ticket(self, ticket_id: str) -> List[SLABreach]:
        ticket_uuid = parse_uuid(ticket_id)
        if ticket_uuid is None:
            return []

        stmt = (
            select(SLABreachLogModel, SLAPolicyModel.name)
            .outerjoin(SLAPolicyModel, SLAPolicyModel.id == SLABreachLogModel.policy_id)
            .where(SLABreachLogModel.ticket_id == ticket_uuid)
            .order_by(SLABreachLogModel.created_at.desc())
        )
        result = await self._session.execute(stmt)
        return [
            SLABreach(
                id=str(model.id),
                ticket_id=str(model.ticket_id),
                policy_id=format_uuid(model.policy_id),
                breach_type=model.breach_type,
                expected_time=as_utc(model.expected_time),
                actual_time=as_utc(model.actual_time),
                created_at=as_utc(model.created_at),
                policy_name=policy_name,
            )
            for model, policy_name in result.all()
        ]


class SQLAlchemyNotificationRepository(INotificationRepository):
    """SQLAlchemy implementation of notification repository."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def create_many(self, notifications: List[Notification]) -> int:
        models = [
            NotificationModel(
                user_id=n.user_id,
                type=n.type,
                content=n.content,
                read=n.read,
                created_at=n.created_at,
            )
            for n in notifications
        ]
        self._session.add_all(models)
        await self._session.flush()

        for notification, model in zip(notifications, models):
            notification.id = str(model.id)
        return len(models)

    async def list_for_user(self, user_id: str, unread_only: bool = False) -> List[Notification]:
        stmt = select(NotificationModel).where(NotificationModel.user_id == user_id)
        if unread_only:
            stmt = stmt.where(NotificationModel.read.is_(False))
        stmt = stmt.order_by(NotificationModel.created_at.desc())

        result = await self._session.execute(stmt)
        return [
            Notification(
                id=str(m.id),
                user_id=m.user_id,
                type=m.type,
                content=m.content,
                read=m.read,
                created_at=as_utc(m.created_at),
            )
            for m in result.scalars().all()
        ]
