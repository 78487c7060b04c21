"""
Pytest configuration and fixtures for the helpdesk service tests.

Database tests run against an in-memory SQLite database through aiosqlite.
A StaticPool keeps one shared connection so every session, including the
per-ticket sessions of the SLA sweep, sees the same database.
"""
import os

# Settings are read at import time
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("SLA_MONITORING_ENABLED", "false")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator, List, Optional, Tuple

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from helpdesk.infrastructure.database import create_tables, get_session, get_session_factory
from helpdesk.main import app
from helpdesk.routing.domain import Team, TeamMember
from helpdesk.routing.infrastructure import SQLAlchemyTeamRepository, SQLAlchemyTeamMemberRepository
from helpdesk.sla.domain import SLAPolicy
from helpdesk.sla.infrastructure import SQLAlchemySLAPolicyRepository
from helpdesk.tickets.domain import Ticket
from helpdesk.tickets.infrastructure import SQLAlchemyTicketRepository


T0 = datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc)


class FrozenClock:
    """Injectable clock that only moves when told to."""

    def __init__(self, now: datetime = T0):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory) -> AsyncGenerator[httpx.AsyncClient, None]:
    """HTTP client against the app with the database dependencies pointed at the test engine."""

    async def override_get_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_session_factory] = lambda: session_factory

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


# ─── Seeding helpers ─────────────────────────────────────────────────────────

async def seed_team(
    session: AsyncSession,
    name: str,
    members: List[Tuple[str, str]] = (),
    inactive: List[str] = (),
) -> Team:
    """Create a team with (user_id, role) members; users in ``inactive`` are deactivated."""
    team = await SQLAlchemyTeamRepository(session).create(Team(id=None, name=name))
    member_repo = SQLAlchemyTeamMemberRepository(session)
    for user_id, role in members:
        await member_repo.add(TeamMember(
            team_id=team.id, user_id=user_id, role=role, is_active=user_id not in inactive
        ))
    await session.commit()
    return team


async def seed_policy(
    session: AsyncSession,
    priority: str = "high",
    response: int = 60,
    resolution: int = 480,
    created_at: Optional[datetime] = None,
    is_active: bool = True,
    name: Optional[str] = None,
) -> SLAPolicy:
    created_at = created_at or T0
    policy = await SQLAlchemySLAPolicyRepository(session).create(SLAPolicy(
        id=None,
        name=name or f"{priority} policy",
        priority=priority,
        response_time_minutes=response,
        resolution_time_minutes=resolution,
        is_active=is_active,
        created_at=created_at,
        updated_at=created_at,
    ))
    await session.commit()
    return policy


async def seed_ticket(session: AsyncSession, **fields) -> Ticket:
    values = {
        "id": None,
        "customer_id": "customer-1",
        "subject": "Help",
        "description": "Something is wrong",
        "created_at": T0,
        "updated_at": T0,
    }
    values.update(fields)
    repo = SQLAlchemyTicketRepository(session)
    ticket = await repo.create(Ticket(**values))
    # create() only writes creation fields; persist the rest
    await repo.save(ticket)
    await session.commit()
    return ticket


async def seed_overdue_ticket(session: AsyncSession, team_id: Optional[str] = None, **fields) -> Ticket:
    """High-priority ticket created at T0 with a 60/480 minute policy attached."""
    policy = await seed_policy(session)
    return await seed_ticket(
        session,
        team_id=team_id,
        sla_policy_id=policy.id,
        sla_response_due_at=T0 + timedelta(minutes=60),
        sla_resolution_due_at=T0 + timedelta(minutes=480),
        **fields
    )
