"""
Tests for the ticket lifecycle.

Tests:
- Creation: classification, rule selection, team and member assignment, SLA attach
- Partial failure after the ticket is stored
- First response recorded once, by status change or reply
- Inline SLA checks on first response and resolution
"""
from datetime import timedelta

import pytest
from sqlalchemy import func, select

from helpdesk.core import ResourceNotFoundException, TicketRoutingException, UnauthenticatedException
from helpdesk.routing.application import (
    AssignmentRuleService, RoundRobinAssigner, RoutingService, StaticClassifierProvider
)
from helpdesk.routing.application.dto import RuleCreateDTO
from helpdesk.routing.infrastructure import (
    SQLAlchemyAssignmentRuleRepository, SQLAlchemyTeamMemberRepository,
    SQLAlchemyTeamRepository, SQLAlchemyTicketAssignmentRepository,
)
from helpdesk.sla.application import BreachDetectionService, SLAService
from helpdesk.sla.infrastructure import SQLAlchemySLAPolicyRepository
from helpdesk.sla.services import build_breach_detector
from helpdesk.tickets.application import TicketCreateDTO, TicketService
from helpdesk.tickets.infrastructure import (
    TicketModel, SQLAlchemyTicketMessageRepository, SQLAlchemyTicketRepository
)

from tests.conftest import T0, seed_policy, seed_team


def build_service(session, clock) -> TicketService:
    ticket_repo = SQLAlchemyTicketRepository(session)
    assignment_repo = SQLAlchemyTicketAssignmentRepository(session)
    routing = RoutingService(
        SQLAlchemyAssignmentRuleRepository(session),
        assignment_repo,
        ticket_repo,
        RoundRobinAssigner(SQLAlchemyTeamMemberRepository(session), assignment_repo, clock=clock),
        classifier_provider=StaticClassifierProvider(),
        clock=clock,
    )
    return TicketService(
        session,
        ticket_repo,
        SQLAlchemyTicketMessageRepository(session),
        SQLAlchemyTeamRepository(session),
        routing,
        SLAService(SQLAlchemySLAPolicyRepository(session), ticket_repo, clock=clock),
        build_breach_detector(session, clock),
        clock=clock,
    )


async def add_rule(session, team_id, name, priority, conditions):
    service = AssignmentRuleService(SQLAlchemyAssignmentRuleRepository(session), SQLAlchemyTeamRepository(session))
    rule = await service.create_rule(team_id, RuleCreateDTO(name=name, priority=priority, conditions=conditions))
    await session.commit()
    return rule


ORDER_TICKET = TicketCreateDTO(
    subject="Where is my order?",
    description="Tracking shows nothing for a week",
    priority="high",
    source="email",
)


class TestCreateTicket:
    """Ticket creation flow."""

    @pytest.mark.asyncio
    async def test_full_routing(self, session, clock):
        orders = await seed_team(session, "Orders", [("agent-a", "member"), ("agent-b", "member")])
        general = await seed_team(session, "General", [("agent-z", "member")])
        await add_rule(session, general.id, "catch-all", 1, {})
        await add_rule(session, orders.id, "orders", 10, {"category": ["Order"]})
        policy = await seed_policy(session, priority="high", response=60, resolution=480)
        service = build_service(session, clock)

        ticket = await service.create_ticket(ORDER_TICKET, "customer-1")

        assert ticket.id is not None
        assert ticket.customer_id == "customer-1"
        assert ticket.status == "new"
        assert ticket.category == "Order"
        assert ticket.team_id == orders.id
        assert ticket.assigned_to == "agent-a"
        assert ticket.sla_policy_id == policy.id
        assert ticket.sla_response_due_at == T0 + timedelta(minutes=60)
        assert ticket.sla_resolution_due_at == T0 + timedelta(minutes=480)

        history = await SQLAlchemyTicketAssignmentRepository(session).list_for_ticket(ticket.id)
        reasons = {a.reason for a in history}
        assert reasons == {"rule:orders", "round-robin"}

    @pytest.mark.asyncio
    async def test_consecutive_tickets_rotate(self, session, clock):
        orders = await seed_team(session, "Orders", [("agent-a", "member"), ("agent-b", "member")])
        await add_rule(session, orders.id, "orders", 10, {"category": ["Order"]})
        service = build_service(session, clock)

        assignees = []
        for _ in range(3):
            clock.advance(minutes=1)
            assignees.append((await service.create_ticket(ORDER_TICKET, "customer-1")).assigned_to)

        assert assignees == ["agent-a", "agent-b", "agent-a"]

    @pytest.mark.asyncio
    async def test_no_matching_rule_leaves_ticket_unrouted(self, session, clock):
        orders = await seed_team(session, "Orders", [("agent-a", "member")])
        await add_rule(session, orders.id, "orders", 10, {"category": ["Order"]})
        service = build_service(session, clock)

        ticket = await service.create_ticket(
            TicketCreateDTO(subject="Hello", description="Thanks for the help"), "customer-1"
        )

        assert ticket.category == "General"
        assert ticket.team_id is None
        assert ticket.assigned_to is None

    @pytest.mark.asyncio
    async def test_team_without_members_stays_team_only(self, session, clock):
        orders = await seed_team(session, "Orders", [("lead-1", "lead")])
        await add_rule(session, orders.id, "orders", 10, {})
        service = build_service(session, clock)

        ticket = await service.create_ticket(ORDER_TICKET, "customer-1")

        assert ticket.team_id == orders.id
        assert ticket.assigned_to is None

    @pytest.mark.asyncio
    async def test_customer_type_routing(self, session, clock):
        vip = await seed_team(session, "VIP", [("agent-v", "member")])
        await add_rule(session, vip.id, "vip", 50, {"customer_type": ["vip"]})
        service = build_service(session, clock)

        regular = await service.create_ticket(ORDER_TICKET, "customer-1")
        special = await service.create_ticket(ORDER_TICKET.model_copy(update={"customer_type": "vip"}), "customer-2")

        assert regular.team_id is None
        assert special.team_id == vip.id

    @pytest.mark.asyncio
    async def test_latest_active_policy_attached(self, session, clock):
        await seed_policy(session, priority="high", response=60, created_at=T0 - timedelta(days=2), name="old")
        newest = await seed_policy(session, priority="high", response=30, created_at=T0 - timedelta(days=1), name="new")
        await seed_policy(session, priority="high", response=10, is_active=False, name="disabled")
        await seed_policy(session, priority="low", response=600, name="low")
        service = build_service(session, clock)

        ticket = await service.create_ticket(ORDER_TICKET, "customer-1")

        assert ticket.sla_policy_id == newest.id
        assert ticket.sla_response_due_at == T0 + timedelta(minutes=30)

    @pytest.mark.asyncio
    async def test_explicit_policy_overrides_default(self, session, clock):
        await seed_policy(session, priority="high", response=60)
        explicit = await seed_policy(session, priority="low", response=240, resolution=2880, name="custom")
        service = build_service(session, clock)

        ticket = await service.create_ticket(
            ORDER_TICKET.model_copy(update={"sla_policy_id": explicit.id}), "customer-1"
        )

        assert ticket.sla_policy_id == explicit.id
        assert ticket.sla_response_due_at == T0 + timedelta(minutes=240)

    @pytest.mark.asyncio
    async def test_unknown_explicit_policy_rejected_before_insert(self, session, clock):
        service = build_service(session, clock)

        with pytest.raises(ResourceNotFoundException):
            await service.create_ticket(
                ORDER_TICKET.model_copy(update={"sla_policy_id": "00000000-0000-0000-0000-000000000000"}),
                "customer-1",
            )

        stored = await session.execute(select(func.count()).select_from(TicketModel))
        assert stored.scalar_one() == 0

    @pytest.mark.asyncio
    async def test_no_policy_for_priority(self, session, clock):
        service = build_service(session, clock)

        ticket = await service.create_ticket(ORDER_TICKET, "customer-1")

        assert ticket.sla_policy_id is None
        assert ticket.sla_response_due_at is None

    @pytest.mark.asyncio
    async def test_requires_actor(self, session, clock):
        with pytest.raises(UnauthenticatedException):
            await build_service(session, clock).create_ticket(ORDER_TICKET, None)

    @pytest.mark.asyncio
    async def test_member_assignment_failure_keeps_ticket_and_team(self, session, clock, monkeypatch):
        orders = await seed_team(session, "Orders", [("agent-a", "member")])
        await add_rule(session, orders.id, "orders", 10, {})
        await seed_policy(session, priority="high")
        service = build_service(session, clock)

        async def broken(*args, **kwargs):
            raise RuntimeError("rotation store unavailable")

        monkeypatch.setattr(RoundRobinAssigner, "assign_next", broken)

        with pytest.raises(TicketRoutingException) as exc_info:
            await service.create_ticket(ORDER_TICKET, "customer-1")

        error = exc_info.value
        assert error.step == "member_assignment"
        assert error.status_code == 500
        assert error.details["ticket_id"] == error.ticket_id

        stored = await SQLAlchemyTicketRepository(session).get_by_id(error.ticket_id)
        assert stored is not None
        assert stored.team_id == orders.id
        assert stored.assigned_to is None
        assert stored.sla_policy_id is None

    @pytest.mark.asyncio
    async def test_rule_selection_failure(self, session, clock, monkeypatch):
        service = build_service(session, clock)

        async def broken(self):
            raise RuntimeError("rules unavailable")

        monkeypatch.setattr(SQLAlchemyAssignmentRuleRepository, "list_active", broken)

        with pytest.raises(TicketRoutingException) as exc_info:
            await service.create_ticket(ORDER_TICKET, "customer-1")

        assert exc_info.value.step == "rule_selection"
        assert await SQLAlchemyTicketRepository(session).get_by_id(exc_info.value.ticket_id) is not None


class TestFirstResponse:
    """first_response_at is set once, by the earliest qualifying event."""

    async def create(self, session, clock):
        service = build_service(session, clock)
        ticket = await service.create_ticket(ORDER_TICKET, "customer-1")
        return service, ticket

    @pytest.mark.asyncio
    async def test_status_change_records_first_response(self, session, clock):
        service, ticket = await self.create(session, clock)
        responded = clock.advance(minutes=20)

        updated = await service.change_status(ticket.id, "open", "agent-a")

        assert updated.first_response_at == responded

    @pytest.mark.asyncio
    async def test_reply_records_first_response(self, session, clock):
        service, ticket = await self.create(session, clock)
        replied = clock.advance(minutes=15)

        await service.add_message(ticket.id, "agent-a", "Looking into it", "reply")

        assert (await service.get_ticket(ticket.id)).first_response_at == replied

    @pytest.mark.asyncio
    async def test_note_does_not_count(self, session, clock):
        service, ticket = await self.create(session, clock)
        clock.advance(minutes=5)

        await service.add_message(ticket.id, "agent-a", "Internal note", "note")

        assert (await service.get_ticket(ticket.id)).first_response_at is None

    @pytest.mark.asyncio
    async def test_first_response_never_overwritten(self, session, clock):
        service, ticket = await self.create(session, clock)
        first = clock.advance(minutes=10)
        await service.add_message(ticket.id, "agent-a", "On it", "reply")

        clock.advance(minutes=10)
        await service.change_status(ticket.id, "open", "agent-a")
        clock.advance(minutes=10)
        await service.change_status(ticket.id, "new", "agent-a")
        await service.change_status(ticket.id, "pending", "agent-a")
        await service.add_message(ticket.id, "agent-b", "Another reply", "reply")

        assert (await service.get_ticket(ticket.id)).first_response_at == first

    @pytest.mark.asyncio
    async def test_messages_listed_in_order(self, session, clock):
        service, ticket = await self.create(session, clock)
        clock.advance(minutes=1)
        await service.add_message(ticket.id, "agent-a", "first", "note")
        clock.advance(minutes=1)
        await service.add_message(ticket.id, "customer-1", "second", "reply")

        messages = await service.list_messages(ticket.id)

        assert [m.content for m in messages] == ["first", "second"]

    @pytest.mark.asyncio
    async def test_message_on_missing_ticket(self, session, clock):
        with pytest.raises(ResourceNotFoundException):
            await build_service(session, clock).add_message(
                "00000000-0000-0000-0000-000000000000", "agent-a", "hi", "reply"
            )


class TestInlineSLAChecks:
    """Breaches logged at the moment a response or resolution is recorded."""

    @pytest.mark.asyncio
    async def test_late_reply_logs_response_breach(self, session, clock):
        await seed_policy(session, priority="high", response=60)
        service = build_service(session, clock)
        ticket = await service.create_ticket(ORDER_TICKET, "customer-1")
        clock.advance(minutes=90)

        await service.add_message(ticket.id, "agent-a", "Sorry for the wait", "reply")

        breaches = await build_breach_detector(session, clock).list_breaches(ticket.id)
        assert [b.breach_type for b in breaches] == ["response_time"]
        assert breaches[0].expected_time == T0 + timedelta(minutes=60)

    @pytest.mark.asyncio
    async def test_timely_resolution_logs_nothing(self, session, clock):
        await seed_policy(session, priority="high")
        service = build_service(session, clock)
        ticket = await service.create_ticket(ORDER_TICKET, "customer-1")
        clock.advance(minutes=30)

        resolved = await service.change_status(ticket.id, "resolved", "agent-a")

        assert resolved.resolved_at == T0 + timedelta(minutes=30)
        assert await build_breach_detector(session, clock).list_breaches(ticket.id) == []

    @pytest.mark.asyncio
    async def test_late_resolution_logs_breach(self, session, clock):
        await seed_policy(session, priority="high", response=60, resolution=480)
        service = build_service(session, clock)
        ticket = await service.create_ticket(ORDER_TICKET, "customer-1")
        clock.advance(minutes=30)
        await service.change_status(ticket.id, "open", "agent-a")
        clock.advance(hours=10)

        await service.change_status(ticket.id, "closed", "agent-a")

        breaches = await build_breach_detector(session, clock).list_breaches(ticket.id)
        assert [b.breach_type for b in breaches] == ["resolution_time"]

    @pytest.mark.asyncio
    async def test_failing_check_does_not_fail_status_change(self, session, clock, monkeypatch):
        await seed_policy(session, priority="high", response=60)
        service = build_service(session, clock)
        ticket = await service.create_ticket(ORDER_TICKET, "customer-1")
        clock.advance(minutes=90)

        async def broken(self, ticket):
            raise RuntimeError("breach log unavailable")

        monkeypatch.setattr(BreachDetectionService, "check_first_response", broken)

        updated = await service.change_status(ticket.id, "open", "agent-a")

        assert updated.status == "open"
        assert (await service.get_ticket(ticket.id)).first_response_at == T0 + timedelta(minutes=90)


class TestReassign:
    """Manual reassignment."""

    @pytest.mark.asyncio
    async def test_reassign_member_within_team(self, session, clock):
        orders = await seed_team(session, "Orders", [("agent-a", "member"), ("agent-b", "member")])
        await add_rule(session, orders.id, "orders", 10, {})
        service = build_service(session, clock)
        ticket = await service.create_ticket(ORDER_TICKET, "customer-1")

        assignment = await service.reassign(ticket.id, None, "agent-b", "lead-1", "escalation")

        assert assignment.assigned_from == "agent-a"
        assert assignment.assigned_to == "agent-b"
        assert assignment.new_team_id == orders.id
        assert assignment.reason == "escalation"
        assert (await service.get_ticket(ticket.id)).assigned_to == "agent-b"

    @pytest.mark.asyncio
    async def test_reassign_to_unknown_team(self, session, clock):
        service = build_service(session, clock)
        ticket = await service.create_ticket(ORDER_TICKET, "customer-1")

        with pytest.raises(ResourceNotFoundException):
            await service.reassign(ticket.id, "00000000-0000-0000-0000-000000000000", None, "lead-1")
