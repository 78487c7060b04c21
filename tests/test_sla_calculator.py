"""
Tests for SLA calculations.

Tests:
- Deadline computation from an attach time
- Which breaches the sweep detects
- Clock states reported by the status endpoint
"""
from datetime import timedelta

import pytest

from helpdesk.core import ValidationException
from helpdesk.sla.domain import SLACalculator, SLAPolicy, SLABreach
from helpdesk.tickets.domain import Ticket

from tests.conftest import T0


def make_policy(response=60, resolution=480, priority="high"):
    return SLAPolicy(
        id="policy-1",
        name="High",
        priority=priority,
        response_time_minutes=response,
        resolution_time_minutes=resolution,
    )


def make_ticket(**fields):
    values = dict(
        id="ticket-1",
        customer_id="customer-1",
        subject="Help",
        description="Something",
        priority="high",
        sla_policy_id="policy-1",
        sla_response_due_at=T0 + timedelta(minutes=60),
        sla_resolution_due_at=T0 + timedelta(minutes=480),
        created_at=T0,
        updated_at=T0,
    )
    values.update(fields)
    return Ticket(**values)


class TestSLAPolicy:
    """Policy validation."""

    def test_times_must_be_positive(self):
        with pytest.raises(ValidationException):
            make_policy(response=0)

    def test_unknown_priority(self):
        with pytest.raises(ValidationException):
            make_policy(priority="critical")

    def test_resolution_shorter_than_response_allowed(self):
        policy = make_policy(response=120, resolution=60)
        assert policy.resolution_shorter_than_response is True


class TestDeadlines:
    """Deadlines from attach time."""

    def test_deadlines(self):
        response_due, resolution_due = SLACalculator.calculate_deadlines(T0, make_policy())

        assert response_due == T0 + timedelta(minutes=60)
        assert resolution_due == T0 + timedelta(minutes=480)

    def test_reattach_restarts_clocks(self):
        later = T0 + timedelta(hours=3)
        response_due, resolution_due = SLACalculator.calculate_deadlines(later, make_policy())

        assert response_due == later + timedelta(minutes=60)
        assert resolution_due == later + timedelta(minutes=480)


class TestDetectBreaches:
    """Sweep breach detection for one ticket."""

    def test_nothing_before_deadlines(self):
        assert SLACalculator.detect_breaches(make_ticket(), T0 + timedelta(minutes=30)) == []

    def test_exactly_at_deadline_is_not_breached(self):
        assert SLACalculator.detect_breaches(make_ticket(), T0 + timedelta(minutes=60)) == []

    def test_response_breach(self):
        breaches = SLACalculator.detect_breaches(make_ticket(), T0 + timedelta(minutes=61))

        assert [b.breach_type for b in breaches] == ["response_time"]
        assert breaches[0].expected_time == T0 + timedelta(minutes=60)

    def test_both_breaches(self):
        breaches = SLACalculator.detect_breaches(make_ticket(), T0 + timedelta(hours=9))
        assert {b.breach_type for b in breaches} == {"response_time", "resolution_time"}

    def test_responded_ticket_has_no_response_breach(self):
        ticket = make_ticket(first_response_at=T0 + timedelta(minutes=90))
        assert SLACalculator.detect_breaches(ticket, T0 + timedelta(hours=2)) == []

    def test_open_ticket_has_no_response_breach(self):
        """Leaving 'new' stops the response clock for the sweep."""
        ticket = make_ticket(status="open")
        assert SLACalculator.detect_breaches(ticket, T0 + timedelta(hours=2)) == []

    def test_resolution_breach_on_open_ticket(self):
        ticket = make_ticket(status="pending", first_response_at=T0 + timedelta(minutes=5))
        breaches = SLACalculator.detect_breaches(ticket, T0 + timedelta(hours=9))

        assert [b.breach_type for b in breaches] == ["resolution_time"]

    def test_terminal_ticket_skipped(self):
        ticket = make_ticket(status="resolved")
        assert SLACalculator.detect_breaches(ticket, T0 + timedelta(days=2)) == []

    def test_ticket_without_policy_skipped(self):
        ticket = make_ticket(sla_policy_id=None, sla_response_due_at=None, sla_resolution_due_at=None)
        assert SLACalculator.detect_breaches(ticket, T0 + timedelta(days=2)) == []


class TestInlineBreaches:
    """Checks made when a first response or resolution is recorded."""

    def test_late_first_response(self):
        ticket = make_ticket()
        due = SLACalculator.response_breach(ticket, T0 + timedelta(minutes=75))

        assert due.breach_type == "response_time"

    def test_timely_first_response(self):
        assert SLACalculator.response_breach(make_ticket(), T0 + timedelta(minutes=45)) is None

    def test_late_resolution(self):
        due = SLACalculator.resolution_breach(make_ticket(), T0 + timedelta(hours=10))
        assert due.breach_type == "resolution_time"


class TestEvaluate:
    """Clock states."""

    def test_on_track(self):
        status = SLACalculator.evaluate(make_ticket(), T0 + timedelta(minutes=10))

        assert status.response.state == "on_track"
        assert status.response.remaining_seconds == 50 * 60
        assert status.overall_state == "on_track"
        assert status.next_deadline == T0 + timedelta(minutes=60)

    def test_at_risk(self):
        status = SLACalculator.evaluate(make_ticket(), T0 + timedelta(minutes=55), warning_threshold_percent=15)
        assert status.response.state == "at_risk"

    def test_breached(self):
        status = SLACalculator.evaluate(make_ticket(), T0 + timedelta(minutes=90))

        assert status.response.state == "breached"
        assert status.response.remaining_seconds == 0
        assert status.resolution.state == "on_track"
        assert status.overall_state == "breached"

    def test_met(self):
        ticket = make_ticket(first_response_at=T0 + timedelta(minutes=20))
        status = SLACalculator.evaluate(ticket, T0 + timedelta(minutes=90))

        assert status.response.state == "met"
        assert status.response.met_at == T0 + timedelta(minutes=20)
        assert status.next_deadline == T0 + timedelta(minutes=480)

    def test_late_response_stays_breached(self):
        ticket = make_ticket(first_response_at=T0 + timedelta(minutes=70))
        status = SLACalculator.evaluate(ticket, T0 + timedelta(minutes=90))

        assert status.response.state == "breached"

    def test_exactly_at_deadline_not_breached(self):
        """Same strict rule as breach logging: the deadline itself is still in time."""
        status = SLACalculator.evaluate(make_ticket(), T0 + timedelta(minutes=60))

        assert status.response.state == "at_risk"

    def test_late_attach_measures_from_attach_time(self):
        attached = T0 + timedelta(hours=10)
        ticket = make_ticket(
            sla_response_due_at=attached + timedelta(minutes=60),
            sla_resolution_due_at=attached + timedelta(minutes=480),
        )
        now = attached + timedelta(minutes=30)

        from_creation = SLACalculator.evaluate(ticket, now)
        from_attach = SLACalculator.evaluate(ticket, now, policy=make_policy())

        assert from_creation.response.state == "at_risk"
        assert from_attach.response.state == "on_track"
        assert from_attach.response.percentage_remaining == 50.0

    def test_no_policy(self):
        ticket = make_ticket(sla_policy_id=None, sla_response_due_at=None, sla_resolution_due_at=None)
        status = SLACalculator.evaluate(ticket, T0)

        assert status.response is None
        assert status.resolution is None
        assert status.overall_state is None
        assert status.next_deadline is None


class TestSLABreach:

    def test_overdue_minutes(self):
        breach = SLABreach(
            id=None, ticket_id="t", policy_id="p", breach_type="response_time",
            expected_time=T0, actual_time=T0 + timedelta(minutes=30),
        )
        assert breach.overdue_minutes == 30

    def test_unknown_breach_type(self):
        with pytest.raises(ValidationException):
            SLABreach(
                id=None, ticket_id="t", policy_id="p", breach_type="late",
                expected_time=T0, actual_time=T0,
            )
