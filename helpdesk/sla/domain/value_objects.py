"""
SLA Value Objects
=================

Pure SLA calculations.

Deadlines are absolute timestamps computed from the moment a policy is
attached. Breach checks compare a given "now" against those persisted
deadlines; nothing here reads the clock itself.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from helpdesk.config import BreachType, SLAState, TicketStatus
from helpdesk.sla.domain.entities import SLAClockStatus, SLAPolicy, TicketSLAStatus
from helpdesk.tickets.domain import Ticket


@dataclass(frozen=True)
class DueBreach:
    """A deadline found to be passed, not yet logged."""
    breach_type: str
    expected_time: datetime


class SLACalculator:
    """
    Pure functions for SLA calculations.

    Stateless utility class - all SLA calculation logic in one place.
    """

    @staticmethod
    def calculate_deadlines(now: datetime, policy: SLAPolicy) -> Tuple[datetime, datetime]:
        """
        Response and resolution deadlines for a policy attached at ``now``.

        Re-attaching restarts both clocks from the new ``now``.
        """
        return (
            now + timedelta(minutes=policy.response_time_minutes),
            now + timedelta(minutes=policy.resolution_time_minutes),
        )

    @staticmethod
    def is_past(deadline: Optional[datetime], at: datetime) -> bool:
        return deadline is not None and at > deadline

    @classmethod
    def response_breach(cls, ticket: Ticket, at: datetime) -> Optional[DueBreach]:
        """Response deadline passed at the moment ``at`` (first response time)."""
        if cls.is_past(ticket.sla_response_due_at, at):
            return DueBreach(BreachType.RESPONSE_TIME, ticket.sla_response_due_at)
        return None

    @classmethod
    def resolution_breach(cls, ticket: Ticket, at: datetime) -> Optional[DueBreach]:
        """Resolution deadline passed at the moment ``at``."""
        if cls.is_past(ticket.sla_resolution_due_at, at):
            return DueBreach(BreachType.RESOLUTION_TIME, ticket.sla_resolution_due_at)
        return None

    @classmethod
    def detect_breaches(cls, ticket: Ticket, now: datetime) -> List[DueBreach]:
        """
        Breaches the periodic sweep should log for an active ticket.

        - response: still ``new``, never responded to, response deadline passed
        - resolution: resolution deadline passed
        """
        if not ticket.is_active or not ticket.has_sla:
            return []

        breaches = []
        if ticket.status == TicketStatus.NEW and ticket.first_response_at is None:
            response = cls.response_breach(ticket, now)
            if response:
                breaches.append(response)

        resolution = cls.resolution_breach(ticket, now)
        if resolution:
            breaches.append(resolution)

        return breaches

    @staticmethod
    def calculate_status(
        started_at: datetime,
        deadline: datetime,
        current_time: datetime,
        met_at: Optional[datetime] = None,
        warning_threshold_percent: int = 15
    ) -> Tuple[str, float, float]:
        """
        Calculate the state of one SLA clock.

        Args:
            started_at: When the clock started (policy attach time)
            deadline: The SLA deadline
            current_time: Current time for evaluation
            met_at: When the SLA was met (first response / resolution)
            warning_threshold_percent: Percentage threshold for "at_risk"

        Returns:
            Tuple of (state, remaining_seconds, percentage_remaining)
        """
        if met_at and met_at <= deadline:
            return SLAState.MET, 0.0, 0.0

        # Late first response or resolution stays breached
        reference = met_at or current_time
        remaining = (deadline - reference).total_seconds()
        total = (deadline - started_at).total_seconds()

        if total <= 0:
            percentage = 0.0
        else:
            percentage = max(0.0, min(100.0, (remaining / total) * 100))

        if remaining < 0:
            state = SLAState.BREACHED
        elif percentage <= warning_threshold_percent:
            state = SLAState.AT_RISK
        else:
            state = SLAState.ON_TRACK

        return state, max(0.0, remaining), percentage

    @classmethod
    def evaluate(
        cls,
        ticket: Ticket,
        now: datetime,
        warning_threshold_percent: int = 15,
        policy: Optional[SLAPolicy] = None
    ) -> TicketSLAStatus:
        """
        SLA snapshot of a ticket at ``now``.

        With the attached ``policy`` each clock starts at its deadline minus
        the policy budget, i.e. when the policy was attached. Without it the
        clocks start at ticket creation.
        """
        budgets = {}
        if policy is not None:
            budgets = {
                BreachType.RESPONSE_TIME: policy.response_time_minutes,
                BreachType.RESOLUTION_TIME: policy.resolution_time_minutes,
            }
        status = TicketSLAStatus(ticket_id=ticket.id, policy_id=ticket.sla_policy_id, evaluated_at=now)

        clocks = (
            ("response", BreachType.RESPONSE_TIME, ticket.sla_response_due_at, ticket.first_response_at),
            ("resolution", BreachType.RESOLUTION_TIME, ticket.sla_resolution_due_at, ticket.resolved_at),
        )
        for attr, breach_type, deadline, met_at in clocks:
            if deadline is None:
                continue
            started_at = ticket.created_at
            if breach_type in budgets:
                started_at = max(started_at, deadline - timedelta(minutes=budgets[breach_type]))
            state, remaining, percentage = cls.calculate_status(
                started_at, deadline, now, met_at, warning_threshold_percent
            )
            setattr(status, attr, SLAClockStatus(
                breach_type=breach_type,
                deadline=deadline,
                state=state,
                remaining_seconds=remaining,
                percentage_remaining=percentage,
                met_at=met_at,
            ))

        return status
