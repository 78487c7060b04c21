"""
SLA Services
============

Periodic SLA breach sweep.

The sweep reads the list of active tickets with a policy once, then checks
each ticket in its own session and transaction, so one failing ticket is
rolled back and counted without stopping the rest of the sweep.
"""

import time
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from helpdesk.core import Clock, utc_now
from helpdesk.routing.infrastructure.repositories import SQLAlchemyTeamMemberRepository
from helpdesk.shared.infrastructure.logging import get_logger, log_latency
from helpdesk.sla.application.services import BreachDetectionService
from helpdesk.sla.infrastructure.repositories import (
    SQLAlchemyBreachLogRepository, SQLAlchemyNotificationRepository
)
from helpdesk.tickets.infrastructure.repositories import SQLAlchemyTicketRepository

logger = get_logger(__name__)


def build_breach_detector(session: AsyncSession, clock: Clock = utc_now) -> BreachDetectionService:
    """BreachDetectionService wired to SQLAlchemy repositories on ``session``."""
    return BreachDetectionService(
        SQLAlchemyTicketRepository(session),
        SQLAlchemyBreachLogRepository(session),
        SQLAlchemyNotificationRepository(session),
        SQLAlchemyTeamMemberRepository(session),
        clock=clock,
    )


@dataclass
class SweepSummary:
    tickets_checked: int = 0
    breaches_logged: int = 0
    failures: int = 0
    duration_ms: int = 0


class SLAMonitor:
    """Runs breach detection over every active ticket with an SLA policy."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        clock: Clock = utc_now
    ):
        self._session_factory = session_factory
        self._clock = clock

    async def check_all_active_tickets(self) -> SweepSummary:
        """
        One sweep over tickets in new/open/pending with a policy attached.

        Returns:
            Summary of tickets checked, breaches newly logged and failures.
        """
        summary = SweepSummary()
        start = time.perf_counter()

        with log_latency(logger, "sla_sweep"):
            async with self._session_factory() as session:
                tickets = await SQLAlchemyTicketRepository(session).list_active_with_sla()

            for ticket in tickets:
                summary.tickets_checked += 1
                async with self._session_factory() as session:
                    try:
                        # Re-read: the ticket may have been answered since the listing
                        current = await SQLAlchemyTicketRepository(session).get_by_id(ticket.id)
                        if current is None:
                            continue
                        detector = build_breach_detector(session, self._clock)
                        summary.breaches_logged += await detector.check_ticket(current)
                        await session.commit()
                    except Exception as e:
                        await session.rollback()
                        summary.failures += 1
                        logger.error(
                            "SLA check failed for ticket",
                            extra={"ticket_id": ticket.id, "error": str(e)},
                            exc_info=True
                        )

        summary.duration_ms = int((time.perf_counter() - start) * 1000)
        logger.info(
            "SLA sweep complete",
            extra={
                "tickets_checked": summary.tickets_checked,
                "breaches_logged": summary.breaches_logged,
                "failures": summary.failures,
                "duration_ms": summary.duration_ms
            }
        )
        return summary

    async def run_scheduled(self) -> None:
        """Scheduler entry point; a failed sweep must not kill the job."""
        try:
            await self.check_all_active_tickets()
        except Exception as e:
            logger.error("SLA sweep failed", extra={"error": str(e)}, exc_info=True)
