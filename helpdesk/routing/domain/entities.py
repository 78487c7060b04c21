"""
Routing Domain Entities
=======================

Teams, their members, assignment rules and the assignment history.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from helpdesk.config import TeamRole, VALID_TEAM_ROLES
from helpdesk.core import ValidationException, utc_now
from helpdesk.routing.domain.value_objects import RuleCondition, RoutingContext


@dataclass
class Team:
    id: Optional[str]
    name: str
    description: Optional[str] = None
    is_active: bool = True
    created_at: datetime = field(default_factory=utc_now)


@dataclass
class TeamMember:
    """Membership of a user in a team; the round-robin candidate pool."""

    team_id: str
    user_id: str
    role: str = TeamRole.MEMBER
    is_active: bool = True
    id: Optional[str] = None
    created_at: datetime = field(default_factory=utc_now)

    def __post_init__(self):
        if self.role not in VALID_TEAM_ROLES:
            raise ValidationException(f"Unknown team role '{self.role}'")


@dataclass
class TeamAssignmentRule:
    """
    Admin-authored rule routing matching tickets to a team.

    Higher ``priority`` is evaluated first. Rules are ordered at
    evaluation time, not at storage time.
    """

    id: Optional[str]
    team_id: str
    name: str
    priority: int = 0
    is_active: bool = True
    conditions: List[RuleCondition] = field(default_factory=list)
    description: Optional[str] = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def matches(self, context: RoutingContext) -> bool:
        """True when every condition on the rule accepts the ticket."""
        return all(condition.matches(context) for condition in self.conditions)


@dataclass
class TicketAssignment:
    """
    Append-only assignment history record.

    The latest record with an assignee for a team is the round-robin
    rotation pointer for that team.
    """

    id: Optional[str]
    ticket_id: str
    assigned_by: str
    assigned_from: Optional[str] = None
    assigned_to: Optional[str] = None
    previous_team_id: Optional[str] = None
    new_team_id: Optional[str] = None
    reason: Optional[str] = None
    rotation_seq: Optional[int] = None
    created_at: datetime = field(default_factory=utc_now)
