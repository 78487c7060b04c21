"""
Routing Domain Layer
====================

Contains:
- Entities: Team, TeamMember, TeamAssignmentRule, TicketAssignment
- Value Objects: tagged rule conditions, RoutingContext, KeywordSets
- Domain Services: TicketClassifier, RuleEvaluator, RoundRobinSelector

No infrastructure dependencies - pure Python decision logic.
"""

from helpdesk.routing.domain.entities import (
    Team, TeamMember, TeamAssignmentRule, TicketAssignment
)
from helpdesk.routing.domain.value_objects import (
    RoutingContext,
    RuleCondition,
    CategoryCondition,
    PriorityCondition,
    SourceCondition,
    CustomerTypeCondition,
    CONDITION_KINDS,
    KeywordSets,
    parse_conditions,
    dump_conditions,
)
from helpdesk.routing.domain.services import (
    TicketClassifier, RuleEvaluator, RoundRobinSelector
)

__all__ = [
    # Entities
    "Team",
    "TeamMember",
    "TeamAssignmentRule",
    "TicketAssignment",
    # Value Objects
    "RoutingContext",
    "RuleCondition",
    "CategoryCondition",
    "PriorityCondition",
    "SourceCondition",
    "CustomerTypeCondition",
    "CONDITION_KINDS",
    "KeywordSets",
    "parse_conditions",
    "dump_conditions",
    # Domain Services
    "TicketClassifier",
    "RuleEvaluator",
    "RoundRobinSelector",
]
