"""
Routing Domain Services
=======================

Stateless decision logic for ticket routing:

- TicketClassifier: subject/description -> coarse category
- RuleEvaluator: new ticket -> highest-priority matching assignment rule
- RoundRobinSelector: candidate pool + last assignee -> next assignee

None of these touch persistence; the application services feed them.
"""

import re
from typing import Iterable, List, Optional, Pattern, Tuple

from helpdesk.config import TicketCategory
from helpdesk.routing.domain.entities import TeamAssignmentRule
from helpdesk.routing.domain.value_objects import KeywordSets, RoutingContext


class TicketClassifier:
    """
    Keyword-based ticket classifier.

    Sets are tested in a fixed order (Order, Product, TechSupport) and the
    first set with a keyword present wins; anything else is General.
    Total and deterministic: every input yields exactly one label.
    """

    def __init__(self, keywords: Optional[KeywordSets] = None):
        self._keywords = keywords or KeywordSets()
        self._patterns: List[Tuple[str, Optional[Pattern]]] = [
            (category, self._compile(words))
            for category, words in self._keywords.ordered()
        ]

    @staticmethod
    def _compile(words: Iterable[str]) -> Optional[Pattern]:
        alternatives = [r"\s+".join(re.escape(part) for part in w.split()) for w in words]
        alternatives = [a for a in alternatives if a]
        if not alternatives:
            return None
        # Longest first so phrases win over their prefixes
        alternatives.sort(key=len, reverse=True)
        return re.compile(r"\b(?:" + "|".join(alternatives) + r")\b")

    def classify(self, subject: Optional[str], description: Optional[str]) -> str:
        """Map ticket text to Order, Product, TechSupport or General."""
        text = f"{subject or ''} {description or ''}".lower()

        for category, pattern in self._patterns:
            if pattern is not None and pattern.search(text):
                return category

        return TicketCategory.GENERAL


class RuleEvaluator:
    """
    Selects the routing rule for a new ticket.

    Candidates are the active rules of all teams, ordered by priority
    descending and then by rule id ascending, so equal-priority ties
    resolve the same way on every run.
    """

    @staticmethod
    def order_rules(rules: Iterable[TeamAssignmentRule]) -> List[TeamAssignmentRule]:
        return sorted(rules, key=lambda r: (-r.priority, str(r.id)))

    def select(
        self,
        context: RoutingContext,
        rules: Iterable[TeamAssignmentRule]
    ) -> Optional[TeamAssignmentRule]:
        """First active rule, in evaluation order, whose conditions all match."""
        for rule in self.order_rules(r for r in rules if r.is_active):
            if rule.matches(context):
                return rule
        return None


class RoundRobinSelector:
    """Pure round-robin step over a stable candidate ordering."""

    @staticmethod
    def stable_order(user_ids: Iterable[str]) -> List[str]:
        return sorted(set(user_ids))

    @classmethod
    def next_member(cls, candidates: Iterable[str], last_assigned: Optional[str]) -> Optional[str]:
        """
        Member after ``last_assigned`` in stable order, wrapping around.

        With no history, or when the last assignee has left the pool,
        rotation starts from the first candidate. None when the pool is empty.
        """
        ordered = cls.stable_order(candidates)
        if not ordered:
            return None

        try:
            found_index = ordered.index(last_assigned) if last_assigned is not None else -1
        except ValueError:
            found_index = -1

        return ordered[(found_index + 1) % len(ordered)]
