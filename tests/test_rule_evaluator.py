"""
Tests for assignment rule conditions and selection.

Tests:
- Allow-list conditions (OR within a kind, AND across kinds)
- Condition parsing from list and mapping forms
- Rule ordering by priority with deterministic ties
"""
import pytest

from helpdesk.core import ValidationException
from helpdesk.routing.domain import (
    RoutingContext, RuleEvaluator, TeamAssignmentRule,
    parse_conditions, dump_conditions,
)


def make_rule(rule_id, priority=0, conditions=None, is_active=True, team_id="team-1"):
    return TeamAssignmentRule(
        id=rule_id,
        team_id=team_id,
        name=f"rule-{rule_id}",
        priority=priority,
        is_active=is_active,
        conditions=parse_conditions(conditions or {}),
    )


ORDER_HIGH_EMAIL = RoutingContext(category="Order", priority="high", source="email")


class TestConditions:
    """Rule matching against a ticket."""

    def test_rule_without_conditions_matches_everything(self):
        assert make_rule("r1").matches(ORDER_HIGH_EMAIL)

    def test_value_in_allow_list(self):
        assert make_rule("r1", conditions={"category": ["Order", "Product"]}).matches(ORDER_HIGH_EMAIL)

    def test_value_not_in_allow_list(self):
        assert not make_rule("r1", conditions={"category": ["Product"]}).matches(ORDER_HIGH_EMAIL)

    def test_all_kinds_must_match(self):
        rule = make_rule("r1", conditions={"category": ["Order"], "priority": ["low"]})
        assert not rule.matches(ORDER_HIGH_EMAIL)

        rule = make_rule("r1", conditions={"category": ["Order"], "priority": ["high", "urgent"]})
        assert rule.matches(ORDER_HIGH_EMAIL)

    def test_empty_allow_list_places_no_constraint(self):
        assert make_rule("r1", conditions={"source": []}).matches(ORDER_HIGH_EMAIL)

    def test_missing_customer_type_fails_non_empty_list(self):
        rule = make_rule("r1", conditions={"customer_type": ["vip"]})

        assert not rule.matches(ORDER_HIGH_EMAIL)
        assert rule.matches(RoutingContext(
            category="Order", priority="high", source="email", customer_type="vip"
        ))


class TestParseConditions:
    """Stored and submitted condition formats."""

    def test_list_form(self):
        conditions = parse_conditions([{"kind": "priority", "values": ["high"]}])

        assert len(conditions) == 1
        assert conditions[0].kind == "priority"
        assert conditions[0].values == ["high"]

    def test_mapping_form(self):
        conditions = parse_conditions({"category": ["Order"], "source": "email"})

        assert {c.kind: c.values for c in conditions} == {"category": ["Order"], "source": ["email"]}

    def test_none_is_empty(self):
        assert parse_conditions(None) == []

    def test_unknown_kind_in_mapping(self):
        with pytest.raises(ValidationException, match="Unknown condition kind"):
            parse_conditions({"region": ["eu"]})

    def test_unknown_kind_in_list(self):
        with pytest.raises(ValidationException):
            parse_conditions([{"kind": "region", "values": ["eu"]}])

    def test_duplicate_kind(self):
        with pytest.raises(ValidationException, match="Duplicate"):
            parse_conditions([
                {"kind": "priority", "values": ["high"]},
                {"kind": "priority", "values": ["low"]},
            ])

    def test_blank_values_dropped(self):
        conditions = parse_conditions({"category": [" Order ", ""]})
        assert conditions[0].values == ["Order"]

    def test_dump_uses_list_form(self):
        dumped = dump_conditions(parse_conditions({"priority": ["high"]}))
        assert dumped == [{"values": ["high"], "kind": "priority"}]


class TestRuleEvaluator:
    """Selecting one rule out of all active rules."""

    def setup_method(self):
        self.evaluator = RuleEvaluator()

    def test_highest_priority_wins(self):
        rules = [
            make_rule("a", priority=1, team_id="general"),
            make_rule("b", priority=10, conditions={"category": ["Order"]}, team_id="orders"),
            make_rule("c", priority=5, team_id="other"),
        ]

        assert self.evaluator.select(ORDER_HIGH_EMAIL, rules).team_id == "orders"

    def test_falls_through_to_lower_priority(self):
        rules = [
            make_rule("a", priority=10, conditions={"category": ["Product"]}),
            make_rule("b", priority=1, conditions={"category": ["Order"]}),
        ]

        assert self.evaluator.select(ORDER_HIGH_EMAIL, rules).id == "b"

    def test_no_match(self):
        rules = [make_rule("a", conditions={"category": ["Product"]})]
        assert self.evaluator.select(ORDER_HIGH_EMAIL, rules) is None

    def test_no_rules(self):
        assert self.evaluator.select(ORDER_HIGH_EMAIL, []) is None

    def test_inactive_rules_ignored(self):
        rules = [
            make_rule("a", priority=10, is_active=False),
            make_rule("b", priority=1),
        ]

        assert self.evaluator.select(ORDER_HIGH_EMAIL, rules).id == "b"

    def test_ties_resolved_by_rule_id(self):
        """Equal priority: the lowest id wins regardless of input order."""
        rules = [make_rule("b", priority=5), make_rule("a", priority=5), make_rule("c", priority=5)]

        assert self.evaluator.select(ORDER_HIGH_EMAIL, rules).id == "a"
        assert self.evaluator.select(ORDER_HIGH_EMAIL, list(reversed(rules))).id == "a"

    def test_order_rules(self):
        rules = [make_rule("x", priority=1), make_rule("y", priority=3), make_rule("w", priority=3)]

        assert [r.id for r in RuleEvaluator.order_rules(rules)] == ["w", "y", "x"]
