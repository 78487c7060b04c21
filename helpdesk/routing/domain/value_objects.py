"""
Routing Value Objects
=====================

Immutable value objects for the routing domain.

Rule conditions are a tagged union of known condition kinds. Each kind
holds an allow-list: a ticket satisfies it when its attribute of the same
name is in the list (OR within a kind). A rule matches when every one of
its conditions is satisfied (AND across kinds).
"""

from dataclasses import dataclass
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

from helpdesk.config import TicketCategory
from helpdesk.core import ValidationException


@dataclass(frozen=True)
class RoutingContext:
    """Attributes of a new ticket that routing rules can test."""
    category: Optional[str]
    priority: Optional[str]
    source: Optional[str]
    customer_type: Optional[str] = None

    def value_for(self, kind: str) -> Optional[str]:
        return getattr(self, kind)


class _AllowListCondition(BaseModel):
    """Shared behaviour of allow-list conditions."""

    model_config = ConfigDict(frozen=True)

    values: List[str] = Field(default_factory=list)

    @field_validator("values")
    @classmethod
    def strip_blank_values(cls, v: List[str]) -> List[str]:
        return [value.strip() for value in v if value and value.strip()]

    def matches(self, context: RoutingContext) -> bool:
        # An empty allow-list places no constraint on the attribute
        if not self.values:
            return True
        value = context.value_for(self.kind)
        return value is not None and value in self.values


class CategoryCondition(_AllowListCondition):
    kind: Literal["category"] = "category"


class PriorityCondition(_AllowListCondition):
    kind: Literal["priority"] = "priority"


class SourceCondition(_AllowListCondition):
    kind: Literal["source"] = "source"


class CustomerTypeCondition(_AllowListCondition):
    kind: Literal["customer_type"] = "customer_type"


RuleCondition = Annotated[
    Union[CategoryCondition, PriorityCondition, SourceCondition, CustomerTypeCondition],
    Field(discriminator="kind"),
]

CONDITION_KINDS = ["category", "priority", "source", "customer_type"]

_conditions_adapter = TypeAdapter(List[RuleCondition])


def parse_conditions(raw: Any) -> List[RuleCondition]:
    """
    Parse stored or submitted rule conditions.

    Accepts the tagged list form ``[{"kind": "category", "values": [...]}]``
    or the mapping form ``{"category": [...], "priority": [...]}``.

    Raises:
        ValidationException: on unknown kinds or malformed values
    """
    if raw is None:
        return []

    if isinstance(raw, dict):
        unknown = sorted(set(raw) - set(CONDITION_KINDS))
        if unknown:
            raise ValidationException(
                f"Unknown condition kind(s): {', '.join(unknown)}",
                {"allowed": CONDITION_KINDS}
            )
        raw = [
            {"kind": kind, "values": values if isinstance(values, list) else [values]}
            for kind, values in raw.items()
        ]

    try:
        conditions = _conditions_adapter.validate_python(raw)
    except ValidationError as e:
        raise ValidationException("Invalid rule conditions", {"errors": [err["msg"] for err in e.errors()]})

    kinds = [c.kind for c in conditions]
    duplicated = sorted({k for k in kinds if kinds.count(k) > 1})
    if duplicated:
        raise ValidationException(f"Duplicate condition kind(s): {', '.join(duplicated)}")

    return conditions


def dump_conditions(conditions: List[RuleCondition]) -> List[Dict[str, Any]]:
    """Serialize conditions for JSON storage."""
    return [c.model_dump() for c in conditions]


class KeywordSets(BaseModel):
    """
    Keyword sets used by the ticket classifier.

    Keywords are lowercase words or phrases matched on word boundaries.
    """
    order: List[str] = Field(default_factory=lambda: [
        "order", "orders", "shipping", "shipment", "delivery", "delivered",
        "tracking", "track", "refund", "return", "cancel", "purchase",
        "invoice", "package", "courier",
    ])
    product: List[str] = Field(default_factory=lambda: [
        "product", "item", "size", "colour", "color", "quality", "defect",
        "defective", "damaged", "warranty", "specification", "stock",
        "availability", "price",
    ])
    tech_support: List[str] = Field(default_factory=lambda: [
        "error", "bug", "crash", "login", "log in", "password", "install",
        "installation", "not working", "technical", "app", "website",
        "account", "reset", "broken link",
    ])

    @field_validator("order", "product", "tech_support")
    @classmethod
    def normalize_keywords(cls, v: List[str]) -> List[str]:
        return [k.strip().lower() for k in v if k and k.strip()]

    def ordered(self) -> List[tuple]:
        """(category, keywords) pairs in precedence order."""
        return [
            (TicketCategory.ORDER, self.order),
            (TicketCategory.PRODUCT, self.product),
            (TicketCategory.TECH_SUPPORT, self.tech_support),
        ]
