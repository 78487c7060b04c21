"""
Routing Application DTOs
========================

Pydantic request/response models for the routing API.
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

TeamRoleStr = Literal["member", "lead"]


# ========== Teams ==========

class TeamCreateDTO(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    is_active: bool = True


class TeamResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    description: Optional[str] = None
    is_active: bool
    created_at: datetime


class TeamMemberCreateDTO(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=255)
    role: TeamRoleStr = "member"


class TeamMemberUpdateDTO(BaseModel):
    role: Optional[TeamRoleStr] = None
    is_active: Optional[bool] = None


class TeamMemberResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: Optional[str] = None
    team_id: str
    user_id: str
    role: TeamRoleStr
    is_active: bool
    created_at: datetime


# ========== Assignment rules ==========

ConditionsInput = Union[List[Dict[str, Any]], Dict[str, List[str]]]


class RuleCreateDTO(BaseModel):
    """
    New assignment rule.

    ``conditions`` accepts the tagged list form
    ``[{"kind": "category", "values": ["Order"]}]`` or the mapping form
    ``{"category": ["Order"], "priority": ["high", "urgent"]}``.
    """
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    priority: int = Field(default=0, description="Higher is evaluated first")
    is_active: bool = True
    conditions: ConditionsInput = Field(default_factory=list)


class RuleUpdateDTO(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    priority: Optional[int] = None
    is_active: Optional[bool] = None
    conditions: Optional[ConditionsInput] = None


class ConditionResponse(BaseModel):
    kind: str
    values: List[str]


class RuleResponse(BaseModel):
    id: str
    team_id: str
    name: str
    description: Optional[str] = None
    priority: int
    is_active: bool
    conditions: List[ConditionResponse]
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_domain(cls, rule: Any) -> "RuleResponse":
        return cls(
            id=rule.id,
            team_id=rule.team_id,
            name=rule.name,
            description=rule.description,
            priority=rule.priority,
            is_active=rule.is_active,
            conditions=[ConditionResponse(kind=c.kind, values=list(c.values)) for c in rule.conditions],
            created_at=rule.created_at,
            updated_at=rule.updated_at,
        )


# ========== Classification & history ==========

class ClassifyRequest(BaseModel):
    subject: str = ""
    description: str = ""


class ClassifyResponse(BaseModel):
    category: str


class TicketAssignmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: Optional[str] = None
    ticket_id: str
    assigned_from: Optional[str] = None
    assigned_to: Optional[str] = None
    previous_team_id: Optional[str] = None
    new_team_id: Optional[str] = None
    assigned_by: str
    reason: Optional[str] = None
    created_at: datetime
