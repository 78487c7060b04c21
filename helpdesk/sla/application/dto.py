"""
SLA Application DTOs
====================

Data Transfer Objects for the SLA API layer.

These Pydantic models handle serialization/deserialization and validation
for API requests and responses.
"""

from datetime import datetime
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


# ========== Type Aliases for Literals ==========
PriorityStr = Literal["low", "medium", "high", "urgent"]
BreachTypeStr = Literal["response_time", "resolution_time"]
SLAStateStr = Literal["on_track", "at_risk", "breached", "met"]


# ========== Request DTOs ==========

class SLAPolicyCreateDTO(BaseModel):
    """DTO for creating an SLA policy."""
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    priority: PriorityStr = Field(..., description="Ticket priority the policy applies to")
    response_time_minutes: int = Field(..., ge=1, description="Time to first response")
    resolution_time_minutes: int = Field(..., ge=1, description="Time to resolution")
    is_active: bool = True


class SLAPolicyUpdateDTO(BaseModel):
    """DTO for updating an SLA policy. Omitted fields are left unchanged."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    priority: Optional[PriorityStr] = None
    response_time_minutes: Optional[int] = Field(None, ge=1)
    resolution_time_minutes: Optional[int] = Field(None, ge=1)
    is_active: Optional[bool] = None


class AttachPolicyDTO(BaseModel):
    policy_id: str


# ========== Response DTOs ==========

class SLAPolicyResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    description: Optional[str] = None
    priority: PriorityStr
    response_time_minutes: int
    resolution_time_minutes: int
    is_active: bool
    created_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class SLABreachResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    ticket_id: str
    policy_id: Optional[str] = None
    policy_name: Optional[str] = None
    breach_type: BreachTypeStr
    expected_time: datetime
    actual_time: datetime
    created_at: datetime


class SLAClockResponse(BaseModel):
    """Status of one SLA clock."""
    model_config = ConfigDict(from_attributes=True)

    deadline: datetime
    state: SLAStateStr
    remaining_seconds: float
    percentage_remaining: float
    met_at: Optional[datetime] = None


class TicketSLAStatusResponse(BaseModel):
    """SLA snapshot of a ticket."""
    model_config = ConfigDict(from_attributes=True)

    ticket_id: str
    policy_id: Optional[str] = None
    evaluated_at: datetime
    response: Optional[SLAClockResponse] = None
    resolution: Optional[SLAClockResponse] = None
    overall_state: Optional[SLAStateStr] = None
    next_deadline: Optional[datetime] = None


class SweepSummaryResponse(BaseModel):
    """Outcome of one breach sweep."""
    tickets_checked: int
    breaches_logged: int
    failures: int
    duration_ms: int


class NotificationResponse(BaseModel):
    """In-app notification of the acting user."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    type: str
    content: Dict[str, Any]
    read: bool
    created_at: datetime
