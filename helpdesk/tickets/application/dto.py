"""
Ticket Application DTOs
=======================

Pydantic request/response models for the ticket API.
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


# ========== Type Aliases for Literals ==========
PriorityStr = Literal["low", "medium", "high", "urgent"]
TicketStatusStr = Literal["new", "open", "pending", "resolved", "closed"]
TicketSourceStr = Literal["email", "chat", "web", "sms"]
MessageTypeStr = Literal["reply", "note", "system"]


# ========== Request DTOs ==========

class TicketCreateDTO(BaseModel):
    """New ticket submitted by a customer. The submitter is the acting user."""
    subject: str = Field(..., min_length=1, max_length=500)
    description: str = Field(..., min_length=1)
    priority: PriorityStr = "medium"
    source: TicketSourceStr = "web"
    customer_type: Optional[str] = Field(None, max_length=50, description="Routing input, e.g. vip")
    sla_policy_id: Optional[str] = Field(None, description="Explicit SLA policy; overrides auto-attach")


class StatusUpdateDTO(BaseModel):
    status: TicketStatusStr


class MessageCreateDTO(BaseModel):
    content: str = Field(..., min_length=1)
    message_type: MessageTypeStr = "reply"


class ReassignDTO(BaseModel):
    """Manual assignment. At least one of team or member must be given."""
    team_id: Optional[str] = None
    assigned_to: Optional[str] = None
    reason: Optional[str] = Field(None, max_length=255)

    @model_validator(mode="after")
    def require_target(self) -> "ReassignDTO":
        if self.team_id is None and self.assigned_to is None:
            raise ValueError("team_id or assigned_to is required")
        return self


# ========== Response DTOs ==========

class TicketResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    customer_id: str
    subject: str
    description: str
    status: TicketStatusStr
    priority: PriorityStr
    source: TicketSourceStr
    category: Optional[str] = None
    customer_type: Optional[str] = None
    assigned_to: Optional[str] = None
    team_id: Optional[str] = None
    sla_policy_id: Optional[str] = None
    first_response_at: Optional[datetime] = None
    sla_response_due_at: Optional[datetime] = None
    sla_resolution_due_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class TicketMessageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    ticket_id: str
    sender_id: str
    content: str
    message_type: MessageTypeStr
    created_at: datetime
