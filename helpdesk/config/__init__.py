"""
Configuration Module
====================

Application settings and domain vocabularies using Pydantic.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
from functools import lru_cache
from pathlib import Path
from typing import List


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Uses Pydantic for validation and type safety.
    """

    # ========== Application ==========
    app_name: str = Field(default="helpdesk-service", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Root log level")

    # ========== Server ==========
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port", ge=1, le=65535)

    # ========== Database ==========
    database_url: str = Field(
        default="postgresql+asyncpg://localhost:5432/helpdesk",
        description="Database connection URL (async driver)"
    )
    db_pool_size: int = Field(default=5, description="Database connection pool size", ge=1)
    db_max_overflow: int = Field(default=10, description="Max overflow connections", ge=0)

    # ========== SLA Monitoring ==========
    sla_monitoring_enabled: bool = Field(
        default=True,
        description="Run the periodic SLA breach sweep"
    )
    sla_sweep_interval_minutes: int = Field(
        default=5,
        description="Minutes between SLA breach sweeps",
        ge=1
    )
    sla_warning_threshold_percent: int = Field(
        default=15,
        description="Remaining-time percentage at which an SLA clock is at risk",
        ge=0,
        le=100
    )
    auto_attach_sla_policy: bool = Field(
        default=True,
        description="Attach the active policy matching ticket priority on creation"
    )

    # ========== Routing ==========
    round_robin_include_leads: bool = Field(
        default=False,
        description="Let team leads take part in round-robin rotation"
    )
    round_robin_max_attempts: int = Field(
        default=5,
        description="Retries when two assignments race for the same rotation slot",
        ge=1
    )
    classifier_keywords_path: Path = Field(
        default=Path("classifier_keywords.yaml"),
        description="Optional YAML file overriding the classifier keyword sets"
    )

    # ========== CORS ==========
    cors_origins: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173"],
        description="Allowed CORS origins"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Ensure environment is one of allowed values."""
        allowed = {"development", "test", "staging", "production"}
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v


@lru_cache()
def get_settings() -> Settings:
    """Returns cached Settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()


# ========== Constants ==========

class Priority(str):
    """Ticket and SLA policy priority levels."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class TicketStatus(str):
    """Ticket lifecycle statuses."""
    NEW = "new"
    OPEN = "open"
    PENDING = "pending"
    RESOLVED = "resolved"
    CLOSED = "closed"


class TicketSource(str):
    """Channel a ticket arrived through."""
    EMAIL = "email"
    CHAT = "chat"
    WEB = "web"
    SMS = "sms"


class MessageType(str):
    """Ticket message kinds."""
    REPLY = "reply"
    NOTE = "note"
    SYSTEM = "system"


class TeamRole(str):
    """Team membership roles."""
    MEMBER = "member"
    LEAD = "lead"


class TicketCategory(str):
    """Coarse categories produced by the ticket classifier."""
    ORDER = "Order"
    PRODUCT = "Product"
    TECH_SUPPORT = "TechSupport"
    GENERAL = "General"


class BreachType(str):
    """SLA clocks that can be breached."""
    RESPONSE_TIME = "response_time"
    RESOLUTION_TIME = "resolution_time"


class SLAState(str):
    """SLA clock states."""
    ON_TRACK = "on_track"
    AT_RISK = "at_risk"
    BREACHED = "breached"
    MET = "met"


class NotificationType(str):
    """Notification record types."""
    SLA_BREACH = "sla_breach"


ROUND_ROBIN_REASON = "round-robin"


# ========== Lists for validation ==========

VALID_PRIORITIES = [Priority.LOW, Priority.MEDIUM, Priority.HIGH, Priority.URGENT]
VALID_STATUSES = [
    TicketStatus.NEW, TicketStatus.OPEN, TicketStatus.PENDING,
    TicketStatus.RESOLVED, TicketStatus.CLOSED
]
ACTIVE_STATUSES = [TicketStatus.NEW, TicketStatus.OPEN, TicketStatus.PENDING]
TERMINAL_STATUSES = [TicketStatus.RESOLVED, TicketStatus.CLOSED]
VALID_SOURCES = [TicketSource.EMAIL, TicketSource.CHAT, TicketSource.WEB, TicketSource.SMS]
VALID_MESSAGE_TYPES = [MessageType.REPLY, MessageType.NOTE, MessageType.SYSTEM]
VALID_TEAM_ROLES = [TeamRole.MEMBER, TeamRole.LEAD]
VALID_BREACH_TYPES = [BreachType.RESPONSE_TIME, BreachType.RESOLUTION_TIME]
