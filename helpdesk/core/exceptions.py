"""
Core Exceptions
================

Custom exceptions for the helpdesk service.

These exceptions define domain-specific errors that are caught and mapped
to HTTP responses at the application boundary.
"""

from typing import Optional


class ApplicationException(Exception):
    """Base exception for all application errors."""

    status_code: int = 500

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class RepositoryException(ApplicationException):
    """Persistence operation rejected by the store."""


class ValidationException(ApplicationException):
    """Exception for validation errors."""

    status_code = 422


class UnauthenticatedException(ApplicationException):
    """No acting user for an operation that records an actor."""

    status_code = 401

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(
            f"An authenticated user is required to {operation}",
            {"operation": operation}
        )


class ResourceNotFoundException(ApplicationException):
    """Exception when a requested resource is not found."""

    status_code = 404

    def __init__(
        self,
        resource_type: str,
        resource_id: Optional[str] = None,
        details: Optional[dict] = None
    ):
        self.resource_type = resource_type
        self.resource_id = resource_id
        message = f"{resource_type}"
        if resource_id:
            message += f" with id '{resource_id}'"
        message += " not found"
        super().__init__(message, details)


class ConfigurationException(ApplicationException):
    """Exception for configuration errors."""


class TicketRoutingException(ApplicationException):
    """
    A ticket was stored but a later routing or SLA step failed.

    The ticket is not rolled back; callers get its id so the partial
    state can be inspected or routed by hand.
    """

    def __init__(self, ticket_id: str, step: str, cause: Exception):
        self.ticket_id = ticket_id
        self.step = step
        self.cause = cause
        super().__init__(
            "Failed to route ticket",
            {"ticket_id": ticket_id, "step": step}
        )
