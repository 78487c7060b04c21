"""
Core Module
============

Shared core utilities and abstractions used across the application.

This module contains framework-agnostic code that defines the fundamental
building blocks of the system.
"""

from helpdesk.core.exceptions import (
    ApplicationException,
    RepositoryException,
    ValidationException,
    UnauthenticatedException,
    ResourceNotFoundException,
    ConfigurationException,
    TicketRoutingException,
)
from helpdesk.core.clock import Clock, utc_now, as_utc

__all__ = [
    "ApplicationException",
    "RepositoryException",
    "ValidationException",
    "UnauthenticatedException",
    "ResourceNotFoundException",
    "ConfigurationException",
    "TicketRoutingException",
    "Clock",
    "utc_now",
    "as_utc",
]
