"""Tickets interfaces layer: FastAPI route handlers."""

from helpdesk.tickets.interfaces.controllers import tickets_router

__all__ = ["tickets_router"]
