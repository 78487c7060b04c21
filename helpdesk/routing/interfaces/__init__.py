"""
Routing Interfaces Layer
========================

FastAPI route handlers for the routing module.
"""

from helpdesk.routing.interfaces.controllers import routing_router

__all__ = ["routing_router"]
