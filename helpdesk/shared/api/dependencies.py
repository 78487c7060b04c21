"""
Request-scoped dependencies shared by all routers.

Authentication lives outside this service; the upstream gateway forwards
the acting user's id in the ``X-User-ID`` header.
"""

from typing import Optional

from fastapi import Header

from helpdesk.core import UnauthenticatedException


async def get_current_user_id(
    x_user_id: Optional[str] = Header(default=None, alias="X-User-ID")
) -> Optional[str]:
    """Acting user id, or None for anonymous requests."""
    if x_user_id is None or not x_user_id.strip():
        return None
    return x_user_id.strip()


async def require_current_user_id(
    x_user_id: Optional[str] = Header(default=None, alias="X-User-ID")
) -> str:
    """Acting user id; raises when the request carries none."""
    user_id = await get_current_user_id(x_user_id)
    if user_id is None:
        raise UnauthenticatedException("perform this action")
    return user_id
