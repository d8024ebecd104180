"""
Shared request dependencies: caller identity and "today".
"""
from typing import Optional

from fastapi import Header

from vitatrack.core.errors import UnauthenticatedError
from vitatrack.services.clock import Clock, system_clock


def get_current_user_id(
    x_user_id: Optional[str] = Header(
        default=None,
        description="Authenticated user id, set by the auth gateway.",
    ),
) -> str:
    """Fail fast when the gateway supplied no identity; never fall back to a guest."""
    if not x_user_id or not x_user_id.strip():
        raise UnauthenticatedError()
    return x_user_id.strip()


def get_clock() -> Clock:
    return system_clock

