"""Request dependencies shared by the routers."""

from __future__ import annotations

from typing import Optional

from fastapi import Header, Request

from ..container import ServiceContainer
from ..errors import UnauthorizedError


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container


def get_user_id(x_user_id: Optional[str] = Header(default=None)) -> str:
    """Return the acting user from the ``X-User-Id`` header."""

    if not x_user_id or not x_user_id.strip():
        raise UnauthorizedError("X-User-Id header is required")
    return x_user_id.strip()
