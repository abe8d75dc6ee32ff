"""SlowAPI limiter shared by the application and the routers."""

from __future__ import annotations

import os

from fastapi import Request
from slowapi import Limiter

MESSAGE_RATE_LIMIT = os.getenv("CHAT_RATE_LIMIT", "20/minute")


def get_rate_limit_key(request: Request) -> str:
    """Key the limiter by acting user, falling back to the client IP.

    Prefer ``X-Forwarded-For`` (first hop) over the socket peer address when
    no ``X-User-Id`` header is present.
    """
    user_id = request.headers.get("X-User-Id")
    if user_id:
        return f"user:{user_id}"
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "anonymous"


limiter = Limiter(key_func=get_rate_limit_key)
