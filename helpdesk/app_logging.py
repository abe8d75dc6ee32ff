"""Application and access logging setup.

Two loggers are configured, each writing to its own midnight-rotated file
under ``LOG_DIR``:

- ``helpdesk`` (``helpdesk.log``): parent of every ``helpdesk.*`` module logger.
- ``uvicorn.access`` (``access.log``): one JSON line per HTTP request, written
  by the middleware installed with :func:`init_logging`.

Access lines carry the request id (echoed as ``X-Request-Id``), the acting
user, the conversation the request touched and whether the response was an
SSE stream. Credentials are masked and customer message text is never written
to disk; only its length is recorded.

Environment variables: LOG_DIR, LOG_LEVEL, LOG_JSON, LOG_REQUEST_BODIES,
LOG_RETENTION_DAYS, LOG_ROTATE_UTC.
"""

from __future__ import annotations

import json
import logging
import os
import time
from logging.handlers import TimedRotatingFileHandler
from typing import Any, cast
from uuid import uuid4

from fastapi import FastAPI, Request

APP_LOGGER_NAME = "helpdesk"
ACCESS_LOGGER_NAME = "uvicorn.access"

SENSITIVE_FIELDS = {
    "authorization",
    "cookie",
    "set-cookie",
    "password",
    "token",
    "api_key",
    "x-api-key",
}
MESSAGE_TEXT_FIELDS = {"content", "initial_message"}

_UNLOGGED_PATHS = frozenset(
    {"/api/health", "/api/health/live", "/api/health/ready", "/api/metrics"}
)


class JsonFormatter(logging.Formatter):
    """One JSON object per record, used when LOG_JSON=true."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "level": record.levelname,
            "time": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload)


def _env_flag(name: str) -> bool:
    return os.getenv(name, "false").lower() == "true"


def _redact(data: object) -> object:
    """Mask credentials and replace chat text with its length."""

    if isinstance(data, dict):
        redacted = {}
        for key, value in data.items():
            lowered = str(key).lower()
            if lowered in SENSITIVE_FIELDS:
                redacted[key] = "***"
            elif lowered in MESSAGE_TEXT_FIELDS and isinstance(value, str):
                redacted[key] = f"<{len(value)} chars>"
            else:
                redacted[key] = _redact(value)
        return redacted
    if isinstance(data, list):
        return [_redact(item) for item in data]
    return data


def _configure(
    name: str,
    filename: str,
    *,
    log_dir: str,
    formatter: logging.Formatter,
    level: int,
    retention_days: int,
    rotate_utc: bool,
    replace: bool,
) -> logging.Logger:
    logger = logging.getLogger(name)
    if replace:
        logger.handlers.clear()
    if not logger.handlers:
        handler = TimedRotatingFileHandler(
            os.path.join(log_dir, filename),
            when="midnight",
            backupCount=retention_days,
            utc=rotate_utc,
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    logger.setLevel(level)
    return logger


async def _read_body(request: Request) -> object | None:
    """Buffer the request body for logging and replay it to the endpoint."""

    body = await request.body()

    async def receive() -> dict:
        return {"type": "http.request", "body": body, "more_body": False}

    request._receive = receive  # type: ignore[attr-defined]
    if not body:
        return None
    try:
        return _redact(json.loads(body))
    except ValueError:
        return body.decode("utf-8", errors="replace")


def _install_access_logging(app: FastAPI) -> None:
    """Install the access-log middleware.

    SSE responses are logged when their headers go out, so ``latency_ms`` is
    time to first byte for the chat endpoints.
    """

    log_bodies = _env_flag("LOG_REQUEST_BODIES")
    access_logger = logging.getLogger(ACCESS_LOGGER_NAME)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        if request.url.path in _UNLOGGED_PATHS:
            return await call_next(request)

        request_id = request.headers.get("X-Request-Id") or uuid4().hex
        request.state.request_id = request_id
        started = time.perf_counter()
        body = await _read_body(request) if log_bodies else None

        response = await call_next(request)

        client_ip = request.headers.get("X-Forwarded-For")
        if not client_ip and request.client is not None:
            client_ip = request.client.host
        conversation_id = response.headers.get("X-Conversation-Id") or request.scope.get(
            "path_params", {}
        ).get("conversation_id")
        entry = {
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "status": response.status_code,
            "latency_ms": round((time.perf_counter() - started) * 1000, 2),
            "user_id": request.headers.get("X-User-Id"),
            "conversation_id": conversation_id,
            "stream": response.headers.get("content-type", "").startswith(
                "text/event-stream"
            ),
            "client_ip": client_ip,
            "headers": _redact(dict(request.headers)),
        }
        if body is not None:
            entry["body"] = body

        response.headers["X-Request-Id"] = request_id
        access_logger.info(json.dumps(entry, default=str))
        return response


def init_logging(app: FastAPI | None = None) -> None:
    """Initialise application and access loggers.

    The application logger keeps handlers installed by an earlier call; the
    access logger is always rebuilt so it follows the current ``LOG_DIR``.
    """

    log_dir = os.getenv("LOG_DIR", "logs")
    os.makedirs(log_dir, exist_ok=True)
    options = {
        "log_dir": log_dir,
        "formatter": JsonFormatter()
        if _env_flag("LOG_JSON")
        else logging.Formatter("[%(asctime)s] %(levelname)s in %(name)s: %(message)s"),
        "level": getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO),
        "retention_days": int(os.getenv("LOG_RETENTION_DAYS", "7")),
        "rotate_utc": _env_flag("LOG_ROTATE_UTC"),
    }

    app_logger = _configure(APP_LOGGER_NAME, "helpdesk.log", replace=False, **options)
    _configure(ACCESS_LOGGER_NAME, "access.log", replace=True, **options)

    if app is not None:
        cast(Any, app).logger = app_logger
        _install_access_logging(app)
