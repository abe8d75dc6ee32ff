"""FastAPI application wiring for the helpdesk agent router.

This module bootstraps the HTTP API:

- Configures logging, CORS (optional, for the chat UI), Prometheus metrics
  and rate limiting.
- Builds the service container once (database-backed, or in-memory demo mode
  when ``DATABASE_URL`` is unset) and stores it on ``app.state``.
- Renders :class:`~helpdesk.errors.AppError` and request validation failures
  as ``{"error": {"code": ..., "message": ...}}``.

Serve with ``uvicorn --factory helpdesk.main:create_app``.
"""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from .__version__ import __version__
from .app_logging import init_logging
from .commerce.store import CommerceStore
from .config import Settings, load_settings
from .container import build_container
from .conversations.repository import ConversationRepository
from .errors import AppError
from .llm import GenerationService
from .rate_limit import limiter
from .routers import agents, conversations, health

logger = logging.getLogger(__name__)


async def _app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def _validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg')}" if location else str(first.get("msg"))
    else:
        message = "Invalid request"
    error = AppError(message, status_code=400, code="VALIDATION_ERROR")
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


def create_app(
    settings: Settings | None = None,
    *,
    generation: GenerationService | None = None,
    repository: ConversationRepository | None = None,
    store: CommerceStore | None = None,
) -> FastAPI:
    """Build the FastAPI application.

    ``generation``, ``repository`` and ``store`` override the services built
    from ``settings``; tests use them to inject fakes.
    """
    load_dotenv()
    settings = settings or load_settings()

    app = FastAPI(title="Helpdesk Agent Router", version=__version__)
    init_logging(app)
    app.state.container = build_container(
        settings, generation=generation, repository=repository, store=store
    )
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_exception_handler(AppError, _app_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_middleware(SlowAPIMiddleware)

    # Optional CORS for the chat UI
    ui_origins = os.getenv("CHAT_UI_ORIGINS")
    if ui_origins:
        origins = [o.strip() for o in ui_origins.split(",") if o.strip()]
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
            expose_headers=["X-Conversation-Id", "X-Request-Id"],
        )

    app.include_router(health.router)
    app.include_router(agents.router)
    app.include_router(conversations.router)

    # Expose Prometheus metrics
    Instrumentator().instrument(app).expose(
        app, include_in_schema=False, endpoint="/api/metrics"
    )
    logger.info("Helpdesk API %s ready (demo mode: %s)", __version__, app.state.container.demo_mode)
    return app

