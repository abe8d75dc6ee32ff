"""Health, readiness and version endpoints."""

from __future__ import annotations

import asyncio
import logging
import os
import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ..__version__ import __build_date__, __commit_sha__, __version__
from ..container import ServiceContainer
from ..models.session import ping
from .deps import get_container

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["health"])


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("/health")
async def health():
    """Basic liveness check with a minimal JSON body."""
    return {
        "status": "ok",
        "timestamp": _now(),
        "environment": os.getenv("APP_ENV", "development"),
    }


@router.get("/health/live")
async def live():
    return {"status": "alive", "timestamp": _now()}


@router.get("/health/ready")
async def ready(container: ServiceContainer = Depends(get_container)):
    """Readiness check.

    Pings the database with a timeout of ``HEALTH_CHECK_TIMEOUT`` seconds and
    answers 503 when it is unreachable. Demo mode has no database to check.
    """
    checks: dict[str, dict[str, object]] = {}
    if container.engine is None:
        checks["database"] = {"status": "in_memory"}
        healthy = True
    else:
        start = time.perf_counter()
        try:
            await asyncio.wait_for(
                asyncio.to_thread(ping, container.engine),
                timeout=container.settings.health_check_timeout,
            )
        except Exception as exc:
            logger.error("Database health check failed: %s", exc)
            checks["database"] = {"status": "unhealthy"}
            healthy = False
        else:
            checks["database"] = {
                "status": "healthy",
                "latency_ms": round((time.perf_counter() - start) * 1000, 2),
            }
            healthy = True

    return JSONResponse(
        status_code=200 if healthy else 503,
        content={
            "status": "ready" if healthy else "not_ready",
            "timestamp": _now(),
            "checks": checks,
        },
    )


@router.get("/version")
async def version():
    """Return version information for the application."""
    return {
        "version": __version__,
        "build_date": __build_date__,
        "commit_sha": __commit_sha__,
    }
