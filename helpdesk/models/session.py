"""Engine and session factories for the helpdesk database.

PostgreSQL (through psycopg) is the production backend. SQLite works for tests
and local runs; the readiness check pings from a worker thread, so SQLite
connections are opened with ``check_same_thread`` disabled.
"""

from __future__ import annotations

import os
from contextlib import contextmanager
from typing import Any, Iterator

from sqlalchemy import Engine, create_engine, event, text
from sqlalchemy.orm import Session, sessionmaker

from . import Base

POOL_RECYCLE_SECONDS = 1800


def _as_sqlalchemy_url(db_url: str) -> str:
    """Pin bare ``postgresql://`` URLs to the psycopg 3 driver."""

    scheme, sep, rest = db_url.partition("://")
    if scheme in ("postgres", "postgresql"):
        return f"postgresql+psycopg{sep}{rest}"
    return db_url


def get_engine(database_url: str | None = None, **kwargs: Any) -> Engine:
    """Create an engine for ``database_url`` (default: ``DATABASE_URL``).

    Extra keyword arguments are passed to :func:`sqlalchemy.create_engine`.

    Raises:
        RuntimeError: if no URL is given and ``DATABASE_URL`` is unset.
    """

    url = database_url or os.getenv("DATABASE_URL")
    if not url:
        raise RuntimeError("DATABASE_URL is not configured.")
    url = _as_sqlalchemy_url(url)

    if url.startswith("sqlite"):
        connect_args = dict(kwargs.pop("connect_args", {}))
        connect_args.setdefault("check_same_thread", False)
        engine = create_engine(url, connect_args=connect_args, **kwargs)

        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_connection, _record):  # pragma: no cover - dialect hook
            dbapi_connection.execute("PRAGMA foreign_keys=ON")

        return engine

    kwargs.setdefault("pool_pre_ping", True)
    kwargs.setdefault("pool_recycle", POOL_RECYCLE_SECONDS)
    return create_engine(url, **kwargs)


def get_sessionmaker(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, expire_on_commit=False)


def create_schema(engine: Engine) -> None:
    """Create any missing helpdesk tables."""

    Base.metadata.create_all(engine)


def ping(engine: Engine) -> None:
    """Round-trip ``SELECT 1``; raises when the database is unreachable."""

    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))


@contextmanager
def session_scope(factory: sessionmaker[Session]) -> Iterator[Session]:
    """Yield a session that commits on success and rolls back on error."""

    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


__all__ = ["Base", "create_schema", "get_engine", "get_sessionmaker", "ping", "session_scope"]
