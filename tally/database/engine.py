"""
tally.database.engine — Database Connection & Session Helper
=============================================================

The core never holds long-lived state: each repository call opens a short
session, commits, and hands back detached rows.  This module owns the
pieces that make that work — the engine factory, schema bootstrap, and the
commit-or-rollback session context manager.

Usage::

    from tally.database.engine import create_db_engine, init_db, get_session

    engine = create_db_engine()          # reads DATABASE_URL from .env
    init_db(engine)                      # CREATE TABLE IF NOT EXISTS …

    with get_session(engine) as session:
        session.add(Person(name="Alice"))
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session

from tally.database.models import Base

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Engine creation
# ---------------------------------------------------------------------------
def create_db_engine(url: str | None = None) -> Engine:
    """Engine for *url*, falling back to ``$DATABASE_URL``.

    Postgres gets a small bounded pool with pre-ping, since every repository
    call checks a connection out only for the length of one statement batch.
    SQLite (tests, local runs) keeps SQLAlchemy's default pool.

    Raises
    ------
    RuntimeError
        No URL was given and ``DATABASE_URL`` is unset.
    """
    url = url or os.getenv("DATABASE_URL")
    if not url:
        raise RuntimeError(
            "DATABASE_URL is not set.  "
            "Copy .env.example → .env and set a valid PostgreSQL URL."
        )

    if url.startswith("sqlite"):
        engine = create_engine(url, echo=False)
    else:
        engine = create_engine(
            url,
            echo=False,
            pool_size=5,
            max_overflow=10,
            pool_pre_ping=True,
            pool_timeout=10,
            pool_recycle=3600,
        )
    logger.info("Database engine created → %s", engine.url.host or engine.url.database)
    return engine


# ---------------------------------------------------------------------------
# Schema initialization
# ---------------------------------------------------------------------------
def init_db(engine: Engine) -> None:
    """Create the persons / actions / assignments tables if they are missing.

    Alembic owns the schema in deployed databases; this only covers a fresh
    dev database and the in-memory test engine.
    """
    Base.metadata.create_all(engine)
    logger.info("Schema ready: %s", ", ".join(Base.metadata.tables))


# ---------------------------------------------------------------------------
# Session helper
# ---------------------------------------------------------------------------
@contextmanager
def get_session(engine: Engine) -> Iterator[Session]:
    """One repository call's unit of work: commit on exit, roll back on error.

    Rows loaded here are handed back to services after the session closes,
    hence ``expire_on_commit=False``.
    """
    session = Session(engine, expire_on_commit=False)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
