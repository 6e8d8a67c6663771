"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

from datetime import UTC, datetime

import pytest
from sqlalchemy import Engine, create_engine
from sqlalchemy.pool import StaticPool

from tally.config import TallyConfig
from tally.database.models import Base
from tally.database.repository import Repository

# Wednesday of the week Monday 2024-01-15 .. Sunday 2024-01-21
NOW = datetime(2024, 1, 17, 12, 0, tzinfo=UTC)


@pytest.fixture
def db_engine() -> Engine:
    """Create an in-memory SQLite engine with all Tally tables.

    Uses StaticPool so every short-lived repository session sees the same
    in-memory database.
    """
    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return engine


@pytest.fixture
def repo(db_engine: Engine) -> Repository:
    return Repository(db_engine)


@pytest.fixture
def cfg() -> TallyConfig:
    return TallyConfig()


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def client(repo: Repository, cfg: TallyConfig):
    """FastAPI TestClient wired to the in-memory repository.

    The app lifespan is not entered, so no DATABASE_URL is needed.
    """
    from fastapi.testclient import TestClient

    from tally.api.deps import get_config, get_repository
    from tally.api.main import app

    app.dependency_overrides[get_repository] = lambda: repo
    app.dependency_overrides[get_config] = lambda: cfg
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()
