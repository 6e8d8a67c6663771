"""
tally.api.deps — FastAPI dependency injection
===============================================
"""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from typing import Annotated

from fastapi import Depends
from sqlalchemy import Engine

from tally.config import TallyConfig, load_config
from tally.database.engine import create_db_engine
from tally.database.repository import Repository

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    return create_db_engine()


@lru_cache(maxsize=1)
def get_config() -> TallyConfig:
    """Load ``$TALLY_CONFIG`` (default ``config.yaml``); fall back to built-in defaults."""
    path = os.getenv("TALLY_CONFIG", "config.yaml")
    try:
        return load_config(path)
    except FileNotFoundError:
        logger.info("No config file at %s — using built-in defaults", path)
        return TallyConfig()


def get_repository(engine: Annotated[Engine, Depends(get_engine)]) -> Repository:
    return Repository(engine)
