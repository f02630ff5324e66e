"""
Database connection utilities.
It centralizes cross-cutting concerns like settings, logging, and database access used by the API and sync jobs.
Keeping these helpers isolated reduces duplication and keeps domain modules focused on business logic.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from src.common.settings import get_settings


def build_engine(database_url: str, *, ssl_enabled: bool = False, pool_size: int = 10) -> Engine:
    """Create a pooled engine; SSL is required by the server when `ssl_enabled` is set."""

    connect_args: dict[str, Any] = {}
    if ssl_enabled:
        connect_args["sslmode"] = "require"
    return create_engine(
        database_url,
        pool_pre_ping=True,
        pool_size=pool_size,
        max_overflow=0,
        connect_args=connect_args,
        future=True,
    )


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    """Process-wide engine for scripts and sync jobs."""

    settings = get_settings()
    return build_engine(
        settings.DATABASE_URL,
        ssl_enabled=settings.DATABASE_SSL,
        pool_size=settings.DB_POOL_SIZE,
    )


def test_connection(engine: Engine | None = None) -> bool:
    """Return True if the database can be reached and queried."""

    target = engine or get_engine()
    try:
        with target.connect() as connection:
            connection.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError:
        return False
