# This file wraps database access so API services and sync jobs can run parameterized SQL safely.
# It exists to keep SQL execution details out of router code and make testing easier.
# The helper also centralizes table-existence checks and concurrent execution of independent queries.
# Keeping this layer small makes query behavior easier to audit and troubleshoot.

from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from concurrent.futures import ThreadPoolExecutor
from typing import Any, TypeVar

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from src.common.db import build_engine

_IDENTIFIER_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")

T = TypeVar("T")


class DatabaseClient:
    """Minimal SQLAlchemy wrapper for API read/write access."""

    def __init__(self, *, database_url: str, ssl_enabled: bool = False, pool_size: int = 10) -> None:
        self._engine: Engine = build_engine(database_url, ssl_enabled=ssl_enabled, pool_size=pool_size)
        # One worker per pooled connection; more would only queue on the pool.
        self._executor = ThreadPoolExecutor(max_workers=pool_size, thread_name_prefix="db-query")

    @property
    def engine(self) -> Engine:
        return self._engine

    def can_connect(self) -> bool:
        try:
            with self._engine.connect() as connection:
                connection.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError:
            return False

    def table_exists(self, table_name: str) -> bool:
        self._validate_identifier(table_name)
        query = text("SELECT to_regclass(:table_name) IS NOT NULL AS exists_flag")
        with self._engine.connect() as connection:
            result = connection.execute(query, {"table_name": table_name}).scalar_one()
        return bool(result)

    def fetch_all(self, query: str, params: Mapping[str, Any] | None = None) -> list[dict[str, Any]]:
        with self._engine.connect() as connection:
            rows = connection.execute(text(query), dict(params or {})).mappings().all()
        return [dict(row) for row in rows]

    def fetch_one(self, query: str, params: Mapping[str, Any] | None = None) -> dict[str, Any] | None:
        with self._engine.connect() as connection:
            row = connection.execute(text(query), dict(params or {})).mappings().first()
        return dict(row) if row is not None else None

    def fetch_scalar(self, query: str, params: Mapping[str, Any] | None = None) -> Any:
        with self._engine.connect() as connection:
            return connection.execute(text(query), dict(params or {})).scalar_one()

    def execute(self, query: str, params: Mapping[str, Any] | None = None) -> int:
        with self._engine.begin() as connection:
            result = connection.execute(text(query), dict(params or {}))
        return int(result.rowcount or 0)

    def execute_returning(
        self, query: str, params: Mapping[str, Any] | None = None
    ) -> dict[str, Any] | None:
        """Run a write with a RETURNING clause and hand back the first returned row."""

        with self._engine.begin() as connection:
            row = connection.execute(text(query), dict(params or {})).mappings().first()
        return dict(row) if row is not None else None

    def run_concurrently(self, *calls: Callable[[], T]) -> list[T]:
        """Run independent queries on the pool and join them in call order.

        The first failure propagates once every call has finished.
        """

        futures = [self._executor.submit(call) for call in calls]
        results: list[T] = []
        first_error: BaseException | None = None
        for future in futures:
            try:
                results.append(future.result())
            except Exception as exc:
                if first_error is None:
                    first_error = exc
        if first_error is not None:
            raise first_error
        return results

    def _validate_identifier(self, identifier: str) -> str:
        if not _IDENTIFIER_RE.match(identifier):
            raise ValueError(f"Unsafe SQL identifier: {identifier!r}")
        return identifier
