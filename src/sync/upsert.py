"""Upsert statements and per-item run summaries for sync jobs."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol


class SyncDatabase(Protocol):
    def fetch_one(self, query: str, params: Mapping[str, Any] | None = None) -> dict[str, Any] | None: ...

    def execute(self, query: str, params: Mapping[str, Any] | None = None) -> int: ...


def build_upsert_sql(
    table: str,
    columns: Sequence[str],
    conflict_columns: Sequence[str],
    *,
    update_columns: Sequence[str] | None = None,
    value_expressions: Mapping[str, str] | None = None,
    extra_updates: Mapping[str, str] | None = None,
) -> str:
    """Build `INSERT ... ON CONFLICT DO UPDATE` with last-write-wins semantics.

    `value_expressions` replaces the plain `:column` bind for a column
    (for casts or defaults); `extra_updates` adds assignments such as `updated_at = NOW()`.
    """

    expressions = dict(value_expressions or {})
    conflict = set(conflict_columns)
    updates = [column for column in (update_columns or columns) if column not in conflict]

    insert_columns = ", ".join(columns)
    values = ", ".join(expressions.get(column, f":{column}") for column in columns)
    assignments = [f"{column} = EXCLUDED.{column}" for column in updates]
    assignments.extend(f"{column} = {expression}" for column, expression in (extra_updates or {}).items())

    conflict_sql = ", ".join(conflict_columns)
    assignment_sql = ",\n        ".join(assignments)
    return f"""
    INSERT INTO {table} ({insert_columns})
    VALUES ({values})
    ON CONFLICT ({conflict_sql})
    DO UPDATE SET
        {assignment_sql}
    """


@dataclass
class SyncRun:
    """Accumulates per-item outcomes; writes already applied are never rolled back."""

    target: str
    results: list[dict[str, Any]] = field(default_factory=list)
    success_count: int = 0
    error_count: int = 0
    skipped_count: int = 0

    def succeeded(self, key: str) -> None:
        self.success_count += 1
        self.results.append({"id": key, "status": "success"})

    def failed(self, key: str | None, error: str) -> None:
        self.error_count += 1
        self.results.append({"id": key, "status": "error", "error": error})

    def skipped(self, key: str | None, reason: str) -> None:
        self.skipped_count += 1
        self.results.append({"id": key, "status": "skipped", "error": reason})

    @property
    def total_processed(self) -> int:
        return self.success_count + self.error_count

    def summary(self, **extra: Any) -> dict[str, Any]:
        return {
            "target": self.target,
            "success_count": self.success_count,
            "error_count": self.error_count,
            "skipped_count": self.skipped_count,
            "total_processed": self.total_processed,
            **extra,
            "results": self.results,
        }
