# This file handles pagination and sort parsing for list endpoints.
# It exists so every router uses the same deterministic rules for page size and ordering.
# The helpers tolerate non-numeric input by falling back to defaults and reject out-of-range numbers.
# Count and page queries run together here so totals and rows come from the same filter.

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

from src.api.query_builder import CompiledFilter


class ConcurrentQueryRunner(Protocol):
    def fetch_one(self, query: str, params: dict[str, Any] | None = None) -> dict[str, Any] | None: ...

    def fetch_all(self, query: str, params: dict[str, Any] | None = None) -> list[dict[str, Any]]: ...

    def run_concurrently(self, *calls: Any) -> list[Any]: ...


@dataclass(frozen=True)
class SortSpec:
    field: str
    order: str

    @property
    def as_text(self) -> str:
        return f"{self.field}:{self.order}"


@dataclass(frozen=True)
class PaginationSpec:
    page: int
    page_size: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    @property
    def limit(self) -> int:
        return self.page_size


def _lenient_int(raw: str | int | None) -> int | None:
    if raw is None:
        return None
    if isinstance(raw, int):
        return raw
    try:
        return int(raw.strip())
    except ValueError:
        return None


def parse_page_params(
    *,
    page: str | int | None,
    limit: str | int | None,
    default_page_size: int,
    max_page_size: int,
) -> PaginationSpec:
    """Normalize raw `page`/`limit` query strings.

    Missing or non-numeric values fall back to page 1 and the endpoint default.
    Numeric values out of range raise ValueError.
    """

    resolved_page = _lenient_int(page)
    resolved_limit = _lenient_int(limit)
    if resolved_page is None:
        resolved_page = 1
    if resolved_limit is None:
        resolved_limit = default_page_size

    if resolved_page < 1:
        raise ValueError("page must be >= 1")
    if resolved_limit < 1:
        raise ValueError("limit must be >= 1")
    if resolved_limit > max_page_size:
        raise ValueError(f"limit must be <= {max_page_size}")
    return PaginationSpec(page=resolved_page, page_size=resolved_limit)


def parse_sort(
    *,
    requested_field: str | None,
    requested_order: str | None,
    allowed_fields: set[str],
    default_field: str,
    default_order: str = "desc",
) -> SortSpec:
    """Whitelist sort input; unknown fields or orders fall back to the defaults."""

    field_name = (requested_field or "").strip().lower()
    if field_name not in allowed_fields:
        field_name = default_field
    order = (requested_order or "").strip().lower()
    if order not in {"asc", "desc"}:
        order = default_order
    return SortSpec(field=field_name, order=order)


def compute_total_pages(*, total_count: int, page_size: int) -> int:
    """Compute deterministic total page count."""

    if total_count <= 0:
        return 0
    return ((total_count - 1) // page_size) + 1


def fetch_page(
    db: ConcurrentQueryRunner,
    *,
    count_query: str,
    data_query: str,
    compiled: CompiledFilter,
    pagination: PaginationSpec,
) -> tuple[dict[str, Any], list[dict[str, Any]]]:
    """Run the filtered count and the limited data query concurrently.

    Both statements receive the same filter parameters; the data query also binds
    `:limit` and `:offset`.
    """

    count_params = compiled.with_params()
    page_params = compiled.with_params(limit=pagination.limit, offset=pagination.offset)
    count_row, rows = db.run_concurrently(
        lambda: db.fetch_one(count_query, count_params),
        lambda: db.fetch_all(data_query, page_params),
    )
    return dict(count_row or {"total_count": 0}), list(rows)


def page_metadata(*, pagination: PaginationSpec, total_count: int) -> dict[str, int]:
    return {
        "total_count": total_count,
        "page": pagination.page,
        "limit": pagination.page_size,
        "total_pages": compute_total_pages(total_count=total_count, page_size=pagination.page_size),
    }
