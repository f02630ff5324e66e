# This file builds response bodies for API endpoints in a consistent format.
# It exists so list and object responses always carry request tracing fields.
# List bodies put rows under a resource key next to the pagination totals.
# This keeps endpoint functions focused on data retrieval instead of repetitive body assembly.

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from src.api.pagination import PaginationSpec, page_metadata


def utc_now_iso() -> datetime:
    """Return timezone-aware UTC timestamp for response generation."""

    return datetime.now(tz=UTC)


def build_list_envelope(
    *,
    resource_key: str,
    request_id: str,
    rows: list[dict[str, Any]],
    pagination: PaginationSpec,
    total_count: int,
    extra: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Build standard paginated list response."""

    return {
        resource_key: rows,
        **page_metadata(pagination=pagination, total_count=total_count),
        **(extra or {}),
        "request_id": request_id,
        "generated_at": utc_now_iso(),
    }


def build_object_envelope(
    *,
    request_id: str,
    data: Any,
    resource_key: str = "data",
    extra: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Build standard non-list response."""

    return {
        resource_key: data,
        **(extra or {}),
        "request_id": request_id,
        "generated_at": utc_now_iso(),
    }
