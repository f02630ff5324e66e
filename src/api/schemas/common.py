# Shared envelope, pagination, and error models for dashboard responses.
# Row models built on `DatabaseRow` pass through columns they do not declare,
# so new upstream fields reach clients without a schema change.

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class EnvelopeFields(BaseModel):
    request_id: str
    generated_at: datetime


class PaginatedEnvelope(EnvelopeFields):
    total_count: int = Field(ge=0)
    page: int = Field(ge=1)
    limit: int = Field(ge=1)
    total_pages: int = Field(ge=0)


class DatabaseRow(BaseModel):
    """Row model that keeps columns it does not declare."""

    model_config = ConfigDict(extra="allow")


class ErrorResponse(BaseModel):
    error: str
    error_code: str
    message: str
    details: Any | None = None
    request_id: str
    timestamp: datetime


def reject_explicit_nulls(model: BaseModel, fields: tuple[str, ...]) -> None:
    """Partial updates may omit these fields but may not send them as null."""

    nulled = [name for name in fields if name in model.model_fields_set and getattr(model, name) is None]
    if nulled:
        raise ValueError(f"{', '.join(nulled)} cannot be null")
