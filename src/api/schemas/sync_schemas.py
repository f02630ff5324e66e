# This file defines request and response schemas for sync and marketplace auth routes.
# It exists so sync windows and login credentials are validated before any upstream call.
# Sync summaries report per-item outcomes rather than failing the whole request.

from __future__ import annotations

from datetime import date
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from src.api.schemas.common import EnvelopeFields


class SyncWindowRequest(BaseModel):
    start_date: date | None = None
    end_date: date | None = None

    @model_validator(mode="after")
    def _check_order(self) -> SyncWindowRequest:
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("start_date must be on or before end_date")
        return self


class TransactionSyncRequest(SyncWindowRequest):
    customer_guid: str | None = None
    status: str | None = None


class CustomerSyncRequest(SyncWindowRequest):
    incremental: bool = False
    page: int = Field(default=1, ge=1)
    page_size: int | None = Field(default=None, ge=1)


class SyncItemResult(BaseModel):
    id: str | None = None
    status: str
    error: str | None = None


class SyncRunResponse(EnvelopeFields):
    target: str
    success_count: int
    error_count: int
    skipped_count: int
    total_processed: int
    fetched_count: int | None = None
    start_date: date | None = None
    end_date: date | None = None
    results: list[SyncItemResult]

    model_config = ConfigDict(extra="allow")


class SyncTargetOutcome(BaseModel):
    name: str
    ok: bool
    success_count: int | None = None
    error_count: int | None = None
    total_processed: int | None = None
    error: str | None = None


class SyncAllResponse(EnvelopeFields):
    ok: bool
    results: list[SyncTargetOutcome]


class LoginRequest(BaseModel):
    identifier: str = Field(min_length=1)
    password: str = Field(min_length=1)


class TokenStatusResponse(EnvelopeFields):
    has_token: bool
    token_preview: str | None = None


class LoginResponse(TokenStatusResponse):
    data: dict[str, Any] | None = None
