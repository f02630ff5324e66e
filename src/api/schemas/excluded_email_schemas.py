# This file defines request and response schemas for the excluded email list.
# It exists so single and bulk exclusion payloads share one validated shape.
# A request carrying `emails` is treated as bulk; otherwise `email` is required.

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from src.api.schemas.common import EnvelopeFields, PaginatedEnvelope


class ExcludedEmail(BaseModel):
    id: int | None = None
    email: str
    reason: str | None = None
    is_active: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ExcludedEmailListResponse(PaginatedEnvelope):
    emails: list[ExcludedEmail]


class ExcludedEmailCreateRequest(BaseModel):
    email: str | None = None
    emails: str | None = None
    reason: str | None = None


class ExcludedEmailUpdateRequest(BaseModel):
    old_email: str | None = None
    email: str | None = None
    reason: str | None = None
    is_active: bool = True


class ExcludedEmailResponse(EnvelopeFields):
    email: ExcludedEmail


class ExcludedEmailBulkResponse(EnvelopeFields):
    emails: list[ExcludedEmail]
    duplicates: list[str]
    inserted: int
    skipped: int
    total_processed: int
    message: str


class ExcludedEmailDeleteResponse(EnvelopeFields):
    success: bool
    deleted_email: str
