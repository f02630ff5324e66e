# This file defines schemas for the partner pipeline and partner activation views.
# It exists so CRM writes are range-checked before reaching the database.
# Updates are partial; only fields present in the request body are written.
# Activation rows summarise trainings and app usage per referral partner.

from __future__ import annotations

from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, Field, model_validator

from src.api.schemas.common import EnvelopeFields, reject_explicit_nulls

Priority = Literal["low", "medium", "high"]


class Partner(BaseModel):
    id: int
    no: int
    partner: str
    partner_type: str | None = None
    contact: str | None = None
    pic: str | None = None
    status: str | None = None
    next_to_do: str | None = None
    notes: str | None = None
    progress_percentage: int = 0
    priority: str = "medium"
    last_contact_date: date | None = None
    expected_completion_date: date | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    created_by: str | None = None
    updated_by: str | None = None


class PartnerListResponse(EnvelopeFields):
    partners: list[Partner]
    total_count: int


class PartnerResponse(EnvelopeFields):
    partner: Partner


class PartnerCreateRequest(BaseModel):
    no: int = Field(ge=1)
    partner: str = Field(min_length=1)
    partner_type: str | None = None
    contact: str | None = None
    pic: str | None = None
    status: str | None = None
    next_to_do: str | None = None
    notes: str | None = None
    progress_percentage: int = Field(default=0, ge=0, le=100)
    priority: Priority = "medium"
    last_contact_date: date | None = None
    expected_completion_date: date | None = None
    created_by: str | None = None


class PartnerUpdateRequest(BaseModel):
    no: int | None = Field(default=None, ge=1)
    partner: str | None = Field(default=None, min_length=1)
    partner_type: str | None = None
    contact: str | None = None
    pic: str | None = None
    status: str | None = None
    next_to_do: str | None = None
    notes: str | None = None
    progress_percentage: int | None = Field(default=None, ge=0, le=100)
    priority: Priority | None = None
    last_contact_date: date | None = None
    expected_completion_date: date | None = None
    updated_by: str | None = None

    @model_validator(mode="after")
    def _required_columns_not_null(self) -> PartnerUpdateRequest:
        reject_explicit_nulls(self, ("no", "partner", "progress_percentage", "priority"))
        return self


class PartnerActivation(BaseModel):
    partner: str
    is_gov: bool
    total_trainings: int
    unique_users: int
    total_participants: int
    registered_users: int
    app_users: int


class PartnerActivationListResponse(EnvelopeFields):
    activations: list[PartnerActivation]


class ActivationTargetResponse(EnvelopeFields):
    target: int
    achieved: int
    progress_percentage: float
