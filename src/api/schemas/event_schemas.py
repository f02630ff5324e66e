# This file defines schemas for admin event management and public event registration.
# It exists so event payloads are validated before any SQL runs.
# Registration accepts Indonesian mobile numbers of the form 08 followed by 8 to 11 digits.
# Spaces and dashes in phone numbers are stripped before validation.

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from src.api.schemas.common import EnvelopeFields, PaginatedEnvelope, reject_explicit_nulls

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_RE = re.compile(r"^08\d{8,11}$")

EventType = Literal["online", "offline"]


class Event(BaseModel):
    id: int
    name: str
    event_date: date
    id_partner: str | None = None
    partner: str | None = None
    location: str = ""
    event_type: EventType = "offline"
    description: str = ""
    max_participants: int | None = None
    registration_deadline: date | None = None
    is_active: bool = True
    created_by: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class EventListResponse(PaginatedEnvelope):
    events: list[Event]


class EventResponse(EnvelopeFields):
    event: Event


class EventCreateRequest(BaseModel):
    name: str = Field(min_length=1)
    event_date: date
    id_partner: str | None = None
    partner: str | None = None
    location: str | None = None
    event_type: EventType = "offline"
    description: str | None = None
    max_participants: int | None = Field(default=None, ge=1)
    registration_deadline: date | None = None
    is_active: bool = True
    created_by: str | None = None

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("name must not be blank")
        return stripped


class EventUpdateRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1)
    event_date: date | None = None
    id_partner: str | None = None
    partner: str | None = None
    location: str | None = None
    event_type: EventType | None = None
    description: str | None = None
    max_participants: int | None = Field(default=None, ge=1)
    registration_deadline: date | None = None
    is_active: bool | None = None

    @model_validator(mode="after")
    def _required_columns_not_null(self) -> EventUpdateRequest:
        reject_explicit_nulls(self, ("name", "event_date", "event_type", "is_active"))
        return self


class EventRegistration(BaseModel):
    id: int
    event_id: int
    customer_guid: str | None = None
    full_name: str
    email: str
    phone_number: str
    business_name: str | None = None
    registered_at: datetime | None = None


class EventRegistrationListResponse(EnvelopeFields):
    registrations: list[EventRegistration]
    total_count: int


class PublicEvent(BaseModel):
    id: int
    name: str
    event_date: date
    location: str = ""
    event_type: EventType = "offline"
    description: str = ""
    registration_deadline: date | None = None
    max_participants: int | None = None
    partner_name: str = ""
    current_participants: int = 0
    is_registration_open: bool


class PublicEventListResponse(EnvelopeFields):
    events: list[PublicEvent]
    total_count: int


class PublicEventResponse(EnvelopeFields):
    event: PublicEvent


class RegistrationRequest(BaseModel):
    full_name: str = Field(min_length=1)
    email: str
    phone_number: str
    business_name: str | None = None

    @field_validator("email")
    @classmethod
    def _validate_email(cls, value: str) -> str:
        value = value.strip()
        if not EMAIL_RE.match(value):
            raise ValueError("Invalid email format")
        return value

    @field_validator("phone_number")
    @classmethod
    def _validate_phone(cls, value: str) -> str:
        normalized = re.sub(r"[\s-]", "", value)
        if not PHONE_RE.match(normalized):
            raise ValueError("Invalid mobile number format (example: 081234567890)")
        return normalized


class RegistrationResponse(EnvelopeFields):
    registration: EventRegistration
    is_new_user: bool
    message: str


class RegistrationCheckResponse(EnvelopeFields):
    is_registered: bool
    registration: EventRegistration | None = None
