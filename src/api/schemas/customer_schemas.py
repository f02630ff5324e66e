# This file defines customer endpoint schemas for listings, stats, and detail views.
# It exists so customer rows expose credit usage and churn fields in one contract.
# Rows allow extra columns so subscription payloads pass through unchanged.
# The listing also carries referral partner options for filter dropdowns.

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel

from src.api.schemas.common import DatabaseRow, EnvelopeFields, PaginatedEnvelope


class CustomerRow(DatabaseRow):
    guid: str
    username: str | None = None
    full_name: str | None = None
    email: str | None = None
    referral_code: str | None = None
    referral_partner: str | None = None
    created_at: datetime | None = None
    credit_added: float = 0
    credit_used: float = 0
    last_debit_at: datetime | None = None
    churn_status: str
    applications: list[str] = []
    subscribe_list: Any | None = None


class ReferralPartnerOption(BaseModel):
    code: str
    partner: str | None = None


class CustomerListResponse(PaginatedEnvelope):
    customers: list[CustomerRow]
    referral_partners: list[ReferralPartnerOption]


class CustomerStats(BaseModel):
    total_users: int
    users_with_credit: int
    users_with_debit: int


class CustomerStatsResponse(EnvelopeFields):
    stats: CustomerStats


class ApplicationListResponse(EnvelopeFields):
    applications: list[str]
    count: int


class CustomerDetail(CustomerRow):
    app_usage: list[DatabaseRow] = []
    purchases: DatabaseRow | None = None


class CustomerDetailResponse(EnvelopeFields):
    customer: CustomerDetail
