# This file defines referral rollup and referral partner schemas.
# It exists so rollup rows and partner management payloads are validated at the API boundary.
# Request bodies keep code and partner optional so missing values surface as explicit 400 messages.
# Summary totals accompany the rollup to reconcile with customer counts.

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from src.api.schemas.common import EnvelopeFields


class ReferralRollupRow(BaseModel):
    referral_code: str
    partner_name: str | None = None
    user_count: int
    total_purchase_amount: float
    finished_transactions_count: int
    total_credit_used: float
    total_credit_added: float
    net_credit: float


class ReferralRollupSummary(BaseModel):
    total_partners: int
    total_users: int
    total_purchase_amount: float
    finished_transactions_count: int


class ReferralRollupResponse(EnvelopeFields):
    referrals: list[ReferralRollupRow]
    total_count: int
    summary: ReferralRollupSummary
    sort: str


class ReferralPartner(BaseModel):
    id: int
    code: str
    partner: str
    is_gov: bool = False
    is_new: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ReferralPartnerListResponse(EnvelopeFields):
    partners: list[ReferralPartner]
    total_count: int


class ReferralPartnerResponse(EnvelopeFields):
    message: str
    partner: ReferralPartner


class ReferralPartnerCreateRequest(BaseModel):
    code: str | None = None
    partner: str | None = None
    is_gov: bool = False


class ReferralPartnerUpdateRequest(ReferralPartnerCreateRequest):
    is_new: bool = False


class ReferralScanResponse(EnvelopeFields):
    message: str
    scanned: int
    codes: list[str]
