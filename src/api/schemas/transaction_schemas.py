# This file defines transaction endpoint schemas for rows, list envelopes, and stats.
# It exists so purchase listings keep a stable contract for dashboard clients.
# Line items are embedded on each transaction row as an aggregated list.
# Revenue fields are plain floats in IDR.

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel

from src.api.schemas.common import DatabaseRow, EnvelopeFields, PaginatedEnvelope


class TransactionDetailRow(DatabaseRow):
    guid: str
    product_name: str | None = None
    qty: int | None = None
    grand_total: float | None = None


class TransactionRow(DatabaseRow):
    guid: str
    invoice_number: str | None = None
    customer_guid: str | None = None
    status: str | None = None
    payment_channel_name: str | None = None
    valuta_code: str | None = None
    grand_total: float | None = None
    created_at: datetime | None = None
    customer_name: str | None = None
    customer_email: str | None = None
    referral_code: str | None = None
    referral_partner: str | None = None
    details: list[TransactionDetailRow] = []


class TransactionListResponse(PaginatedEnvelope):
    transactions: list[TransactionRow]
    unique_customer_count: int


class TransactionStats(BaseModel):
    total_transactions: int
    finished_transactions: int
    failed_transactions: int
    total_revenue_idr: float


class TransactionStatsResponse(EnvelopeFields):
    stats: TransactionStats


class PaymentChannel(BaseModel):
    name: str
    code: str | None = None


class PaymentChannelListResponse(EnvelopeFields):
    payment_channels: list[PaymentChannel]


class LastTransactionDateResponse(EnvelopeFields):
    last_date: date | None = None
