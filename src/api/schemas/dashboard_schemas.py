# This file defines dashboard summary, daily, weekly, and chart schemas.
# It exists so chart clients can rely on zero-filled series with stable field names.

from __future__ import annotations

from datetime import date

from pydantic import BaseModel

from src.api.schemas.common import EnvelopeFields


class ReferralActivity(BaseModel):
    referral_code: str
    partner_name: str | None = None
    registered_users: int
    buying_users: int
    expired_app_users: int
    all_active_app_users: int


class DailyPurchasePoint(BaseModel):
    date: date
    transactions: int
    unique_buyers: int
    total_idr: float


class DailyUsagePoint(BaseModel):
    date: date
    usage_events: int
    unique_users: int
    total_amount: float


class DashboardSummaryResponse(EnvelopeFields):
    users_purchased_idr_finished: int
    referral_stats: list[ReferralActivity]
    daily_purchases: list[DailyPurchasePoint]
    daily_usage: list[DailyUsagePoint]
    expiring_soon_users: int


class CumulativePoint(BaseModel):
    date: date
    count: int
    cumulative: int


class DailySummaryResponse(EnvelopeFields):
    daily_new_users: list[CumulativePoint]
    monthly_buyers: list[CumulativePoint]
    total_new_users_month: int
    total_buyers_year: int


class WeeklyPoint(BaseModel):
    week_start: date
    week_end: date
    iso_year: int
    iso_week: int
    new_users: int
    buyers: int
    revenue_idr: float
    credit_used: float


class WeeklySummaryResponse(EnvelopeFields):
    weeks: list[WeeklyPoint]


class CreditChartPoint(BaseModel):
    date: date
    credit_count: int
    debit_count: int
    credit_amount: float
    debit_amount: float
    unique_credit_users: int
    unique_debit_users: int


class ChartResponse(EnvelopeFields):
    data: list[CreditChartPoint]
    start_date: date
    end_date: date
    total_days: int
    total_credits: int
    total_debits: int
