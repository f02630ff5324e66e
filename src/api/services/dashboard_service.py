# This file implements the growth dashboard aggregations.
# It exists so the summary, daily, weekly, and chart views share one set of revenue and exclusion rules.
# Independent queries for a view run concurrently and are joined before the response is built.
# Date series are zero-filled in SQL so charts always receive one row per period.

from __future__ import annotations

import logging
from datetime import date
from typing import Any

from src.api.db_access import DatabaseClient
from src.api.query_builder import EXCLUDED_EMAIL_PREDICATE, excluded_email_join

logger = logging.getLogger(__name__)

SUMMARY_SERIES_DAYS = 14
DEFAULT_WEEKS = 8
MAX_WEEKS = 52

FINISHED_IDR_PREDICATE = "LOWER(t.status) = 'finished' AND UPPER(t.valuta_code) = 'IDR'"

BUYING_USERS_QUERY = f"""
SELECT COUNT(DISTINCT t.customer_guid) AS users_purchased
FROM transactions t
LEFT JOIN cms_customers c ON c.guid = t.customer_guid
{excluded_email_join("c.email")}
WHERE {FINISHED_IDR_PREDICATE}
  AND {EXCLUDED_EMAIL_PREDICATE}
"""

REFERRAL_STATS_QUERY = f"""
WITH filtered_customers AS (
    SELECT c.guid, c.referal_code, c.subscribe_list
    FROM cms_customers c
    {excluded_email_join("c.email")}
    WHERE c.referal_code IS NOT NULL
      AND c.referal_code <> ''
      AND {EXCLUDED_EMAIL_PREDICATE}
),
buyers AS (
    SELECT DISTINCT t.customer_guid
    FROM transactions t
    WHERE {FINISHED_IDR_PREDICATE}
),
expired_apps AS (
    SELECT DISTINCT fc.guid
    FROM filtered_customers fc,
         LATERAL jsonb_array_elements(COALESCE(fc.subscribe_list, '[]'::jsonb)) sub,
         LATERAL jsonb_array_elements(COALESCE(sub->'product_list', '[]'::jsonb)) prod
    WHERE prod->>'expired_at' IS NOT NULL
      AND CAST(prod->>'expired_at' AS TIMESTAMP) < CURRENT_TIMESTAMP
),
active_apps AS (
    SELECT fc.guid
    FROM filtered_customers fc
    WHERE fc.subscribe_list IS NOT NULL
      AND jsonb_array_length(fc.subscribe_list) > 0
    EXCEPT
    SELECT guid FROM expired_apps
)
SELECT
    fc.referal_code AS referral_code,
    rp.partner AS partner_name,
    COUNT(*) AS registered_users,
    COUNT(DISTINCT b.customer_guid) AS buying_users,
    COUNT(DISTINCT ea.guid) AS expired_app_users,
    COUNT(DISTINCT aa.guid) AS all_active_app_users
FROM filtered_customers fc
LEFT JOIN referral_partners rp ON rp.code = fc.referal_code
LEFT JOIN buyers b ON b.customer_guid = fc.guid
LEFT JOIN expired_apps ea ON ea.guid = fc.guid
LEFT JOIN active_apps aa ON aa.guid = fc.guid
GROUP BY fc.referal_code, rp.partner
ORDER BY registered_users DESC, fc.referal_code ASC
"""

DAILY_PURCHASES_QUERY = f"""
WITH date_range AS (
    SELECT CAST(generate_series(CURRENT_DATE - :days_back * INTERVAL '1 day', CURRENT_DATE, INTERVAL '1 day') AS DATE) AS day
),
purchases AS (
    SELECT
        CAST(t.created_at AS DATE) AS day,
        COUNT(*) AS transactions,
        COUNT(DISTINCT t.customer_guid) AS unique_buyers,
        COALESCE(SUM(t.grand_total), 0) AS total_idr
    FROM transactions t
    LEFT JOIN cms_customers c ON c.guid = t.customer_guid
    {excluded_email_join("c.email")}
    WHERE {FINISHED_IDR_PREDICATE}
      AND {EXCLUDED_EMAIL_PREDICATE}
      AND t.created_at >= CURRENT_DATE - :days_back * INTERVAL '1 day'
    GROUP BY CAST(t.created_at AS DATE)
)
SELECT
    d.day AS date,
    COALESCE(p.transactions, 0) AS transactions,
    COALESCE(p.unique_buyers, 0) AS unique_buyers,
    COALESCE(p.total_idr, 0) AS total_idr
FROM date_range d
LEFT JOIN purchases p ON p.day = d.day
ORDER BY d.day
"""

DAILY_USAGE_QUERY = """
WITH date_range AS (
    SELECT CAST(generate_series(CURRENT_DATE - :days_back * INTERVAL '1 day', CURRENT_DATE, INTERVAL '1 day') AS DATE) AS day
),
usages AS (
    SELECT
        CAST(cmt.created_at AS DATE) AS day,
        COUNT(*) AS usage_events,
        COUNT(DISTINCT cmt.user_id) AS unique_users,
        COALESCE(SUM(cmt.amount), 0) AS total_amount
    FROM credit_manager_transactions cmt
    WHERE LOWER(cmt.type) = 'debit'
      AND cmt.created_at >= CURRENT_DATE - :days_back * INTERVAL '1 day'
    GROUP BY CAST(cmt.created_at AS DATE)
)
SELECT
    d.day AS date,
    COALESCE(u.usage_events, 0) AS usage_events,
    COALESCE(u.unique_users, 0) AS unique_users,
    COALESCE(u.total_amount, 0) AS total_amount
FROM date_range d
LEFT JOIN usages u ON u.day = d.day
ORDER BY d.day
"""

EXPIRING_SOON_QUERY = f"""
SELECT COUNT(DISTINCT c.guid) AS expiring_users
FROM cms_customers c
{excluded_email_join("c.email")}
CROSS JOIN LATERAL jsonb_array_elements(COALESCE(c.subscribe_list, '[]'::jsonb)) sub
CROSS JOIN LATERAL jsonb_array_elements(COALESCE(sub->'product_list', '[]'::jsonb)) prod
WHERE {EXCLUDED_EMAIL_PREDICATE}
  AND prod->>'expired_at' IS NOT NULL
  AND CAST(prod->>'expired_at' AS TIMESTAMP) >= CURRENT_TIMESTAMP
  AND CAST(prod->>'expired_at' AS TIMESTAMP) < CURRENT_TIMESTAMP + INTERVAL '7 days'
"""

MONTH_NEW_USERS_QUERY = f"""
SELECT
    CAST(c.created_at AS DATE) AS date,
    COUNT(*) AS count,
    SUM(COUNT(*)) OVER (ORDER BY CAST(c.created_at AS DATE) ROWS UNBOUNDED PRECEDING) AS cumulative
FROM cms_customers c
{excluded_email_join("c.email")}
WHERE c.created_at >= DATE_TRUNC('month', CURRENT_DATE)
  AND c.created_at < CURRENT_DATE + INTERVAL '1 day'
  AND {EXCLUDED_EMAIL_PREDICATE}
GROUP BY CAST(c.created_at AS DATE)
ORDER BY CAST(c.created_at AS DATE)
"""

YEAR_MONTHLY_BUYERS_QUERY = f"""
WITH monthly_counts AS (
    SELECT
        DATE_TRUNC('month', t.created_at) AS month,
        COUNT(DISTINCT t.customer_guid) AS count
    FROM transactions t
    LEFT JOIN cms_customers c ON c.guid = t.customer_guid
    {excluded_email_join("c.email")}
    WHERE {FINISHED_IDR_PREDICATE}
      AND {EXCLUDED_EMAIL_PREDICATE}
      AND t.created_at >= DATE_TRUNC('year', CURRENT_DATE)
      AND t.created_at < CURRENT_DATE + INTERVAL '1 day'
    GROUP BY DATE_TRUNC('month', t.created_at)
)
SELECT
    CAST(month AS DATE) AS date,
    count,
    SUM(count) OVER (ORDER BY month ROWS UNBOUNDED PRECEDING) AS cumulative
FROM monthly_counts
ORDER BY month
"""

WEEKLY_SUMMARY_QUERY = f"""
WITH weeks AS (
    SELECT CAST(generate_series(
        DATE_TRUNC('week', CURRENT_DATE) - (:weeks - 1) * INTERVAL '1 week',
        DATE_TRUNC('week', CURRENT_DATE),
        INTERVAL '1 week'
    ) AS DATE) AS week_start
),
new_users AS (
    SELECT CAST(DATE_TRUNC('week', c.created_at) AS DATE) AS week_start, COUNT(*) AS new_users
    FROM cms_customers c
    {excluded_email_join("c.email")}
    WHERE {EXCLUDED_EMAIL_PREDICATE}
      AND c.created_at >= DATE_TRUNC('week', CURRENT_DATE) - (:weeks - 1) * INTERVAL '1 week'
    GROUP BY 1
),
purchases AS (
    SELECT
        CAST(DATE_TRUNC('week', t.created_at) AS DATE) AS week_start,
        COUNT(DISTINCT t.customer_guid) AS buyers,
        COALESCE(SUM(t.grand_total), 0) AS revenue_idr
    FROM transactions t
    LEFT JOIN cms_customers c ON c.guid = t.customer_guid
    {excluded_email_join("c.email")}
    WHERE {FINISHED_IDR_PREDICATE}
      AND {EXCLUDED_EMAIL_PREDICATE}
      AND t.created_at >= DATE_TRUNC('week', CURRENT_DATE) - (:weeks - 1) * INTERVAL '1 week'
    GROUP BY 1
),
usage AS (
    SELECT
        CAST(DATE_TRUNC('week', cmt.created_at) AS DATE) AS week_start,
        COALESCE(SUM(cmt.amount), 0) AS credit_used
    FROM credit_manager_transactions cmt
    WHERE LOWER(cmt.type) = 'debit'
      AND cmt.created_at >= DATE_TRUNC('week', CURRENT_DATE) - (:weeks - 1) * INTERVAL '1 week'
    GROUP BY 1
)
SELECT
    w.week_start,
    CAST(w.week_start + INTERVAL '6 days' AS DATE) AS week_end,
    CAST(EXTRACT(ISOYEAR FROM w.week_start) AS INTEGER) AS iso_year,
    CAST(EXTRACT(WEEK FROM w.week_start) AS INTEGER) AS iso_week,
    COALESCE(n.new_users, 0) AS new_users,
    COALESCE(p.buyers, 0) AS buyers,
    COALESCE(p.revenue_idr, 0) AS revenue_idr,
    COALESCE(u.credit_used, 0) AS credit_used
FROM weeks w
LEFT JOIN new_users n ON n.week_start = w.week_start
LEFT JOIN purchases p ON p.week_start = w.week_start
LEFT JOIN usage u ON u.week_start = w.week_start
ORDER BY w.week_start
"""

CHARTS_QUERY = """
SELECT
    CAST(cmt.created_at AS DATE) AS date,
    COUNT(*) FILTER (WHERE LOWER(cmt.type) = 'credit') AS credit_count,
    COUNT(*) FILTER (WHERE LOWER(cmt.type) = 'debit') AS debit_count,
    COALESCE(SUM(cmt.amount) FILTER (WHERE LOWER(cmt.type) = 'credit'), 0) AS credit_amount,
    COALESCE(SUM(cmt.amount) FILTER (WHERE LOWER(cmt.type) = 'debit'), 0) AS debit_amount,
    COUNT(DISTINCT cmt.user_id) FILTER (WHERE LOWER(cmt.type) = 'credit') AS unique_credit_users,
    COUNT(DISTINCT cmt.user_id) FILTER (WHERE LOWER(cmt.type) = 'debit') AS unique_debit_users
FROM credit_manager_transactions cmt
WHERE cmt.created_at >= :start_date
  AND cmt.created_at < CAST(:end_date AS DATE) + INTERVAL '1 day'
GROUP BY CAST(cmt.created_at AS DATE)
ORDER BY date ASC
"""


def _int(value: Any) -> int:
    return int(value or 0)


def _float(value: Any) -> float:
    return float(value or 0)


class DashboardService:
    def __init__(self, *, db: DatabaseClient) -> None:
        self.db = db

    def get_summary(self) -> dict[str, Any]:
        series_params = {"days_back": SUMMARY_SERIES_DAYS - 1}
        buying, referral_rows, purchase_rows, usage_rows, expiring = self.db.run_concurrently(
            lambda: self.db.fetch_one(BUYING_USERS_QUERY),
            lambda: self.db.fetch_all(REFERRAL_STATS_QUERY),
            lambda: self.db.fetch_all(DAILY_PURCHASES_QUERY, series_params),
            lambda: self.db.fetch_all(DAILY_USAGE_QUERY, series_params),
            lambda: self.db.fetch_one(EXPIRING_SOON_QUERY),
        )
        return {
            "users_purchased_idr_finished": _int((buying or {}).get("users_purchased")),
            "referral_stats": [
                {
                    "referral_code": row["referral_code"],
                    "partner_name": row.get("partner_name"),
                    "registered_users": _int(row.get("registered_users")),
                    "buying_users": _int(row.get("buying_users")),
                    "expired_app_users": _int(row.get("expired_app_users")),
                    "all_active_app_users": _int(row.get("all_active_app_users")),
                }
                for row in referral_rows
            ],
            "daily_purchases": [
                {
                    "date": row["date"],
                    "transactions": _int(row.get("transactions")),
                    "unique_buyers": _int(row.get("unique_buyers")),
                    "total_idr": _float(row.get("total_idr")),
                }
                for row in purchase_rows
            ],
            "daily_usage": [
                {
                    "date": row["date"],
                    "usage_events": _int(row.get("usage_events")),
                    "unique_users": _int(row.get("unique_users")),
                    "total_amount": _float(row.get("total_amount")),
                }
                for row in usage_rows
            ],
            "expiring_soon_users": _int((expiring or {}).get("expiring_users")),
        }

    def get_daily_summary(self) -> dict[str, Any]:
        """Month-to-date signups per day and year-to-date buyers per month, both cumulative."""

        new_user_rows, buyer_rows = self.db.run_concurrently(
            lambda: self.db.fetch_all(MONTH_NEW_USERS_QUERY),
            lambda: self.db.fetch_all(YEAR_MONTHLY_BUYERS_QUERY),
        )
        daily_new_users = [self._cumulative_point(row) for row in new_user_rows]
        monthly_buyers = [self._cumulative_point(row) for row in buyer_rows]
        return {
            "daily_new_users": daily_new_users,
            "monthly_buyers": monthly_buyers,
            "total_new_users_month": daily_new_users[-1]["cumulative"] if daily_new_users else 0,
            "total_buyers_year": monthly_buyers[-1]["cumulative"] if monthly_buyers else 0,
        }

    def get_weekly_summary(self, *, weeks: int = DEFAULT_WEEKS) -> list[dict[str, Any]]:
        if weeks < 1 or weeks > MAX_WEEKS:
            raise ValueError(f"weeks must be between 1 and {MAX_WEEKS}")
        rows = self.db.fetch_all(WEEKLY_SUMMARY_QUERY, {"weeks": weeks})
        return [
            {
                "week_start": row["week_start"],
                "week_end": row["week_end"],
                "iso_year": _int(row.get("iso_year")),
                "iso_week": _int(row.get("iso_week")),
                "new_users": _int(row.get("new_users")),
                "buyers": _int(row.get("buyers")),
                "revenue_idr": _float(row.get("revenue_idr")),
                "credit_used": _float(row.get("credit_used")),
            }
            for row in rows
        ]

    def get_charts(self, *, start_date: date, end_date: date) -> dict[str, Any]:
        if start_date > end_date:
            raise ValueError("start_date must be on or before end_date")
        rows = self.db.fetch_all(CHARTS_QUERY, {"start_date": start_date, "end_date": end_date})
        points = [
            {
                "date": row["date"],
                "credit_count": _int(row.get("credit_count")),
                "debit_count": _int(row.get("debit_count")),
                "credit_amount": _float(row.get("credit_amount")),
                "debit_amount": _float(row.get("debit_amount")),
                "unique_credit_users": _int(row.get("unique_credit_users")),
                "unique_debit_users": _int(row.get("unique_debit_users")),
            }
            for row in rows
        ]
        return {
            "data": points,
            "start_date": start_date,
            "end_date": end_date,
            "total_days": len(points),
            "total_credits": sum(point["credit_count"] for point in points),
            "total_debits": sum(point["debit_count"] for point in points),
        }

    @staticmethod
    def _cumulative_point(row: dict[str, Any]) -> dict[str, Any]:
        return {"date": row["date"], "count": _int(row.get("count")), "cumulative": _int(row.get("cumulative"))}
