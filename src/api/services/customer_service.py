# This file implements read services for customer endpoints.
# It exists so customer listings, stats, details, and exports share one filter definition.
# Churn status is derived from the most recent credit debit, independent of app subscriptions.
# Listing pages also feed throwaway inbox addresses into the demo exclusion list.

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from src.api.db_access import DatabaseClient
from src.api.pagination import PaginationSpec, fetch_page
from src.api.query_builder import (
    EXCLUDED_EMAIL_PREDICATE,
    CompiledFilter,
    FilterBuilder,
    excluded_email_join,
    is_blank,
)

logger = logging.getLogger(__name__)

CREDIT_USAGE_JOIN = """
LEFT JOIN (
    SELECT
        cmt.user_id,
        SUM(cmt.amount) FILTER (WHERE LOWER(cmt.type) = 'credit') AS credit_added,
        SUM(cmt.amount) FILTER (WHERE LOWER(cmt.type) = 'debit') AS credit_used,
        MAX(cmt.created_at) FILTER (WHERE LOWER(cmt.type) = 'debit') AS last_debit_at,
        array_agg(DISTINCT cmt.product_name) FILTER (WHERE cmt.product_name IS NOT NULL) AS applications
    FROM credit_manager_transactions cmt
    GROUP BY cmt.user_id
) usage ON usage.user_id = c.guid
"""

CUSTOMER_FROM = f"""
FROM cms_customers c
LEFT JOIN referral_partners rp ON rp.code = c.referal_code
{CREDIT_USAGE_JOIN}
{excluded_email_join("c.email")}
"""

CHURN_STATUS_SQL = """
CASE
    WHEN usage.last_debit_at IS NULL THEN 'passive'
    WHEN usage.last_debit_at < NOW() - INTERVAL '30 days' THEN 'passive'
    WHEN usage.last_debit_at < NOW() - INTERVAL '7 days' THEN 'idle'
    ELSE 'active'
END
"""

CHURN_STATUSES = ("active", "idle", "passive")

_SUBSCRIBED = "c.subscribe_list IS NOT NULL AND jsonb_array_length(c.subscribe_list) > 0"

SUBSCRIPTION_STATUS_PREDICATES: dict[str, str] = {
    "without_apps": "(c.subscribe_list IS NULL OR jsonb_array_length(c.subscribe_list) = 0)",
    "with_apps": _SUBSCRIBED,
    "expired_apps": f"""{_SUBSCRIBED} AND EXISTS (
        SELECT 1
        FROM jsonb_array_elements(c.subscribe_list) AS sub,
             jsonb_array_elements(sub->'product_list') AS prod
        WHERE CAST(prod->>'expired_at' AS TIMESTAMP) < CURRENT_TIMESTAMP
    )""",
    "expiring_soon": f"""{_SUBSCRIBED} AND EXISTS (
        SELECT 1
        FROM jsonb_array_elements(c.subscribe_list) AS sub,
             jsonb_array_elements(sub->'product_list') AS prod
        WHERE CAST(prod->>'expired_at' AS TIMESTAMP) >= CURRENT_TIMESTAMP
          AND CAST(prod->>'expired_at' AS TIMESTAMP) < CURRENT_TIMESTAMP + INTERVAL '7 days'
    )""",
}

APP_SUBSCRIPTION_PREDICATE = f"""{_SUBSCRIBED} AND EXISTS (
    SELECT 1
    FROM jsonb_array_elements(c.subscribe_list) AS sub,
         jsonb_array_elements(sub->'product_list') AS prod
    WHERE prod->>'product_name' = {{app}}
)"""

CUSTOMER_COLUMNS_SQL = f"""
    c.guid,
    c.username,
    c.full_name,
    c.email,
    c.phone_number,
    c.corporate_name,
    c.industry_name,
    c.employee_qty,
    c.referal_code AS referral_code,
    rp.partner AS referral_partner,
    c.status,
    c.created_at,
    c.subscribe_list,
    COALESCE(usage.credit_added, 0) AS credit_added,
    COALESCE(usage.credit_used, 0) AS credit_used,
    usage.last_debit_at,
    {CHURN_STATUS_SQL} AS churn_status,
    COALESCE(usage.applications, ARRAY[]::text[]) AS applications
"""

CUSTOMER_EXPORT_COLUMNS: list[tuple[str, str]] = [
    ("full_name", "Full Name"),
    ("username", "Username"),
    ("email", "Email"),
    ("phone_number", "Phone Number"),
    ("corporate_name", "Company"),
    ("referral_code", "Referral Code"),
    ("referral_partner", "Referral Partner"),
    ("credit_added", "Credit Added"),
    ("credit_used", "Credit Used"),
    ("churn_status", "Churn Status"),
    ("applications_text", "Applications"),
    ("created_at", "Registered At"),
]


@dataclass(frozen=True)
class CustomerFilters:
    search: str | None = None
    referral_partner: str | None = None
    status: str | None = None
    app: str | None = None
    churn: str | None = None


def build_customer_filter(filters: CustomerFilters) -> CompiledFilter:
    builder = FilterBuilder()
    builder.search(filters.search, ("c.username", "c.full_name", "c.email"))
    builder.equals("c.referal_code", filters.referral_partner)

    status = None if is_blank(filters.status) else str(filters.status).strip().lower()
    if status is not None:
        if status not in SUBSCRIPTION_STATUS_PREDICATES:
            supported = ", ".join(sorted(SUBSCRIPTION_STATUS_PREDICATES))
            raise ValueError(f"Unsupported status filter '{status}'. Supported values: {supported}")
        builder.where(SUBSCRIPTION_STATUS_PREDICATES[status])

    if not is_blank(filters.app) and status != "without_apps":
        builder.where(APP_SUBSCRIPTION_PREDICATE, app=str(filters.app).strip())

    churn = None if is_blank(filters.churn) else str(filters.churn).strip().lower()
    if churn is not None:
        if churn not in CHURN_STATUSES:
            supported = ", ".join(CHURN_STATUSES)
            raise ValueError(f"Unsupported churn filter '{churn}'. Supported values: {supported}")
        builder.where(f"({CHURN_STATUS_SQL}) = {{churn}}", churn=churn)

    return builder.build()


class CustomerService:
    """Data retrieval and shaping for customer API routes."""

    def __init__(self, *, db: DatabaseClient, auto_exclude_domains: list[str] | None = None) -> None:
        self.db = db
        self.auto_exclude_domains = [domain.lower() for domain in (auto_exclude_domains or [])]

    def list_customers(self, *, filters: CustomerFilters, pagination: PaginationSpec) -> dict[str, Any]:
        compiled = build_customer_filter(filters)
        count_query = f"""
        SELECT COUNT(*) AS total_count
        {CUSTOMER_FROM}
        {compiled.where_clause}
        """
        data_query = f"""
        SELECT {CUSTOMER_COLUMNS_SQL}
        {CUSTOMER_FROM}
        {compiled.where_clause}
        ORDER BY c.created_at DESC NULLS LAST, c.guid ASC
        LIMIT :limit OFFSET :offset
        """
        count_row, rows = fetch_page(
            self.db,
            count_query=count_query,
            data_query=data_query,
            compiled=compiled,
            pagination=pagination,
        )
        self._auto_exclude(rows)
        return {"rows": rows, "total_count": int(count_row.get("total_count") or 0)}

    def list_referral_partner_options(self) -> list[dict[str, Any]]:
        query = """
        SELECT code, partner
        FROM referral_partners
        ORDER BY partner ASC, code ASC
        """
        return self.db.fetch_all(query)

    def list_applications(self) -> list[str]:
        """Distinct subscribed app names, the values the `app` filter accepts."""

        query = f"""
        SELECT DISTINCT prod->>'product_name' AS app_name
        FROM cms_customers c,
             jsonb_array_elements(c.subscribe_list) AS sub,
             jsonb_array_elements(sub->'product_list') AS prod
        WHERE {_SUBSCRIBED}
          AND prod->>'product_name' IS NOT NULL
        ORDER BY app_name
        """
        return [row["app_name"] for row in self.db.fetch_all(query)]

    def get_stats(self) -> dict[str, int]:
        total_query = f"""
        SELECT COUNT(*) AS total_users
        FROM cms_customers c
        {excluded_email_join("c.email")}
        WHERE {EXCLUDED_EMAIL_PREDICATE}
        """
        usage_query = f"""
        SELECT
            COUNT(DISTINCT c.guid) FILTER (WHERE LOWER(cmt.type) = 'credit') AS users_with_credit,
            COUNT(DISTINCT c.guid) FILTER (WHERE LOWER(cmt.type) = 'debit') AS users_with_debit
        FROM credit_manager_transactions cmt
        JOIN cms_customers c ON c.guid = cmt.user_id
        {excluded_email_join("c.email")}
        WHERE {EXCLUDED_EMAIL_PREDICATE}
        """
        total_row, usage_row = self.db.run_concurrently(
            lambda: self.db.fetch_one(total_query),
            lambda: self.db.fetch_one(usage_query),
        )
        total_row = total_row or {}
        usage_row = usage_row or {}
        return {
            "total_users": int(total_row.get("total_users") or 0),
            "users_with_credit": int(usage_row.get("users_with_credit") or 0),
            "users_with_debit": int(usage_row.get("users_with_debit") or 0),
        }

    def get_customer(self, guid: str) -> dict[str, Any] | None:
        customer_query = f"""
        SELECT {CUSTOMER_COLUMNS_SQL}
        {CUSTOMER_FROM}
        WHERE c.guid = :guid
        """
        app_usage_query = """
        SELECT
            cmt.product_name,
            COALESCE(SUM(cmt.amount) FILTER (WHERE LOWER(cmt.type) = 'credit'), 0) AS credit_added,
            COALESCE(SUM(cmt.amount) FILTER (WHERE LOWER(cmt.type) = 'debit'), 0) AS credit_used,
            MAX(cmt.created_at) AS last_activity_at
        FROM credit_manager_transactions cmt
        WHERE cmt.user_id = :guid
          AND cmt.product_name IS NOT NULL
        GROUP BY cmt.product_name
        ORDER BY cmt.product_name ASC
        """
        purchases_query = """
        SELECT
            COUNT(*) AS transaction_count,
            COUNT(*) FILTER (WHERE LOWER(t.status) = 'finished') AS finished_transactions,
            COALESCE(
                SUM(t.grand_total) FILTER (
                    WHERE LOWER(t.status) = 'finished' AND UPPER(t.valuta_code) = 'IDR'
                ),
                0
            ) AS total_purchase_idr,
            MAX(t.created_at) AS last_transaction_at
        FROM transactions t
        WHERE t.customer_guid = :guid
        """
        params = {"guid": guid}
        customer, app_usage, purchases = self.db.run_concurrently(
            lambda: self.db.fetch_one(customer_query, params),
            lambda: self.db.fetch_all(app_usage_query, params),
            lambda: self.db.fetch_one(purchases_query, params),
        )
        if customer is None:
            return None
        customer["app_usage"] = app_usage
        customer["purchases"] = purchases or {}
        return customer

    def export_rows(self, *, filters: CustomerFilters) -> list[dict[str, Any]]:
        """Every customer matching the listing filters, unpaginated."""

        compiled = build_customer_filter(filters)
        query = f"""
        SELECT {CUSTOMER_COLUMNS_SQL}
        {CUSTOMER_FROM}
        {compiled.where_clause}
        ORDER BY c.created_at DESC NULLS LAST, c.guid ASC
        """
        rows = self.db.fetch_all(query, compiled.params)
        for row in rows:
            row["applications_text"] = ", ".join(row.get("applications") or [])
        return rows

    def _auto_exclude(self, rows: list[dict[str, Any]]) -> None:
        if not self.auto_exclude_domains:
            return
        suffixes = tuple(f"@{domain}" for domain in self.auto_exclude_domains)
        emails = sorted(
            {
                str(row["email"]).strip().lower()
                for row in rows
                if row.get("email") and str(row["email"]).strip().lower().endswith(suffixes)
            }
        )
        for email in emails:
            self.db.execute(
                """
                INSERT INTO demo_excluded_emails (email, reason, is_active, created_at, updated_at)
                VALUES (:email, :reason, true, NOW(), NOW())
                ON CONFLICT (email) DO NOTHING
                """,
                {"email": email, "reason": "Auto-excluded disposable inbox"},
            )
        if emails:
            logger.info("Auto-excluded %s disposable inbox addresses", len(emails))
