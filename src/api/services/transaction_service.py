# This file implements read services for purchase transaction endpoints.
# It exists so route handlers can focus on HTTP concerns while query logic stays centralized.
# Listing, stats, and channel lookups share one filter definition so their numbers always agree.
# Revenue only counts finished IDR purchases, matching how the growth team reports sales.

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any

from src.api.db_access import DatabaseClient
from src.api.pagination import PaginationSpec, fetch_page
from src.api.query_builder import CompiledFilter, FilterBuilder, excluded_email_join

TRANSACTION_FROM = f"""
FROM transactions t
LEFT JOIN cms_customers c ON c.guid = t.customer_guid
LEFT JOIN referral_partners rp ON rp.code = c.referal_code
{excluded_email_join("c.email")}
"""

TRANSACTION_SEARCH_COLUMNS = ("t.invoice_number", "c.full_name", "c.email", "c.username")


@dataclass(frozen=True)
class TransactionFilters:
    search: str | None = None
    status: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    customer_guid: str | None = None
    payment_channel: str | None = None
    currency: str | None = None
    referral: str | None = None


def build_transaction_filter(filters: TransactionFilters) -> CompiledFilter:
    builder = FilterBuilder()
    builder.search(filters.search, TRANSACTION_SEARCH_COLUMNS)
    builder.equals("t.status", filters.status, case_insensitive=True)
    builder.date_range("t.created_at", filters.start_date, filters.end_date)
    builder.equals("t.customer_guid", filters.customer_guid)
    builder.equals("t.payment_channel_name", filters.payment_channel)
    builder.equals("t.valuta_code", filters.currency, case_insensitive=True)
    builder.contains("rp.partner", filters.referral)
    return builder.build()


class TransactionService:
    """Data retrieval and shaping for transaction API routes."""

    def __init__(self, *, db: DatabaseClient) -> None:
        self.db = db

    def list_transactions(
        self,
        *,
        filters: TransactionFilters,
        pagination: PaginationSpec,
    ) -> dict[str, Any]:
        compiled = build_transaction_filter(filters)

        count_query = f"""
        SELECT
            COUNT(*) AS total_count,
            COUNT(DISTINCT t.customer_guid) AS unique_customer_count
        {TRANSACTION_FROM}
        {compiled.where_clause}
        """

        data_query = f"""
        SELECT
            t.guid,
            t.invoice_number,
            t.customer_guid,
            t.status,
            t.payment_channel_code,
            t.payment_channel_name,
            t.qty,
            t.valuta_code,
            t.sub_total,
            t.platform_fee,
            t.payment_service_fee,
            t.total_discount,
            t.grand_total,
            t.created_at,
            c.full_name AS customer_name,
            c.email AS customer_email,
            c.username AS customer_username,
            c.referal_code AS referral_code,
            rp.partner AS referral_partner,
            COALESCE(
                (
                    SELECT json_agg(
                        json_build_object(
                            'guid', td.guid,
                            'merchant_store_name', td.merchant_store_name,
                            'product_name', td.product_name,
                            'product_price', td.product_price,
                            'purchase_type_name', td.purchase_type_name,
                            'purchase_type_value', td.purchase_type_value,
                            'qty', td.qty,
                            'total_discount', td.total_discount,
                            'grand_total', td.grand_total
                        )
                        ORDER BY td.product_name
                    )
                    FROM transaction_details td
                    WHERE td.transaction_guid = t.guid
                ),
                '[]'::json
            ) AS details
        {TRANSACTION_FROM}
        {compiled.where_clause}
        ORDER BY t.created_at DESC NULLS LAST, t.guid ASC
        LIMIT :limit OFFSET :offset
        """

        count_row, rows = fetch_page(
            self.db,
            count_query=count_query,
            data_query=data_query,
            compiled=compiled,
            pagination=pagination,
        )
        return {
            "rows": rows,
            "total_count": int(count_row.get("total_count") or 0),
            "unique_customer_count": int(count_row.get("unique_customer_count") or 0),
        }

    def get_stats(self, *, filters: TransactionFilters) -> dict[str, Any]:
        compiled = build_transaction_filter(filters)
        query = f"""
        SELECT
            COUNT(*) AS total_transactions,
            COUNT(*) FILTER (WHERE LOWER(t.status) = 'finished') AS finished_transactions,
            COUNT(*) FILTER (WHERE LOWER(t.status) = 'failed') AS failed_transactions,
            COALESCE(
                SUM(t.grand_total) FILTER (
                    WHERE LOWER(t.status) = 'finished' AND UPPER(t.valuta_code) = 'IDR'
                ),
                0
            ) AS total_revenue_idr
        {TRANSACTION_FROM}
        {compiled.where_clause}
        """
        row = self.db.fetch_one(query, compiled.params) or {}
        return {
            "total_transactions": int(row.get("total_transactions") or 0),
            "finished_transactions": int(row.get("finished_transactions") or 0),
            "failed_transactions": int(row.get("failed_transactions") or 0),
            "total_revenue_idr": float(row.get("total_revenue_idr") or 0),
        }

    def list_payment_channels(self) -> list[dict[str, Any]]:
        query = """
        SELECT DISTINCT
            payment_channel_name AS name,
            payment_channel_code AS code
        FROM transactions
        WHERE payment_channel_name IS NOT NULL
        ORDER BY payment_channel_name ASC
        """
        return self.db.fetch_all(query)

    def get_last_transaction_date(self) -> date | None:
        row = self.db.fetch_one("SELECT MAX(created_at) AS last_date FROM transactions")
        last_date = row.get("last_date") if row else None
        return last_date.date() if last_date is not None else None
