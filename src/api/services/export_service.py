# This file selects rows for spreadsheet exports.
# It exists so export routes only handle validation and file delivery.
# Credit usage rows are joined to customer names and labelled by direction for the growth team.
# Rendering to xlsx happens in the spreadsheet module, not here.

from __future__ import annotations

from datetime import date
from typing import Any

from src.api.db_access import DatabaseClient

CREDIT_EXPORT_COLUMNS: list[tuple[str, str]] = [
    ("user_name", "User Name"),
    ("user_email", "User Email"),
    ("app_name", "Application"),
    ("type_label", "Type"),
    ("amount", "Amount"),
    ("transaction_date", "Date"),
]

CREDIT_TYPE_LABELS = {
    "credit": "Credit (top-up)",
    "debit": "Debit (usage)",
}


class ExportService:
    def __init__(self, *, db: DatabaseClient) -> None:
        self.db = db

    def credit_transaction_rows(self, *, start_date: date, end_date: date) -> list[dict[str, Any]]:
        """Credit manager rows created between the two dates, inclusive, newest first."""

        query = """
        SELECT
            COALESCE(c.full_name, 'Unknown User') AS user_name,
            COALESCE(c.email, '') AS user_email,
            COALESCE(cmt.product_name, cmt.product_package, 'Unknown App') AS app_name,
            cmt.type,
            cmt.amount,
            cmt.created_at AS transaction_date
        FROM credit_manager_transactions cmt
        LEFT JOIN cms_customers c ON c.guid = cmt.user_id
        WHERE cmt.created_at >= :start_date
          AND cmt.created_at < CAST(:end_date AS DATE) + INTERVAL '1 day'
        ORDER BY cmt.created_at DESC, cmt.id ASC
        """
        rows = self.db.fetch_all(query, {"start_date": start_date, "end_date": end_date})
        for row in rows:
            kind = str(row.get("type") or "").lower()
            row["type_label"] = CREDIT_TYPE_LABELS.get(kind, kind or "-")
            row["amount"] = float(row["amount"]) if row.get("amount") is not None else None
        return rows
