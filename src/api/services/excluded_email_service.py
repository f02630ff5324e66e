# This file manages the demo/test email exclusion list.
# It exists so the addresses hidden from every customer, transaction, and referral listing can be curated.
# Addresses are stored lower-cased, which keeps the unique index aligned with case-insensitive matching.
# Single inserts report conflicts while bulk inserts skip and report duplicates instead.

from __future__ import annotations

import logging
from typing import Any

from src.api.db_access import DatabaseClient
from src.api.error_handlers import bad_request, conflict, not_found
from src.api.pagination import PaginationSpec, fetch_page
from src.api.query_builder import FilterBuilder

logger = logging.getLogger(__name__)

EXCLUDED_EMAIL_COLUMNS = "id, email, reason, is_active, created_at, updated_at"


def normalize_email(value: str | None) -> str:
    return (value or "").strip().lower()


def split_bulk_emails(raw: str) -> list[str]:
    """Newline-separated input, blank lines dropped, first occurrence kept."""

    seen: dict[str, None] = {}
    for line in raw.splitlines():
        email = normalize_email(line)
        if email:
            seen.setdefault(email, None)
    return list(seen)


class ExcludedEmailService:
    def __init__(self, *, db: DatabaseClient) -> None:
        self.db = db

    def list_emails(self, *, search: str | None, pagination: PaginationSpec) -> dict[str, Any]:
        compiled = FilterBuilder(exclude_demo_accounts=False).search(search, ("email", "reason")).build()
        count_query = f"""
        SELECT COUNT(*) AS total_count
        FROM demo_excluded_emails
        {compiled.where_clause}
        """
        data_query = f"""
        SELECT {EXCLUDED_EMAIL_COLUMNS}
        FROM demo_excluded_emails
        {compiled.where_clause}
        ORDER BY created_at DESC, id DESC
        LIMIT :limit OFFSET :offset
        """
        count_row, rows = fetch_page(
            self.db,
            count_query=count_query,
            data_query=data_query,
            compiled=compiled,
            pagination=pagination,
        )
        return {"rows": rows, "total_count": int(count_row.get("total_count") or 0)}

    def create_email(self, *, email: str | None, reason: str | None) -> dict[str, Any]:
        reason = self._require_reason(reason)
        address = normalize_email(email)
        if not address:
            raise bad_request("Email is required")
        if self._find(address) is not None:
            raise conflict("Email already exists in excluded list", error_code="EMAIL_ALREADY_EXCLUDED")

        query = f"""
        INSERT INTO demo_excluded_emails (email, reason, is_active, created_at, updated_at)
        VALUES (:email, :reason, true, NOW(), NOW())
        RETURNING {EXCLUDED_EMAIL_COLUMNS}
        """
        created = self.db.execute_returning(query, {"email": address, "reason": reason})
        logger.info("Excluded email %s", address)
        return created or {}

    def create_bulk(self, *, emails: str, reason: str | None) -> dict[str, Any]:
        reason = self._require_reason(reason)
        addresses = split_bulk_emails(emails)
        if not addresses:
            raise bad_request("No valid emails provided")

        existing_rows = self.db.fetch_all(
            "SELECT email FROM demo_excluded_emails WHERE LOWER(email) = ANY(:emails)",
            {"emails": addresses},
        )
        existing = {normalize_email(row["email"]) for row in existing_rows}

        inserted: list[dict[str, Any]] = []
        duplicates: list[str] = [address for address in addresses if address in existing]
        for address in addresses:
            if address in existing:
                continue
            row = self.db.execute_returning(
                f"""
                INSERT INTO demo_excluded_emails (email, reason, is_active, created_at, updated_at)
                VALUES (:email, :reason, true, NOW(), NOW())
                ON CONFLICT (email) DO NOTHING
                RETURNING {EXCLUDED_EMAIL_COLUMNS}
                """,
                {"email": address, "reason": reason},
            )
            if row is None:
                # Inserted by another request since the duplicate check.
                duplicates.append(address)
            else:
                inserted.append(row)

        logger.info("Bulk exclusion added %s emails, skipped %s", len(inserted), len(duplicates))
        return {
            "emails": inserted,
            "duplicates": duplicates,
            "inserted": len(inserted),
            "skipped": len(duplicates),
            "total_processed": len(addresses),
        }

    def update_email(
        self,
        *,
        old_email: str | None,
        email: str | None,
        reason: str | None,
        is_active: bool = True,
    ) -> dict[str, Any]:
        current = normalize_email(old_email)
        address = normalize_email(email)
        if not current or not address or not (reason or "").strip():
            raise bad_request("Old email, new email and reason are required")

        if current != address and self._find(address) is not None:
            raise conflict("Email already exists in excluded list", error_code="EMAIL_ALREADY_EXCLUDED")

        query = f"""
        UPDATE demo_excluded_emails
        SET email = :email, reason = :reason, is_active = :is_active, updated_at = NOW()
        WHERE LOWER(email) = :old_email
        RETURNING {EXCLUDED_EMAIL_COLUMNS}
        """
        updated = self.db.execute_returning(
            query,
            {"email": address, "reason": reason.strip(), "is_active": is_active, "old_email": current},
        )
        if updated is None:
            raise not_found("Excluded email not found")
        return updated

    def delete_email(self, email: str | None) -> str:
        address = normalize_email(email)
        if not address:
            raise bad_request("Email is required")
        deleted = self.db.execute_returning(
            "DELETE FROM demo_excluded_emails WHERE LOWER(email) = :email RETURNING email",
            {"email": address},
        )
        if deleted is None:
            raise not_found("Excluded email not found")
        logger.info("Removed %s from the exclusion list", address)
        return str(deleted["email"])

    def _find(self, address: str) -> dict[str, Any] | None:
        return self.db.fetch_one(
            f"SELECT {EXCLUDED_EMAIL_COLUMNS} FROM demo_excluded_emails WHERE LOWER(email) = :email",
            {"email": address},
        )

    @staticmethod
    def _require_reason(reason: str | None) -> str:
        reason = (reason or "").strip()
        if not reason:
            raise bad_request("Reason is required")
        return reason
