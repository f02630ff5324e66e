# This file implements the referral rollup and referral partner management services.
# It exists so referral reporting and code registration share one source of truth for partner names.
# The rollup counts only non-excluded customers, so partner totals reconcile with customer lists.
# Partner writes check uniqueness up front and rely on the unique index as a fallback.

from __future__ import annotations

import logging
from typing import Any

from src.api.db_access import DatabaseClient
from src.api.error_handlers import bad_request, conflict, not_found
from src.api.pagination import SortSpec
from src.api.query_builder import EXCLUDED_EMAIL_PREDICATE, excluded_email_join

logger = logging.getLogger(__name__)

REFERRAL_SORT_FIELD_MAP: dict[str, str] = {
    "user_count": "user_count",
    "finished_transactions_count": "finished_transactions_count",
    "total_purchase_amount": "total_purchase_amount",
    "partner_name": "partner_name",
    "referral_code": "referral_code",
}

REFERRAL_PARTNER_COLUMNS = "id, code, partner, is_gov, is_new, created_at, updated_at"


class ReferralService:
    """Referral rollups and CRUD for the referral code registry."""

    def __init__(self, *, db: DatabaseClient) -> None:
        self.db = db

    def get_rollup(self, *, sort: SortSpec) -> dict[str, Any]:
        query = f"""
        WITH referred AS (
            SELECT c.guid, c.referal_code
            FROM cms_customers c
            {excluded_email_join("c.email")}
            WHERE {EXCLUDED_EMAIL_PREDICATE}
              AND c.referal_code IS NOT NULL
        ),
        user_stats AS (
            SELECT referal_code, COUNT(DISTINCT guid) AS user_count
            FROM referred
            GROUP BY referal_code
        ),
        purchase_stats AS (
            SELECT
                r.referal_code,
                COALESCE(SUM(t.grand_total), 0) AS total_purchase_amount,
                COUNT(t.guid) AS finished_transactions_count
            FROM referred r
            JOIN transactions t
              ON t.customer_guid = r.guid
             AND LOWER(t.status) = 'finished'
             AND UPPER(t.valuta_code) = 'IDR'
            GROUP BY r.referal_code
        ),
        credit_stats AS (
            SELECT
                r.referal_code,
                COALESCE(SUM(cmt.amount) FILTER (WHERE LOWER(cmt.type) = 'debit'), 0) AS total_credit_used,
                COALESCE(SUM(cmt.amount) FILTER (WHERE LOWER(cmt.type) = 'credit'), 0) AS total_credit_added
            FROM referred r
            JOIN credit_manager_transactions cmt ON cmt.user_id = r.guid
            GROUP BY r.referal_code
        )
        SELECT
            us.referal_code AS referral_code,
            rp.partner AS partner_name,
            us.user_count,
            COALESCE(ps.total_purchase_amount, 0) AS total_purchase_amount,
            COALESCE(ps.finished_transactions_count, 0) AS finished_transactions_count,
            COALESCE(cs.total_credit_used, 0) AS total_credit_used,
            COALESCE(cs.total_credit_added, 0) AS total_credit_added,
            COALESCE(cs.total_credit_added, 0) - COALESCE(cs.total_credit_used, 0) AS net_credit
        FROM user_stats us
        LEFT JOIN referral_partners rp ON rp.code = us.referal_code
        LEFT JOIN purchase_stats ps ON ps.referal_code = us.referal_code
        LEFT JOIN credit_stats cs ON cs.referal_code = us.referal_code
        WHERE us.user_count > 0
        ORDER BY {self._order_by_clause(sort)}, us.referal_code ASC
        """
        rows = [self._shape_rollup_row(row) for row in self.db.fetch_all(query)]
        summary = {
            "total_partners": len(rows),
            "total_users": sum(row["user_count"] for row in rows),
            "total_purchase_amount": sum(row["total_purchase_amount"] for row in rows),
            "finished_transactions_count": sum(row["finished_transactions_count"] for row in rows),
        }
        return {"rows": rows, "total_count": len(rows), "summary": summary}

    def list_partners(self) -> list[dict[str, Any]]:
        query = f"""
        SELECT {REFERRAL_PARTNER_COLUMNS}
        FROM referral_partners
        ORDER BY created_at DESC, id DESC
        """
        return self.db.fetch_all(query)

    def create_partner(self, *, code: str | None, partner: str | None, is_gov: bool = False) -> dict[str, Any]:
        code, partner = self._require_code_and_partner(code, partner)
        if self.db.fetch_one("SELECT id FROM referral_partners WHERE code = :code", {"code": code}):
            raise conflict("Referral code already exists", error_code="REFERRAL_CODE_EXISTS")

        query = f"""
        INSERT INTO referral_partners (code, partner, is_gov, is_new, created_at, updated_at)
        VALUES (:code, :partner, :is_gov, false, NOW(), NOW())
        RETURNING {REFERRAL_PARTNER_COLUMNS}
        """
        created = self.db.execute_returning(query, {"code": code, "partner": partner, "is_gov": is_gov})
        logger.info("Created referral partner %s", code)
        return created or {}

    def update_partner(
        self,
        partner_id: int,
        *,
        code: str | None,
        partner: str | None,
        is_gov: bool = False,
        is_new: bool = False,
    ) -> dict[str, Any]:
        code, partner = self._require_code_and_partner(code, partner)
        self._get_partner_or_404(partner_id)

        duplicate = self.db.fetch_one(
            "SELECT id FROM referral_partners WHERE code = :code AND id <> :id",
            {"code": code, "id": partner_id},
        )
        if duplicate:
            raise conflict("Referral code already exists for another partner", error_code="REFERRAL_CODE_EXISTS")

        query = f"""
        UPDATE referral_partners
        SET code = :code, partner = :partner, is_gov = :is_gov, is_new = :is_new, updated_at = NOW()
        WHERE id = :id
        RETURNING {REFERRAL_PARTNER_COLUMNS}
        """
        updated = self.db.execute_returning(
            query,
            {"code": code, "partner": partner, "is_gov": is_gov, "is_new": is_new, "id": partner_id},
        )
        return updated or {}

    def delete_partner(self, partner_id: int) -> dict[str, Any]:
        existing = self._get_partner_or_404(partner_id)

        usage_query = f"""
        SELECT COUNT(DISTINCT c.guid) AS user_count
        FROM cms_customers c
        {excluded_email_join("c.email")}
        WHERE c.referal_code = :code AND {EXCLUDED_EMAIL_PREDICATE}
        """
        usage = self.db.fetch_one(usage_query, {"code": existing["code"]}) or {}
        user_count = int(usage.get("user_count") or 0)
        if user_count > 0:
            raise bad_request(
                f"Cannot delete partner. {user_count} active users are using this referral code.",
                error_code="REFERRAL_CODE_IN_USE",
                details={"user_count": user_count},
            )

        self.db.execute("DELETE FROM referral_partners WHERE id = :id", {"id": partner_id})
        logger.info("Deleted referral partner %s", existing["code"])
        return existing

    def scan_new_codes(self) -> list[str]:
        """Register customer referral codes that have no partner row yet."""

        query = """
        SELECT DISTINCT TRIM(c.referal_code) AS code
        FROM cms_customers c
        WHERE c.referal_code IS NOT NULL
          AND TRIM(c.referal_code) <> ''
          AND NOT EXISTS (
              SELECT 1 FROM referral_partners rp WHERE rp.code = TRIM(c.referal_code)
          )
        ORDER BY code
        """
        codes = [str(row["code"]) for row in self.db.fetch_all(query)]
        for code in codes:
            self.db.execute(
                """
                INSERT INTO referral_partners (code, partner, is_gov, is_new, created_at, updated_at)
                VALUES (:code, :code, false, true, NOW(), NOW())
                ON CONFLICT (code) DO NOTHING
                """,
                {"code": code},
            )
        if codes:
            logger.info("Registered %s new referral codes from customers", len(codes))
        return codes

    def _get_partner_or_404(self, partner_id: int) -> dict[str, Any]:
        existing = self.db.fetch_one(
            f"SELECT {REFERRAL_PARTNER_COLUMNS} FROM referral_partners WHERE id = :id",
            {"id": partner_id},
        )
        if existing is None:
            raise not_found("Referral partner not found")
        return existing

    @staticmethod
    def _require_code_and_partner(code: str | None, partner: str | None) -> tuple[str, str]:
        code = (code or "").strip()
        partner = (partner or "").strip()
        if not code or not partner:
            raise bad_request("Code and partner name are required")
        return code, partner

    @staticmethod
    def _order_by_clause(sort: SortSpec) -> str:
        column = REFERRAL_SORT_FIELD_MAP[sort.field]
        direction = "ASC" if sort.order == "asc" else "DESC"
        if sort.field == "partner_name":
            return f"rp.partner IS NULL, rp.partner {direction}"
        return f"{column} {direction}"

    @staticmethod
    def _shape_rollup_row(row: dict[str, Any]) -> dict[str, Any]:
        return {
            "referral_code": row["referral_code"],
            "partner_name": row.get("partner_name"),
            "user_count": int(row.get("user_count") or 0),
            "total_purchase_amount": float(row.get("total_purchase_amount") or 0),
            "finished_transactions_count": int(row.get("finished_transactions_count") or 0),
            "total_credit_used": float(row.get("total_credit_used") or 0),
            "total_credit_added": float(row.get("total_credit_added") or 0),
            "net_credit": float(row.get("net_credit") or 0),
        }
