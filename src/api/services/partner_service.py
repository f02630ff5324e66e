# This file implements the partner pipeline (CRM) and partner activation services.
# It exists so partner follow-up records and activation metrics are served from one place.
# The activation matrix links referred customers to training registrations and credit usage.
# The gov/non-gov target compares credit top-ups by referred customers with a configured goal.

from __future__ import annotations

import logging
from typing import Any

from src.api.db_access import DatabaseClient
from src.api.error_handlers import bad_request, not_found
from src.api.query_builder import build_assignments

logger = logging.getLogger(__name__)

PARTNER_COLUMNS = """
    id,
    no,
    partner,
    partner_type,
    contact,
    pic,
    status,
    next_to_do,
    notes,
    progress_percentage,
    priority,
    last_contact_date,
    expected_completion_date,
    created_at,
    updated_at,
    created_by,
    updated_by
"""

PARTNER_WRITABLE_COLUMNS = (
    "no",
    "partner",
    "partner_type",
    "contact",
    "pic",
    "status",
    "next_to_do",
    "notes",
    "progress_percentage",
    "priority",
    "last_contact_date",
    "expected_completion_date",
    "updated_by",
)

UNKNOWN_PARTNER = "Unknown"

ACTIVATION_MATRIX_QUERY = """
WITH partner_users AS (
    SELECT
        COALESCE(rp.partner, :unknown_partner) AS partner,
        COALESCE(rp.is_gov, false) AS is_gov,
        rp.code AS partner_code,
        c.guid AS user_guid
    FROM cms_customers c
    LEFT JOIN referral_partners rp ON rp.code = c.referal_code
    WHERE c.referal_code IS NOT NULL
),
partner_enrollments AS (
    SELECT
        pu.partner,
        pu.is_gov,
        pu.user_guid,
        ev.id AS event_id
    FROM partner_users pu
    LEFT JOIN event_registrations er
      ON LOWER(er.customer_guid) = LOWER(pu.user_guid)
    LEFT JOIN training_events ev
      ON ev.id = er.event_id
     AND (ev.id_partner IS NULL OR ev.id_partner = pu.partner_code)
),
app_users AS (
    SELECT DISTINCT LOWER(cmt.user_id) AS user_guid
    FROM credit_manager_transactions cmt
    WHERE LOWER(cmt.type) = 'debit'
)
SELECT
    pe.partner,
    pe.is_gov,
    COUNT(DISTINCT pe.event_id) AS total_trainings,
    COUNT(DISTINCT pe.user_guid) FILTER (WHERE pe.event_id IS NOT NULL) AS unique_users,
    COUNT(pe.event_id) AS total_participants,
    COUNT(DISTINCT pe.user_guid) AS registered_users,
    COUNT(DISTINCT pe.user_guid) FILTER (WHERE au.user_guid IS NOT NULL) AS app_users
FROM partner_enrollments pe
LEFT JOIN app_users au ON au.user_guid = LOWER(pe.user_guid)
GROUP BY pe.partner, pe.is_gov
ORDER BY pe.is_gov DESC, pe.partner ASC
"""

ACTIVATION_ACHIEVED_QUERY = """
SELECT COUNT(*) AS achieved
FROM credit_manager_transactions cmt
JOIN cms_customers c ON c.guid = cmt.user_id
WHERE LOWER(cmt.type) = 'credit'
  AND c.referal_code IS NOT NULL
"""


def compute_progress(achieved: int, target: int) -> float:
    """Percentage rounded to one decimal, capped at 999."""

    if target <= 0:
        return 0.0
    return min(round(achieved / target * 100, 1), 999.0)


class PartnerService:
    def __init__(self, *, db: DatabaseClient, activation_target: int = 1000) -> None:
        self.db = db
        self.activation_target = activation_target

    def list_partners(self) -> list[dict[str, Any]]:
        return self.db.fetch_all(f"SELECT {PARTNER_COLUMNS} FROM partners ORDER BY no ASC, id ASC")

    def get_partner(self, partner_id: int) -> dict[str, Any]:
        partner = self.db.fetch_one(
            f"SELECT {PARTNER_COLUMNS} FROM partners WHERE id = :id",
            {"id": partner_id},
        )
        if partner is None:
            raise not_found("Partner not found", error_code="PARTNER_NOT_FOUND")
        return partner

    def create_partner(self, payload: dict[str, Any]) -> dict[str, Any]:
        query = f"""
        INSERT INTO partners (
            no, partner, partner_type, contact, pic, status, next_to_do, notes,
            progress_percentage, priority, last_contact_date, expected_completion_date,
            created_by, updated_by, created_at, updated_at
        ) VALUES (
            :no, :partner, :partner_type, :contact, :pic, :status, :next_to_do, :notes,
            :progress_percentage, :priority, :last_contact_date, :expected_completion_date,
            :created_by, :created_by, NOW(), NOW()
        )
        RETURNING {PARTNER_COLUMNS}
        """
        params = {
            "no": payload["no"],
            "partner": payload["partner"],
            "partner_type": payload.get("partner_type"),
            "contact": payload.get("contact"),
            "pic": payload.get("pic"),
            "status": payload.get("status"),
            "next_to_do": payload.get("next_to_do"),
            "notes": payload.get("notes"),
            "progress_percentage": payload.get("progress_percentage") or 0,
            "priority": payload.get("priority") or "medium",
            "last_contact_date": payload.get("last_contact_date"),
            "expected_completion_date": payload.get("expected_completion_date"),
            "created_by": payload.get("created_by"),
        }
        created = self.db.execute_returning(query, params) or {}
        logger.info("Created CRM partner %s", params["partner"])
        return created

    def update_partner(self, partner_id: int, updates: dict[str, Any]) -> dict[str, Any]:
        assignments, params = build_assignments(updates, PARTNER_WRITABLE_COLUMNS)
        if not assignments:
            raise bad_request("No fields to update")
        params["id"] = partner_id
        updated = self.db.execute_returning(
            f"""
            UPDATE partners
            SET {assignments}, updated_at = NOW()
            WHERE id = :id
            RETURNING {PARTNER_COLUMNS}
            """,
            params,
        )
        if updated is None:
            raise not_found("Partner not found", error_code="PARTNER_NOT_FOUND")
        return updated

    def get_activation_matrix(self) -> list[dict[str, Any]]:
        rows = self.db.fetch_all(ACTIVATION_MATRIX_QUERY, {"unknown_partner": UNKNOWN_PARTNER})
        return [
            {
                "partner": row.get("partner") or UNKNOWN_PARTNER,
                "is_gov": bool(row.get("is_gov")),
                "total_trainings": int(row.get("total_trainings") or 0),
                "unique_users": int(row.get("unique_users") or 0),
                "total_participants": int(row.get("total_participants") or 0),
                "registered_users": int(row.get("registered_users") or 0),
                "app_users": int(row.get("app_users") or 0),
            }
            for row in rows
        ]

    def get_activation_target(self) -> dict[str, Any]:
        row = self.db.fetch_one(ACTIVATION_ACHIEVED_QUERY) or {}
        achieved = int(row.get("achieved") or 0)
        return {
            "target": self.activation_target,
            "achieved": achieved,
            "progress_percentage": compute_progress(achieved, self.activation_target),
        }
