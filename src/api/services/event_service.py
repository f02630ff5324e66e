# This file implements training event administration and public event registration.
# It exists so admin CRUD and the public sign-up flow read the same event rows and participant counts.
# Registration creates a customer record for unknown emails before storing the registration.
# Capacity is reported but not enforced; closing is driven by the registration deadline only.

from __future__ import annotations

import logging
import uuid
from typing import Any

from src.api.db_access import DatabaseClient
from src.api.error_handlers import APIError, bad_request, conflict, not_found
from src.api.pagination import PaginationSpec, fetch_page
from src.api.query_builder import CompiledFilter, FilterBuilder, build_assignments, is_blank

logger = logging.getLogger(__name__)

EVENT_COLUMNS = """
    te.id,
    te.name,
    te.event_date,
    te.id_partner,
    te.partner,
    COALESCE(te.location, '') AS location,
    te.event_type,
    COALESCE(te.description, '') AS description,
    te.max_participants,
    te.registration_deadline,
    te.is_active,
    te.created_by,
    te.created_at,
    te.updated_at
"""

EVENT_WRITABLE_COLUMNS = (
    "name",
    "event_date",
    "id_partner",
    "partner",
    "location",
    "event_type",
    "description",
    "max_participants",
    "registration_deadline",
    "is_active",
)

PUBLIC_EVENT_QUERY = """
SELECT
    te.id,
    te.name,
    te.event_date,
    COALESCE(te.location, '') AS location,
    te.event_type,
    COALESCE(te.description, '') AS description,
    te.registration_deadline,
    te.max_participants,
    COALESCE(te.partner, '') AS partner_name,
    COUNT(er.id) AS current_participants,
    (te.registration_deadline IS NULL OR te.registration_deadline >= CURRENT_DATE) AS is_registration_open
FROM training_events te
LEFT JOIN event_registrations er ON er.event_id = te.id
"""

EVENT_STATUS_PREDICATES = {
    "active": "te.is_active = true",
    "inactive": "te.is_active = false",
}


def build_event_filter(*, search: str | None, partner: str | None, status: str | None) -> CompiledFilter:
    builder = FilterBuilder(exclude_demo_accounts=False)
    builder.search(search, ("te.name",))
    builder.equals("te.partner", partner)
    if not is_blank(status):
        predicate = EVENT_STATUS_PREDICATES.get(str(status).strip().lower())
        if predicate is None:
            raise ValueError("status must be one of: active, inactive, all")
        builder.where(predicate)
    return builder.build()


class EventService:
    """Admin and public operations over training events."""

    def __init__(self, *, db: DatabaseClient) -> None:
        self.db = db

    def list_events(
        self,
        *,
        search: str | None,
        partner: str | None,
        status: str | None,
        pagination: PaginationSpec,
    ) -> dict[str, Any]:
        compiled = build_event_filter(search=search, partner=partner, status=status)
        count_query = f"""
        SELECT COUNT(*) AS total_count
        FROM training_events te
        {compiled.where_clause}
        """
        data_query = f"""
        SELECT {EVENT_COLUMNS}
        FROM training_events te
        {compiled.where_clause}
        ORDER BY te.event_date DESC, te.id DESC
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

    def get_event(self, event_id: int) -> dict[str, Any]:
        event = self.db.fetch_one(
            f"SELECT {EVENT_COLUMNS} FROM training_events te WHERE te.id = :id",
            {"id": event_id},
        )
        if event is None:
            raise not_found("Event not found", error_code="EVENT_NOT_FOUND")
        return event

    def create_event(self, payload: dict[str, Any]) -> dict[str, Any]:
        query = """
        INSERT INTO training_events (
            name, event_date, id_partner, partner, location, event_type, description,
            max_participants, registration_deadline, is_active, created_by, created_at, updated_at
        ) VALUES (
            :name, :event_date, :id_partner, :partner, :location, :event_type, :description,
            :max_participants, :registration_deadline, :is_active, :created_by, NOW(), NOW()
        )
        RETURNING id
        """
        params = {
            "name": payload["name"],
            "event_date": payload["event_date"],
            "id_partner": payload.get("id_partner"),
            "partner": payload.get("partner"),
            "location": payload.get("location") or "",
            "event_type": payload.get("event_type") or "offline",
            "description": payload.get("description") or "",
            "max_participants": payload.get("max_participants"),
            "registration_deadline": payload.get("registration_deadline"),
            "is_active": payload.get("is_active", True) is not False,
            "created_by": payload.get("created_by"),
        }
        created = self.db.execute_returning(query, params) or {}
        logger.info("Created event %s (%s)", created.get("id"), params["name"])
        return self.get_event(int(created["id"]))

    def update_event(self, event_id: int, updates: dict[str, Any]) -> dict[str, Any]:
        assignments, params = build_assignments(updates, EVENT_WRITABLE_COLUMNS)
        if not assignments:
            raise bad_request("No fields to update")
        params["id"] = event_id
        updated = self.db.execute_returning(
            f"UPDATE training_events SET {assignments}, updated_at = NOW() WHERE id = :id RETURNING id",
            params,
        )
        if updated is None:
            raise not_found("Event not found", error_code="EVENT_NOT_FOUND")
        return self.get_event(event_id)

    def delete_event(self, event_id: int) -> None:
        deleted = self.db.execute_returning(
            "DELETE FROM training_events WHERE id = :id RETURNING id",
            {"id": event_id},
        )
        if deleted is None:
            raise not_found("Event not found", error_code="EVENT_NOT_FOUND")
        logger.info("Deleted event %s", event_id)

    def list_registrations(self, event_id: int) -> list[dict[str, Any]]:
        self.get_event(event_id)
        query = """
        SELECT
            er.id,
            er.event_id,
            er.customer_guid,
            er.full_name,
            er.email,
            er.phone_number,
            COALESCE(er.business_name, '') AS business_name,
            er.registered_at
        FROM event_registrations er
        WHERE er.event_id = :event_id
        ORDER BY er.registered_at DESC, er.id DESC
        """
        return self.db.fetch_all(query, {"event_id": event_id})

    def list_public_events(self, *, upcoming: bool = True) -> list[dict[str, Any]]:
        upcoming_clause = "AND te.event_date >= CURRENT_DATE" if upcoming else ""
        query = f"""
        {PUBLIC_EVENT_QUERY}
        WHERE te.is_active = true {upcoming_clause}
        GROUP BY te.id
        ORDER BY te.event_date ASC, te.id ASC
        """
        return self.db.fetch_all(query)

    def get_public_event(self, event_id: int) -> dict[str, Any]:
        query = f"""
        {PUBLIC_EVENT_QUERY}
        WHERE te.id = :id AND te.is_active = true
        GROUP BY te.id
        """
        event = self.db.fetch_one(query, {"id": event_id})
        if event is None:
            raise not_found("Event not found", error_code="EVENT_NOT_FOUND")
        return event

    def check_registration(self, *, event_id: int, email: str) -> dict[str, Any]:
        registration = self.db.fetch_one(
            """
            SELECT id, event_id, customer_guid, full_name, email, phone_number, business_name, registered_at
            FROM event_registrations
            WHERE event_id = :event_id AND LOWER(email) = LOWER(:email)
            LIMIT 1
            """,
            {"event_id": event_id, "email": email.strip()},
        )
        return {"is_registered": registration is not None, "registration": registration}

    def register(
        self,
        event_id: int,
        *,
        full_name: str,
        email: str,
        phone_number: str,
        business_name: str | None = None,
    ) -> dict[str, Any]:
        """Register a participant; statements run one after another without a wrapping transaction."""

        event = self.get_public_event(event_id)
        if not event.get("is_registration_open"):
            raise bad_request("Registration for this event is closed", error_code="REGISTRATION_CLOSED")

        email = email.strip()
        if self.check_registration(event_id=event_id, email=email)["is_registered"]:
            raise APIError(
                status_code=409,
                error_code="ALREADY_REGISTERED",
                message="This email is already registered for the event",
                details={"is_already_registered": True},
            )

        customer = self.db.fetch_one(
            "SELECT guid FROM cms_customers WHERE LOWER(email) = LOWER(:email) LIMIT 1",
            {"email": email},
        )
        is_new_user = customer is None
        if customer is None:
            customer_guid = str(uuid.uuid4())
            self.db.execute(
                """
                INSERT INTO cms_customers (
                    guid, full_name, email, phone_number, corporate_name, created_at, updated_at
                ) VALUES (:guid, :full_name, :email, :phone_number, :corporate_name, NOW(), NOW())
                """,
                {
                    "guid": customer_guid,
                    "full_name": full_name,
                    "email": email,
                    "phone_number": phone_number,
                    "corporate_name": business_name,
                },
            )
            logger.info("Created customer %s from event registration", customer_guid)
        else:
            customer_guid = str(customer["guid"])

        registration = self.db.execute_returning(
            """
            INSERT INTO event_registrations (
                event_id, customer_guid, full_name, email, phone_number, business_name, registered_at
            ) VALUES (:event_id, :customer_guid, :full_name, :email, :phone_number, :business_name, NOW())
            ON CONFLICT (event_id, email) DO NOTHING
            RETURNING id, event_id, customer_guid, full_name, email, phone_number, business_name, registered_at
            """,
            {
                "event_id": event_id,
                "customer_guid": customer_guid,
                "full_name": full_name,
                "email": email,
                "phone_number": phone_number,
                "business_name": business_name,
            },
        )
        if registration is None:
            raise conflict("This email is already registered for the event", error_code="ALREADY_REGISTERED")
        return {"registration": registration, "is_new_user": is_new_user}
