# This file tests customer listing, stats, detail, and export endpoints.
# It exists to confirm filter validation and the xlsx export contract.
# Services are replaced with fakes so no database is required.

from __future__ import annotations

from io import BytesIO

import pandas as pd

from src.api.services.customer_service import CustomerService
from tests.api.support import RecordingDB, api_test_client

CUSTOMER = {
    "guid": "c-1",
    "username": "budi",
    "full_name": "Budi Santoso",
    "email": "budi@example.com",
    "referral_code": "GOVX",
    "referral_partner": "Gov Partner X",
    "credit_added": 5000.0,
    "credit_used": 1000.0,
    "churn_status": "active",
    "applications": ["Payroll"],
}


class FakeCustomerService:
    def __init__(self, rows: list[dict[str, object]] | None = None) -> None:
        self.rows = rows if rows is not None else [CUSTOMER]
        self.last_filters = None

    def list_customers(self, *, filters, pagination) -> dict[str, object]:
        self.last_filters = filters
        return {"rows": self.rows, "total_count": len(self.rows)}

    def list_referral_partner_options(self) -> list[dict[str, object]]:
        return [{"code": "GOVX", "partner": "Gov Partner X"}]

    def get_stats(self) -> dict[str, int]:
        return {"total_users": 10, "users_with_credit": 4, "users_with_debit": 3}

    def export_rows(self, *, filters) -> list[dict[str, object]]:
        self.last_filters = filters
        return [dict(row, applications_text=", ".join(row["applications"])) for row in self.rows]

    def get_customer(self, guid: str) -> dict[str, object] | None:
        return next((row for row in self.rows if row["guid"] == guid), None)


def test_customer_list_includes_referral_partner_options() -> None:
    service = FakeCustomerService()
    with api_test_client(customer_service=service) as client:
        response = client.get("/api/customers?search=budi&churn=active")

    assert response.status_code == 200
    payload = response.json()
    assert payload["customers"][0]["guid"] == "c-1"
    assert payload["referral_partners"] == [{"code": "GOVX", "partner": "Gov Partner X"}]
    assert payload["total_count"] == 1
    assert service.last_filters.search == "budi"
    assert service.last_filters.churn == "active"


def test_unsupported_status_filter_returns_400() -> None:
    with api_test_client(customer_service=FakeCustomerService()) as client:
        response = client.get("/api/customers?status=vip")

    assert response.status_code == 400
    assert response.json()["error_code"] == "INVALID_QUERY_PARAM"


def test_customer_stats_envelope() -> None:
    with api_test_client(customer_service=FakeCustomerService()) as client:
        response = client.get("/api/customers/stats")

    assert response.status_code == 200
    assert response.json()["stats"]["total_users"] == 10


def test_unknown_customer_returns_404() -> None:
    with api_test_client(customer_service=FakeCustomerService()) as client:
        response = client.get("/api/customers/missing-guid")

    assert response.status_code == 404
    assert response.json()["error_code"] == "CUSTOMER_NOT_FOUND"


def test_export_without_rows_returns_404() -> None:
    with api_test_client(customer_service=FakeCustomerService(rows=[])) as client:
        response = client.get("/api/customers/export")

    assert response.status_code == 404
    assert response.json()["error_code"] == "NO_DATA"


def test_export_returns_xlsx_attachment() -> None:
    with api_test_client(customer_service=FakeCustomerService()) as client:
        response = client.get("/api/customers/export?referral_partner=GOVX")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith(
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    )
    assert "attachment" in response.headers["content-disposition"]
    frame = pd.read_excel(BytesIO(response.content))
    assert frame.loc[0, "Email"] == "budi@example.com"


def test_applications_lists_distinct_subscribed_apps() -> None:
    db = RecordingDB(fetch_all=[[{"app_name": "HRIS"}, {"app_name": "Payroll"}]])
    with api_test_client(customer_service=CustomerService(db=db)) as client:
        response = client.get("/api/customers/applications")

    assert response.status_code == 200
    payload = response.json()
    assert payload["applications"] == ["HRIS", "Payroll"]
    assert payload["count"] == 2
    assert "SELECT DISTINCT prod->>'product_name' AS app_name" in db.calls[0][1]
    assert "jsonb_array_elements(sub->'product_list')" in db.calls[0][1]
