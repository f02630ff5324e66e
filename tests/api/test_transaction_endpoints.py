# This file tests purchase transaction endpoints.
# It exists to confirm list envelopes, filter parsing, and pagination validation.
# Services are replaced with fakes so no database is required.

from __future__ import annotations

from datetime import UTC, date, datetime

from tests.api.support import FakeDBClient, api_test_client, build_test_config


class FakeTransactionService:
    def __init__(self, rows: list[dict[str, object]] | None = None, total_count: int = 0) -> None:
        self.rows = rows or []
        self.total_count = total_count
        self.last_kwargs: dict[str, object] = {}

    def list_transactions(self, **kwargs: object) -> dict[str, object]:
        self.last_kwargs = kwargs
        return {
            "rows": self.rows,
            "total_count": self.total_count,
            "unique_customer_count": len({row["customer_guid"] for row in self.rows}),
        }

    def get_stats(self, **kwargs: object) -> dict[str, object]:
        self.last_kwargs = kwargs
        return {
            "total_transactions": 3,
            "finished_transactions": 2,
            "failed_transactions": 1,
            "total_revenue_idr": 450000.0,
        }

    def list_payment_channels(self) -> list[dict[str, object]]:
        return [{"name": "BCA Virtual Account", "code": "BCA"}]

    def get_last_transaction_date(self) -> date | None:
        return date(2025, 1, 31)


def test_empty_transaction_page_returns_zero_total() -> None:
    with api_test_client(
        config=build_test_config(),
        db_client=FakeDBClient(),
        transaction_service=FakeTransactionService(),
    ) as client:
        response = client.get("/api/transactions?page=1&limit=5")

    assert response.status_code == 200
    payload = response.json()
    assert payload["total_count"] == 0
    assert payload["transactions"] == []
    assert payload["total_pages"] == 0
    assert payload["unique_customer_count"] == 0


def test_transaction_rows_and_filters_are_forwarded() -> None:
    service = FakeTransactionService(
        rows=[
            {
                "guid": "t-1",
                "invoice_number": "INV-1",
                "customer_guid": "c-1",
                "status": "finished",
                "grand_total": 150000.0,
                "created_at": datetime(2025, 1, 2, 10, 0, tzinfo=UTC),
                "details": [{"guid": "d-1", "product_name": "Payroll", "qty": 1}],
            }
        ],
        total_count=3,
    )
    with api_test_client(transaction_service=service) as client:
        response = client.get(
            "/api/transactions?page=2&limit=1&status=finished&start_date=2025-01-01&end_date=2025-01-31"
        )

    assert response.status_code == 200
    payload = response.json()
    assert payload["page"] == 2
    assert payload["total_pages"] == 3
    assert payload["transactions"][0]["details"][0]["product_name"] == "Payroll"
    filters = service.last_kwargs["filters"]
    assert filters.status == "finished"
    assert filters.start_date == date(2025, 1, 1)
    assert service.last_kwargs["pagination"].offset == 1


def test_non_numeric_paging_uses_defaults() -> None:
    service = FakeTransactionService()
    with api_test_client(transaction_service=service) as client:
        response = client.get("/api/transactions?page=abc&limit=xyz")

    assert response.status_code == 200
    assert response.json()["limit"] == 2
    assert response.json()["page"] == 1


def test_limit_above_maximum_returns_400() -> None:
    with api_test_client(transaction_service=FakeTransactionService()) as client:
        response = client.get("/api/transactions?limit=99")

    assert response.status_code == 400
    assert response.json()["error_code"] == "INVALID_QUERY_PARAM"


def test_reversed_date_range_returns_400() -> None:
    with api_test_client(transaction_service=FakeTransactionService()) as client:
        response = client.get("/api/transactions/stats?start_date=2025-02-01&end_date=2025-01-01")

    assert response.status_code == 400
    assert "start_date" in response.json()["message"]


def test_stats_channels_and_last_date() -> None:
    with api_test_client(transaction_service=FakeTransactionService()) as client:
        stats = client.get("/api/transactions/stats").json()
        channels = client.get("/api/transactions/payment-channels").json()
        last_date = client.get("/api/transactions/last-date").json()

    assert stats["stats"]["total_revenue_idr"] == 450000.0
    assert channels["payment_channels"] == [{"name": "BCA Virtual Account", "code": "BCA"}]
    assert last_date["last_date"] == "2025-01-31"
