"""
Unit tests for sync upserts and per-item run summaries.
It asserts expected behavior and guards against regressions in the corresponding component.
These tests are executed by `pytest` locally and in CI and should remain deterministic.
"""

from datetime import date, datetime
from typing import Any

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from src.sync.load_credit_transactions import resolve_credit_window, sync_credit_transactions
from src.sync.load_customers import sync_customers
from src.sync.load_transactions import TRANSACTION_UPSERT_SQL, resolve_transaction_window, sync_transactions
from src.sync.run_sync import SyncClients, sync_all
from src.sync.sync_config import SyncConfig
from src.sync.upsert import build_upsert_sql
from src.sync.upstream import UpstreamError
from tests.sync.fakes import UpsertingDB


class StaticClient:
    def __init__(self, records: list[dict[str, Any]] | Exception) -> None:
        self.records = records
        self.calls: list[dict[str, Any]] = []

    def fetch_all(self, **kwargs: Any) -> list[dict[str, Any]]:
        self.calls.append(kwargs)
        if isinstance(self.records, Exception):
            raise self.records
        return self.records


def _transaction(guid: str, status: str = "finished") -> dict[str, Any]:
    return {
        "guid": guid,
        "invoice_number": f"INV-{guid}",
        "status": status,
        "customer": {"guid": "c-1"},
        "created_at": "2025-01-02T10:00:00",
        "transaction_detail": [{"guid": f"{guid}-d1", "product_name": "Payroll"}],
    }


def test_build_upsert_sql_is_last_write_wins() -> None:
    sql = build_upsert_sql(
        "transactions",
        ["guid", "status", "created_at"],
        ["guid"],
        update_columns=["guid", "status"],
        extra_updates={"updated_at": "NOW()"},
    )
    normalized = " ".join(sql.split())

    assert normalized == (
        "INSERT INTO transactions (guid, status, created_at) VALUES (:guid, :status, :created_at) "
        "ON CONFLICT (guid) DO UPDATE SET status = EXCLUDED.status, updated_at = NOW()"
    )


def test_overlapping_transaction_syncs_do_not_duplicate_rows() -> None:
    db = UpsertingDB()
    first = StaticClient([_transaction("t-1"), _transaction("t-2")])
    second = StaticClient([_transaction("t-2", status="refunded"), _transaction("t-3")])

    sync_transactions(db, first, start_date=date(2025, 1, 1), end_date=date(2025, 1, 3))
    summary = sync_transactions(db, second, start_date=date(2025, 1, 2), end_date=date(2025, 1, 4))

    transaction_keys = {key for key in db.rows if not key.endswith("-d1")}
    assert transaction_keys == {"t-1", "t-2", "t-3"}
    assert db.rows["t-2"]["status"] == "refunded"
    assert summary["success_count"] == 2
    assert summary["total_processed"] == 2
    assert TRANSACTION_UPSERT_SQL in db.statements


def test_transaction_window_starts_one_day_before_high_water_mark() -> None:
    db = UpsertingDB(last_created_at=datetime(2025, 3, 10, 8, 30))

    assert resolve_transaction_window(
        db, start_date=None, end_date=None, lookback_days=30, today=date(2025, 3, 12)
    ) == (date(2025, 3, 9), date(2025, 3, 12))

    empty = UpsertingDB()
    assert resolve_transaction_window(
        empty, start_date=None, end_date=None, lookback_days=30, today=date(2025, 3, 12)
    ) == (date(2025, 2, 10), date(2025, 3, 12))


def test_credit_window_falls_back_to_fixed_start() -> None:
    window = resolve_credit_window(
        UpsertingDB(),
        start_date=None,
        end_date=None,
        fallback_start=date(2024, 1, 1),
        today=date(2025, 1, 5),
    )
    assert window == (date(2024, 1, 1), date(2025, 1, 5))

    with pytest.raises(ValueError, match="start_date must be on or before end_date"):
        resolve_credit_window(
            UpsertingDB(),
            start_date=date(2025, 2, 1),
            end_date=date(2025, 1, 1),
            fallback_start=date(2024, 1, 1),
        )


def test_failed_rows_are_reported_and_earlier_writes_kept() -> None:
    class FlakyDB(UpsertingDB):
        def execute(self, query: str, params: Any = None) -> int:
            if params and params.get("id") == 2:
                raise IntegrityError(query, params, Exception("bad row"))
            return super().execute(query, params)

    db = FlakyDB()
    client = StaticClient([{"id": 1, "type": "credit"}, {"id": 2, "type": "debit"}, {"type": "debit"}])

    summary = sync_credit_transactions(db, client, start_date=date(2025, 1, 1), end_date=date(2025, 1, 2))

    assert summary["success_count"] == 1
    assert summary["error_count"] == 2
    assert set(db.rows) == {"1"}
    assert [result["status"] for result in summary["results"]] == ["success", "error", "error"]


def test_duplicate_customers_in_one_payload_are_skipped() -> None:
    db = UpsertingDB()
    client = StaticClient(
        [
            {"guid": "c-1", "email": "a@example.com", "subscribe_list": [{"app": "Payroll"}]},
            {"guid": "c-1", "email": "a@example.com"},
            {"guid": "c-2", "email": "b@example.com"},
        ]
    )

    summary = sync_customers(db, client, page_size=10_000)

    assert summary["success_count"] == 2
    assert summary["skipped_count"] == 1
    assert summary["limit"] == 3000
    assert db.rows["c-1"]["subscribe_list"] == '[{"app": "Payroll"}]'


def test_sync_all_reports_each_target_without_stopping() -> None:
    db = UpsertingDB()
    clients = SyncClients(
        transactions=StaticClient(UpstreamError("transaction service down")),
        credit=StaticClient([{"id": 5, "type": "credit"}]),
        customers=StaticClient([{"guid": "c-9"}]),
    )

    outcome = sync_all(db=db, clients=clients, config=SyncConfig())

    assert outcome["ok"] is False
    assert [result["name"] for result in outcome["results"]] == ["customers", "transactions", "credit"]
    assert outcome["results"][1] == {"name": "transactions", "ok": False, "error": "transaction service down"}
    assert outcome["results"][2]["ok"] is True


class CustomersTableDownDB(UpsertingDB):
    def fetch_one(self, query: str, params: Any = None) -> dict[str, Any] | None:
        if "cms_customers" in query:
            raise OperationalError(query, {}, Exception("server closed the connection"))
        return super().fetch_one(query, params)


def test_sync_all_continues_after_database_failure() -> None:
    db = CustomersTableDownDB()
    clients = SyncClients(
        transactions=StaticClient([_transaction("t-1")]),
        credit=StaticClient([{"id": 5, "type": "credit"}]),
        customers=StaticClient([{"guid": "c-9"}]),
    )

    outcome = sync_all(db=db, clients=clients, config=SyncConfig())

    assert outcome["ok"] is False
    assert outcome["results"][0]["name"] == "customers"
    assert outcome["results"][0]["ok"] is False
    assert "server closed the connection" in outcome["results"][0]["error"]
    assert clients.customers.calls == []
    assert len(clients.transactions.calls) == 1
    assert len(clients.credit.calls) == 1
    assert outcome["results"][1]["ok"] is True
    assert outcome["results"][2]["ok"] is True
