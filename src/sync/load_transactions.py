"""Sync purchase transactions and their line items from the transaction service."""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from src.common.schema_map import (
    TRANSACTION_COLUMNS,
    TRANSACTION_DETAIL_COLUMNS,
    normalize_transaction,
    normalize_transaction_detail,
)
from src.sync.clients import TransactionApiClient
from src.sync.upsert import SyncDatabase, SyncRun, build_upsert_sql

logger = logging.getLogger(__name__)

TRANSACTION_UPSERT_SQL = build_upsert_sql(
    "transactions",
    TRANSACTION_COLUMNS,
    ["guid"],
    update_columns=[
        column
        for column in TRANSACTION_COLUMNS
        if column not in {"created_at", "created_by_guid", "created_by_name"}
    ],
    extra_updates={"updated_at": "NOW()"},
)

TRANSACTION_DETAIL_UPSERT_SQL = build_upsert_sql(
    "transaction_details",
    TRANSACTION_DETAIL_COLUMNS,
    ["guid"],
    update_columns=[column for column in TRANSACTION_DETAIL_COLUMNS if column != "transaction_guid"],
)


def as_date(value: Any) -> date | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def latest_created_date(db: SyncDatabase, table_name: str) -> date | None:
    """High-water mark: date of the newest `created_at` already stored."""

    row = db.fetch_one(f"SELECT MAX(created_at) AS last_date FROM {table_name}")
    return as_date(row.get("last_date")) if row else None


def resolve_transaction_window(
    db: SyncDatabase,
    *,
    start_date: date | None,
    end_date: date | None,
    lookback_days: int,
    today: date | None = None,
) -> tuple[date, date]:
    """Start one day before the newest stored transaction so late updates are re-read."""

    current_day = today or date.today()
    if start_date is None:
        last_date = latest_created_date(db, "transactions")
        if last_date is not None:
            start_date = last_date - timedelta(days=1)
        else:
            start_date = current_day - timedelta(days=lookback_days)
    resolved_end = end_date or current_day
    if start_date > resolved_end:
        raise ValueError("start_date must be on or before end_date.")
    return start_date, resolved_end


def upsert_transaction(db: SyncDatabase, record: dict[str, Any]) -> int:
    """Upsert one transaction and its details; returns the number of failed details."""

    row = normalize_transaction(record)
    db.execute(TRANSACTION_UPSERT_SQL, row)

    failed_details = 0
    details = record.get("transaction_detail") or []
    for detail in details if isinstance(details, list) else []:
        detail_row = normalize_transaction_detail(detail or {}, row["guid"])
        if not detail_row["guid"]:
            logger.warning("Skipping transaction detail without guid for %s", row["guid"])
            continue
        try:
            db.execute(TRANSACTION_DETAIL_UPSERT_SQL, detail_row)
        except SQLAlchemyError as exc:
            failed_details += 1
            logger.warning(
                "Failed to upsert transaction detail %s for %s: %s",
                detail_row["guid"],
                row["guid"],
                exc,
            )
    return failed_details


def sync_transactions(
    db: SyncDatabase,
    client: TransactionApiClient,
    *,
    start_date: date | None = None,
    end_date: date | None = None,
    customer_guid: str | None = None,
    status: str | None = None,
    default_status: str = "finished",
    lookback_days: int = 30,
    today: date | None = None,
) -> dict[str, Any]:
    """Fetch every transaction in the window and upsert it by guid."""

    window_start, window_end = resolve_transaction_window(
        db,
        start_date=start_date,
        end_date=end_date,
        lookback_days=lookback_days,
        today=today,
    )
    logger.info("Syncing transactions from %s to %s", window_start, window_end)

    records = client.fetch_all(
        start_date=window_start,
        end_date=window_end,
        status=status or default_status,
        customer_guid=customer_guid,
    )

    run = SyncRun(target="transactions")
    detail_errors = 0
    for record in records:
        guid = str(record.get("guid") or "").strip()
        if not guid:
            run.failed(None, "Transaction guid is required")
            continue
        try:
            detail_errors += upsert_transaction(db, record)
        except SQLAlchemyError as exc:
            logger.warning("Failed to upsert transaction %s: %s", guid, exc)
            run.failed(guid, str(getattr(exc, "orig", None) or exc))
            continue
        run.succeeded(guid)

    logger.info(
        "Transaction sync finished: %s succeeded, %s failed",
        run.success_count,
        run.error_count,
    )
    return run.summary(
        fetched_count=len(records),
        detail_error_count=detail_errors,
        start_date=window_start.isoformat(),
        end_date=window_end.isoformat(),
    )
