"""Sync credit top-up and usage rows from the credit manager."""

from __future__ import annotations

import logging
from datetime import date
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from src.common.schema_map import CREDIT_TRANSACTION_COLUMNS, normalize_credit_transaction
from src.sync.clients import CreditManagerApiClient
from src.sync.load_transactions import latest_created_date
from src.sync.upsert import SyncDatabase, SyncRun, build_upsert_sql

logger = logging.getLogger(__name__)

CREDIT_TRANSACTION_UPSERT_SQL = build_upsert_sql(
    "credit_manager_transactions",
    CREDIT_TRANSACTION_COLUMNS,
    ["id"],
    update_columns=[column for column in CREDIT_TRANSACTION_COLUMNS if column != "created_at"],
    value_expressions={"updated_at": "COALESCE(:updated_at, NOW())"},
)


def resolve_credit_window(
    db: SyncDatabase,
    *,
    start_date: date | None,
    end_date: date | None,
    fallback_start: date,
    today: date | None = None,
) -> tuple[date, date]:
    current_day = today or date.today()
    if start_date is None:
        start_date = latest_created_date(db, "credit_manager_transactions") or fallback_start
    resolved_end = end_date or current_day
    if start_date > resolved_end:
        raise ValueError("start_date must be on or before end_date.")
    return start_date, resolved_end


def sync_credit_transactions(
    db: SyncDatabase,
    client: CreditManagerApiClient,
    *,
    start_date: date | None = None,
    end_date: date | None = None,
    fallback_start: date = date(2024, 1, 1),
    today: date | None = None,
) -> dict[str, Any]:
    """Fetch credit manager rows since the last stored day and upsert them by id."""

    window_start, window_end = resolve_credit_window(
        db,
        start_date=start_date,
        end_date=end_date,
        fallback_start=fallback_start,
        today=today,
    )
    logger.info("Syncing credit transactions from %s to %s", window_start, window_end)

    records = client.fetch_all(start_date=window_start, end_date=window_end)

    run = SyncRun(target="credit_transactions")
    for record in records:
        row = normalize_credit_transaction(record)
        row_id = str(row.get("id") or "").strip()
        if not row_id:
            run.failed(None, "Credit transaction id is required")
            continue
        try:
            db.execute(CREDIT_TRANSACTION_UPSERT_SQL, row)
        except SQLAlchemyError as exc:
            logger.warning("Failed to upsert credit transaction %s: %s", row_id, exc)
            run.failed(row_id, str(getattr(exc, "orig", None) or exc))
            continue
        run.succeeded(row_id)

    return run.summary(
        fetched_count=len(records),
        start_date=window_start.isoformat(),
        end_date=window_end.isoformat(),
    )
