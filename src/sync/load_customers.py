"""Sync customer profiles from the CMS customer list."""

from __future__ import annotations

import json
import logging
from datetime import date, timedelta
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from src.common.schema_map import CUSTOMER_COLUMNS, normalize_customer
from src.sync.clients import CustomerApiClient
from src.sync.load_transactions import latest_created_date
from src.sync.upsert import SyncDatabase, SyncRun, build_upsert_sql

logger = logging.getLogger(__name__)

CUSTOMER_UPSERT_SQL = build_upsert_sql(
    "cms_customers",
    CUSTOMER_COLUMNS,
    ["guid"],
    value_expressions={"subscribe_list": "CAST(:subscribe_list AS JSONB)"},
)


def clamp_page_size(requested: int | None, *, default: int, maximum: int) -> int:
    if not requested:
        return default
    return max(1, min(int(requested), maximum))


def resolve_customer_window(
    db: SyncDatabase,
    *,
    incremental: bool,
    start_date: date | None,
    end_date: date | None,
    today: date | None = None,
) -> tuple[date | None, date | None]:
    """Incremental runs restart one day before the newest stored customer."""

    current_day = today or date.today()
    if incremental and start_date is None:
        last_date = latest_created_date(db, "cms_customers") or current_day
        start_date = last_date - timedelta(days=1)
        end_date = end_date or current_day
    if start_date is not None and end_date is None:
        end_date = current_day
    if start_date is not None and end_date is not None and start_date > end_date:
        raise ValueError("start_date must be on or before end_date.")
    return start_date, end_date


def sync_customers(
    db: SyncDatabase,
    client: CustomerApiClient,
    *,
    incremental: bool = False,
    start_date: date | None = None,
    end_date: date | None = None,
    page: int = 1,
    page_size: int | None = None,
    default_page_size: int = 500,
    max_page_size: int = 3000,
    today: date | None = None,
) -> dict[str, Any]:
    """Fetch customers page by page and upsert them by guid."""

    window_start, window_end = resolve_customer_window(
        db,
        incremental=incremental,
        start_date=start_date,
        end_date=end_date,
        today=today,
    )
    limit = clamp_page_size(page_size, default=default_page_size, maximum=max_page_size)
    logger.info(
        "Syncing customers (incremental=%s, window=%s..%s, limit=%s)",
        incremental,
        window_start,
        window_end,
        limit,
    )

    records = client.fetch_all(
        page_size=limit,
        start_page=max(page, 1),
        start_date=window_start,
        end_date=window_end,
    )

    run = SyncRun(target="customers")
    seen: set[str] = set()
    for record in records:
        row = normalize_customer(record)
        guid = row["guid"]
        if not guid:
            run.failed(None, "Missing guid")
            continue
        if guid in seen:
            run.skipped(guid, "Duplicate guid in payload, skipped")
            continue
        seen.add(guid)

        if row["subscribe_list"] is not None:
            row["subscribe_list"] = json.dumps(row["subscribe_list"])
        try:
            db.execute(CUSTOMER_UPSERT_SQL, row)
        except SQLAlchemyError as exc:
            logger.warning("Failed to upsert customer %s: %s", guid, exc)
            run.failed(guid, str(getattr(exc, "orig", None) or exc))
            continue
        run.succeeded(guid)

    return run.summary(
        fetched_count=len(records),
        limit=limit,
        start_date=window_start.isoformat() if window_start else None,
        end_date=window_end.isoformat() if window_end else None,
    )
