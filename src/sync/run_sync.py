"""Run upstream syncs from the command line or the API."""

from __future__ import annotations

import argparse
import json
import logging
from dataclasses import dataclass
from datetime import date
from typing import Any

import requests
from sqlalchemy.exc import SQLAlchemyError

from src.api.db_access import DatabaseClient
from src.common.logging import configure_logging
from src.common.settings import get_settings
from src.sync.clients import CreditManagerApiClient, CustomerApiClient, TransactionApiClient
from src.sync.ddl import apply_dashboard_ddl
from src.sync.load_credit_transactions import sync_credit_transactions
from src.sync.load_customers import sync_customers
from src.sync.load_transactions import sync_transactions
from src.sync.sync_config import SyncConfig, get_sync_config
from src.sync.upsert import SyncDatabase
from src.sync.upstream import UpstreamError

logger = logging.getLogger(__name__)

SYNC_TARGETS = ("customers", "transactions", "credit")


@dataclass(frozen=True)
class SyncClients:
    transactions: TransactionApiClient
    credit: CreditManagerApiClient
    customers: CustomerApiClient


def build_sync_clients(config: SyncConfig, *, session: requests.Session | None = None) -> SyncClients:
    shared_session = session or requests.Session()
    return SyncClients(
        transactions=TransactionApiClient(
            url=config.transaction_api_url,
            api_key=config.transaction_api_key,
            page_size=config.transaction_page_size,
            max_pages=config.max_pages,
            timeout_seconds=config.request_timeout_seconds,
            session=shared_session,
        ),
        credit=CreditManagerApiClient(
            url=config.credit_manager_api_url,
            api_token=config.credit_manager_api_token,
            page_size=config.credit_page_size,
            max_pages=config.max_pages,
            timeout_seconds=config.request_timeout_seconds,
            session=shared_session,
        ),
        customers=CustomerApiClient(
            url=config.customer_api_url,
            api_key=config.customer_api_key,
            max_pages=config.max_pages,
            timeout_seconds=config.request_timeout_seconds,
            session=shared_session,
        ),
    )


def run_target(
    target: str,
    *,
    db: SyncDatabase,
    clients: SyncClients,
    config: SyncConfig,
    start_date: date | None = None,
    end_date: date | None = None,
    incremental: bool = True,
) -> dict[str, Any]:
    if target == "transactions":
        return sync_transactions(
            db,
            clients.transactions,
            start_date=start_date,
            end_date=end_date,
            default_status=config.transaction_default_status,
            lookback_days=config.transaction_lookback_days,
        )
    if target == "credit":
        return sync_credit_transactions(
            db,
            clients.credit,
            start_date=start_date,
            end_date=end_date,
            fallback_start=date.fromisoformat(config.credit_fallback_start_date),
        )
    if target == "customers":
        return sync_customers(
            db,
            clients.customers,
            incremental=incremental,
            start_date=start_date,
            end_date=end_date,
            default_page_size=config.customer_page_size,
            max_page_size=config.customer_max_page_size,
        )
    raise ValueError(f"Unknown sync target: {target!r}")


def sync_all(*, db: SyncDatabase, clients: SyncClients, config: SyncConfig) -> dict[str, Any]:
    """Customers first so new transactions can join to their buyers; one failure does not stop the rest."""

    outcomes: list[dict[str, Any]] = []
    for target in SYNC_TARGETS:
        try:
            summary = run_target(target, db=db, clients=clients, config=config, incremental=True)
        except (UpstreamError, ValueError) as exc:
            logger.error("Sync target %s failed: %s", target, exc)
            outcomes.append({"name": target, "ok": False, "error": str(exc)})
            continue
        except SQLAlchemyError as exc:
            logger.exception("Sync target %s failed on the database", target)
            outcomes.append({"name": target, "ok": False, "error": str(getattr(exc, "orig", None) or exc)})
            continue
        outcomes.append(
            {
                "name": target,
                "ok": summary["error_count"] == 0,
                "success_count": summary["success_count"],
                "error_count": summary["error_count"],
                "total_processed": summary["total_processed"],
            }
        )
    return {"ok": all(outcome["ok"] for outcome in outcomes), "results": outcomes}


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Sync dashboard tables from upstream marketplace APIs")
    parser.add_argument("--target", choices=[*SYNC_TARGETS, "all"], default="all")
    parser.add_argument("--start-date", type=date.fromisoformat, default=None)
    parser.add_argument("--end-date", type=date.fromisoformat, default=None)
    parser.add_argument("--full", action="store_true", help="Disable incremental customer sync")
    parser.add_argument("--apply-ddl", action="store_true")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    configure_logging()
    settings = get_settings()
    config = get_sync_config()

    db = DatabaseClient(
        database_url=settings.DATABASE_URL,
        ssl_enabled=settings.DATABASE_SSL,
        pool_size=settings.DB_POOL_SIZE,
    )
    if args.apply_ddl:
        apply_dashboard_ddl(db.engine)

    clients = build_sync_clients(config)
    if args.target == "all":
        summary = sync_all(db=db, clients=clients, config=config)
    else:
        summary = run_target(
            args.target,
            db=db,
            clients=clients,
            config=config,
            start_date=args.start_date,
            end_date=args.end_date,
            incremental=not args.full,
        )
        summary.pop("results", None)
    print(json.dumps(summary, indent=2, default=str))


if __name__ == "__main__":
    main()
