# This file exposes the upstream sync jobs to API routes.
# It exists so HTTP-triggered syncs use the same loaders and defaults as the command-line runner.
# Each call runs synchronously within the request and returns the per-item summary.
# Upstream and validation failures propagate to the shared error handlers.

from __future__ import annotations

from datetime import date
from typing import Any

from src.sync.load_credit_transactions import sync_credit_transactions
from src.sync.load_customers import sync_customers
from src.sync.load_transactions import sync_transactions
from src.sync.run_sync import SyncClients, sync_all
from src.sync.sync_config import SyncConfig
from src.sync.upsert import SyncDatabase


class SyncService:
    """Thin adapter from HTTP requests to sync loaders."""

    def __init__(self, *, db: SyncDatabase, clients: SyncClients, config: SyncConfig) -> None:
        self.db = db
        self.clients = clients
        self.config = config

    def sync_transactions(
        self,
        *,
        start_date: date | None = None,
        end_date: date | None = None,
        customer_guid: str | None = None,
        status: str | None = None,
    ) -> dict[str, Any]:
        return sync_transactions(
            self.db,
            self.clients.transactions,
            start_date=start_date,
            end_date=end_date,
            customer_guid=customer_guid,
            status=status,
            default_status=self.config.transaction_default_status,
            lookback_days=self.config.transaction_lookback_days,
        )

    def sync_credit_transactions(
        self,
        *,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> dict[str, Any]:
        return sync_credit_transactions(
            self.db,
            self.clients.credit,
            start_date=start_date,
            end_date=end_date,
            fallback_start=date.fromisoformat(self.config.credit_fallback_start_date),
        )

    def sync_customers(
        self,
        *,
        incremental: bool = False,
        start_date: date | None = None,
        end_date: date | None = None,
        page: int = 1,
        page_size: int | None = None,
    ) -> dict[str, Any]:
        return sync_customers(
            self.db,
            self.clients.customers,
            incremental=incremental,
            start_date=start_date,
            end_date=end_date,
            page=page,
            page_size=page_size,
            default_page_size=self.config.customer_page_size,
            max_page_size=self.config.customer_max_page_size,
        )

    def sync_all(self) -> dict[str, Any]:
        return sync_all(db=self.db, clients=self.clients, config=self.config)
