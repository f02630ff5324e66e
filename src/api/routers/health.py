# This file defines liveness, readiness, and version endpoints for the dashboard API.
# Readiness needs the synced customer and transaction tables; the other dashboard
# tables are listed under `missing_tables` so operators know when DDL was skipped.

from __future__ import annotations

import subprocess
from datetime import UTC, datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Request

from src.api.api_config import ApiConfig
from src.api.db_access import DatabaseClient
from src.api.dependencies import get_config, get_database_client
from src.api.schemas.health_schemas import HealthResponse, ReadinessResponse, VersionResponse
from src.sync.ddl import DDL_ORDER

router = APIRouter(tags=["health"])
ConfigDep = Annotated[ApiConfig, Depends(get_config)]
DBDep = Annotated[DatabaseClient, Depends(get_database_client)]

CUSTOMER_SOURCE_TABLE = "cms_customers"
TRANSACTION_SOURCE_TABLE = "transactions"
DASHBOARD_TABLES = tuple(file_name.removesuffix(".sql") for file_name in DDL_ORDER)


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


def _git_commit() -> str | None:
    try:
        completed = subprocess.run(
            ["git", "rev-parse", "--short", "HEAD"],
            check=True,
            capture_output=True,
            text=True,
        )
    except (OSError, subprocess.CalledProcessError):
        return None
    return completed.stdout.strip() or None


@router.get("/health", response_model=HealthResponse)
def health(request: Request, config: ConfigDep) -> dict[str, object]:
    return {
        "request_id": request.state.request_id,
        "status": "ok",
        "environment": config.environment,
        "service_name": config.api_name,
        "timestamp": _utc_now(),
    }


@router.get("/ready", response_model=ReadinessResponse)
def ready(request: Request, db: DBDep) -> dict[str, object]:
    db_connected = db.can_connect()
    missing_tables = (
        [table for table in DASHBOARD_TABLES if not db.table_exists(table)]
        if db_connected
        else list(DASHBOARD_TABLES)
    )
    customer_source_ready = db_connected and CUSTOMER_SOURCE_TABLE not in missing_tables
    transaction_source_ready = db_connected and TRANSACTION_SOURCE_TABLE not in missing_tables

    return {
        "request_id": request.state.request_id,
        "db_connected": db_connected,
        "customer_source_ready": customer_source_ready,
        "transaction_source_ready": transaction_source_ready,
        "missing_tables": missing_tables,
        "ready": customer_source_ready and transaction_source_ready,
        "database": "reachable" if db_connected else "unreachable",
        "timestamp": _utc_now(),
    }


@router.get("/version", response_model=VersionResponse)
def version(request: Request, config: ConfigDep) -> dict[str, object]:
    return {
        "request_id": request.state.request_id,
        "service_name": config.api_name,
        "api_prefix": config.api_prefix,
        "app_version": config.app_version,
        "git_commit": _git_commit(),
        "timestamp": _utc_now(),
    }
