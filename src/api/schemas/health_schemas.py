# This file defines response schemas for the health, readiness, and version endpoints.
# Every operational payload echoes the request id so probe failures can be traced in logs.

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class HealthResponse(BaseModel):
    request_id: str
    status: str
    environment: str
    service_name: str
    timestamp: datetime


class ReadinessResponse(BaseModel):
    request_id: str
    db_connected: bool
    customer_source_ready: bool
    transaction_source_ready: bool
    missing_tables: list[str]
    ready: bool
    database: str
    timestamp: datetime


class VersionResponse(BaseModel):
    request_id: str
    service_name: str
    api_prefix: str
    app_version: str
    git_commit: str | None = None
    timestamp: datetime
