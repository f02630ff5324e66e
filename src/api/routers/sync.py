# This file defines endpoints that trigger upstream syncs on demand.
# It exists so operators can refresh dashboard tables without shell access.
# Runs are synchronous; the response carries per-item outcomes and nothing is rolled back.

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Request

from src.api.dependencies import get_sync_service
from src.api.error_handlers import bad_request
from src.api.response_envelope import utc_now_iso
from src.api.schemas.sync_schemas import (
    CustomerSyncRequest,
    SyncAllResponse,
    SyncRunResponse,
    SyncWindowRequest,
    TransactionSyncRequest,
)
from src.api.services.sync_service import SyncService

router = APIRouter(prefix="/sync", tags=["sync"])
SyncServiceDep = Annotated[SyncService, Depends(get_sync_service)]


def _with_trace(request: Request, summary: dict[str, object]) -> dict[str, object]:
    return {**summary, "request_id": request.state.request_id, "generated_at": utc_now_iso()}


@router.post("/transactions", response_model=SyncRunResponse)
def sync_transactions(
    request: Request,
    service: SyncServiceDep,
    body: TransactionSyncRequest | None = None,
) -> dict[str, object]:
    body = body or TransactionSyncRequest()
    try:
        summary = service.sync_transactions(
            start_date=body.start_date,
            end_date=body.end_date,
            customer_guid=body.customer_guid,
            status=body.status,
        )
    except ValueError as exc:
        raise bad_request(str(exc), error_code="INVALID_REQUEST") from exc
    return _with_trace(request, summary)


@router.post("/credit-transactions", response_model=SyncRunResponse)
def sync_credit_transactions(
    request: Request,
    service: SyncServiceDep,
    body: SyncWindowRequest | None = None,
) -> dict[str, object]:
    body = body or SyncWindowRequest()
    try:
        summary = service.sync_credit_transactions(start_date=body.start_date, end_date=body.end_date)
    except ValueError as exc:
        raise bad_request(str(exc), error_code="INVALID_REQUEST") from exc
    return _with_trace(request, summary)


@router.post("/customers", response_model=SyncRunResponse)
def sync_customers(
    request: Request,
    service: SyncServiceDep,
    body: CustomerSyncRequest | None = None,
) -> dict[str, object]:
    body = body or CustomerSyncRequest()
    try:
        summary = service.sync_customers(
            incremental=body.incremental,
            start_date=body.start_date,
            end_date=body.end_date,
            page=body.page,
            page_size=body.page_size,
        )
    except ValueError as exc:
        raise bad_request(str(exc), error_code="INVALID_REQUEST") from exc
    return _with_trace(request, summary)


@router.post("/all", response_model=SyncAllResponse)
def sync_everything(request: Request, service: SyncServiceDep) -> dict[str, object]:
    return _with_trace(request, service.sync_all())
