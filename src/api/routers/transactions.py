# This file defines purchase transaction endpoints.
# It exists so clients can list, summarise, and filter marketplace purchases.
# Listing and stats accept the same filters and therefore report matching numbers.
# Pagination and dates are parsed leniently, and out-of-range values are rejected with 400.

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request

from src.api.api_config import ApiConfig
from src.api.dependencies import get_config, get_transaction_service
from src.api.error_handlers import bad_request
from src.api.pagination import parse_page_params
from src.api.query_builder import parse_date
from src.api.response_envelope import build_list_envelope, build_object_envelope
from src.api.schemas.transaction_schemas import (
    LastTransactionDateResponse,
    PaymentChannelListResponse,
    TransactionListResponse,
    TransactionStatsResponse,
)
from src.api.services.transaction_service import TransactionFilters, TransactionService

router = APIRouter(prefix="/transactions", tags=["transactions"])
TransactionServiceDep = Annotated[TransactionService, Depends(get_transaction_service)]
ConfigDep = Annotated[ApiConfig, Depends(get_config)]


def _filters(
    *,
    search: str | None,
    status: str | None,
    start_date: str | None,
    end_date: str | None,
    customer_guid: str | None,
    payment_channel: str | None,
    currency: str | None,
    referral: str | None,
) -> TransactionFilters:
    try:
        parsed_start = parse_date(start_date, field_name="start_date")
        parsed_end = parse_date(end_date, field_name="end_date")
    except ValueError as exc:
        raise bad_request(str(exc), error_code="INVALID_QUERY_PARAM") from exc
    if parsed_start and parsed_end and parsed_start > parsed_end:
        raise bad_request("start_date must be on or before end_date", error_code="INVALID_QUERY_PARAM")
    return TransactionFilters(
        search=search,
        status=status,
        start_date=parsed_start,
        end_date=parsed_end,
        customer_guid=customer_guid,
        payment_channel=payment_channel,
        currency=currency,
        referral=referral,
    )


@router.get("", response_model=TransactionListResponse)
def list_transactions(
    request: Request,
    service: TransactionServiceDep,
    config: ConfigDep,
    page: str | None = Query(default=None),
    limit: str | None = Query(default=None),
    search: str | None = Query(default=None),
    status: str | None = Query(default=None),
    start_date: str | None = Query(default=None),
    end_date: str | None = Query(default=None),
    customer_guid: str | None = Query(default=None),
    payment_channel: str | None = Query(default=None),
    currency: str | None = Query(default=None),
    referral: str | None = Query(default=None),
) -> dict[str, object]:
    try:
        pagination = parse_page_params(
            page=page,
            limit=limit,
            default_page_size=config.default_page_size,
            max_page_size=config.max_page_size,
        )
    except ValueError as exc:
        raise bad_request(str(exc), error_code="INVALID_QUERY_PARAM") from exc

    filters = _filters(
        search=search,
        status=status,
        start_date=start_date,
        end_date=end_date,
        customer_guid=customer_guid,
        payment_channel=payment_channel,
        currency=currency,
        referral=referral,
    )
    result = service.list_transactions(filters=filters, pagination=pagination)
    return build_list_envelope(
        resource_key="transactions",
        request_id=request.state.request_id,
        rows=result["rows"],
        pagination=pagination,
        total_count=result["total_count"],
        extra={"unique_customer_count": result["unique_customer_count"]},
    )


@router.get("/stats", response_model=TransactionStatsResponse)
def transaction_stats(
    request: Request,
    service: TransactionServiceDep,
    search: str | None = Query(default=None),
    status: str | None = Query(default=None),
    start_date: str | None = Query(default=None),
    end_date: str | None = Query(default=None),
    customer_guid: str | None = Query(default=None),
    payment_channel: str | None = Query(default=None),
    currency: str | None = Query(default=None),
    referral: str | None = Query(default=None),
) -> dict[str, object]:
    filters = _filters(
        search=search,
        status=status,
        start_date=start_date,
        end_date=end_date,
        customer_guid=customer_guid,
        payment_channel=payment_channel,
        currency=currency,
        referral=referral,
    )
    return build_object_envelope(
        request_id=request.state.request_id,
        data=service.get_stats(filters=filters),
        resource_key="stats",
    )


@router.get("/payment-channels", response_model=PaymentChannelListResponse)
def payment_channels(request: Request, service: TransactionServiceDep) -> dict[str, object]:
    return build_object_envelope(
        request_id=request.state.request_id,
        data=service.list_payment_channels(),
        resource_key="payment_channels",
    )


@router.get("/last-date", response_model=LastTransactionDateResponse)
def last_transaction_date(request: Request, service: TransactionServiceDep) -> dict[str, object]:
    return build_object_envelope(
        request_id=request.state.request_id,
        data=service.get_last_transaction_date(),
        resource_key="last_date",
    )
