# This file defines customer endpoints for listings, stats, detail views, and exports.
# It exists so the growth team can segment customers by referral, subscription, and churn status.
# The export reuses the listing filters so the file matches what the table shows.
# Static paths are registered before the guid path so they are never captured as identifiers.

from __future__ import annotations

from datetime import date
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, Response

from src.api.api_config import ApiConfig
from src.api.dependencies import get_config, get_customer_service
from src.api.error_handlers import bad_request, not_found
from src.api.pagination import parse_page_params
from src.api.response_envelope import build_list_envelope, build_object_envelope
from src.api.schemas.customer_schemas import (
    ApplicationListResponse,
    CustomerDetailResponse,
    CustomerListResponse,
    CustomerStatsResponse,
)
from src.api.services.customer_service import (
    CUSTOMER_EXPORT_COLUMNS,
    CustomerFilters,
    CustomerService,
    build_customer_filter,
)
from src.api.spreadsheet import build_xlsx, xlsx_response

router = APIRouter(prefix="/customers", tags=["customers"])
CustomerServiceDep = Annotated[CustomerService, Depends(get_customer_service)]
ConfigDep = Annotated[ApiConfig, Depends(get_config)]


def _filters(
    *,
    search: str | None,
    referral_partner: str | None,
    status: str | None,
    app: str | None,
    churn: str | None,
) -> CustomerFilters:
    filters = CustomerFilters(
        search=search,
        referral_partner=referral_partner,
        status=status,
        app=app,
        churn=churn,
    )
    try:
        build_customer_filter(filters)
    except ValueError as exc:
        raise bad_request(str(exc), error_code="INVALID_QUERY_PARAM") from exc
    return filters


@router.get("", response_model=CustomerListResponse)
def list_customers(
    request: Request,
    service: CustomerServiceDep,
    config: ConfigDep,
    page: str | None = Query(default=None),
    limit: str | None = Query(default=None),
    search: str | None = Query(default=None),
    referral_partner: str | None = Query(default=None),
    status: str | None = Query(default=None),
    app: str | None = Query(default=None),
    churn: str | None = Query(default=None),
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
        referral_partner=referral_partner,
        status=status,
        app=app,
        churn=churn,
    )
    result = service.list_customers(filters=filters, pagination=pagination)
    return build_list_envelope(
        resource_key="customers",
        request_id=request.state.request_id,
        rows=result["rows"],
        pagination=pagination,
        total_count=result["total_count"],
        extra={"referral_partners": service.list_referral_partner_options()},
    )


@router.get("/stats", response_model=CustomerStatsResponse)
def customer_stats(request: Request, service: CustomerServiceDep) -> dict[str, object]:
    return build_object_envelope(
        request_id=request.state.request_id,
        data=service.get_stats(),
        resource_key="stats",
    )


@router.get("/applications", response_model=ApplicationListResponse)
def list_applications(request: Request, service: CustomerServiceDep) -> dict[str, object]:
    applications = service.list_applications()
    return build_object_envelope(
        request_id=request.state.request_id,
        data=applications,
        resource_key="applications",
        extra={"count": len(applications)},
    )


@router.get("/export")
def export_customers(
    service: CustomerServiceDep,
    search: str | None = Query(default=None),
    referral_partner: str | None = Query(default=None),
    status: str | None = Query(default=None),
    app: str | None = Query(default=None),
    churn: str | None = Query(default=None),
) -> Response:
    filters = _filters(
        search=search,
        referral_partner=referral_partner,
        status=status,
        app=app,
        churn=churn,
    )
    rows = service.export_rows(filters=filters)
    if not rows:
        raise not_found("No customers match the selected filters", error_code="NO_DATA")

    content = build_xlsx(rows, columns=CUSTOMER_EXPORT_COLUMNS, sheet_name="Customers")
    return xlsx_response(content, file_name=f"customers_{date.today().isoformat()}.xlsx")


@router.get("/{guid}", response_model=CustomerDetailResponse)
def customer_detail(request: Request, service: CustomerServiceDep, guid: str) -> dict[str, object]:
    customer = service.get_customer(guid)
    if customer is None:
        raise not_found(f"Customer {guid} not found", error_code="CUSTOMER_NOT_FOUND")
    return build_object_envelope(
        request_id=request.state.request_id,
        data=customer,
        resource_key="customer",
    )
