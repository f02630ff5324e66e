# This file defines growth dashboard endpoints.
# It exists so the landing page, daily, weekly, and chart views each get one aggregated payload.
# Chart requests require an explicit, ordered date range.

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request

from src.api.dependencies import get_dashboard_service
from src.api.error_handlers import bad_request
from src.api.query_builder import parse_date
from src.api.response_envelope import build_object_envelope, utc_now_iso
from src.api.schemas.dashboard_schemas import (
    ChartResponse,
    DailySummaryResponse,
    DashboardSummaryResponse,
    WeeklySummaryResponse,
)
from src.api.services.dashboard_service import DEFAULT_WEEKS, MAX_WEEKS, DashboardService

router = APIRouter(prefix="/dashboard", tags=["dashboard"])
DashboardServiceDep = Annotated[DashboardService, Depends(get_dashboard_service)]


def _with_envelope(request: Request, payload: dict[str, object]) -> dict[str, object]:
    return {**payload, "request_id": request.state.request_id, "generated_at": utc_now_iso()}


@router.get("", response_model=DashboardSummaryResponse)
def dashboard_summary(request: Request, service: DashboardServiceDep) -> dict[str, object]:
    return _with_envelope(request, service.get_summary())


@router.get("/daily", response_model=DailySummaryResponse)
def dashboard_daily(request: Request, service: DashboardServiceDep) -> dict[str, object]:
    return _with_envelope(request, service.get_daily_summary())


@router.get("/weekly", response_model=WeeklySummaryResponse)
def dashboard_weekly(
    request: Request,
    service: DashboardServiceDep,
    weeks: int = Query(default=DEFAULT_WEEKS, ge=1, le=MAX_WEEKS),
) -> dict[str, object]:
    return build_object_envelope(
        request_id=request.state.request_id,
        data=service.get_weekly_summary(weeks=weeks),
        resource_key="weeks",
    )


@router.get("/charts", response_model=ChartResponse)
def dashboard_charts(
    request: Request,
    service: DashboardServiceDep,
    start_date: str | None = Query(default=None),
    end_date: str | None = Query(default=None),
) -> dict[str, object]:
    try:
        parsed_start = parse_date(start_date, field_name="start_date")
        parsed_end = parse_date(end_date, field_name="end_date")
        if parsed_start is None or parsed_end is None:
            raise ValueError("start_date and end_date are required")
        payload = service.get_charts(start_date=parsed_start, end_date=parsed_end)
    except ValueError as exc:
        raise bad_request(str(exc), error_code="INVALID_QUERY_PARAM") from exc
    return _with_envelope(request, payload)
