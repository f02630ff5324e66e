# This file defines spreadsheet export endpoints.
# It exists so the growth team can pull credit usage into Excel for offline review.
# Both dates are required; empty ranges return 404 instead of a blank workbook.

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response

from src.api.dependencies import get_export_service
from src.api.error_handlers import bad_request, not_found
from src.api.query_builder import parse_date
from src.api.services.export_service import CREDIT_EXPORT_COLUMNS, ExportService
from src.api.spreadsheet import build_xlsx, xlsx_response

router = APIRouter(prefix="/exports", tags=["exports"])
ExportServiceDep = Annotated[ExportService, Depends(get_export_service)]


@router.get("/credit-transactions")
def export_credit_transactions(
    service: ExportServiceDep,
    start_date: str | None = Query(default=None),
    end_date: str | None = Query(default=None),
) -> Response:
    try:
        parsed_start = parse_date(start_date, field_name="start_date")
        parsed_end = parse_date(end_date, field_name="end_date")
    except ValueError as exc:
        raise bad_request(str(exc), error_code="INVALID_QUERY_PARAM") from exc
    if parsed_start is None or parsed_end is None:
        raise bad_request("start_date and end_date are required", error_code="INVALID_QUERY_PARAM")
    if parsed_start > parsed_end:
        raise bad_request("start_date must be on or before end_date", error_code="INVALID_QUERY_PARAM")

    rows = service.credit_transaction_rows(start_date=parsed_start, end_date=parsed_end)
    if not rows:
        raise not_found("No credit transactions found for the selected date range", error_code="NO_DATA")

    content = build_xlsx(rows, columns=CREDIT_EXPORT_COLUMNS, sheet_name="Credit Transactions")
    return xlsx_response(
        content,
        file_name=f"credit-transactions-{parsed_start.isoformat()}-to-{parsed_end.isoformat()}.xlsx",
    )
