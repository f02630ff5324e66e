# This file renders query rows into downloadable Excel workbooks.
# It exists so export endpoints share one layout for headers, column widths, and file headers.
# Workbooks are written in memory with pandas and openpyxl and returned as attachments.
# Keeping rendering here leaves export services responsible only for selecting rows.

from __future__ import annotations

import io
from collections.abc import Sequence
from typing import Any

import pandas as pd
from fastapi import Response
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.worksheet.worksheet import Worksheet

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
MAX_COLUMN_WIDTH = 50


def build_xlsx(
    rows: Sequence[dict[str, Any]],
    *,
    columns: Sequence[tuple[str, str]],
    sheet_name: str,
    add_row_number: bool = True,
) -> bytes:
    """Render rows to an xlsx workbook; `columns` maps row keys to header labels in order."""

    frame = pd.DataFrame(list(rows), columns=[key for key, _ in columns])
    for column in frame.columns:
        if isinstance(frame[column].dtype, pd.DatetimeTZDtype):
            frame[column] = frame[column].dt.tz_localize(None)
    frame = frame.rename(columns=dict(columns))
    if add_row_number:
        frame.insert(0, "No", range(1, len(frame) + 1))

    buffer = io.BytesIO()
    # Excel limits sheet names to 31 characters.
    safe_sheet_name = sheet_name[:31]
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        frame.to_excel(writer, sheet_name=safe_sheet_name, index=False)
        worksheet = writer.sheets[safe_sheet_name]
        _style_header(worksheet, column_count=len(frame.columns))
        _auto_adjust_columns(worksheet)
    return buffer.getvalue()


def xlsx_response(content: bytes, *, file_name: str) -> Response:
    if not file_name.endswith(".xlsx"):
        file_name += ".xlsx"
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{file_name}"'},
    )


def _style_header(worksheet: Worksheet, *, column_count: int) -> None:
    header_font = Font(bold=True, color="FFFFFF")
    header_fill = PatternFill(start_color="366092", end_color="366092", fill_type="solid")
    header_alignment = Alignment(horizontal="center", vertical="center")
    for col_num in range(1, column_count + 1):
        cell = worksheet.cell(row=1, column=col_num)
        cell.font = header_font
        cell.fill = header_fill
        cell.alignment = header_alignment


def _auto_adjust_columns(worksheet: Worksheet) -> None:
    for column in worksheet.columns:
        column_letter = column[0].column_letter
        max_length = max((len(str(cell.value)) for cell in column if cell.value is not None), default=0)
        worksheet.column_dimensions[column_letter].width = min(max_length + 2, MAX_COLUMN_WIDTH)
