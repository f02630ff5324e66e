# This file rolls up training-data tallies from the automation webhooks.
# It exists so the dashboard can chart intake per input date and per training source.
# S1 rows are grouped by input date with a per-source breakdown; S2 is a flat label to count map.
# Upstream failures propagate as UpstreamError and surface as 502.

from __future__ import annotations

import math
from typing import Any

from src.sync.clients import TrainingDataWebhookClient

S1_DATE_KEYS = ("'Tanggal_Input_Data'", "Tanggal_Input_Data", "Tanggal Input Data")
S1_SOURCE_KEYS = ("'Nama_Training/Sumber_Data'", "Nama_Training/Sumber_Data", "Nama Training/Sumber Data")
S1_COUNT_KEY = "count_Tanggal_Input_Data"
UNKNOWN_LABEL = "Unknown"


def _first_label(item: dict[str, Any], keys: tuple[str, ...]) -> str:
    for key in keys:
        value = item.get(key)
        if value is not None:
            return str(value)
    return UNKNOWN_LABEL


def _row_count(item: dict[str, Any]) -> int | float:
    raw = item.get(S1_COUNT_KEY)
    if isinstance(raw, (int, float)) and not isinstance(raw, bool) and math.isfinite(raw) and raw > 0:
        return raw
    return 1


def _as_number(value: Any) -> int | float:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return value if math.isfinite(value) else 0
    try:
        number = float(str(value).strip() or 0)
    except ValueError:
        return 0
    if not math.isfinite(number):
        return 0
    return int(number) if number.is_integer() else number


def summarize_s1(items: list[dict[str, Any]]) -> dict[str, list[dict[str, Any]]]:
    """Totals per input date plus each date's sources, largest first."""

    by_date: dict[str, dict[str, Any]] = {}
    for item in items:
        date_label = _first_label(item, S1_DATE_KEYS)
        source_label = _first_label(item, S1_SOURCE_KEYS)
        count = _row_count(item)

        entry = by_date.setdefault(date_label, {"total": 0, "sources": {}})
        entry["total"] += count
        entry["sources"][source_label] = entry["sources"].get(source_label, 0) + count

    dates = [{"label": label, "count": entry["total"]} for label, entry in by_date.items()]
    compositions = [
        {
            "label": label,
            "count": entry["total"],
            "breakdown": sorted(
                ({"label": source, "count": count} for source, count in entry["sources"].items()),
                key=lambda part: part["count"],
                reverse=True,
            ),
        }
        for label, entry in by_date.items()
    ]
    return {"dates": dates, "compositions": compositions}


def summarize_s2(records: list[dict[str, Any]]) -> dict[str, list[dict[str, Any]]]:
    totals: dict[str, int | float] = {}
    for record in records:
        for label, value in record.items():
            totals[label] = totals.get(label, 0) + _as_number(value)
    return {"dates": [{"label": label, "count": count} for label, count in totals.items()]}


class TrainingDataService:
    def __init__(self, *, client: TrainingDataWebhookClient) -> None:
        self.client = client

    def get_s1_rollup(self) -> dict[str, list[dict[str, Any]]]:
        return summarize_s1(self.client.fetch_s1())

    def get_s2_rollup(self) -> dict[str, list[dict[str, Any]]]:
        return summarize_s2(self.client.fetch_s2())
