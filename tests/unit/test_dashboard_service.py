"""
Unit tests for dashboard aggregations and partner activation progress.
It asserts expected behavior and guards against regressions in the corresponding component.
These tests are executed by `pytest` locally and in CI and should remain deterministic.
"""

from datetime import date

import pytest

from src.api.services.dashboard_service import SUMMARY_SERIES_DAYS, DashboardService
from src.api.services.partner_service import PartnerService, compute_progress
from tests.api.support import RecordingDB


def test_summary_zero_fills_missing_values() -> None:
    db = RecordingDB(
        fetch_one=[{"users_purchased": 12}, None],
        fetch_all=[
            [{"referral_code": "GOV01", "partner_name": "City Office", "registered_users": 5}],
            [{"date": date(2025, 1, 1), "transactions": None, "unique_buyers": 0, "total_idr": None}],
            [],
        ],
    )

    summary = DashboardService(db=db).get_summary()

    assert summary["users_purchased_idr_finished"] == 12
    assert summary["referral_stats"][0]["buying_users"] == 0
    assert summary["daily_purchases"][0] == {
        "date": date(2025, 1, 1),
        "transactions": 0,
        "unique_buyers": 0,
        "total_idr": 0.0,
    }
    assert summary["expiring_soon_users"] == 0
    assert db.calls[2][2] == {"days_back": SUMMARY_SERIES_DAYS - 1}


def test_daily_summary_totals_come_from_last_cumulative_point() -> None:
    db = RecordingDB(
        fetch_all=[
            [
                {"date": date(2025, 1, 1), "count": 2, "cumulative": 2},
                {"date": date(2025, 1, 2), "count": 3, "cumulative": 5},
            ],
            [],
        ]
    )

    daily = DashboardService(db=db).get_daily_summary()

    assert daily["total_new_users_month"] == 5
    assert daily["total_buyers_year"] == 0


@pytest.mark.parametrize("weeks", [0, 53])
def test_weekly_summary_rejects_out_of_range_windows(weeks: int) -> None:
    with pytest.raises(ValueError, match="weeks must be between 1 and 52"):
        DashboardService(db=RecordingDB()).get_weekly_summary(weeks=weeks)


def test_charts_reject_reversed_range_and_total_counts() -> None:
    service = DashboardService(
        db=RecordingDB(
            fetch_all=[
                [
                    {"date": date(2025, 1, 1), "credit_count": 2, "debit_count": 1},
                    {"date": date(2025, 1, 2), "credit_count": 0, "debit_count": 4},
                ]
            ]
        )
    )

    with pytest.raises(ValueError, match="start_date must be on or before end_date"):
        service.get_charts(start_date=date(2025, 1, 2), end_date=date(2025, 1, 1))

    charts = service.get_charts(start_date=date(2025, 1, 1), end_date=date(2025, 1, 2))
    assert charts["total_days"] == 2
    assert charts["total_credits"] == 2
    assert charts["total_debits"] == 5


def test_compute_progress_rounds_and_caps() -> None:
    assert compute_progress(0, 1000) == 0.0
    assert compute_progress(333, 1000) == 33.3
    assert compute_progress(50_000, 1000) == 999.0
    assert compute_progress(10, 0) == 0.0


def test_activation_target_reports_progress() -> None:
    service = PartnerService(db=RecordingDB(fetch_one=[{"achieved": 250}]), activation_target=1000)

    assert service.get_activation_target() == {"target": 1000, "achieved": 250, "progress_percentage": 25.0}


def test_activation_rows_without_partner_are_labelled_unknown() -> None:
    service = PartnerService(db=RecordingDB(fetch_all=[[{"partner": None, "is_gov": None, "total_trainings": 2}]]))

    assert service.get_activation_matrix()[0]["partner"] == "Unknown"
