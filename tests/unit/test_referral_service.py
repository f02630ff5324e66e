"""
Unit tests for referral rollups and the referral code registry.
It asserts expected behavior and guards against regressions in the corresponding component.
These tests are executed by `pytest` locally and in CI and should remain deterministic.
"""

import pytest

from src.api.error_handlers import APIError
from src.api.pagination import SortSpec
from src.api.query_builder import EXCLUDED_EMAIL_PREDICATE
from src.api.services.referral_service import ReferralService
from tests.api.support import RecordingDB


def test_rollup_summary_matches_partner_rows() -> None:
    db = RecordingDB(
        fetch_all=[
            [
                {
                    "referral_code": "GOV01",
                    "partner_name": "City Office",
                    "user_count": 4,
                    "total_purchase_amount": "250000.00",
                    "finished_transactions_count": 3,
                },
                {"referral_code": "X9", "partner_name": None, "user_count": 1},
            ]
        ]
    )

    result = ReferralService(db=db).get_rollup(sort=SortSpec(field="user_count", order="desc"))

    assert result["summary"] == {
        "total_partners": 2,
        "total_users": 5,
        "total_purchase_amount": 250000.0,
        "finished_transactions_count": 3,
    }
    assert result["rows"][1]["total_credit_used"] == 0.0
    sql = db.calls[0][1]
    assert EXCLUDED_EMAIL_PREDICATE in sql
    assert "c.referal_code IS NOT NULL" in sql
    assert "ORDER BY user_count DESC, us.referal_code ASC" in sql


def test_partner_name_sort_keeps_unnamed_codes_last() -> None:
    db = RecordingDB()

    ReferralService(db=db).get_rollup(sort=SortSpec(field="partner_name", order="asc"))

    assert "ORDER BY rp.partner IS NULL, rp.partner ASC" in db.calls[0][1]


def test_create_partner_rejects_duplicate_code() -> None:
    db = RecordingDB(fetch_one=[{"id": 3}])

    with pytest.raises(APIError) as exc_info:
        ReferralService(db=db).create_partner(code="GOV01", partner="City Office")

    assert exc_info.value.status_code == 409
    assert exc_info.value.error_code == "REFERRAL_CODE_EXISTS"
    assert db.writes() == []


def test_create_partner_requires_code_and_name() -> None:
    with pytest.raises(APIError) as exc_info:
        ReferralService(db=RecordingDB()).create_partner(code=" ", partner="City Office")

    assert exc_info.value.status_code == 400


def test_delete_refused_while_customers_use_the_code() -> None:
    db = RecordingDB(fetch_one=[{"id": 3, "code": "GOV01", "partner": "City Office"}, {"user_count": 2}])

    with pytest.raises(APIError) as exc_info:
        ReferralService(db=db).delete_partner(3)

    assert exc_info.value.status_code == 400
    assert exc_info.value.error_code == "REFERRAL_CODE_IN_USE"
    assert exc_info.value.details == {"user_count": 2}
    assert db.writes() == []


def test_scan_registers_unknown_codes_as_new() -> None:
    db = RecordingDB(fetch_all=[[{"code": "NEW1"}, {"code": "NEW2"}]])

    codes = ReferralService(db=db).scan_new_codes()

    assert codes == ["NEW1", "NEW2"]
    inserts = db.writes()
    assert [params for _, _, params in inserts] == [{"code": "NEW1"}, {"code": "NEW2"}]
    assert all("ON CONFLICT (code) DO NOTHING" in sql for _, sql, _ in inserts)
