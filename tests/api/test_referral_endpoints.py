# This file tests referral rollup and referral partner endpoints.
# It exists to confirm sort parsing, conflict handling, and usage checks on delete.
# The real service runs against a recording fake database.

from __future__ import annotations

from datetime import UTC, datetime

from src.api.schemas.common import ErrorResponse
from src.api.services.referral_service import ReferralService
from tests.api.support import RecordingDB, api_test_client

PARTNER_ROW = {
    "id": 7,
    "code": "GOVX",
    "partner": "Gov Partner X",
    "is_gov": True,
    "is_new": False,
    "created_at": datetime(2025, 1, 1, tzinfo=UTC),
    "updated_at": datetime(2025, 1, 1, tzinfo=UTC),
}


def test_rollup_reports_summary_and_requested_sort() -> None:
    db = RecordingDB(
        fetch_all=[
            [
                {
                    "referral_code": "GOVX",
                    "partner_name": "Gov Partner X",
                    "user_count": 3,
                    "total_purchase_amount": 300000,
                    "finished_transactions_count": 4,
                    "total_credit_used": 1000,
                    "total_credit_added": 5000,
                    "net_credit": 4000,
                },
                {
                    "referral_code": "ORPHAN",
                    "partner_name": None,
                    "user_count": 1,
                    "total_purchase_amount": 0,
                    "finished_transactions_count": 0,
                    "total_credit_used": 0,
                    "total_credit_added": 0,
                    "net_credit": 0,
                },
            ]
        ]
    )
    with api_test_client(referral_service=ReferralService(db=db)) as client:
        response = client.get("/api/referrals?sort_by=partner_name&sort_order=asc")

    assert response.status_code == 200
    payload = response.json()
    assert payload["sort"] == "partner_name:asc"
    assert payload["total_count"] == 2
    assert payload["summary"]["total_users"] == 4
    assert payload["referrals"][1]["partner_name"] is None
    assert "rp.partner IS NULL, rp.partner ASC" in db.calls[0][1]


def test_unknown_rollup_sort_falls_back_to_user_count() -> None:
    db = RecordingDB()
    with api_test_client(referral_service=ReferralService(db=db)) as client:
        response = client.get("/api/referrals?sort_by=drop_table")

    assert response.status_code == 200
    assert response.json()["sort"] == "user_count:desc"
    assert "drop_table" not in db.calls[0][1]


def test_create_partner_returns_201() -> None:
    db = RecordingDB(fetch_one=[None], execute_returning=[PARTNER_ROW])
    with api_test_client(referral_service=ReferralService(db=db)) as client:
        response = client.post(
            "/api/referrals/partners",
            json={"code": " GOVX ", "partner": "Gov Partner X", "is_gov": True},
        )

    assert response.status_code == 201
    payload = response.json()
    assert payload["partner"]["code"] == "GOVX"
    assert payload["message"] == "Referral partner created successfully"
    assert db.writes()[0][2]["code"] == "GOVX"


def test_duplicate_partner_code_returns_409() -> None:
    db = RecordingDB(fetch_one=[{"id": 7}])
    with api_test_client(referral_service=ReferralService(db=db)) as client:
        response = client.post("/api/referrals/partners", json={"code": "GOVX", "partner": "Another"})

    assert response.status_code == 409
    payload = response.json()
    assert payload["error_code"] == "REFERRAL_CODE_EXISTS"
    assert ErrorResponse.model_validate(payload).message == "Referral code already exists"
    assert db.writes() == []


def test_missing_partner_name_returns_400() -> None:
    with api_test_client(referral_service=ReferralService(db=RecordingDB())) as client:
        response = client.post("/api/referrals/partners", json={"code": "GOVX"})

    assert response.status_code == 400
    assert response.json()["message"] == "Code and partner name are required"


def test_delete_partner_in_use_is_rejected() -> None:
    db = RecordingDB(fetch_one=[PARTNER_ROW, {"user_count": 3}])
    with api_test_client(referral_service=ReferralService(db=db)) as client:
        response = client.delete("/api/referrals/partners/7")

    assert response.status_code == 400
    payload = response.json()
    assert payload["error_code"] == "REFERRAL_CODE_IN_USE"
    assert payload["details"] == {"user_count": 3}
    assert db.writes() == []


def test_delete_unknown_partner_returns_404() -> None:
    with api_test_client(referral_service=ReferralService(db=RecordingDB())) as client:
        response = client.delete("/api/referrals/partners/404")

    assert response.status_code == 404
