# This file tests the excluded email endpoints.
# It exists to confirm single-insert conflicts and bulk duplicate reporting.

from __future__ import annotations

from src.api.services.excluded_email_service import ExcludedEmailService
from tests.api.support import RecordingDB, api_test_client


def _row(email: str, row_id: int = 1) -> dict[str, object]:
    return {"id": row_id, "email": email, "reason": "internal", "is_active": True}


def test_single_exclusion_is_created_lowercase() -> None:
    db = RecordingDB(execute_returning=[_row("qa@example.com")])
    with api_test_client(excluded_email_service=ExcludedEmailService(db=db)) as client:
        response = client.post("/api/excluded-emails", json={"email": " QA@Example.com ", "reason": "internal"})

    assert response.status_code == 201
    assert response.json()["email"]["email"] == "qa@example.com"
    assert db.writes()[0][2]["email"] == "qa@example.com"


def test_single_duplicate_returns_409() -> None:
    db = RecordingDB(fetch_one=[_row("qa@example.com")])
    with api_test_client(excluded_email_service=ExcludedEmailService(db=db)) as client:
        response = client.post("/api/excluded-emails", json={"email": "qa@example.com", "reason": "internal"})

    assert response.status_code == 409
    assert response.json()["error_code"] == "EMAIL_ALREADY_EXCLUDED"


def test_missing_reason_returns_400() -> None:
    with api_test_client(excluded_email_service=ExcludedEmailService(db=RecordingDB())) as client:
        response = client.post("/api/excluded-emails", json={"email": "qa@example.com"})

    assert response.status_code == 400
    assert response.json()["message"] == "Reason is required"


def test_bulk_reports_inserted_and_skipped() -> None:
    db = RecordingDB(
        fetch_all=[[{"email": "old@example.com"}]],
        execute_returning=[_row("new@example.com", 2)],
    )
    with api_test_client(excluded_email_service=ExcludedEmailService(db=db)) as client:
        response = client.post(
            "/api/excluded-emails",
            json={"emails": "old@example.com\n\nNEW@example.com\nnew@example.com", "reason": "demo"},
        )

    assert response.status_code == 201
    payload = response.json()
    assert payload["inserted"] == 1
    assert payload["skipped"] == 1
    assert payload["total_processed"] == 2
    assert payload["duplicates"] == ["old@example.com"]
    assert payload["message"] == "Added 1 emails, skipped 1 duplicates"


def test_bulk_with_only_duplicates_returns_200() -> None:
    db = RecordingDB(fetch_all=[[{"email": "old@example.com"}]])
    with api_test_client(excluded_email_service=ExcludedEmailService(db=db)) as client:
        response = client.post("/api/excluded-emails", json={"emails": "old@example.com", "reason": "demo"})

    assert response.status_code == 200
    assert response.json()["inserted"] == 0
    assert db.writes() == []


def test_delete_unknown_email_returns_404() -> None:
    with api_test_client(excluded_email_service=ExcludedEmailService(db=RecordingDB())) as client:
        response = client.delete("/api/excluded-emails?email=ghost@example.com")

    assert response.status_code == 404


def test_delete_returns_deleted_email() -> None:
    db = RecordingDB(execute_returning=[{"email": "qa@example.com"}])
    with api_test_client(excluded_email_service=ExcludedEmailService(db=db)) as client:
        response = client.delete("/api/excluded-emails?email=QA@example.com")

    assert response.status_code == 200
    payload = response.json()
    assert payload["success"] is True
    assert payload["deleted_email"] == "qa@example.com"
