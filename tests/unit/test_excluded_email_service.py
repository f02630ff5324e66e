"""
Unit tests for the excluded email service.
It asserts expected behavior and guards against regressions in the corresponding component.
These tests are executed by `pytest` locally and in CI and should remain deterministic.
"""

import pytest

from src.api.error_handlers import APIError
from src.api.services.excluded_email_service import ExcludedEmailService, split_bulk_emails
from tests.api.support import RecordingDB


def test_existing_email_returns_409_without_writing() -> None:
    db = RecordingDB(fetch_one=[{"id": 1, "email": "demo@example.com", "reason": "QA"}])
    service = ExcludedEmailService(db=db)

    with pytest.raises(APIError) as exc_info:
        service.create_email(email=" Demo@Example.com ", reason="Sales demo")

    assert exc_info.value.status_code == 409
    assert exc_info.value.error_code == "EMAIL_ALREADY_EXCLUDED"
    assert db.writes() == []
    assert db.calls[0][2] == {"email": "demo@example.com"}


def test_reason_is_required() -> None:
    db = RecordingDB()
    service = ExcludedEmailService(db=db)

    with pytest.raises(APIError) as exc_info:
        service.create_email(email="new@example.com", reason="  ")

    assert exc_info.value.status_code == 400
    assert db.calls == []


def test_new_email_is_stored_lower_cased() -> None:
    created = {"id": 2, "email": "new@example.com", "reason": "QA", "is_active": True}
    db = RecordingDB(execute_returning=[created])
    service = ExcludedEmailService(db=db)

    assert service.create_email(email="NEW@example.com", reason="QA") == created
    assert db.writes()[0][2] == {"email": "new@example.com", "reason": "QA"}


def test_split_bulk_emails_dedupes_and_drops_blanks() -> None:
    assert split_bulk_emails("a@x.com\n\n A@X.com \nb@x.com\r\n") == ["a@x.com", "b@x.com"]


def test_bulk_insert_reports_duplicates() -> None:
    db = RecordingDB(
        fetch_all=[[{"email": "a@x.com"}]],
        execute_returning=[{"id": 5, "email": "b@x.com"}, None],
    )
    service = ExcludedEmailService(db=db)

    result = service.create_bulk(emails="a@x.com\nb@x.com\nc@x.com", reason="Load test")

    assert result["inserted"] == 1
    assert result["skipped"] == 2
    assert result["duplicates"] == ["a@x.com", "c@x.com"]
    assert result["total_processed"] == 3


def test_update_to_an_address_owned_by_another_row_conflicts() -> None:
    db = RecordingDB(fetch_one=[{"id": 9, "email": "taken@example.com"}])
    service = ExcludedEmailService(db=db)

    with pytest.raises(APIError) as exc_info:
        service.update_email(old_email="old@example.com", email="taken@example.com", reason="QA")

    assert exc_info.value.status_code == 409
    assert db.writes() == []


def test_delete_missing_email_is_404() -> None:
    service = ExcludedEmailService(db=RecordingDB(execute_returning=[None]))

    with pytest.raises(APIError) as exc_info:
        service.delete_email("ghost@example.com")

    assert exc_info.value.status_code == 404
