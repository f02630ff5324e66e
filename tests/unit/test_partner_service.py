"""
Unit tests for the partner pipeline (CRM) service.
It asserts expected behavior and guards against regressions in the corresponding component.
These tests are executed by `pytest` locally and in CI and should remain deterministic.
"""

import pytest

from src.api.error_handlers import APIError
from src.api.services.partner_service import PartnerService
from tests.api.support import RecordingDB


def test_update_ignores_columns_outside_allowlist() -> None:
    db = RecordingDB(execute_returning=[{"id": 5, "pic": "Dewi"}])

    updated = PartnerService(db=db).update_partner(5, {"pic": "Dewi", "id": 99, "created_at": "2020-01-01"})

    assert updated == {"id": 5, "pic": "Dewi"}
    _, sql, params = db.calls[0]
    assert "SET pic = :set_pic, updated_at = NOW()" in sql
    assert "created_at = :" not in sql
    assert params == {"set_pic": "Dewi", "id": 5}


def test_update_with_only_unknown_fields_is_rejected() -> None:
    db = RecordingDB()

    with pytest.raises(APIError) as exc_info:
        PartnerService(db=db).update_partner(5, {"created_by": "someone"})

    assert exc_info.value.status_code == 400
    assert exc_info.value.message == "No fields to update"
    assert db.calls == []


def test_update_of_missing_partner_raises_not_found() -> None:
    db = RecordingDB(execute_returning=[None])

    with pytest.raises(APIError) as exc_info:
        PartnerService(db=db).update_partner(404, {"status": "signed"})

    assert exc_info.value.status_code == 404
    assert exc_info.value.error_code == "PARTNER_NOT_FOUND"


def test_get_missing_partner_raises_not_found() -> None:
    with pytest.raises(APIError) as exc_info:
        PartnerService(db=RecordingDB()).get_partner(404)

    assert exc_info.value.status_code == 404
