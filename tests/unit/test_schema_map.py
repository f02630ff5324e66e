"""
Unit tests for schema map.
It asserts expected behavior and guards against regressions in the corresponding component.
These tests are executed by `pytest` locally and in CI and should remain deterministic.
"""

from src.common.schema_map import (
    CUSTOMER_COLUMNS,
    normalize_customer,
    normalize_employee_qty,
    normalize_transaction,
    normalize_transaction_detail,
    parse_int,
)


def test_normalize_customer_maps_ranges_and_blanks() -> None:
    row = normalize_customer(
        {
            "guid": " c-1 ",
            "full_name": "  ",
            "email": "Owner@Example.com",
            "employee_qty": "11-50",
            "solution_corporate_needs": ["Payroll", "Invoicing"],
            "country_id": "62",
            "city_id": "n/a",
            "created_by": {"guid": "admin-1", "name": "Admin"},
        }
    )

    assert list(row) == CUSTOMER_COLUMNS
    assert row["guid"] == "c-1"
    assert row["full_name"] is None
    assert row["employee_qty"] == 30
    assert row["solution_corporate_needs"] == "Payroll, Invoicing"
    assert row["country_id"] == 62
    assert row["city_id"] is None
    assert row["created_by_guid"] == "admin-1"
    assert row["is_email_verified"] is False


def test_employee_qty_and_lenient_int_parsing() -> None:
    assert normalize_employee_qty("1-10") == 5
    assert normalize_employee_qty(">50") == 51
    assert normalize_employee_qty("120") == 120
    assert normalize_employee_qty("") is None
    assert parse_int("12.0") == 12
    assert parse_int("abc") is None


def test_transaction_detail_falls_back_to_parent_guid() -> None:
    transaction = normalize_transaction(
        {
            "guid": "t-1",
            "customer": {"guid": "c-1"},
            "payment_channel": {"id": 3, "code": "BCA", "payment_name": "BCA Virtual Account"},
            "grand_total": 150000,
        }
    )
    detail = normalize_transaction_detail({"guid": "d-1", "product_name": "Payroll™ Pro"}, "t-1")

    assert transaction["customer_guid"] == "c-1"
    assert transaction["payment_channel_name"] == "BCA Virtual Account"
    assert detail["transaction_guid"] == "t-1"
    assert detail["product_name"] == "Payroll? Pro"
