"""
Schema normalization for upstream marketplace payloads.
It maps nested API records onto the flat column sets of the local tables used by the dashboard.
Keeping these helpers isolated reduces duplication and keeps sync modules focused on paging and persistence.
"""

from __future__ import annotations

from typing import Any

CUSTOMER_COLUMNS = [
    "guid",
    "username",
    "full_name",
    "gender",
    "birth_date",
    "identity_number",
    "identity_img",
    "country_id",
    "country",
    "city_id",
    "city",
    "is_identity_verified",
    "bank_name",
    "bank_account_number",
    "bank_owner_name",
    "phone_number",
    "is_phone_number_verified",
    "email",
    "is_email_verified",
    "corporate_name",
    "industry_name",
    "employee_qty",
    "solution_corporate_needs",
    "referal_code",
    "is_free_trial_use",
    "status",
    "created_at",
    "created_by_guid",
    "created_by_name",
    "updated_at",
    "updated_by_guid",
    "updated_by_name",
    "subscribe_list",
]

TRANSACTION_COLUMNS = [
    "guid",
    "invoice_number",
    "customer_guid",
    "transaction_callback_id",
    "status",
    "payment_channel_id",
    "payment_channel_code",
    "payment_channel_name",
    "payment_url",
    "qty",
    "valuta_code",
    "sub_total",
    "platform_fee",
    "payment_service_fee",
    "total_discount",
    "grand_total",
    "created_at",
    "created_by_guid",
    "created_by_name",
]

TRANSACTION_DETAIL_COLUMNS = [
    "guid",
    "transaction_guid",
    "merchant_guid",
    "merchant_store_name",
    "product_name",
    "product_price",
    "purchase_type_id",
    "purchase_type_name",
    "purchase_type_value",
    "qty",
    "total_discount",
    "grand_total",
]

CREDIT_TRANSACTION_COLUMNS = [
    "id",
    "created_at",
    "updated_at",
    "agent",
    "amount",
    "user_product_id",
    "product_name",
    "product_package",
    "type",
    "user_id",
    "action_id",
]

EMPLOYEE_QTY_RANGES = {
    "1-10": 5,
    "11-50": 30,
    ">50": 51,
}


def _clean_str(value: Any) -> str | None:
    if value is None:
        return None
    text_value = str(value).strip()
    return text_value or None


def _latin1_safe(value: Any) -> Any:
    # Upstream names occasionally carry characters the legacy tables were never encoded for.
    if isinstance(value, str):
        return "".join(char if ord(char) <= 0xFF else "?" for char in value)
    return value


def parse_int(value: Any) -> int | None:
    """Parse integers leniently; blanks and garbage become None."""

    if value is None or value == "":
        return None
    try:
        return int(str(value).strip().split(".")[0])
    except ValueError:
        return None


def normalize_employee_qty(value: Any) -> int | None:
    if value is None or value == "":
        return None
    text_value = str(value).strip()
    if text_value in EMPLOYEE_QTY_RANGES:
        return EMPLOYEE_QTY_RANGES[text_value]
    return parse_int(text_value)


def _nested(record: dict[str, Any], key: str, field: str) -> Any:
    nested = record.get(key)
    if isinstance(nested, dict):
        return nested.get(field)
    return None


def normalize_customer(record: dict[str, Any]) -> dict[str, Any]:
    """Map an upstream customer payload onto `cms_customers` columns."""

    needs = record.get("solution_corporate_needs")
    if isinstance(needs, list):
        needs = ", ".join(str(item) for item in needs)

    return {
        "guid": _clean_str(record.get("guid")),
        "username": _clean_str(record.get("username")),
        "full_name": _clean_str(record.get("full_name")),
        "gender": _clean_str(record.get("gender")),
        "birth_date": record.get("birth_date") or None,
        "identity_number": _clean_str(record.get("identity_number")),
        "identity_img": _clean_str(record.get("identity_img")),
        "country_id": parse_int(record.get("country_id")),
        "country": _clean_str(record.get("country")),
        "city_id": parse_int(record.get("city_id")),
        "city": _clean_str(record.get("city")),
        "is_identity_verified": bool(record.get("is_identity_verified") or False),
        "bank_name": _clean_str(record.get("bank_name")),
        "bank_account_number": _clean_str(record.get("bank_account_number")),
        "bank_owner_name": _clean_str(record.get("bank_owner_name")),
        "phone_number": _clean_str(record.get("phone_number")),
        "is_phone_number_verified": bool(record.get("is_phone_number_verified") or False),
        "email": _clean_str(record.get("email")),
        "is_email_verified": bool(record.get("is_email_verified") or False),
        "corporate_name": _clean_str(record.get("corporate_name")),
        "industry_name": _clean_str(record.get("industry_name")),
        "employee_qty": normalize_employee_qty(record.get("employee_qty")),
        "solution_corporate_needs": _clean_str(needs),
        "referal_code": _clean_str(record.get("referal_code")),
        "is_free_trial_use": bool(record.get("is_free_trial_use") or False),
        "status": _clean_str(record.get("status")),
        "created_at": record.get("created_at") or None,
        "created_by_guid": _clean_str(
            _nested(record, "created_by", "guid") or record.get("created_by_guid")
        ),
        "created_by_name": _clean_str(
            _nested(record, "created_by", "name") or record.get("created_by_name")
        ),
        "updated_at": record.get("updated_at") or None,
        "updated_by_guid": _clean_str(
            _nested(record, "updated_by", "guid") or record.get("updated_by_guid")
        ),
        "updated_by_name": _clean_str(
            _nested(record, "updated_by", "name") or record.get("updated_by_name")
        ),
        "subscribe_list": record.get("subscribe_list"),
    }


def normalize_transaction(record: dict[str, Any]) -> dict[str, Any]:
    """Map an upstream transaction payload onto `transactions` columns."""

    row = {
        "guid": _clean_str(record.get("guid")),
        "invoice_number": record.get("invoice_number"),
        "customer_guid": _nested(record, "customer", "guid"),
        "transaction_callback_id": record.get("transaction_callback_id"),
        "status": record.get("status"),
        "payment_channel_id": _nested(record, "payment_channel", "id"),
        "payment_channel_code": _nested(record, "payment_channel", "code"),
        "payment_channel_name": _nested(record, "payment_channel", "payment_name"),
        "payment_url": record.get("payment_url"),
        "qty": record.get("qty"),
        "valuta_code": record.get("valuta_code"),
        "sub_total": record.get("sub_total"),
        "platform_fee": record.get("platform_fee"),
        "payment_service_fee": record.get("payment_service_fee"),
        "total_discount": record.get("total_discount"),
        "grand_total": record.get("grand_total"),
        "created_at": record.get("created_at") or None,
        "created_by_guid": _nested(record, "created_by", "guid"),
        "created_by_name": _nested(record, "created_by", "name"),
    }
    return {key: _latin1_safe(value) for key, value in row.items()}


def normalize_transaction_detail(record: dict[str, Any], parent_guid: str) -> dict[str, Any]:
    """Map one line item; the parent guid wins when the item omits its own link."""

    row = {
        "guid": _clean_str(record.get("guid")),
        "transaction_guid": record.get("transaction_id") or parent_guid,
        "merchant_guid": _nested(record, "merchant", "guid"),
        "merchant_store_name": _nested(record, "merchant", "store_name"),
        "product_name": record.get("product_name"),
        "product_price": record.get("product_price"),
        "purchase_type_id": _nested(record, "purchase_type", "id"),
        "purchase_type_name": _nested(record, "purchase_type", "name"),
        "purchase_type_value": _nested(record, "purchase_type", "value"),
        "qty": record.get("qty"),
        "total_discount": record.get("total_discount"),
        "grand_total": record.get("grand_total"),
    }
    return {key: _latin1_safe(value) for key, value in row.items()}


def normalize_credit_transaction(record: dict[str, Any]) -> dict[str, Any]:
    """Map a credit manager usage row onto `credit_manager_transactions` columns."""

    return {column: record.get(column) for column in CREDIT_TRANSACTION_COLUMNS}
