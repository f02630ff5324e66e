"""
Unit tests for pagination and sort parsing.
It asserts expected behavior and guards against regressions in the corresponding component.
These tests are executed by `pytest` locally and in CI and should remain deterministic.
"""

import pytest

from src.api.pagination import compute_total_pages, fetch_page, page_metadata, parse_page_params, parse_sort
from src.api.query_builder import FilterBuilder
from tests.api.support import RecordingDB


def test_non_numeric_page_params_fall_back_to_defaults() -> None:
    pagination = parse_page_params(page="abc", limit="", default_page_size=50, max_page_size=500)

    assert pagination.page == 1
    assert pagination.page_size == 50
    assert pagination.offset == 0


def test_page_params_compute_offset() -> None:
    pagination = parse_page_params(page="3", limit="20", default_page_size=50, max_page_size=500)

    assert pagination.offset == 40
    assert pagination.limit == 20


@pytest.mark.parametrize(
    ("page", "limit", "message"),
    [("0", "10", "page must be >= 1"), ("1", "0", "limit must be >= 1"), ("1", "900", "limit must be <= 500")],
)
def test_out_of_range_page_params_raise(page: str, limit: str, message: str) -> None:
    with pytest.raises(ValueError, match=message):
        parse_page_params(page=page, limit=limit, default_page_size=50, max_page_size=500)


def test_unknown_sort_values_fall_back_to_defaults() -> None:
    sort = parse_sort(
        requested_field="DROP TABLE",
        requested_order="sideways",
        allowed_fields={"user_count", "partner_name"},
        default_field="user_count",
    )

    assert sort.as_text == "user_count:desc"
    assert parse_sort(
        requested_field="Partner_Name",
        requested_order="ASC",
        allowed_fields={"user_count", "partner_name"},
        default_field="user_count",
    ).as_text == "partner_name:asc"


def test_total_pages_and_metadata() -> None:
    assert compute_total_pages(total_count=0, page_size=10) == 0
    assert compute_total_pages(total_count=10, page_size=10) == 1
    assert compute_total_pages(total_count=11, page_size=10) == 2

    pagination = parse_page_params(page="2", limit="5", default_page_size=50, max_page_size=500)
    assert page_metadata(pagination=pagination, total_count=11) == {
        "total_count": 11,
        "page": 2,
        "limit": 5,
        "total_pages": 3,
    }


def test_fetch_page_sends_the_same_filter_to_count_and_data_queries() -> None:
    db = RecordingDB(fetch_one=[{"total_count": 7}], fetch_all=[[{"guid": "t-1"}]])
    compiled = FilterBuilder().equals("t.status", "finished").build()
    pagination = parse_page_params(page="2", limit="5", default_page_size=50, max_page_size=500)

    count_row, rows = fetch_page(
        db,
        count_query=f"SELECT COUNT(*) AS total_count FROM t {compiled.where_clause}",
        data_query=f"SELECT guid FROM t {compiled.where_clause} LIMIT :limit OFFSET :offset",
        compiled=compiled,
        pagination=pagination,
    )

    assert count_row == {"total_count": 7}
    assert rows == [{"guid": "t-1"}]
    (_, count_sql, count_params), (_, data_sql, data_params) = db.calls
    assert count_sql.split("FROM t ")[1] == data_sql.split("FROM t ")[1].split(" LIMIT")[0]
    assert count_params == {"p1": "finished"}
    assert data_params == {"p1": "finished", "limit": 5, "offset": 5}
