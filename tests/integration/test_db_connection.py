import os

import pytest
from sqlalchemy import inspect

from src.common.db import get_engine
from src.common.db import test_connection as db_test_connection
from src.sync.ddl import DDL_ORDER, apply_dashboard_ddl

if os.getenv("RUN_DB_INTEGRATION") != "1":
    pytest.skip("Set RUN_DB_INTEGRATION=1 to run database integration tests", allow_module_level=True)


@pytest.mark.integration
def test_db_connection_optional() -> None:
    if not db_test_connection():
        pytest.skip("Postgres unavailable in local test environment")
    assert db_test_connection() is True


@pytest.mark.integration
def test_dashboard_ddl_is_rerunnable() -> None:
    engine = get_engine()
    if not db_test_connection(engine):
        pytest.skip("Postgres unavailable in local test environment")

    apply_dashboard_ddl(engine)
    apply_dashboard_ddl(engine)

    existing = set(inspect(engine).get_table_names())
    assert {file_name.removesuffix(".sql") for file_name in DDL_ORDER} <= existing
