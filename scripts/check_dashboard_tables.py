#!/usr/bin/env python3
"""
Report row counts for the dashboard tables.
It packages a repeatable workflow so operators can confirm syncs landed before opening the dashboard.
Run it directly, and expect it to print a JSON summary and exit non-zero when the database is unreachable.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from sqlalchemy import text

from src.api.query_builder import EXCLUDED_EMAIL_PREDICATE, excluded_email_join
from src.common.db import get_engine, test_connection
from src.common.logging import configure_logging
from src.sync.ddl import DDL_ORDER, apply_dashboard_ddl

DASHBOARD_TABLES = [file_name.removesuffix(".sql") for file_name in DDL_ORDER]


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Print dashboard table row counts")
    parser.add_argument("--apply-ddl", action="store_true")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    configure_logging()
    engine = get_engine()
    if not test_connection(engine):
        print("Database unreachable; check DATABASE_URL.", file=sys.stderr)
        sys.exit(1)
    if args.apply_ddl:
        apply_dashboard_ddl(engine)

    counts: dict[str, int | None] = {}
    with engine.connect() as connection:
        for table_name in DASHBOARD_TABLES:
            exists = connection.execute(
                text("SELECT to_regclass(:table_name) IS NOT NULL"),
                {"table_name": table_name},
            ).scalar_one()
            counts[table_name] = (
                connection.execute(text(f"SELECT COUNT(*) FROM {table_name}")).scalar_one() if exists else None
            )
        referred_users = connection.execute(
            text(
                "SELECT COUNT(DISTINCT c.guid) FROM cms_customers c "
                f"{excluded_email_join('c.email')} "
                f"WHERE c.referal_code IS NOT NULL AND {EXCLUDED_EMAIL_PREDICATE}"
            )
        ).scalar_one() if counts.get("cms_customers") is not None else None

    print(json.dumps({"row_counts": counts, "referred_users": referred_users}, indent=2))


if __name__ == "__main__":
    main()
