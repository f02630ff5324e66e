# This file assembles parameterized WHERE clauses from optional list filters.
# It exists so every listing endpoint binds user input through placeholders instead of string splicing.
# Count and data queries share one compiled filter, which keeps pagination totals consistent with page rows.
# The demo-account exclusion predicate is appended here so no listing can forget it.

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any

EXCLUDED_EMAIL_ALIAS = "dee"
EXCLUDED_EMAIL_PREDICATE = f"{EXCLUDED_EMAIL_ALIAS}.email IS NULL"
ALL_VALUES = "all"


def excluded_email_join(email_column: str) -> str:
    """LEFT JOIN that pairs rows with an active demo/test exclusion entry."""

    return (
        f"LEFT JOIN demo_excluded_emails {EXCLUDED_EMAIL_ALIAS} "
        f"ON LOWER({EXCLUDED_EMAIL_ALIAS}.email) = LOWER({email_column}) "
        f"AND {EXCLUDED_EMAIL_ALIAS}.is_active = true"
    )


def is_blank(value: Any) -> bool:
    """Absent, empty, and the `all` sentinel mean no constraint."""

    if value is None:
        return True
    if isinstance(value, str):
        stripped = value.strip()
        return stripped == "" or stripped.lower() == ALL_VALUES
    return False


def parse_date(value: str | date | None, *, field_name: str) -> date | None:
    """Parse `YYYY-MM-DD` query strings; blank means absent."""

    if value is None or isinstance(value, date):
        return value
    stripped = value.strip()
    if not stripped:
        return None
    try:
        return date.fromisoformat(stripped[:10])
    except ValueError as exc:
        raise ValueError(f"{field_name} must be a date in YYYY-MM-DD format.") from exc


@dataclass(frozen=True)
class CompiledFilter:
    where_sql: str
    params: dict[str, Any]

    @property
    def where_clause(self) -> str:
        return f"WHERE {self.where_sql}" if self.where_sql else ""

    def with_params(self, **extra: Any) -> dict[str, Any]:
        merged = dict(self.params)
        merged.update(extra)
        return merged


@dataclass
class FilterBuilder:
    """Collects predicates and their bind values in a stable order."""

    exclude_demo_accounts: bool = True
    prefix: str = "p"
    _clauses: list[str] = field(default_factory=list)
    _params: dict[str, Any] = field(default_factory=dict)

    def bind(self, value: Any) -> str:
        """Register a value and return its placeholder."""

        name = f"{self.prefix}{len(self._params) + 1}"
        self._params[name] = value
        return f":{name}"

    def where(self, clause: str, **values: Any) -> FilterBuilder:
        """Add a raw predicate; `{name}` markers are replaced by bound placeholders."""

        placeholders = {key: self.bind(value) for key, value in values.items()}
        self._clauses.append(clause.format(**placeholders) if placeholders else clause)
        return self

    def search(self, term: str | None, columns: Iterable[str]) -> FilterBuilder:
        if is_blank(term):
            return self
        placeholder = self.bind(f"%{str(term).strip()}%")
        ors = " OR ".join(f"{column} ILIKE {placeholder}" for column in columns)
        self._clauses.append(f"({ors})")
        return self

    def equals(self, column: str, value: Any, *, case_insensitive: bool = False) -> FilterBuilder:
        if is_blank(value):
            return self
        if case_insensitive:
            placeholder = self.bind(str(value).strip())
            self._clauses.append(f"LOWER({column}) = LOWER({placeholder})")
        else:
            placeholder = self.bind(value.strip() if isinstance(value, str) else value)
            self._clauses.append(f"{column} = {placeholder}")
        return self

    def contains(self, column: str, value: str | None) -> FilterBuilder:
        if is_blank(value):
            return self
        placeholder = self.bind(f"%{str(value).strip()}%")
        self._clauses.append(f"{column} ILIKE {placeholder}")
        return self

    def date_range(self, column: str, start: date | None, end: date | None) -> FilterBuilder:
        """Inclusive on both ends; the end bound covers the whole final day."""

        if start is not None:
            placeholder = self.bind(_day_start(start))
            self._clauses.append(f"{column} >= {placeholder}")
        if end is not None:
            placeholder = self.bind(_day_start(end) + timedelta(days=1))
            self._clauses.append(f"{column} < {placeholder}")
        return self

    def build(self) -> CompiledFilter:
        clauses = list(self._clauses)
        if self.exclude_demo_accounts:
            clauses.append(EXCLUDED_EMAIL_PREDICATE)
        return CompiledFilter(where_sql=" AND ".join(clauses), params=dict(self._params))


def _day_start(value: date) -> datetime:
    if isinstance(value, datetime):
        return value.replace(hour=0, minute=0, second=0, microsecond=0)
    return datetime(value.year, value.month, value.day)


def build_assignments(
    updates: Mapping[str, Any],
    allowed_columns: Iterable[str],
    *,
    prefix: str = "set_",
) -> tuple[str, dict[str, Any]]:
    """Build a parameterized SET clause for the allowlisted keys present in `updates`."""

    allowed = set(allowed_columns)
    assignments: list[str] = []
    params: dict[str, Any] = {}
    for column, value in updates.items():
        if column not in allowed:
            continue
        param_name = f"{prefix}{column}"
        assignments.append(f"{column} = :{param_name}")
        params[param_name] = value
    return ", ".join(assignments), params
