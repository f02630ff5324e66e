"""
Fake HTTP sessions and databases for sync tests.
They stand in for `requests.Session` and the database client so sync code runs without network or Postgres.
"""

from __future__ import annotations

from typing import Any

import requests


class FakeResponse:
    def __init__(self, payload: Any, status_code: int = 200) -> None:
        self._payload = payload
        self.status_code = status_code

    def json(self) -> Any:
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


class FakeSession:
    """Replays queued responses and records each request."""

    def __init__(self, responses: list[FakeResponse | Exception]) -> None:
        self._responses = list(responses)
        self.requests: list[dict[str, Any]] = []

    def request(self, method: str, url: str, **kwargs: Any) -> FakeResponse:
        self.requests.append({"method": method, "url": url, **kwargs})
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def connection_error() -> requests.ConnectionError:
    return requests.ConnectionError("connection refused")


class UpsertingDB:
    """In-memory table keyed by primary key, enough to observe upsert semantics."""

    def __init__(self, *, last_created_at: Any = None) -> None:
        self.rows: dict[str, dict[str, Any]] = {}
        self.statements: list[str] = []
        self.last_created_at = last_created_at

    def fetch_one(self, query: str, params: Any = None) -> dict[str, Any] | None:
        return {"last_date": self.last_created_at}

    def execute(self, query: str, params: Any = None) -> int:
        self.statements.append(query)
        row = dict(params or {})
        key = str(row.get("guid") or row.get("id"))
        self.rows[key] = {**self.rows.get(key, {}), **row}
        return 1
