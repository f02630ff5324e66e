"""HTTP plumbing shared by the upstream marketplace clients."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import requests

logger = logging.getLogger(__name__)


class UpstreamError(RuntimeError):
    """Raised when an upstream API cannot be reached or rejects a request."""

    error_code = "UPSTREAM_ERROR"


class UpstreamAuthError(UpstreamError):
    """Raised when the marketplace auth service refuses to issue a token."""

    error_code = "UPSTREAM_AUTH_FAILED"


@dataclass(frozen=True)
class UpstreamPage:
    items: list[dict[str, Any]] = field(default_factory=list)
    current_page: int | None = None
    total_pages: int | None = None


class UpstreamClient:
    """Base client: one session, one timeout, one error type."""

    service_name = "upstream"

    def __init__(
        self,
        *,
        timeout_seconds: int = 30,
        session: requests.Session | None = None,
    ) -> None:
        self.timeout_seconds = timeout_seconds
        self.session = session or requests.Session()

    def _request_payload(self, method: str, url: str, **kwargs: Any) -> Any:
        try:
            response = self.session.request(method, url, timeout=self.timeout_seconds, **kwargs)
        except requests.RequestException as exc:
            raise UpstreamError(f"{self.service_name} request failed for {url}: {exc}") from exc

        if response.status_code >= 400:
            raise UpstreamError(
                f"{self.service_name} request failed with status {response.status_code} for {url}"
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise UpstreamError(f"{self.service_name} did not return valid JSON for {url}") from exc
        return payload

    def _request_json(self, method: str, url: str, **kwargs: Any) -> dict[str, Any]:
        payload = self._request_payload(method, url, **kwargs)
        if not isinstance(payload, dict):
            raise UpstreamError(f"Unexpected payload shape from {self.service_name} at {url}")
        return payload


def fetch_all_pages(
    fetch_page: Callable[[int, int], UpstreamPage],
    *,
    page_size: int,
    max_pages: int,
    start_page: int = 1,
    label: str = "upstream",
) -> list[dict[str, Any]]:
    """Collect every item from a paginated upstream source.

    Paging stops on an empty page, a short page, the upstream's own last page,
    or after `max_pages` requests.
    """

    collected: list[dict[str, Any]] = []
    page = start_page
    requested = 0
    while True:
        result = fetch_page(page, page_size)
        requested += 1
        if not result.items:
            break

        collected.extend(result.items)
        logger.info("%s page %s returned %s items", label, page, len(result.items))

        if result.total_pages is not None and (result.current_page or page) >= result.total_pages:
            break
        if len(result.items) < page_size:
            break
        if requested >= max_pages:
            logger.warning("%s reached the page ceiling (%s); stopping pagination", label, max_pages)
            break
        page += 1

    return collected
