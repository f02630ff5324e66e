"""Clients for the paginated marketplace list APIs."""

from __future__ import annotations

from datetime import date
from typing import Any

import requests

from src.sync.upstream import UpstreamClient, UpstreamError, UpstreamPage, fetch_all_pages

SUCCESS_CODE = "00"


class TransactionApiClient(UpstreamClient):
    """Purchase transactions from the transaction service external list."""

    service_name = "transaction service"

    def __init__(
        self,
        *,
        url: str,
        api_key: str,
        page_size: int = 100,
        max_pages: int = 1000,
        timeout_seconds: int = 30,
        session: requests.Session | None = None,
    ) -> None:
        super().__init__(timeout_seconds=timeout_seconds, session=session)
        self.url = url
        self.api_key = api_key
        self.page_size = page_size
        self.max_pages = max_pages

    def fetch_page(
        self,
        page: int,
        limit: int,
        *,
        start_date: date,
        end_date: date,
        status: str,
        customer_guid: str | None = None,
    ) -> UpstreamPage:
        if not self.api_key:
            raise UpstreamError("TRANSACTION_API_KEY is not configured.")

        body = {
            "filter": {
                "set_guid": False,
                "guid": "",
                "set_status": bool(status),
                "status": status,
                "set_transaction_at": True,
                "start_date": f"{start_date.isoformat()}T00:00:00",
                "end_date": f"{end_date.isoformat()}T23:59:59",
                "set_customer_id": bool(customer_guid),
                "customer_id": customer_guid or "",
            },
            "limit": limit,
            "page": page,
            "order": "created_at",
            "sort": "DESC",
        }
        payload = self._request_json(
            "POST",
            self.url,
            json=body,
            headers={"x-api-key": self.api_key},
        )
        response = payload.get("response") or {}
        if response.get("code") != SUCCESS_CODE or response.get("status") != "success":
            message = response.get("message_en") or "Unknown error"
            raise UpstreamError(f"{self.service_name} returned error: {message}")

        items = response.get("data") or []
        if not isinstance(items, list):
            raise UpstreamError(f"Unexpected transaction list shape from {self.url}")
        return UpstreamPage(
            items=items,
            current_page=response.get("current_page"),
            total_pages=response.get("total_page"),
        )

    def fetch_all(
        self,
        *,
        start_date: date,
        end_date: date,
        status: str,
        customer_guid: str | None = None,
    ) -> list[dict[str, Any]]:
        return fetch_all_pages(
            lambda page, limit: self.fetch_page(
                page,
                limit,
                start_date=start_date,
                end_date=end_date,
                status=status,
                customer_guid=customer_guid,
            ),
            page_size=self.page_size,
            max_pages=self.max_pages,
            label="transactions",
        )


class CreditManagerApiClient(UpstreamClient):
    """Credit top-up and usage rows from the credit manager."""

    service_name = "credit manager"

    def __init__(
        self,
        *,
        url: str,
        api_token: str,
        page_size: int = 100,
        max_pages: int = 1000,
        timeout_seconds: int = 30,
        session: requests.Session | None = None,
    ) -> None:
        super().__init__(timeout_seconds=timeout_seconds, session=session)
        self.url = url
        self.api_token = api_token
        self.page_size = page_size
        self.max_pages = max_pages

    def fetch_page(self, page: int, limit: int, *, start_date: date, end_date: date) -> UpstreamPage:
        if not self.api_token:
            raise UpstreamError("CREDIT_MANAGER_API_TOKEN is not configured.")

        payload = self._request_json(
            "GET",
            self.url,
            params={
                "page": page,
                "limit": limit,
                "start_date": start_date.isoformat(),
                "end_date": end_date.isoformat(),
            },
            headers={
                "accept": "application/json",
                "Authorization": self.api_token,
                "X-API-KEY": self.api_token,
            },
        )
        data = payload.get("data")
        if isinstance(data, dict):
            items = data.get("data") or []
        elif isinstance(data, list):
            items = data
        else:
            items = payload.get("transactions") or []
        if not isinstance(items, list):
            raise UpstreamError(f"Unexpected credit transaction shape from {self.url}")
        return UpstreamPage(items=items)

    def fetch_all(self, *, start_date: date, end_date: date) -> list[dict[str, Any]]:
        return fetch_all_pages(
            lambda page, limit: self.fetch_page(page, limit, start_date=start_date, end_date=end_date),
            page_size=self.page_size,
            max_pages=self.max_pages,
            label="credit transactions",
        )


class CustomerApiClient(UpstreamClient):
    """Customer profiles from the CMS public customer list."""

    service_name = "customer service"

    def __init__(
        self,
        *,
        url: str,
        api_key: str,
        max_pages: int = 1000,
        timeout_seconds: int = 30,
        session: requests.Session | None = None,
    ) -> None:
        super().__init__(timeout_seconds=timeout_seconds, session=session)
        self.url = url
        self.api_key = api_key
        self.max_pages = max_pages

    def fetch_page(
        self,
        page: int,
        limit: int,
        *,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> UpstreamPage:
        if not self.api_key:
            raise UpstreamError("CMS_CUSTOMER_API_KEY is not configured.")

        filters: dict[str, Any] = {
            "set_guid": False,
            "set_name": False,
            "set_email": False,
            "set_date": False,
            "set_platform": False,
        }
        if start_date is not None and end_date is not None:
            filters.update(
                {
                    "set_date": True,
                    "start_date": start_date.isoformat(),
                    "end_date": end_date.isoformat(),
                }
            )

        payload = self._request_json(
            "POST",
            self.url,
            json={
                "filter": filters,
                "limit": limit,
                "page": page,
                "order": "created_at",
                "sort": "DESC",
            },
            headers={"x-api-key": self.api_key},
        )
        data = payload.get("data")
        if isinstance(data, list):
            items = data
            total_pages = payload.get("total_page")
        elif isinstance(data, dict):
            items = data.get("customers") or []
            total_pages = payload.get("total_page") or data.get("total_page")
        else:
            items, total_pages = [], None
        return UpstreamPage(items=items, current_page=page, total_pages=total_pages)

    def fetch_all(
        self,
        *,
        page_size: int,
        start_page: int = 1,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> list[dict[str, Any]]:
        return fetch_all_pages(
            lambda page, limit: self.fetch_page(
                page, limit, start_date=start_date, end_date=end_date
            ),
            page_size=page_size,
            max_pages=self.max_pages,
            start_page=start_page,
            label="customers",
        )


class TrainingDataWebhookClient(UpstreamClient):
    """Training-data tallies published by the automation webhooks."""

    service_name = "training data webhook"

    def __init__(
        self,
        *,
        s1_url: str,
        s2_url: str,
        timeout_seconds: int = 30,
        session: requests.Session | None = None,
    ) -> None:
        super().__init__(timeout_seconds=timeout_seconds, session=session)
        self.s1_url = s1_url
        self.s2_url = s2_url

    def _fetch(self, url: str, setting: str) -> Any:
        if not url:
            raise UpstreamError(f"{setting} is not configured.")
        return self._request_payload("GET", url, headers={"Cache-Control": "no-store"})

    def fetch_s1(self) -> list[dict[str, Any]]:
        payload = self._fetch(self.s1_url, "TRAINING_S1_WEBHOOK_URL")
        if not isinstance(payload, list):
            raise UpstreamError(f"Unexpected S1 payload shape from {self.service_name}")
        return [item for item in payload if isinstance(item, dict)]

    def fetch_s2(self) -> list[dict[str, Any]]:
        payload = self._fetch(self.s2_url, "TRAINING_S2_WEBHOOK_URL")
        if isinstance(payload, dict):
            return [payload]
        if not isinstance(payload, list):
            raise UpstreamError(f"Unexpected S2 payload shape from {self.service_name}")
        return [item for item in payload if isinstance(item, dict)]
