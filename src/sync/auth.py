"""Cached credential for the marketplace auth service."""

from __future__ import annotations

import logging
from typing import Any

import requests

from src.sync.sync_config import SyncConfig
from src.sync.upstream import UpstreamAuthError, UpstreamClient, UpstreamError

logger = logging.getLogger(__name__)

SUCCESS_CODE = "00"


class MarketplaceTokenProvider(UpstreamClient):
    """Holds one marketplace token for the life of the process.

    The token has no expiry tracking; it is reused until `invalidate()` is called.
    A failed request leaves the provider unauthenticated. Concurrent first calls may
    each fetch a token, and the last one written wins.
    """

    service_name = "marketplace auth"

    def __init__(
        self,
        *,
        auth_url: str,
        back_office_login_url: str,
        app_name: str,
        app_key: str,
        device_id: str,
        device_type: str,
        ip_address: str,
        timeout_seconds: int = 30,
        session: requests.Session | None = None,
    ) -> None:
        super().__init__(timeout_seconds=timeout_seconds, session=session)
        self.auth_url = auth_url
        self.back_office_login_url = back_office_login_url
        self._credentials = {
            "app_name": app_name,
            "app_key": app_key,
            "device_id": device_id,
            "device_type": device_type,
            "ip_address": ip_address,
        }
        self._token: str | None = None

    @property
    def token(self) -> str | None:
        return self._token

    def is_authenticated(self) -> bool:
        return bool(self._token)

    def get_token(self) -> str:
        """Return the cached token, authenticating first when there is none."""

        if self._token:
            return self._token
        if not self._credentials["app_name"] or not self._credentials["app_key"]:
            raise UpstreamAuthError("Marketplace app credentials are not configured.")

        body = self._post(self.auth_url, json=self._credentials)
        token = self._extract_token(body, action="Authentication")
        self._token = token
        logger.info("Obtained marketplace token")
        return token

    def back_office_login(self, *, identifier: str, password: str) -> dict[str, Any]:
        """Log in as a back-office user; the session token replaces the app token."""

        app_token = self.get_token()
        body = self._post(
            self.back_office_login_url,
            json={"identifier": identifier, "password": password},
            headers={"token": app_token},
        )
        self._token = self._extract_token(body, action="Login")
        logger.info("Back-office login succeeded for %s", identifier)
        return body

    def invalidate(self) -> None:
        self._token = None

    def status(self) -> dict[str, Any]:
        return {
            "has_token": self.is_authenticated(),
            "token_preview": f"{self._token[:20]}..." if self._token else None,
        }

    def _post(self, url: str, **kwargs: Any) -> dict[str, Any]:
        try:
            payload = self._request_json("POST", url, **kwargs)
        except UpstreamAuthError:
            raise
        except UpstreamError as exc:
            raise UpstreamAuthError(str(exc)) from exc
        response = payload.get("response")
        if not isinstance(response, dict):
            raise UpstreamAuthError(f"Unexpected payload shape from {self.service_name} at {url}")
        return response

    @staticmethod
    def _extract_token(response: dict[str, Any], *, action: str) -> str:
        if response.get("code") != SUCCESS_CODE:
            message = response.get("message_en") or "Unknown error"
            raise UpstreamAuthError(f"{action} error: {message}")
        data = response.get("data") or {}
        token = data.get("token") if isinstance(data, dict) else None
        if not token:
            raise UpstreamAuthError(f"{action} response did not include a token.")
        return str(token)


def build_token_provider(config: SyncConfig, *, session: requests.Session | None = None) -> MarketplaceTokenProvider:
    return MarketplaceTokenProvider(
        auth_url=config.auth_url,
        back_office_login_url=config.back_office_login_url,
        app_name=config.app_name,
        app_key=config.app_key,
        device_id=config.device_id,
        device_type=config.device_type,
        ip_address=config.ip_address,
        timeout_seconds=config.request_timeout_seconds,
        session=session,
    )
