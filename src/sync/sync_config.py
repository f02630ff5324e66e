"""Configuration for upstream marketplace APIs used by the sync jobs."""

from __future__ import annotations

import os
from functools import lru_cache

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, field_validator

MARKETPLACE_BASE_URL = "https://api-mwxmarket.mwxmarket.ai"


class SyncConfig(BaseModel):
    """Typed upstream endpoint and credential settings."""

    model_config = ConfigDict(extra="ignore")

    auth_url: str = f"{MARKETPLACE_BASE_URL}/auth-service/token/auth"
    back_office_login_url: str = f"{MARKETPLACE_BASE_URL}/auth-service/authentication/back-office/login"
    app_name: str = ""
    app_key: str = ""
    device_id: str = "growth-dashboard"
    device_type: str = "server"
    ip_address: str = "0.0.0.0"

    transaction_api_url: str = f"{MARKETPLACE_BASE_URL}/transaction-service/transaction/external/list"
    transaction_api_key: str = ""
    transaction_page_size: int = 100
    transaction_default_status: str = "finished"
    transaction_lookback_days: int = 30

    credit_manager_api_url: str = "https://credit-manager.mwxmarket.ai/api/v1/transactions"
    credit_manager_api_token: str = ""
    credit_page_size: int = 100
    credit_fallback_start_date: str = "2024-01-01"

    customer_api_url: str = f"{MARKETPLACE_BASE_URL}/cms-service/customer/list/public"
    customer_api_key: str = ""
    customer_page_size: int = 500
    customer_max_page_size: int = 3000

    training_s1_webhook_url: str = ""
    training_s2_webhook_url: str = ""

    max_pages: int = 1000
    request_timeout_seconds: int = 30

    @field_validator(
        "transaction_page_size",
        "credit_page_size",
        "customer_page_size",
        "customer_max_page_size",
        "max_pages",
        "request_timeout_seconds",
        "transaction_lookback_days",
    )
    @classmethod
    def validate_positive_ints(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("Value must be greater than 0.")
        return value


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return int(raw)


def load_sync_config(*, load_env: bool = True) -> SyncConfig:
    """Load upstream settings from `.env` and process environment."""

    if load_env:
        load_dotenv()

    defaults = SyncConfig()
    return SyncConfig.model_validate(
        {
            "auth_url": os.getenv("MARKETPLACE_AUTH_URL", defaults.auth_url),
            "back_office_login_url": os.getenv(
                "MARKETPLACE_BACK_OFFICE_LOGIN_URL", defaults.back_office_login_url
            ),
            "app_name": os.getenv("MARKETPLACE_APP_NAME", ""),
            "app_key": os.getenv("MARKETPLACE_APP_KEY", ""),
            "device_id": os.getenv("MARKETPLACE_DEVICE_ID", defaults.device_id),
            "device_type": os.getenv("MARKETPLACE_DEVICE_TYPE", defaults.device_type),
            "ip_address": os.getenv("MARKETPLACE_IP_ADDRESS", defaults.ip_address),
            "transaction_api_url": os.getenv("TRANSACTION_API_URL", defaults.transaction_api_url),
            "transaction_api_key": os.getenv("TRANSACTION_API_KEY", ""),
            "transaction_page_size": _env_int("TRANSACTION_PAGE_SIZE", 100),
            "transaction_default_status": os.getenv("TRANSACTION_DEFAULT_STATUS", "finished"),
            "transaction_lookback_days": _env_int("TRANSACTION_LOOKBACK_DAYS", 30),
            "credit_manager_api_url": os.getenv(
                "CREDIT_MANAGER_API_URL", defaults.credit_manager_api_url
            ),
            "credit_manager_api_token": os.getenv("CREDIT_MANAGER_API_TOKEN", ""),
            "credit_page_size": _env_int("CREDIT_PAGE_SIZE", 100),
            "credit_fallback_start_date": os.getenv("CREDIT_FALLBACK_START_DATE", "2024-01-01"),
            "customer_api_url": os.getenv("CMS_CUSTOMER_API_URL", defaults.customer_api_url),
            "customer_api_key": os.getenv("CMS_CUSTOMER_API_KEY", ""),
            "customer_page_size": _env_int("CUSTOMER_PAGE_SIZE", 500),
            "customer_max_page_size": _env_int("CUSTOMER_MAX_PAGE_SIZE", 3000),
            "training_s1_webhook_url": os.getenv("TRAINING_S1_WEBHOOK_URL", ""),
            "training_s2_webhook_url": os.getenv("TRAINING_S2_WEBHOOK_URL", ""),
            "max_pages": _env_int("SYNC_MAX_PAGES", 1000),
            "request_timeout_seconds": _env_int("SYNC_REQUEST_TIMEOUT_SECONDS", 30),
        }
    )


@lru_cache(maxsize=1)
def get_sync_config() -> SyncConfig:
    """Cached accessor for upstream settings."""

    return load_sync_config()
