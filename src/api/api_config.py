# This file defines runtime settings for the API layer in one place.
# It exists so endpoint behavior, pagination defaults, and connection pooling can be configured without code edits.
# The config loader reads environment variables and applies safe defaults for local development.
# It also validates the route prefix and page sizes before the app starts serving traffic.

from __future__ import annotations

import os
from functools import lru_cache

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator


class ApiConfig(BaseModel):
    """Typed API runtime configuration."""

    model_config = ConfigDict(extra="ignore")

    api_name: str = "Growth Dashboard API"
    api_prefix: str = "/api"
    host: str = "0.0.0.0"
    port: int = 8000
    environment: str = "local"
    database_url: str
    database_ssl: bool = False
    db_pool_size: int = 10
    default_page_size: int = 50
    event_page_size: int = 10
    max_page_size: int = 500
    allowed_origins: list[str] = Field(default_factory=list)
    auto_exclude_email_domains: list[str] = Field(default_factory=lambda: ["mailinator.com"])
    activation_target: int = 1000
    app_version: str = "0.1.0"

    @field_validator("api_prefix")
    @classmethod
    def validate_api_prefix(cls, value: str) -> str:
        if not value.startswith("/"):
            raise ValueError("api_prefix must start with '/'.")
        return value.rstrip("/")

    @field_validator(
        "db_pool_size",
        "default_page_size",
        "event_page_size",
        "max_page_size",
        "activation_target",
    )
    @classmethod
    def validate_positive_ints(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("Value must be greater than 0.")
        return value

    @field_validator("auto_exclude_email_domains")
    @classmethod
    def normalize_domains(cls, value: list[str]) -> list[str]:
        return [domain.strip().lower().lstrip("@") for domain in value if domain.strip()]


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    value = raw.strip().lower()
    if value in {"1", "true", "yes", "y", "on"}:
        return True
    if value in {"0", "false", "no", "n", "off"}:
        return False
    raise ValueError(f"{name} must be boolean-like, got {raw!r}")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return int(raw)


def _env_list(name: str, default: list[str] | None = None) -> list[str]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return list(default or [])
    return [item.strip() for item in raw.split(",") if item.strip()]


def load_api_config(*, load_env: bool = True) -> ApiConfig:
    """Load API configuration from `.env` and process environment."""

    if load_env:
        load_dotenv()

    config_values: dict[str, object] = {
        "api_name": os.getenv("API_NAME", "Growth Dashboard API"),
        "api_prefix": os.getenv("API_PREFIX", "/api"),
        "host": os.getenv("API_HOST", "0.0.0.0"),
        "port": _env_int("API_PORT", 8000),
        "environment": os.getenv("ENV", "local"),
        "database_url": os.getenv("DATABASE_URL", ""),
        "database_ssl": _env_bool("DATABASE_SSL", False),
        "db_pool_size": _env_int("DB_POOL_SIZE", 10),
        "default_page_size": _env_int("API_DEFAULT_PAGE_SIZE", 50),
        "event_page_size": _env_int("API_EVENT_PAGE_SIZE", 10),
        "max_page_size": _env_int("API_MAX_PAGE_SIZE", 500),
        "allowed_origins": _env_list("API_ALLOWED_ORIGINS", []),
        "auto_exclude_email_domains": _env_list("AUTO_EXCLUDE_EMAIL_DOMAINS", ["mailinator.com"]),
        "activation_target": _env_int("GOV_NON_GOV_TARGET", 1000),
        "app_version": os.getenv("APP_VERSION", "0.1.0"),
    }
    if not config_values["database_url"]:
        raise RuntimeError("DATABASE_URL is required for API startup.")

    return ApiConfig.model_validate(config_values)


@lru_cache(maxsize=1)
def get_api_config() -> ApiConfig:
    """Cached accessor for API config."""

    return load_api_config()
