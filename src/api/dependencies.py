# This file provides dependency factories for FastAPI routes and middleware.
# It exists so services are created once and shared through dependency injection.
# The setup keeps routers thin and makes endpoint tests easy to override.
# The marketplace token provider lives here too, so its cache is per process rather than per module import.

from __future__ import annotations

from functools import lru_cache

import requests

from src.api.api_config import ApiConfig, get_api_config
from src.api.db_access import DatabaseClient
from src.api.services.customer_service import CustomerService
from src.api.services.dashboard_service import DashboardService
from src.api.services.event_service import EventService
from src.api.services.excluded_email_service import ExcludedEmailService
from src.api.services.export_service import ExportService
from src.api.services.partner_service import PartnerService
from src.api.services.referral_service import ReferralService
from src.api.services.sync_service import SyncService
from src.api.services.training_data_service import TrainingDataService
from src.api.services.transaction_service import TransactionService
from src.sync.auth import MarketplaceTokenProvider, build_token_provider
from src.sync.clients import TrainingDataWebhookClient
from src.sync.run_sync import build_sync_clients
from src.sync.sync_config import get_sync_config


@lru_cache(maxsize=1)
def get_database_client() -> DatabaseClient:
    config = get_api_config()
    return DatabaseClient(
        database_url=config.database_url,
        ssl_enabled=config.database_ssl,
        pool_size=config.db_pool_size,
    )


@lru_cache(maxsize=1)
def get_http_session() -> requests.Session:
    return requests.Session()


@lru_cache(maxsize=1)
def get_transaction_service() -> TransactionService:
    return TransactionService(db=get_database_client())


@lru_cache(maxsize=1)
def get_customer_service() -> CustomerService:
    config = get_api_config()
    return CustomerService(db=get_database_client(), auto_exclude_domains=config.auto_exclude_email_domains)


@lru_cache(maxsize=1)
def get_referral_service() -> ReferralService:
    return ReferralService(db=get_database_client())


@lru_cache(maxsize=1)
def get_excluded_email_service() -> ExcludedEmailService:
    return ExcludedEmailService(db=get_database_client())


@lru_cache(maxsize=1)
def get_event_service() -> EventService:
    return EventService(db=get_database_client())


@lru_cache(maxsize=1)
def get_dashboard_service() -> DashboardService:
    return DashboardService(db=get_database_client())


@lru_cache(maxsize=1)
def get_partner_service() -> PartnerService:
    config = get_api_config()
    return PartnerService(db=get_database_client(), activation_target=config.activation_target)


@lru_cache(maxsize=1)
def get_export_service() -> ExportService:
    return ExportService(db=get_database_client())


@lru_cache(maxsize=1)
def get_sync_service() -> SyncService:
    config = get_sync_config()
    return SyncService(
        db=get_database_client(),
        clients=build_sync_clients(config, session=get_http_session()),
        config=config,
    )


@lru_cache(maxsize=1)
def get_training_data_service() -> TrainingDataService:
    config = get_sync_config()
    client = TrainingDataWebhookClient(
        s1_url=config.training_s1_webhook_url,
        s2_url=config.training_s2_webhook_url,
        timeout_seconds=config.request_timeout_seconds,
        session=get_http_session(),
    )
    return TrainingDataService(client=client)


@lru_cache(maxsize=1)
def get_token_provider() -> MarketplaceTokenProvider:
    return build_token_provider(get_sync_config(), session=get_http_session())


def get_config() -> ApiConfig:
    return get_api_config()
