# This file builds the FastAPI application and registers all API routers.
# It exists so startup behavior, middleware, and error handling are configured in one place.
# The app adds request IDs, timing headers, and Prometheus metrics for operations visibility.
# Keeping bootstrap logic centralized makes deployment and testing more predictable.

from __future__ import annotations

import time
import uuid
from typing import Any

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, Histogram, generate_latest
from sqlalchemy.exc import SQLAlchemyError
from starlette.middleware.base import RequestResponseEndpoint

from src.api.api_config import get_api_config
from src.api.dependencies import get_database_client
from src.api.error_handlers import register_error_handlers
from src.api.routers.auth import router as auth_router
from src.api.routers.customers import router as customers_router
from src.api.routers.dashboard import router as dashboard_router
from src.api.routers.events import public_router as public_events_router
from src.api.routers.events import router as events_router
from src.api.routers.excluded_emails import router as excluded_emails_router
from src.api.routers.exports import router as exports_router
from src.api.routers.health import router as health_router
from src.api.routers.partners import router as partners_router
from src.api.routers.referrals import router as referrals_router
from src.api.routers.sync import router as sync_router
from src.api.routers.training_data import router as training_data_router
from src.api.routers.transactions import router as transactions_router
from src.api.schemas.common import ErrorResponse
from src.common.logging import configure_logging

API_HTTP_REQUESTS_TOTAL = Counter(
    "api_http_requests_total",
    "Total number of HTTP requests processed by the API.",
    ["method", "path", "status_code"],
)
API_HTTP_REQUEST_DURATION_SECONDS = Histogram(
    "api_http_request_duration_seconds",
    "API request duration in seconds.",
    ["method", "path"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10),
)
API_HTTP_INFLIGHT_REQUESTS = Gauge(
    "api_http_inflight_requests",
    "Number of API requests currently being processed.",
    ["method", "path"],
)

DOMAIN_ROUTERS = (
    transactions_router,
    customers_router,
    referrals_router,
    excluded_emails_router,
    events_router,
    public_events_router,
    dashboard_router,
    partners_router,
    exports_router,
    sync_router,
    training_data_router,
    auth_router,
)

# Documented error body for every domain route.
ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    status_code: {"model": ErrorResponse} for status_code in (400, 404, 409, 500, 502, 503)
}


def create_app() -> FastAPI:
    """Create configured FastAPI application instance."""

    configure_logging()
    config = get_api_config()

    app = FastAPI(
        title=config.api_name,
        description=(
            "Internal growth dashboard API over synced marketplace customers, transactions, "
            "credit usage, referral partners, events, and partner pipeline records."
        ),
        version=config.app_version,
        openapi_tags=[
            {"name": "health", "description": "Service liveness, readiness, and version metadata."},
            {"name": "transactions", "description": "Purchase transactions, stats, and payment channels."},
            {"name": "customers", "description": "Customer lists with credit usage and churn status."},
            {"name": "referrals", "description": "Referral rollups and referral code registry."},
            {"name": "excluded-emails", "description": "Demo and test accounts hidden from reports."},
            {"name": "events", "description": "Training event administration and registrations."},
            {"name": "public-events", "description": "Public event catalogue and self-registration."},
            {"name": "dashboard", "description": "Aggregated growth dashboard views."},
            {"name": "partners", "description": "Partner pipeline records and activation progress."},
            {"name": "exports", "description": "Spreadsheet exports."},
            {"name": "sync", "description": "On-demand upstream synchronisation."},
            {"name": "auth", "description": "Marketplace credential cache."},
        ],
    )

    if config.allowed_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=config.allowed_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.middleware("http")
    async def request_context_middleware(
        request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        request.state.request_id = request_id

        method_label = request.method
        path_label = request.url.path
        started = time.perf_counter()
        status_code = 500
        API_HTTP_INFLIGHT_REQUESTS.labels(method=method_label, path=path_label).inc()
        try:
            response: Response = await call_next(request)
            status_code = response.status_code
            duration_ms = (time.perf_counter() - started) * 1000.0

            response.headers["x-request-id"] = request_id
            response.headers["x-response-time-ms"] = f"{duration_ms:.2f}"
            return response
        finally:
            duration_s = time.perf_counter() - started
            API_HTTP_REQUESTS_TOTAL.labels(
                method=method_label,
                path=path_label,
                status_code=str(status_code),
            ).inc()
            API_HTTP_REQUEST_DURATION_SECONDS.labels(
                method=method_label,
                path=path_label,
            ).observe(duration_s)
            API_HTTP_INFLIGHT_REQUESTS.labels(method=method_label, path=path_label).dec()

    @app.get("/metrics", include_in_schema=False)
    def metrics() -> Response:
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    @app.on_event("startup")
    def startup_checks() -> None:
        try:
            db = get_database_client()
            app.state.db_connected_at_startup = db.can_connect()
        except SQLAlchemyError:
            app.state.db_connected_at_startup = False

    register_error_handlers(app)

    app.include_router(health_router)
    for domain_router in DOMAIN_ROUTERS:
        app.include_router(domain_router, prefix=config.api_prefix, responses=ERROR_RESPONSES)

    return app


app = create_app()
