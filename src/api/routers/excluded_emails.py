# This file defines endpoints for curating the demo/test email exclusion list.
# It exists so operators can hide internal and test accounts from every growth report.
# Bulk submissions report skipped duplicates instead of failing the whole request.

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, Response

from src.api.api_config import ApiConfig
from src.api.dependencies import get_config, get_excluded_email_service
from src.api.error_handlers import bad_request
from src.api.pagination import parse_page_params
from src.api.response_envelope import build_list_envelope, build_object_envelope
from src.api.schemas.excluded_email_schemas import (
    ExcludedEmailCreateRequest,
    ExcludedEmailDeleteResponse,
    ExcludedEmailListResponse,
    ExcludedEmailResponse,
    ExcludedEmailUpdateRequest,
)
from src.api.services.excluded_email_service import ExcludedEmailService

router = APIRouter(prefix="/excluded-emails", tags=["excluded-emails"])
ExcludedEmailServiceDep = Annotated[ExcludedEmailService, Depends(get_excluded_email_service)]
ConfigDep = Annotated[ApiConfig, Depends(get_config)]


@router.get("", response_model=ExcludedEmailListResponse)
def list_excluded_emails(
    request: Request,
    service: ExcludedEmailServiceDep,
    config: ConfigDep,
    page: str | None = Query(default=None),
    limit: str | None = Query(default=None),
    search: str | None = Query(default=None),
) -> dict[str, object]:
    try:
        pagination = parse_page_params(
            page=page,
            limit=limit,
            default_page_size=config.default_page_size,
            max_page_size=config.max_page_size,
        )
    except ValueError as exc:
        raise bad_request(str(exc), error_code="INVALID_QUERY_PARAM") from exc

    result = service.list_emails(search=search, pagination=pagination)
    return build_list_envelope(
        resource_key="emails",
        request_id=request.state.request_id,
        rows=result["rows"],
        pagination=pagination,
        total_count=result["total_count"],
    )


@router.post("", status_code=201)
def create_excluded_email(
    request: Request,
    response: Response,
    service: ExcludedEmailServiceDep,
    body: ExcludedEmailCreateRequest,
) -> dict[str, object]:
    if body.emails and body.emails.strip():
        result = service.create_bulk(emails=body.emails, reason=body.reason)
        if result["inserted"] == 0:
            response.status_code = 200
        return build_object_envelope(
            request_id=request.state.request_id,
            data=result.pop("emails"),
            resource_key="emails",
            extra={
                **result,
                "message": f"Added {result['inserted']} emails, skipped {result['skipped']} duplicates",
            },
        )

    created = service.create_email(email=body.email, reason=body.reason)
    return build_object_envelope(
        request_id=request.state.request_id,
        data=created,
        resource_key="email",
    )


@router.put("", response_model=ExcludedEmailResponse)
def update_excluded_email(
    request: Request,
    service: ExcludedEmailServiceDep,
    body: ExcludedEmailUpdateRequest,
) -> dict[str, object]:
    updated = service.update_email(
        old_email=body.old_email,
        email=body.email,
        reason=body.reason,
        is_active=body.is_active,
    )
    return build_object_envelope(
        request_id=request.state.request_id,
        data=updated,
        resource_key="email",
    )


@router.delete("", response_model=ExcludedEmailDeleteResponse)
def delete_excluded_email(
    request: Request,
    service: ExcludedEmailServiceDep,
    email: str | None = Query(default=None),
) -> dict[str, object]:
    deleted = service.delete_email(email)
    return build_object_envelope(
        request_id=request.state.request_id,
        data=deleted,
        resource_key="deleted_email",
        extra={"success": True},
    )
