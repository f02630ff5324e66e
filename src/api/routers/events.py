# This file defines admin event endpoints and the public event registration endpoints.
# It exists so event organisers and prospective participants share one event catalogue.
# Admin listings default to ten events per page, newest event date first.
# Public routes only expose active events and never require credentials.

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, Response

from src.api.api_config import ApiConfig
from src.api.dependencies import get_config, get_event_service
from src.api.error_handlers import bad_request
from src.api.pagination import parse_page_params
from src.api.response_envelope import build_list_envelope, build_object_envelope
from src.api.schemas.event_schemas import (
    EventCreateRequest,
    EventListResponse,
    EventRegistrationListResponse,
    EventResponse,
    EventUpdateRequest,
    PublicEventListResponse,
    PublicEventResponse,
    RegistrationCheckResponse,
    RegistrationRequest,
    RegistrationResponse,
)
from src.api.services.event_service import EventService

router = APIRouter(prefix="/events", tags=["events"])
public_router = APIRouter(prefix="/public/events", tags=["public-events"])
EventServiceDep = Annotated[EventService, Depends(get_event_service)]
ConfigDep = Annotated[ApiConfig, Depends(get_config)]


@router.get("", response_model=EventListResponse)
def list_events(
    request: Request,
    service: EventServiceDep,
    config: ConfigDep,
    page: str | None = Query(default=None),
    limit: str | None = Query(default=None),
    search: str | None = Query(default=None),
    partner: str | None = Query(default=None),
    status: str | None = Query(default=None),
) -> dict[str, object]:
    try:
        pagination = parse_page_params(
            page=page,
            limit=limit,
            default_page_size=config.event_page_size,
            max_page_size=config.max_page_size,
        )
        result = service.list_events(search=search, partner=partner, status=status, pagination=pagination)
    except ValueError as exc:
        raise bad_request(str(exc), error_code="INVALID_QUERY_PARAM") from exc

    return build_list_envelope(
        resource_key="events",
        request_id=request.state.request_id,
        rows=result["rows"],
        pagination=pagination,
        total_count=result["total_count"],
    )


@router.post("", response_model=EventResponse, status_code=201)
def create_event(request: Request, service: EventServiceDep, body: EventCreateRequest) -> dict[str, object]:
    return build_object_envelope(
        request_id=request.state.request_id,
        data=service.create_event(body.model_dump()),
        resource_key="event",
    )


@router.get("/{event_id}", response_model=EventResponse)
def get_event(request: Request, service: EventServiceDep, event_id: int) -> dict[str, object]:
    return build_object_envelope(
        request_id=request.state.request_id,
        data=service.get_event(event_id),
        resource_key="event",
    )


@router.put("/{event_id}", response_model=EventResponse)
def update_event(
    request: Request,
    service: EventServiceDep,
    event_id: int,
    body: EventUpdateRequest,
) -> dict[str, object]:
    updated = service.update_event(event_id, body.model_dump(exclude_unset=True))
    return build_object_envelope(
        request_id=request.state.request_id,
        data=updated,
        resource_key="event",
    )


@router.delete("/{event_id}", status_code=204)
def delete_event(service: EventServiceDep, event_id: int) -> Response:
    service.delete_event(event_id)
    return Response(status_code=204)


@router.get("/{event_id}/registrations", response_model=EventRegistrationListResponse)
def event_registrations(request: Request, service: EventServiceDep, event_id: int) -> dict[str, object]:
    registrations = service.list_registrations(event_id)
    return build_object_envelope(
        request_id=request.state.request_id,
        data=registrations,
        resource_key="registrations",
        extra={"total_count": len(registrations)},
    )


@public_router.get("", response_model=PublicEventListResponse)
def list_public_events(
    request: Request,
    service: EventServiceDep,
    upcoming: bool = Query(default=True),
) -> dict[str, object]:
    events = service.list_public_events(upcoming=upcoming)
    return build_object_envelope(
        request_id=request.state.request_id,
        data=events,
        resource_key="events",
        extra={"total_count": len(events)},
    )


@public_router.get("/check-registration", response_model=RegistrationCheckResponse)
def check_registration(
    request: Request,
    service: EventServiceDep,
    event_id: int = Query(),
    email: str = Query(min_length=1),
) -> dict[str, object]:
    result = service.check_registration(event_id=event_id, email=email)
    return build_object_envelope(
        request_id=request.state.request_id,
        data=result["registration"],
        resource_key="registration",
        extra={"is_registered": result["is_registered"]},
    )


@public_router.get("/{event_id}", response_model=PublicEventResponse)
def get_public_event(request: Request, service: EventServiceDep, event_id: int) -> dict[str, object]:
    return build_object_envelope(
        request_id=request.state.request_id,
        data=service.get_public_event(event_id),
        resource_key="event",
    )


@public_router.post("/{event_id}/register", response_model=RegistrationResponse, status_code=201)
def register_for_event(
    request: Request,
    service: EventServiceDep,
    event_id: int,
    body: RegistrationRequest,
) -> dict[str, object]:
    result = service.register(
        event_id,
        full_name=body.full_name.strip(),
        email=body.email,
        phone_number=body.phone_number,
        business_name=body.business_name,
    )
    return build_object_envelope(
        request_id=request.state.request_id,
        data=result["registration"],
        resource_key="registration",
        extra={"is_new_user": result["is_new_user"], "message": "Event registration successful"},
    )
