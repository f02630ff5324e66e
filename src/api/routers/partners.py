# This file defines partner pipeline (CRM) and partner activation endpoints.
# It exists so partnership follow-ups and activation progress are tracked next to growth data.
# Static activation paths are registered before the id path.

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Request

from src.api.dependencies import get_partner_service
from src.api.response_envelope import build_object_envelope, utc_now_iso
from src.api.schemas.partner_schemas import (
    ActivationTargetResponse,
    PartnerActivationListResponse,
    PartnerCreateRequest,
    PartnerListResponse,
    PartnerResponse,
    PartnerUpdateRequest,
)
from src.api.services.partner_service import PartnerService

router = APIRouter(prefix="/partners", tags=["partners"])
PartnerServiceDep = Annotated[PartnerService, Depends(get_partner_service)]


@router.get("", response_model=PartnerListResponse)
def list_partners(request: Request, service: PartnerServiceDep) -> dict[str, object]:
    partners = service.list_partners()
    return build_object_envelope(
        request_id=request.state.request_id,
        data=partners,
        resource_key="partners",
        extra={"total_count": len(partners)},
    )


@router.post("", response_model=PartnerResponse, status_code=201)
def create_partner(request: Request, service: PartnerServiceDep, body: PartnerCreateRequest) -> dict[str, object]:
    return build_object_envelope(
        request_id=request.state.request_id,
        data=service.create_partner(body.model_dump()),
        resource_key="partner",
    )


@router.get("/activations", response_model=PartnerActivationListResponse)
def partner_activations(request: Request, service: PartnerServiceDep) -> dict[str, object]:
    return build_object_envelope(
        request_id=request.state.request_id,
        data=service.get_activation_matrix(),
        resource_key="activations",
    )


@router.get("/activation-target", response_model=ActivationTargetResponse)
def activation_target(request: Request, service: PartnerServiceDep) -> dict[str, object]:
    payload = service.get_activation_target()
    return {
        **payload,
        "request_id": request.state.request_id,
        "generated_at": utc_now_iso(),
    }


@router.get("/{partner_id}", response_model=PartnerResponse)
def get_partner(request: Request, service: PartnerServiceDep, partner_id: int) -> dict[str, object]:
    return build_object_envelope(
        request_id=request.state.request_id,
        data=service.get_partner(partner_id),
        resource_key="partner",
    )


@router.put("/{partner_id}", response_model=PartnerResponse)
def update_partner(
    request: Request,
    service: PartnerServiceDep,
    partner_id: int,
    body: PartnerUpdateRequest,
) -> dict[str, object]:
    return build_object_envelope(
        request_id=request.state.request_id,
        data=service.update_partner(partner_id, body.model_dump(exclude_unset=True)),
        resource_key="partner",
    )
