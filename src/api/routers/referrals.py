# This file defines referral rollup and referral partner management endpoints.
# It exists so partner codes can be registered, renamed, and reported on in one place.
# Rollup sorting accepts a whitelisted field and order and falls back to user count descending.
# Partner writes return 400, 404, and 409 through service-raised API errors.

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request

from src.api.dependencies import get_referral_service
from src.api.pagination import parse_sort
from src.api.response_envelope import build_object_envelope
from src.api.schemas.referral_schemas import (
    ReferralPartnerCreateRequest,
    ReferralPartnerListResponse,
    ReferralPartnerResponse,
    ReferralPartnerUpdateRequest,
    ReferralRollupResponse,
    ReferralScanResponse,
)
from src.api.services.referral_service import REFERRAL_SORT_FIELD_MAP, ReferralService

router = APIRouter(prefix="/referrals", tags=["referrals"])
ReferralServiceDep = Annotated[ReferralService, Depends(get_referral_service)]


@router.get("", response_model=ReferralRollupResponse)
def referral_rollup(
    request: Request,
    service: ReferralServiceDep,
    sort_by: str | None = Query(default=None),
    sort_order: str | None = Query(default=None),
) -> dict[str, object]:
    sort_spec = parse_sort(
        requested_field=sort_by,
        requested_order=sort_order,
        allowed_fields=set(REFERRAL_SORT_FIELD_MAP),
        default_field="user_count",
    )
    result = service.get_rollup(sort=sort_spec)
    return build_object_envelope(
        request_id=request.state.request_id,
        data=result["rows"],
        resource_key="referrals",
        extra={
            "total_count": result["total_count"],
            "summary": result["summary"],
            "sort": sort_spec.as_text,
        },
    )


@router.get("/partners", response_model=ReferralPartnerListResponse)
def list_referral_partners(request: Request, service: ReferralServiceDep) -> dict[str, object]:
    partners = service.list_partners()
    return build_object_envelope(
        request_id=request.state.request_id,
        data=partners,
        resource_key="partners",
        extra={"total_count": len(partners)},
    )


@router.post("/partners", response_model=ReferralPartnerResponse, status_code=201)
def create_referral_partner(
    request: Request,
    service: ReferralServiceDep,
    body: ReferralPartnerCreateRequest,
) -> dict[str, object]:
    created = service.create_partner(code=body.code, partner=body.partner, is_gov=body.is_gov)
    return build_object_envelope(
        request_id=request.state.request_id,
        data=created,
        resource_key="partner",
        extra={"message": "Referral partner created successfully"},
    )


@router.post("/partners/scan", response_model=ReferralScanResponse)
def scan_referral_codes(request: Request, service: ReferralServiceDep) -> dict[str, object]:
    codes = service.scan_new_codes()
    message = (
        f"Successfully scanned and added {len(codes)} new referral codes"
        if codes
        else "No new referral codes found to scan"
    )
    return build_object_envelope(
        request_id=request.state.request_id,
        data=codes,
        resource_key="codes",
        extra={"message": message, "scanned": len(codes)},
    )


@router.put("/partners/{partner_id}", response_model=ReferralPartnerResponse)
def update_referral_partner(
    request: Request,
    service: ReferralServiceDep,
    partner_id: int,
    body: ReferralPartnerUpdateRequest,
) -> dict[str, object]:
    updated = service.update_partner(
        partner_id,
        code=body.code,
        partner=body.partner,
        is_gov=body.is_gov,
        is_new=body.is_new,
    )
    return build_object_envelope(
        request_id=request.state.request_id,
        data=updated,
        resource_key="partner",
        extra={"message": "Referral partner updated successfully"},
    )


@router.delete("/partners/{partner_id}", response_model=ReferralPartnerResponse)
def delete_referral_partner(
    request: Request,
    service: ReferralServiceDep,
    partner_id: int,
) -> dict[str, object]:
    deleted = service.delete_partner(partner_id)
    return build_object_envelope(
        request_id=request.state.request_id,
        data=deleted,
        resource_key="partner",
        extra={"message": "Referral partner deleted successfully"},
    )
