# This file defines endpoints for the cached marketplace credential.
# It exists so operators can inspect, refresh, or drop the token used for marketplace calls.

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Request

from src.api.dependencies import get_token_provider
from src.api.response_envelope import utc_now_iso
from src.api.schemas.sync_schemas import LoginRequest, LoginResponse, TokenStatusResponse
from src.sync.auth import MarketplaceTokenProvider

router = APIRouter(prefix="/auth", tags=["auth"])
TokenProviderDep = Annotated[MarketplaceTokenProvider, Depends(get_token_provider)]


def _status_body(request: Request, provider: MarketplaceTokenProvider) -> dict[str, object]:
    return {**provider.status(), "request_id": request.state.request_id, "generated_at": utc_now_iso()}


@router.get("/token", response_model=TokenStatusResponse)
def token_status(request: Request, provider: TokenProviderDep) -> dict[str, object]:
    return _status_body(request, provider)


@router.post("/token", response_model=TokenStatusResponse)
def obtain_token(request: Request, provider: TokenProviderDep) -> dict[str, object]:
    provider.get_token()
    return _status_body(request, provider)


@router.delete("/token", response_model=TokenStatusResponse)
def clear_token(request: Request, provider: TokenProviderDep) -> dict[str, object]:
    provider.invalidate()
    return _status_body(request, provider)


@router.post("/login", response_model=LoginResponse)
def back_office_login(request: Request, provider: TokenProviderDep, body: LoginRequest) -> dict[str, object]:
    response = provider.back_office_login(identifier=body.identifier, password=body.password)
    data = response.get("data")
    profile = {key: value for key, value in data.items() if key != "token"} if isinstance(data, dict) else None
    return {**_status_body(request, provider), "data": profile}
