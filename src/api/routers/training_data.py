# This file defines training-data rollup endpoints backed by the automation webhooks.
# Each request reads the webhook live; nothing is stored in the dashboard database.

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Request

from src.api.dependencies import get_training_data_service
from src.api.response_envelope import utc_now_iso
from src.api.schemas.training_data_schemas import TrainingS1Response, TrainingS2Response
from src.api.services.training_data_service import TrainingDataService

router = APIRouter(prefix="/training-data", tags=["training-data"])
TrainingDataServiceDep = Annotated[TrainingDataService, Depends(get_training_data_service)]


@router.get("/s1", response_model=TrainingS1Response)
def training_s1(request: Request, service: TrainingDataServiceDep) -> dict[str, object]:
    return {**service.get_s1_rollup(), "request_id": request.state.request_id, "generated_at": utc_now_iso()}


@router.get("/s2", response_model=TrainingS2Response)
def training_s2(request: Request, service: TrainingDataServiceDep) -> dict[str, object]:
    return {**service.get_s2_rollup(), "request_id": request.state.request_id, "generated_at": utc_now_iso()}
