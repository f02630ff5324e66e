# This file defines training-data rollup schemas.
# Counts stay numeric as the webhooks report them, so fractional tallies pass through.

from __future__ import annotations

from pydantic import BaseModel

from src.api.schemas.common import EnvelopeFields


class LabelCount(BaseModel):
    label: str
    count: int | float


class DateComposition(LabelCount):
    breakdown: list[LabelCount]


class TrainingS1Response(EnvelopeFields):
    dates: list[LabelCount]
    compositions: list[DateComposition]


class TrainingS2Response(EnvelopeFields):
    dates: list[LabelCount]
