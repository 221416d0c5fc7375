"""Yield preview router: envelope metrics and indicative GDV."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from preplan.core.types import Ring
from preplan.envelope.calculator import (
    MAX_EFFICIENCY,
    MIN_EFFICIENCY,
    compute_envelope,
    estimate_yield,
)
from preplan.envelope.models import EnvelopeParams

router = APIRouter()


class YieldRequest(BaseModel):
    """Request body for a yield preview.

    Omitted controls fall back to the configured envelope defaults.
    """

    area_m2: float = Field(ge=0.0)
    rings: list[Ring] | None = None
    envelope: EnvelopeParams | None = None
    rate: float | None = Field(default=None, ge=0.0)
    efficiency: float | None = Field(default=None, ge=MIN_EFFICIENCY, le=MAX_EFFICIENCY)


@router.post("/api/yield")
async def api_yield(body: YieldRequest, request: Request) -> dict[str, Any]:
    """Compute the development envelope and yield for a parcel."""
    defaults = request.app.state.settings.envelope
    params = body.envelope or EnvelopeParams(
        setback_m=defaults.setback_m,
        coverage=defaults.coverage,
        far=defaults.far,
        height_floors=defaults.height_floors,
    )
    metrics = compute_envelope(body.area_m2, params, body.rings)
    estimate = estimate_yield(
        metrics.max_gfa_m2,
        rate=body.rate if body.rate is not None else defaults.rate_per_m2,
        efficiency=body.efficiency if body.efficiency is not None else defaults.efficiency,
    )
    return {
        "envelope": params.model_dump(),
        "metrics": metrics.model_dump(),
        "yield": estimate.model_dump(),
    }
