"""Envelope and yield data models."""

from __future__ import annotations

from pydantic import BaseModel, Field


class EnvelopeParams(BaseModel):
    """Planning controls applied to a parcel."""

    setback_m: float = Field(default=3.0, ge=0.0)
    coverage: float = Field(default=0.5, ge=0.0, le=1.0)
    far: float = Field(default=1.0, ge=0.0)
    height_floors: int = Field(default=2, ge=1)


class EnvelopeMetrics(BaseModel):
    """Development envelope derived from parcel area and controls."""

    buildable_area_m2: float
    max_footprint_m2: float
    max_gfa_m2: float


class YieldEstimate(BaseModel):
    """Indicative yield: gross floor area to gross development value."""

    gfa_m2: float
    nla_m2: float
    gdv: float
    rate: float
    efficiency: float
