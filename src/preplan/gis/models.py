"""GIS data models and the PreviewPack response envelope."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from preplan.core.types import Ring

UNKNOWN = "UNKNOWN"


class GeocodeResult(BaseModel):
    """A resolved address point."""

    model_config = {"frozen": True}

    lat: float
    lon: float
    display_name: str | None = None


class Parcel(BaseModel):
    """A cadastral land unit.

    ``rings`` holds the boundary as returned by the parcel service, each ring
    a closed sequence of (lon, lat) pairs. Holes are not modeled; geometric
    derivations use the first ring only.
    """

    model_config = {"frozen": True}

    erf: str = UNKNOWN
    area: float = 0.0
    address: str = "Unknown"
    attributes: dict[str, Any] = Field(default_factory=dict)
    rings: list[Ring]

    @property
    def outer_ring(self) -> Ring:
        return self.rings[0]

    def esri_geometry(self) -> dict[str, Any]:
        """Polygon geometry in ArcGIS JSON form, pinned to WGS84."""
        return {"rings": self.rings, "spatialReference": {"wkid": 4326}}


class ZoningResult(BaseModel):
    """Zoning code for a parcel, ``UNKNOWN`` when no layer feature matched."""

    model_config = {"frozen": True}

    code: str = UNKNOWN
    raw: dict[str, Any] | None = None


class UtilityFeature(BaseModel):
    """A sewer/utility asset intersecting the parcel."""

    model_config = {"frozen": True}

    diameter: float | None = None
    type: str | None = None
    raw: dict[str, Any] = Field(default_factory=dict)


class UtilitySummary(BaseModel):
    model_config = {"frozen": True}

    count: int = 0
    features: list[UtilityFeature] = Field(default_factory=list)

    @classmethod
    def of(cls, features: list[UtilityFeature]) -> UtilitySummary:
        return cls(count=len(features), features=list(features))


class ConstraintLayer(BaseModel):
    """Feature count of one optional constraint overlay over the parcel."""

    model_config = {"frozen": True}

    key: str
    label: str
    layer_name: str = ""
    layer_id: int | None = None
    feature_count: int | None = None
    error: str | None = None


class PreviewPack(BaseModel):
    """The complete result of one pipeline run."""

    model_config = {"frozen": True}

    ok: bool = True
    input_address: str
    geocode: GeocodeResult
    parcel: Parcel
    zoning: ZoningResult
    sewer: UtilitySummary
    constraints: list[ConstraintLayer] = Field(default_factory=list)
