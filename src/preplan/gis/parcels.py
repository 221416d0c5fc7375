"""Parcel lookup by point-in-polygon query against the cadastral layer."""

from __future__ import annotations

from typing import Any

from pydantic import ValidationError

from preplan.core.errors import GeometryMissing, MalformedResponse, ParcelNotFound, excerpt
from preplan.gis.arcgis import ArcGISLayer
from preplan.gis.attributes import PARCEL_FIELDS, extract
from preplan.gis.models import GeocodeResult, Parcel


class ParcelLocator:
    """Resolves a geocoded point to the cadastral parcel containing it.

    Candidate ranking is left to the parcel service: exactly one feature is
    requested and used as-is.
    """

    def __init__(self, layer: ArcGISLayer) -> None:
        self._layer = layer

    async def locate(self, point: GeocodeResult) -> Parcel:
        features = await self._layer.query_point(point.lon, point.lat, limit=1)
        if not features:
            raise ParcelNotFound(
                "No parcel found at this location (parcel service returned no features)."
            )
        return parcel_from_feature(features[0], fallback_address=point.display_name)


def parcel_from_feature(feature: dict[str, Any], fallback_address: str | None = None) -> Parcel:
    geometry = feature.get("geometry") or {}
    rings = geometry.get("rings") if isinstance(geometry, dict) else None
    if not isinstance(rings, list) or not rings or not all(rings):
        raise GeometryMissing("Parcel geometry missing rings.")

    attributes = feature.get("attributes")
    if not isinstance(attributes, dict):
        attributes = {}
    try:
        return Parcel(
            erf=extract(attributes, PARCEL_FIELDS["erf"]),
            area=extract(attributes, PARCEL_FIELDS["area"]),
            address=extract(attributes, PARCEL_FIELDS["address"], fallback_address or "Unknown"),
            attributes=attributes,
            rings=rings,
        )
    except ValidationError as exc:
        raise MalformedResponse(
            f"Parcel feature has unusable geometry: {exc.error_count()} invalid value(s)",
            body_excerpt=excerpt(str(rings)),
        ) from exc
