"""Polygon-intersect lookups over the parcel: zoning, sewer, constraints.

An empty result is valid domain information (no zoning feature, no sewer
asset) and resolves to sentinels. Transport or parse failures propagate for
zoning and sewer; constraint overlays are optional and degrade per layer.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel

from preplan.core.errors import UpstreamError
from preplan.gis.arcgis import ArcGISLayer
from preplan.gis.attributes import UTILITY_FIELDS, ZONING_FIELDS, extract
from preplan.gis.http import BoundedFetcher
from preplan.gis.models import ConstraintLayer, Parcel, UtilityFeature, ZoningResult

logger = logging.getLogger(__name__)


class ZoningResolver:
    def __init__(self, layer: ArcGISLayer) -> None:
        self._layer = layer

    async def resolve(self, parcel: Parcel) -> ZoningResult:
        features = await self._layer.query_polygon(parcel.esri_geometry())
        if not features:
            return ZoningResult()
        attributes = features[0].get("attributes")
        if not isinstance(attributes, dict):
            return ZoningResult()
        return ZoningResult(code=extract(attributes, ZONING_FIELDS["code"]), raw=attributes)


class UtilityIntersector:
    def __init__(self, layer: ArcGISLayer) -> None:
        self._layer = layer

    async def intersect(self, parcel: Parcel) -> list[UtilityFeature]:
        features = await self._layer.query_polygon(parcel.esri_geometry())
        utilities = []
        for feature in features:
            attributes = feature.get("attributes")
            if not isinstance(attributes, dict):
                attributes = {}
            utilities.append(
                UtilityFeature(
                    diameter=extract(attributes, UTILITY_FIELDS["diameter"]),
                    type=extract(attributes, UTILITY_FIELDS["type"]),
                    raw=attributes,
                )
            )
        return utilities


# ---------------------------------------------------------------------------
# Constraint overlays
# ---------------------------------------------------------------------------


class ConstraintLayerConfig(BaseModel):
    """One entry in the constraint layer catalogue."""

    key: str
    label: str
    url: str
    layer_name: str = ""
    layer_id: int | None = None


def load_constraint_layers(path: str | Path) -> list[ConstraintLayerConfig]:
    """Load the constraint catalogue. A missing file means no overlays."""
    path = Path(path)
    if not path.exists():
        logger.info("No constraint layer catalogue at %s", path)
        return []
    with open(path) as fh:
        data = yaml.safe_load(fh) or {}
    return [ConstraintLayerConfig(**entry) for entry in data.get("layers") or []]


class ConstraintInspector:
    """Counts features of each configured overlay that intersect the parcel."""

    def __init__(
        self,
        fetcher: BoundedFetcher,
        layers: list[ConstraintLayerConfig],
        timeout: float = 20.0,
    ) -> None:
        self.layers = list(layers)
        self._clients = {
            layer.key: ArcGISLayer(fetcher, layer.url, timeout=timeout) for layer in self.layers
        }

    async def inspect(self, parcel: Parcel) -> list[ConstraintLayer]:
        geometry = parcel.esri_geometry()
        return list(
            await asyncio.gather(*(self._count(layer, geometry) for layer in self.layers))
        )

    async def _count(
        self,
        layer: ConstraintLayerConfig,
        geometry: dict[str, Any],
    ) -> ConstraintLayer:
        try:
            count = await self._clients[layer.key].count_polygon(geometry)
        except UpstreamError as exc:
            logger.warning("Constraint layer %s unavailable: %s", layer.key, exc.message)
            return self._entry(layer, error=exc.error_code)
        return self._entry(layer, feature_count=count)

    @staticmethod
    def _entry(
        layer: ConstraintLayerConfig,
        feature_count: int | None = None,
        error: str | None = None,
    ) -> ConstraintLayer:
        return ConstraintLayer(
            key=layer.key,
            label=layer.label,
            layer_name=layer.layer_name,
            layer_id=layer.layer_id,
            feature_count=feature_count,
            error=error,
        )
