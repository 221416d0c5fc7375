"""ArcGIS REST ``query`` client for point and polygon intersect searches.

All geometry is exchanged in WGS84 (wkid 4326).
"""

from __future__ import annotations

import json
from typing import Any

from preplan.core.errors import ArcGISQueryError, MalformedResponse, excerpt
from preplan.gis.http import BoundedFetcher

WGS84 = "4326"
INTERSECTS = "esriSpatialRelIntersects"


class ArcGISLayer:
    """One queryable ArcGIS feature layer."""

    def __init__(self, fetcher: BoundedFetcher, url: str, timeout: float = 20.0) -> None:
        self._fetcher = fetcher
        self.url = url
        self.timeout = timeout

    async def query_point(
        self,
        lon: float,
        lat: float,
        *,
        return_geometry: bool = True,
        limit: int | None = 1,
    ) -> list[dict[str, Any]]:
        """Features whose geometry contains the point."""
        params = {
            "f": "json",
            "where": "1=1",
            "geometry": f"{lon},{lat}",
            "geometryType": "esriGeometryPoint",
            "inSR": WGS84,
            "spatialRel": INTERSECTS,
            "outFields": "*",
            "returnGeometry": _flag(return_geometry),
            "outSR": WGS84,
        }
        if limit is not None:
            params["resultRecordCount"] = str(limit)
        payload = await self._query(params)
        return _features(payload, self.url)

    async def query_polygon(
        self,
        geometry: dict[str, Any],
        *,
        return_geometry: bool = False,
    ) -> list[dict[str, Any]]:
        """Features intersecting the polygon, attributes only by default."""
        payload = await self._query(self._polygon_params(geometry, return_geometry))
        return _features(payload, self.url)

    async def count_polygon(self, geometry: dict[str, Any]) -> int:
        """Number of features intersecting the polygon."""
        params = self._polygon_params(geometry, return_geometry=False)
        params["returnCountOnly"] = "true"
        payload = await self._query(params)
        count = payload.get("count")
        if isinstance(count, bool) or not isinstance(count, int):
            raise MalformedResponse(
                f"Count query to {self.url} returned no integer count",
                url=self.url,
            )
        return count

    def _polygon_params(self, geometry: dict[str, Any], return_geometry: bool) -> dict[str, str]:
        return {
            "f": "json",
            "geometry": json.dumps(geometry, separators=(",", ":")),
            "geometryType": "esriGeometryPolygon",
            "inSR": WGS84,
            "spatialRel": INTERSECTS,
            "outFields": "*",
            "returnGeometry": _flag(return_geometry),
        }

    async def _query(self, params: dict[str, str]) -> dict[str, Any]:
        status, payload = await self._fetcher.fetch_json(
            self.url, params=params, timeout=self.timeout,
        )
        if not isinstance(payload, dict):
            raise MalformedResponse(
                f"Expected a JSON object from {self.url}, got {type(payload).__name__}",
                url=self.url,
            )
        # ArcGIS reports query errors as HTTP 200 with an error envelope.
        error = payload.get("error")
        if isinstance(error, dict):
            code = error.get("code")
            raise ArcGISQueryError(
                f"ArcGIS error {code} from {self.url}: {error.get('message', '')}",
                url=self.url,
                status=status,
                arcgis_code=code if isinstance(code, int) else None,
                body_excerpt=excerpt(json.dumps(error)),
            )
        return payload


def _flag(value: bool) -> str:
    return "true" if value else "false"


def _features(payload: dict[str, Any], url: str) -> list[dict[str, Any]]:
    features = payload.get("features") or []
    if not isinstance(features, list):
        raise MalformedResponse(f"'features' from {url} is not a list", url=url)
    return [f for f in features if isinstance(f, dict)]
