"""Shared test fixtures and upstream payload builders."""

from __future__ import annotations

import re
from typing import Any, Callable

import httpx
import pytest

from preplan.core.config import GeocoderConfig, GISConfig, Settings

NOMINATIM_URL = "https://nominatim.test/search"
MAPBOX_URL = "https://mapbox.test/geocoding/v5/mapbox.places"
PARCELS_URL = "https://gis.test/parcels/MapServer/0/query"
ZONING_URL = "https://gis.test/zoning/MapServer/0/query"
SEWER_URL = "https://gis.test/sewer/MapServer/1/query"

NOMINATIM_RE = re.compile(r"^https://nominatim\.test/search")
MAPBOX_RE = re.compile(r"^https://mapbox\.test/")
PARCELS_RE = re.compile(r"^https://gis\.test/parcels/")
ZONING_RE = re.compile(r"^https://gis\.test/zoning/")
SEWER_RE = re.compile(r"^https://gis\.test/sewer/")

DURBAN_ADDRESS = "27 Gainsborough Drive, Durban"
DURBAN_RING = [
    [31.00, -29.82],
    [31.001, -29.82],
    [31.001, -29.821],
    [31.00, -29.821],
    [31.00, -29.82],
]


def make_settings(tmp_path=None, **overrides: Any) -> Settings:
    geocoder = GeocoderConfig(
        mapbox_token=overrides.pop("mapbox_token", None),
        mapbox_url=MAPBOX_URL,
        nominatim_url=NOMINATIM_URL,
        timeout_seconds=overrides.pop("geocode_timeout", 15.0),
    )
    constraints_path = overrides.pop(
        "constraints_path",
        str(tmp_path / "constraint_layers.yml") if tmp_path else "/nonexistent/layers.yml",
    )
    gis = GISConfig(
        parcels_url=PARCELS_URL,
        zoning_url=ZONING_URL,
        sewer_url=SEWER_URL,
        timeout_seconds=overrides.pop("gis_timeout", 20.0),
        constraints_path=constraints_path,
    )
    return Settings(geocoder=geocoder, gis=gis, **overrides)


def nominatim_hits(lat: Any = "-29.82", lon: Any = "31.00", name: str = DURBAN_ADDRESS) -> list:
    return [{"lat": lat, "lon": lon, "display_name": name}]


def parcel_payload(
    attributes: dict[str, Any] | None = None,
    rings: list | None = None,
) -> dict[str, Any]:
    return {
        "features": [
            {
                "attributes": attributes
                if attributes is not None
                else {"ERF_NUMBER": "1234", "SHAPE_Area": 850},
                "geometry": {"rings": rings if rings is not None else [DURBAN_RING]},
            }
        ]
    }


def zoning_payload(code: str | None = "GR2") -> dict[str, Any]:
    if code is None:
        return {"features": []}
    return {"features": [{"attributes": {"ZONING_CODE": code}}]}


def sewer_payload(*features: dict[str, Any]) -> dict[str, Any]:
    return {"features": [{"attributes": attrs} for attrs in features]}


def durban_routes() -> dict[str, Any]:
    """Upstream responses for the Gainsborough Drive scenario, keyed by host+path prefix."""
    return {
        "nominatim.test/search": nominatim_hits(),
        "gis.test/parcels": parcel_payload(),
        "gis.test/zoning": zoning_payload("GR2"),
        "gis.test/sewer": sewer_payload({"DIAMETER": 160, "ASSETTYPE": "GRAVITY MAIN"}),
    }


def routing_transport(
    routes: dict[str, Any],
    calls: list[str] | None = None,
) -> httpx.MockTransport:
    """A MockTransport answering each request from the first matching route.

    Route values are JSON payloads, ``httpx.Response`` objects, or async
    callables taking the request.
    """

    async def handler(request: httpx.Request) -> httpx.Response:
        key = f"{request.url.host}{request.url.path}"
        if calls is not None:
            calls.append(key)
        for prefix, answer in routes.items():
            if key.startswith(prefix):
                if isinstance(answer, httpx.Response):
                    return answer
                if callable(answer):
                    return await answer(request)
                return httpx.Response(200, json=answer)
        return httpx.Response(404, json={"error": f"no route for {key}"})

    return httpx.MockTransport(handler)


@pytest.fixture
def settings(tmp_path) -> Settings:
    return make_settings(tmp_path)


@pytest.fixture
def mock_client_factory() -> Callable[..., httpx.AsyncClient]:
    def factory(routes: dict[str, Any], calls: list[str] | None = None) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=routing_transport(routes, calls))

    return factory
