"""Address geocoding with a key-gated primary and a keyless fallback.

Mapbox is tried first when a token is configured. Any upstream failure or an
empty result from Mapbox falls through to Nominatim (OpenStreetMap). Nominatim
is the last resort: if it fails, the address cannot be resolved.
"""

from __future__ import annotations

import abc
import logging
import math
from typing import Any
from urllib.parse import quote

from preplan.core.config import GeocoderConfig
from preplan.core.errors import GeocodeFailure, MalformedResponse, UpstreamError
from preplan.gis.attributes import as_text
from preplan.gis.http import BoundedFetcher
from preplan.gis.models import GeocodeResult

logger = logging.getLogger(__name__)


def parse_coordinate(value: Any, *, field: str, url: str) -> float:
    """Parse an upstream coordinate, rejecting non-numeric or non-finite values."""
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise MalformedResponse(
            f"Non-numeric {field} {value!r} from {url}", url=url,
        ) from exc
    if isinstance(value, bool) or not math.isfinite(number):
        raise MalformedResponse(f"Invalid {field} {value!r} from {url}", url=url)
    return number


class GeocodingProvider(abc.ABC):
    """A single geocoding backend."""

    name: str = "provider"

    def __init__(self, fetcher: BoundedFetcher, config: GeocoderConfig) -> None:
        self._fetcher = fetcher
        self.config = config

    @abc.abstractmethod
    async def geocode(self, address: str) -> GeocodeResult | None:
        """Return the best match, or None when the provider has no result."""


class MapboxGeocoder(GeocodingProvider):
    """Mapbox Geocoding v5 (``mapbox.places``). Requires an access token."""

    name = "mapbox"

    async def geocode(self, address: str) -> GeocodeResult | None:
        url = f"{self.config.mapbox_url}/{quote(address, safe='')}.json"
        payload = await self._fetcher.get_json(
            url,
            params={"limit": "1", "access_token": self.config.mapbox_token or ""},
            timeout=self.config.timeout_seconds,
        )
        features = payload.get("features") if isinstance(payload, dict) else None
        if not features or not isinstance(features[0], dict):
            return None
        feature = features[0]
        center = feature.get("center")
        if not isinstance(center, list) or len(center) < 2:
            return None
        return GeocodeResult(
            lat=parse_coordinate(center[1], field="latitude", url=url),
            lon=parse_coordinate(center[0], field="longitude", url=url),
            display_name=as_text(feature.get("place_name")),
        )


class NominatimGeocoder(GeocodingProvider):
    """OpenStreetMap Nominatim search. Keyless, identifies itself by User-Agent."""

    name = "nominatim"

    async def geocode(self, address: str) -> GeocodeResult | None:
        url = self.config.nominatim_url
        payload = await self._fetcher.get_json(
            url,
            params={"format": "json", "limit": "1", "q": address},
            headers={"User-Agent": self.config.user_agent},
            timeout=self.config.timeout_seconds,
        )
        if not isinstance(payload, list) or not payload:
            return None
        hit = payload[0]
        if not isinstance(hit, dict):
            raise MalformedResponse(f"Unexpected Nominatim hit from {url}", url=url)
        return GeocodeResult(
            lat=parse_coordinate(hit.get("lat"), field="latitude", url=url),
            lon=parse_coordinate(hit.get("lon"), field="longitude", url=url),
            display_name=as_text(hit.get("display_name")),
        )


class Geocoder:
    """Primary-then-secondary geocoding chain."""

    def __init__(
        self,
        secondary: GeocodingProvider,
        primary: GeocodingProvider | None = None,
    ) -> None:
        self.primary = primary
        self.secondary = secondary

    async def geocode(self, address: str) -> GeocodeResult:
        if self.primary is not None:
            try:
                result = await self.primary.geocode(address)
            except UpstreamError as exc:
                logger.warning(
                    "Primary geocoder %s failed (%s), falling back to %s",
                    self.primary.name, exc.error_code, self.secondary.name,
                )
            else:
                if result is not None:
                    return result
                logger.info(
                    "Primary geocoder %s had no result, falling back to %s",
                    self.primary.name, self.secondary.name,
                )

        try:
            result = await self.secondary.geocode(address)
        except UpstreamError as exc:
            raise GeocodeFailure(
                f"Geocode failed: {self.secondary.name} error: {exc.message}",
                cause_code=exc.error_code,
            ) from exc

        if result is None:
            raise GeocodeFailure(
                f"Geocode failed: no results from {self.secondary.name}.",
                cause_code="no_results",
            )
        return result


def create_geocoder(fetcher: BoundedFetcher, config: GeocoderConfig) -> Geocoder:
    """Build the chain; the Mapbox primary is only wired when a token is set."""
    primary = MapboxGeocoder(fetcher, config) if config.mapbox_token else None
    return Geocoder(secondary=NominatimGeocoder(fetcher, config), primary=primary)
