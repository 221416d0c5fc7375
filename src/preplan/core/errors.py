"""Error taxonomy for the address resolution pipeline.

Every failure the pipeline can surface is a ``PreplanError`` subclass with a
stable ``error_code``. Upstream errors additionally record the URL, the HTTP
status (when one was received) and a short excerpt of the response body.
The orchestrator stamps ``stage`` on an error as it leaves a stage.
"""

from __future__ import annotations

BODY_EXCERPT_CHARS = 200


def excerpt(text: str | None, limit: int = BODY_EXCERPT_CHARS) -> str:
    """Return the first ``limit`` characters of a response body."""
    if not text:
        return ""
    return text[:limit]


class PreplanError(Exception):
    """Base class for pipeline failures."""

    error_code = "preplan_error"

    def __init__(self, message: str, *, stage: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.stage = stage


class AddressValidationError(PreplanError):
    """Raised when the address is missing or blank. No upstream is called."""

    error_code = "missing_address"


class UpstreamError(PreplanError):
    """Base class for failures talking to a third-party service."""

    error_code = "upstream_error"

    def __init__(
        self,
        message: str,
        *,
        url: str | None = None,
        status: int | None = None,
        body_excerpt: str = "",
        stage: str | None = None,
    ) -> None:
        super().__init__(message, stage=stage)
        self.url = url
        self.status = status
        self.body_excerpt = body_excerpt


class UpstreamTransportError(UpstreamError):
    """Network-level failure: DNS, refused connection, reset."""

    error_code = "upstream_transport_error"


class UpstreamTimeout(UpstreamError):
    """The call did not complete before its deadline."""

    error_code = "upstream_timeout"


class MalformedResponse(UpstreamError):
    """The body could not be parsed, or parsed into an unusable shape."""

    error_code = "malformed_response"


class UpstreamHttpError(UpstreamError):
    """Non-2xx status (or an ArcGIS error envelope) with a parseable body."""

    error_code = "upstream_http_error"


class ArcGISQueryError(UpstreamHttpError):
    """An ArcGIS error envelope delivered with a 2xx status.

    ``status`` is the HTTP status; the envelope's own code is ``arcgis_code``.
    """

    def __init__(self, message: str, *, arcgis_code: int | None = None, **kwargs) -> None:
        super().__init__(message, **kwargs)
        self.arcgis_code = arcgis_code


class GeocodeFailure(PreplanError):
    """Every configured geocoding provider was exhausted."""

    error_code = "geocode_failure"

    def __init__(
        self,
        message: str,
        *,
        cause_code: str | None = None,
        stage: str | None = None,
    ) -> None:
        super().__init__(message, stage=stage)
        self.cause_code = cause_code


class ParcelNotFound(PreplanError):
    """The parcel service returned no feature at the geocoded point."""

    error_code = "parcel_not_found"


class GeometryMissing(PreplanError):
    """A parcel feature came back without boundary rings."""

    error_code = "geometry_missing"
