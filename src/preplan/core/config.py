"""Application configuration loaded from environment and config files."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings


class GeocoderConfig(BaseSettings):
    """Geocoding provider configuration."""

    model_config = {"env_prefix": "PREPLAN_GEOCODER_", "frozen": True}

    mapbox_token: str | None = None
    mapbox_url: str = "https://api.mapbox.com/geocoding/v5/mapbox.places"
    nominatim_url: str = "https://nominatim.openstreetmap.org/search"
    user_agent: str = "UDG-PrePlan-Checker/1.0 (local-dev)"
    timeout_seconds: float = 15.0


class GISConfig(BaseSettings):
    """ArcGIS spatial query endpoints (eThekwini municipal GIS by default)."""

    model_config = {"env_prefix": "PREPLAN_GIS_", "frozen": True}

    parcels_url: str = (
        "https://gis.durban.gov.za/arcgis/rest/services/Public/Property_Query/MapServer/0/query"
    )
    zoning_url: str = (
        "https://gis.durban.gov.za/arcgis/rest/services/Public/Land_Use_Management/MapServer/0/query"
    )
    sewer_url: str = (
        "https://gis.durban.gov.za/arcgis/rest/services/Public/Water_Sanitation/MapServer/1/query"
    )
    timeout_seconds: float = 20.0
    constraints_path: str = "config/constraint_layers.yml"


class EnvelopeConfig(BaseSettings):
    """Default development envelope and yield assumptions."""

    model_config = {"env_prefix": "PREPLAN_ENVELOPE_", "frozen": True}

    setback_m: float = 3.0
    coverage: float = 0.5
    far: float = 1.0
    height_floors: int = 2
    rate_per_m2: float = 25000.0
    efficiency: float = 0.8


class SurveyConfig(BaseSettings):
    """Surveyor-General diagram fetcher configuration."""

    model_config = {"env_prefix": "PREPLAN_SURVEY_", "frozen": True}

    command: str | None = None
    output_dir: str = "data/sg"
    portal_url: str = "https://csg.drdlr.gov.za/"
    timeout_seconds: float = 120.0
    max_artifacts: int = 500


class Settings(BaseSettings):
    """Root application settings."""

    model_config = {"env_prefix": "PREPLAN_", "frozen": True}

    environment: str = "development"
    log_level: str = "INFO"
    host: str = "127.0.0.1"
    port: int = 5174
    cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:5173", "http://127.0.0.1:5173"]
    )

    geocoder: GeocoderConfig = Field(default_factory=GeocoderConfig)
    gis: GISConfig = Field(default_factory=GISConfig)
    envelope: EnvelopeConfig = Field(default_factory=EnvelopeConfig)
    survey: SurveyConfig = Field(default_factory=SurveyConfig)

    @property
    def expose_error_details(self) -> bool:
        """Include tracebacks in client-facing error payloads."""
        return self.environment == "development"
