"""Core type definitions shared across preplan modules."""

from __future__ import annotations

from enum import StrEnum


class Stage(StrEnum):
    """Stages of the address resolution pipeline."""

    VALIDATE = "validate"
    GEOCODE = "geocode"
    LOCATE_PARCEL = "locate_parcel"
    RESOLVE_ZONING = "resolve_zoning"
    INTERSECT_UTILITIES = "intersect_utilities"
    CONSTRAINT_OVERLAYS = "constraint_overlays"
    ASSEMBLE = "assemble"


# (longitude, latitude) pairs, closed: first vertex repeated last.
Ring = list[list[float]]
