"""Deterministic envelope and yield arithmetic."""

from __future__ import annotations

import math

from preplan.core.types import Ring
from preplan.envelope.models import EnvelopeMetrics, EnvelopeParams, YieldEstimate

EARTH_RADIUS_M = 6_371_008.8

MIN_EFFICIENCY = 0.3
MAX_EFFICIENCY = 0.95


def ring_perimeter_m(ring: Ring) -> float:
    """Perimeter of a (lon, lat) ring in metres.

    Uses a local equirectangular projection about the ring's mean latitude,
    which is accurate to well under a percent at parcel scale.
    """
    if len(ring) < 2:
        return 0.0
    mean_lat = math.radians(sum(point[1] for point in ring) / len(ring))
    kx = math.cos(mean_lat)
    total = 0.0
    for (lon1, lat1), (lon2, lat2) in zip(ring, ring[1:]):
        dx = math.radians(lon2 - lon1) * kx
        dy = math.radians(lat2 - lat1)
        total += math.hypot(dx, dy) * EARTH_RADIUS_M
    return total


def compute_envelope(
    area_m2: float,
    params: EnvelopeParams,
    rings: list[Ring] | None = None,
) -> EnvelopeMetrics:
    """Buildable area, maximum footprint and maximum GFA for a parcel.

    With a boundary, the setback strip is removed using the rectangle
    offset ``A - P*s + 4*s^2``; without one the whole area is buildable.
    """
    area = max(area_m2, 0.0)
    if rings and rings[0]:
        perimeter = ring_perimeter_m([[p[0], p[1]] for p in rings[0]])
        setback = params.setback_m
        buildable = max(0.0, area - perimeter * setback + 4 * setback**2)
        buildable = min(buildable, area)
    else:
        buildable = area

    footprint = min(area * params.coverage, buildable)
    gfa = min(area * params.far, footprint * params.height_floors)
    return EnvelopeMetrics(
        buildable_area_m2=round(buildable, 2),
        max_footprint_m2=round(footprint, 2),
        max_gfa_m2=round(gfa, 2),
    )


def estimate_yield(gfa_m2: float, rate: float, efficiency: float) -> YieldEstimate:
    """Net lettable area and gross development value from GFA."""
    if not MIN_EFFICIENCY <= efficiency <= MAX_EFFICIENCY:
        raise ValueError(
            f"Efficiency {efficiency} outside {MIN_EFFICIENCY}-{MAX_EFFICIENCY}"
        )
    nla = gfa_m2 * efficiency
    return YieldEstimate(
        gfa_m2=round(gfa_m2, 2),
        nla_m2=round(nla, 2),
        gdv=round(nla * rate, 2),
        rate=rate,
        efficiency=efficiency,
    )
