"""Alias-driven attribute extraction from opaque GIS attribute bags.

Upstream layers name the same logical field differently across datasets, so
each logical field maps to an ordered alias list. The first alias whose value
is present and coerces cleanly wins; otherwise the field's default is used.
New aliases are added to the tables, never to branching code.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Callable


def as_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def as_number(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


@dataclass(frozen=True)
class FieldSpec:
    aliases: tuple[str, ...]
    coerce: Callable[[Any], Any] = as_text
    default: Any = None


def extract(attributes: dict[str, Any], spec: FieldSpec, default: Any = None) -> Any:
    for alias in spec.aliases:
        value = spec.coerce(attributes.get(alias))
        if value is not None:
            return value
    return default if default is not None else spec.default


def extract_all(attributes: dict[str, Any], table: dict[str, FieldSpec]) -> dict[str, Any]:
    return {name: extract(attributes, spec) for name, spec in table.items()}


PARCEL_FIELDS: dict[str, FieldSpec] = {
    "erf": FieldSpec(("ERF_NUMBER", "ERF", "ERFNO", "ERFNUM"), as_text, "UNKNOWN"),
    "area": FieldSpec(("SHAPE_Area", "AREA"), as_number, 0.0),
    "address": FieldSpec(("STREET_ADDRESS", "ADDRESS"), as_text, None),
}

ZONING_FIELDS: dict[str, FieldSpec] = {
    "code": FieldSpec(("ZONING_CODE", "ZONING"), as_text, "UNKNOWN"),
}

UTILITY_FIELDS: dict[str, FieldSpec] = {
    "diameter": FieldSpec(("DIAMETER",), as_number, None),
    "type": FieldSpec(("ASSETTYPE",), as_text, None),
}
