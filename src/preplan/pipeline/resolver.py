"""Address resolution pipeline.

Chains the geocoder, the parcel locator and the parcel-overlay lookups into
a single request-scoped run that either returns a complete PreviewPack or
raises the typed error of the first stage that failed::

    validate -> geocode -> locate_parcel -> {resolve_zoning,
                                             intersect_utilities,
                                             constraint_overlays} -> assemble

The overlay stages only depend on the parcel and run concurrently. The join
is fail-fast: the first fatal error cancels its siblings and is raised.
Nothing is retried; callers re-run the whole pipeline.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Awaitable, TypeVar

import httpx

from preplan.core.config import Settings
from preplan.core.errors import AddressValidationError, PreplanError
from preplan.core.types import Stage
from preplan.gis.arcgis import ArcGISLayer
from preplan.gis.geocoder import Geocoder, create_geocoder
from preplan.gis.http import BoundedFetcher
from preplan.gis.models import (
    ConstraintLayer,
    Parcel,
    PreviewPack,
    UtilitySummary,
)
from preplan.gis.overlays import (
    ConstraintInspector,
    UtilityIntersector,
    ZoningResolver,
    load_constraint_layers,
)
from preplan.gis.parcels import ParcelLocator

logger = logging.getLogger(__name__)

T = TypeVar("T")


def normalize_address(address: Any) -> str:
    """Trim the raw address; reject absent, non-string or blank input."""
    if not isinstance(address, str) or not address.strip():
        raise AddressValidationError("missing_address", stage=Stage.VALIDATE)
    return address.strip()


class AddressResolutionPipeline:
    """Resolves a free-text address into a PreviewPack.

    Args:
        geocoder: Primary/secondary geocoding chain.
        parcel_locator: Point-in-polygon parcel lookup.
        zoning_resolver: Zoning layer intersect query.
        utility_intersector: Sewer layer intersect query.
        constraint_inspector: Optional overlay counter. Omitted or empty
            means the pack carries no constraint entries.
    """

    def __init__(
        self,
        geocoder: Geocoder,
        parcel_locator: ParcelLocator,
        zoning_resolver: ZoningResolver,
        utility_intersector: UtilityIntersector,
        constraint_inspector: ConstraintInspector | None = None,
    ) -> None:
        self.geocoder = geocoder
        self.parcel_locator = parcel_locator
        self.zoning_resolver = zoning_resolver
        self.utility_intersector = utility_intersector
        self.constraint_inspector = constraint_inspector

    async def run(self, address: Any) -> PreviewPack:
        query = normalize_address(address)

        geocode = await self._stage(Stage.GEOCODE, self.geocoder.geocode(query))
        parcel = await self._stage(Stage.LOCATE_PARCEL, self.parcel_locator.locate(geocode))
        zoning, utilities, constraints = await self._fan_out(parcel)

        return PreviewPack(
            input_address=query,
            geocode=geocode,
            parcel=parcel,
            zoning=zoning,
            sewer=UtilitySummary.of(utilities),
            constraints=constraints,
        )

    async def _fan_out(self, parcel: Parcel) -> tuple[Any, Any, list[ConstraintLayer]]:
        jobs: dict[Stage, Awaitable[Any]] = {
            Stage.RESOLVE_ZONING: self.zoning_resolver.resolve(parcel),
            Stage.INTERSECT_UTILITIES: self.utility_intersector.intersect(parcel),
        }
        if self.constraint_inspector is not None and self.constraint_inspector.layers:
            jobs[Stage.CONSTRAINT_OVERLAYS] = self.constraint_inspector.inspect(parcel)

        tasks = {
            stage: asyncio.create_task(self._stage(stage, job), name=f"preplan:{stage}")
            for stage, job in jobs.items()
        }
        try:
            await asyncio.wait(tasks.values(), return_when=asyncio.FIRST_EXCEPTION)
            for task in tasks.values():
                if task.done() and not task.cancelled() and task.exception() is not None:
                    raise task.exception()
        finally:
            pending = [task for task in tasks.values() if not task.done()]
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

        constraints_task = tasks.get(Stage.CONSTRAINT_OVERLAYS)
        return (
            tasks[Stage.RESOLVE_ZONING].result(),
            tasks[Stage.INTERSECT_UTILITIES].result(),
            constraints_task.result() if constraints_task is not None else [],
        )

    async def _stage(self, stage: Stage, job: Awaitable[T]) -> T:
        start = time.monotonic()
        logger.debug("Stage %s started", stage)
        try:
            result = await job
        except PreplanError as exc:
            if exc.stage is None:
                exc.stage = stage
            logger.warning("Stage %s failed: [%s] %s", stage, exc.error_code, exc.message)
            raise
        logger.debug("Stage %s finished in %.0fms", stage, (time.monotonic() - start) * 1000)
        return result


def create_pipeline(
    settings: Settings,
    client: httpx.AsyncClient,
) -> AddressResolutionPipeline:
    """Factory function to build a fully-wired pipeline from settings.

    Args:
        settings: Application settings.
        client: Shared HTTP client. Its lifetime is owned by the caller.

    Returns:
        A ready-to-use AddressResolutionPipeline.
    """
    fetcher = BoundedFetcher(client, user_agent=settings.geocoder.user_agent)
    gis = settings.gis

    constraint_layers = load_constraint_layers(gis.constraints_path)
    inspector = (
        ConstraintInspector(fetcher, constraint_layers, timeout=gis.timeout_seconds)
        if constraint_layers
        else None
    )

    return AddressResolutionPipeline(
        geocoder=create_geocoder(fetcher, settings.geocoder),
        parcel_locator=ParcelLocator(ArcGISLayer(fetcher, gis.parcels_url, gis.timeout_seconds)),
        zoning_resolver=ZoningResolver(ArcGISLayer(fetcher, gis.zoning_url, gis.timeout_seconds)),
        utility_intersector=UtilityIntersector(
            ArcGISLayer(fetcher, gis.sewer_url, gis.timeout_seconds)
        ),
        constraint_inspector=inspector,
    )
