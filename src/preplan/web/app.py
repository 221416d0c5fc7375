"""FastAPI application for the pre-plan property feasibility service.

Exposes the address resolution pipeline, a liveness probe, the yield
calculator and the out-of-band survey-diagram fetcher.
"""

from __future__ import annotations

import logging
import traceback
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from preplan import __version__
from preplan.core.config import Settings
from preplan.core.errors import AddressValidationError, PreplanError
from preplan.pipeline.resolver import AddressResolutionPipeline, create_pipeline
from preplan.survey.service import SurveyDiagramService
from preplan.web.survey_router import router as survey_router
from preplan.web.yield_router import router as yield_router

logger = logging.getLogger(__name__)


# --- Request models ---


class ProcessAddressRequest(BaseModel):
    """Request body for the address pipeline."""

    address: str | None = None


# --- Error payloads ---


def _failure_payload(exc: Exception, settings: Settings) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "error": "process_address_failed",
        "message": getattr(exc, "message", None) or str(exc) or type(exc).__name__,
        "stage": getattr(exc, "stage", None),
        "kind": getattr(exc, "error_code", "internal_error"),
    }
    if settings.expose_error_details:
        payload["stack"] = "".join(traceback.format_exception(exc))
    return payload


# --- Application factory ---


def create_app(
    settings: Settings | None = None,
    pipeline: AddressResolutionPipeline | None = None,
    http_client: httpx.AsyncClient | None = None,
    survey_service: SurveyDiagramService | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Uses the factory pattern so tests can create isolated app instances
    with stubbed pipelines or mocked HTTP transports.

    Args:
        settings: Application settings. Defaults to Settings().
        pipeline: Optional pre-built pipeline. Built from settings otherwise.
        http_client: Optional shared client for the pipeline. When omitted
            the app owns one and closes it on shutdown.
        survey_service: Optional pre-built survey-diagram service.

    Returns:
        A configured FastAPI instance.
    """
    if settings is None:
        settings = Settings()

    owns_client = http_client is None and pipeline is None
    if owns_client:
        http_client = httpx.AsyncClient(follow_redirects=True)
    if pipeline is None:
        pipeline = create_pipeline(settings, http_client)
    if survey_service is None:
        survey_service = SurveyDiagramService(settings.survey)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await survey_service.close()
        if owns_client:
            await http_client.aclose()

    app = FastAPI(
        title="PrePlan Checker",
        description="Address to parcel, zoning and services preview pack",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    app.state.settings = settings
    app.state.pipeline = pipeline
    app.state.survey_service = survey_service

    app.include_router(yield_router)
    app.include_router(survey_router)

    # --- Routes ---

    @app.get("/health")
    async def health_check() -> dict[str, Any]:
        """Liveness probe."""
        return {"ok": True, "port": settings.port}

    @app.post("/api/process_address")
    async def process_address(body: ProcessAddressRequest | None = None) -> JSONResponse:
        """Resolve an address into a PreviewPack."""
        address = body.address if body else None
        try:
            pack = await pipeline.run(address)
        except AddressValidationError:
            return JSONResponse(status_code=400, content={"error": "missing_address"})
        except PreplanError as exc:
            logger.error(
                "/api/process_address failed at %s: %s", exc.stage, exc.message, exc_info=exc,
            )
            return JSONResponse(status_code=500, content=_failure_payload(exc, settings))
        except Exception as exc:
            logger.exception("/api/process_address failed unexpectedly")
            return JSONResponse(status_code=500, content=_failure_payload(exc, settings))

        return JSONResponse(content=pack.model_dump(mode="json"))

    return app
