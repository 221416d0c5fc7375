"""Survey-diagram router. Independent of the address pipeline."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException, Query, Request
from pydantic import BaseModel

router = APIRouter()


class SurveyDiagramRequest(BaseModel):
    docref: str


def _get_survey_service(request: Request):
    service = getattr(request.app.state, "survey_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Survey diagram service not available")
    return service


@router.post("/api/survey-diagrams", status_code=202)
async def request_survey_diagram(body: SurveyDiagramRequest, request: Request) -> dict[str, Any]:
    """Start a best-effort diagram download and return its current status."""
    service = _get_survey_service(request)
    try:
        diagram = service.request(body.docref)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return diagram.model_dump(mode="json")


@router.get("/api/survey-diagrams")
async def get_survey_diagram(request: Request, docref: str = Query(...)) -> dict[str, Any]:
    """Report the status of a diagram download."""
    service = _get_survey_service(request)
    return service.get(docref).model_dump(mode="json")
