"""Survey-diagram artifact models."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel


class SurveyDiagramStatus(StrEnum):
    """Lifecycle of a Surveyor-General diagram download."""

    NOT_REQUESTED = "not_requested"
    PENDING = "pending"
    DOWNLOADED = "downloaded"
    FAILED = "failed"


class SurveyDiagram(BaseModel):
    """A diagram artifact, identified by its SG document reference."""

    docref: str
    status: SurveyDiagramStatus = SurveyDiagramStatus.NOT_REQUESTED
    path: str | None = None
    message: str | None = None
    portal_url: str
