"""Request / response schemas for the analysis endpoints."""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class AnalysisRequest(BaseModel):
    """Request body for POST /api/analysis.

    Length and model membership are checked by the service against the
    configured bounds, not here.
    """

    model_config = ConfigDict(protected_namespaces=())

    text: str
    model: str


class AnalysisSubmitted(BaseModel):
    """Response for an accepted submission.

    Serialized with the ``estimatedWait`` key the browser client reads.
    """

    id: str
    estimated_wait: float = Field(serialization_alias="estimatedWait")
