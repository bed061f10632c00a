"""Job data models."""
from __future__ import annotations

import enum
import uuid
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class JobStatus(str, enum.Enum):
    pending = "pending"
    completed = "completed"
    cancelled = "cancelled"
    error = "error"

    @property
    def is_terminal(self) -> bool:
        return self is not JobStatus.pending


class AnalysisJob(BaseModel):
    """One submitted text-analysis request.  Immutable once created."""

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    id: str = Field(default_factory=lambda: uuid.uuid4().hex[:12])
    text: str
    model: str


class JobRecord(BaseModel):
    """Status and payload stored for a job.

    ``analysis`` is present only for ``completed`` and ``message`` only for
    ``error``; the validator rejects any other combination so a record is
    always written and read as a consistent whole.
    """

    model_config = ConfigDict(frozen=True)

    status: JobStatus = JobStatus.pending
    analysis: Optional[str] = None
    message: Optional[str] = None
    expires_at: Optional[float] = None

    @model_validator(mode="after")
    def _payload_matches_status(self) -> "JobRecord":
        if (self.analysis is not None) != (self.status is JobStatus.completed):
            raise ValueError(f"analysis must be set iff status is completed (status={self.status.value})")
        if (self.message is not None) != (self.status is JobStatus.error):
            raise ValueError(f"message must be set iff status is error (status={self.status.value})")
        return self

    # ── Constructors ─────────────────────────────────────────────────

    @classmethod
    def pending(cls) -> "JobRecord":
        return cls(status=JobStatus.pending)

    @classmethod
    def completed(cls, analysis: str) -> "JobRecord":
        return cls(status=JobStatus.completed, analysis=analysis)

    @classmethod
    def cancelled(cls) -> "JobRecord":
        return cls(status=JobStatus.cancelled)

    @classmethod
    def failed(cls, message: str) -> "JobRecord":
        return cls(status=JobStatus.error, message=message or "Analysis failed")

    def with_expiry(self, expires_at: float) -> "JobRecord":
        return self.model_copy(update={"expires_at": expires_at})

    def public_view(self) -> Dict[str, Any]:
        """Client-facing shape: ``{status, analysis?, message?}``."""
        out: Dict[str, Any] = {"status": self.status.value}
        if self.analysis is not None:
            out["analysis"] = self.analysis
        if self.message is not None:
            out["message"] = self.message
        return out
