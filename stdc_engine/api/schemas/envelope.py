"""Response envelope shared by every analysis endpoint."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Generic, List, Optional, TypeVar

from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

T = TypeVar("T")


class ResponseMeta(BaseModel):
    """Per-response metadata."""

    generated_at: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    warnings: List[str] = Field(default_factory=list)
    job_id: Optional[str] = None
    retry_after: Optional[float] = None


class ApiResponse(BaseModel, Generic[T]):
    """``{ok, data, error, meta}`` wrapper.  Exactly one of data/error is set."""

    ok: bool = True
    data: Optional[T] = None
    error: Optional[str] = None
    meta: ResponseMeta = Field(default_factory=ResponseMeta)

    @classmethod
    def success(cls, data: Any, *, meta: Optional[ResponseMeta] = None, **meta_kwargs) -> "ApiResponse":
        if meta is None:
            meta = ResponseMeta(**meta_kwargs)
        return cls(ok=True, data=data, meta=meta)

    @classmethod
    def fail(
        cls,
        error: str,
        *,
        warnings: Optional[List[str]] = None,
        retry_after: Optional[float] = None,
    ) -> "ApiResponse":
        meta = ResponseMeta(warnings=warnings or [], retry_after=retry_after)
        return cls(ok=False, error=error, meta=meta)

    def to_response(self, status_code: int = 200, headers: Optional[Dict[str, str]] = None) -> JSONResponse:
        """Render with an explicit status code (202 on submit, 4xx/5xx from handlers)."""
        return JSONResponse(status_code=status_code, content=self.model_dump(), headers=headers)
