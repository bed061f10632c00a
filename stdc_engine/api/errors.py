"""Custom exceptions and FastAPI error handler registration."""
from __future__ import annotations

import logging
import traceback

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .jobs.queue import QueueFullError
from .jobs.store import InfrastructureError
from .schemas.envelope import ApiResponse

logger = logging.getLogger(__name__)


# ── Custom Exceptions ────────────────────────────────────────────────


class InputValidationError(Exception):
    """Submission rejected before enqueue (text length or model)."""


class JobNotFoundError(Exception):
    """Requested job ID does not exist or has expired."""


class RateLimitExceededError(Exception):
    """Client exceeded the request ceiling for an endpoint class."""

    def __init__(self, message: str, retry_after: float = 0.0) -> None:
        super().__init__(message)
        self.retry_after = retry_after


# ── Error → HTTP mapping ────────────────────────────────────────────

_EXCEPTION_STATUS = {
    InputValidationError: 400,
    JobNotFoundError: 404,
    RateLimitExceededError: 429,
    QueueFullError: 429,
    InfrastructureError: 503,
}


def _make_handler(status_code: int):
    """Create a handler that wraps an exception in ApiResponse."""

    async def _handler(request: Request, exc: Exception) -> JSONResponse:
        retry_after = getattr(exc, "retry_after", None)
        headers = None
        if retry_after:
            retry_after = round(retry_after, 1)
            headers = {"Retry-After": str(max(1, int(round(retry_after))))}
        if status_code >= 500:
            logger.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc)
        return ApiResponse.fail(str(exc), retry_after=retry_after or None).to_response(status_code, headers)

    return _handler


async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = f"{field}: {first.get('msg', 'invalid value')}" if field else first.get("msg", "Invalid request")
    else:
        message = "Invalid request"
    return ApiResponse.fail(message).to_response(400)


def register_error_handlers(app: FastAPI) -> None:
    """Register custom exception handlers on the FastAPI app."""
    for exc_cls, status in _EXCEPTION_STATUS.items():
        app.add_exception_handler(exc_cls, _make_handler(status))
    app.add_exception_handler(RequestValidationError, _request_validation_handler)

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception) -> JSONResponse:
        logger.error("Unhandled error: %s\n%s", exc, traceback.format_exc())
        return ApiResponse.fail("Internal server error").to_response(500)
