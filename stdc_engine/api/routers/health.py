"""Liveness and configuration health endpoint."""
from __future__ import annotations

from fastapi import APIRouter, Depends

from ...config import validate_config
from ..deps.providers import get_services
from ..schemas.envelope import ApiResponse

router = APIRouter(prefix="/api/health", tags=["health"])


@router.get("")
async def health(services=Depends(get_services)) -> ApiResponse:
    issues = validate_config(services.settings)
    status = "degraded" if any(i["level"] == "ERROR" for i in issues) else "ok"
    data = {
        "status": status,
        "store_backend": services.settings.store_backend,
        "queue": services.queue.snapshot(),
        "worker_running": services.worker.running,
        "active_jobs": len(services.worker.active_jobs),
        "config_issues": issues,
    }
    return ApiResponse.success(data, warnings=[i["message"] for i in issues])
