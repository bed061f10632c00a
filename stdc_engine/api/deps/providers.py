"""Dependency providers for FastAPI ``Depends()``.

Service handles live on ``app.state.services`` (a ``ServiceContainer``
built by ``create_app``), so each app instance owns its own store, queue and
worker.
"""
from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import Request

from ..services.analysis_service import AnalysisService

if TYPE_CHECKING:
    from ..container import ServiceContainer


def get_services(request: Request) -> "ServiceContainer":
    return request.app.state.services


def get_analysis_service(request: Request) -> AnalysisService:
    return request.app.state.services.analysis
