"""Analysis submission, status and cancellation endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ..deps.providers import get_analysis_service
from ..deps.rate_limit import limit_analysis, limit_status
from ..schemas.analysis import AnalysisRequest
from ..schemas.envelope import ApiResponse
from ..services.analysis_service import AnalysisService

router = APIRouter(prefix="/api/analysis", tags=["analysis"])


@router.get("/models")
async def list_models(
    svc: AnalysisService = Depends(get_analysis_service),
) -> ApiResponse:
    return ApiResponse.success(svc.describe())


@router.post("", status_code=202, dependencies=[Depends(limit_analysis)])
async def submit_analysis(
    body: AnalysisRequest,
    svc: AnalysisService = Depends(get_analysis_service),
) -> JSONResponse:
    submitted = await svc.submit(body.text, body.model)
    return ApiResponse.success(submitted.model_dump(by_alias=True), job_id=submitted.id).to_response(202)


@router.get("/{job_id}", dependencies=[Depends(limit_status)])
async def get_analysis(
    job_id: str,
    svc: AnalysisService = Depends(get_analysis_service),
) -> ApiResponse:
    rec = await svc.status(job_id)
    return ApiResponse.success(rec.public_view(), job_id=job_id)


@router.delete("/{job_id}", dependencies=[Depends(limit_analysis)])
async def cancel_analysis(
    job_id: str,
    svc: AnalysisService = Depends(get_analysis_service),
) -> ApiResponse:
    return ApiResponse.success(await svc.cancel(job_id), job_id=job_id)
