"""Pydantic schemas for API requests and responses."""
from .analysis import AnalysisRequest, AnalysisSubmitted
from .envelope import ApiResponse, ResponseMeta

__all__ = ["AnalysisRequest", "AnalysisSubmitted", "ApiResponse", "ResponseMeta"]
