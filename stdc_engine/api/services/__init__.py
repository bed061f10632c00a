"""Service layer between routers and the job lifecycle."""
from .analysis_service import AnalysisService
from .sanitize import sanitize_text

__all__ = ["AnalysisService", "sanitize_text"]
