"""Dependency injection providers."""
from .providers import get_analysis_service, get_services
from .rate_limit import RateLimiter, limit_analysis, limit_status

__all__ = [
    "RateLimiter",
    "get_analysis_service",
    "get_services",
    "limit_analysis",
    "limit_status",
]
