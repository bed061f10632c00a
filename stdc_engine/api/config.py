"""Runtime settings for the API layer."""
from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings

from .. import config as _cfg


class ApiSettings(BaseSettings):
    """Settings loaded from environment / .env file."""

    host: str = "0.0.0.0"
    port: int = 3000
    cors_origins: str = "https://localhost:3001"
    log_level: str = _cfg.LOG_LEVEL
    log_format: str = _cfg.LOG_FORMAT

    # Job lifecycle
    store_backend: str = _cfg.JOB_STORE_BACKEND
    job_db_path: str = _cfg.JOB_DB_PATH
    job_ttl_seconds: int = _cfg.JOB_TTL_SECONDS
    worker_concurrency: int = _cfg.WORKER_CONCURRENCY
    max_queued: int = _cfg.MAX_QUEUED_JOBS
    expiry_sweep_interval: float = _cfg.EXPIRY_SWEEP_INTERVAL_SECONDS

    # Input validation
    text_min_length: int = _cfg.TEXT_MIN_LENGTH
    text_max_length: int = _cfg.TEXT_MAX_LENGTH
    model_costs: Dict[str, float] = Field(default_factory=lambda: dict(_cfg.ANALYSIS_MODEL_COSTS))

    # Rate limiting
    analysis_rate_limit: int = _cfg.ANALYSIS_RATE_LIMIT
    status_rate_limit: int = _cfg.STATUS_RATE_LIMIT
    rate_limit_window: float = _cfg.RATE_LIMIT_WINDOW_SECONDS

    # Analysis provider
    provider_api_key: str = ""
    provider_base_url: str = _cfg.PROVIDER_BASE_URL
    provider_timeout: float = _cfg.PROVIDER_TIMEOUT_SECONDS

    # TLS (both or neither)
    tls_keyfile: Optional[str] = None
    tls_certfile: Optional[str] = None

    model_config = {
        "env_prefix": "STDC_API_",
        "env_file": ".env",
        "extra": "ignore",
        "protected_namespaces": (),
    }

    @property
    def allowed_models(self) -> List[str]:
        return sorted(self.model_costs)

    @property
    def origins(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]
