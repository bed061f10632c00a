"""
Central defaults for the See-Think-Do-Care analysis engine.

Flat-constant interface.  ``api/config.py`` reads these as the defaults for
``ApiSettings`` so every value can be overridden from the environment
(``STDC_API_*``) without touching code.

Config Status Legend
====================
  ACTIVE      — Imported and used by running code.

Search for ``# STATUS:`` to locate all annotations.
"""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List

# ── Paths ──────────────────────────────────────────────────────────────
JOB_DB_PATH = "stdc_jobs.db"                      # STATUS: ACTIVE — api/jobs/store.py SqliteJobStore

# ── Models ─────────────────────────────────────────────────────────────
# Expected seconds per job for each supported model.  Used by the wait-time
# estimator; a slower model must carry a larger constant.
ANALYSIS_MODEL_COSTS: Dict[str, float] = {        # STATUS: ACTIVE — api/jobs/estimator.py, input validation
    "gpt-4": 1.2,
    "gpt-3.5-turbo": 0.8,
}
DEFAULT_MODEL = "gpt-4"                           # STATUS: ACTIVE — poller.py default model

# ── Input bounds ───────────────────────────────────────────────────────
TEXT_MIN_LENGTH = 50                              # STATUS: ACTIVE — services/analysis_service.py
TEXT_MAX_LENGTH = 1000                            # STATUS: ACTIVE — services/analysis_service.py

# ── Job lifecycle ──────────────────────────────────────────────────────
JOB_TTL_SECONDS = 3600                            # STATUS: ACTIVE — every JobStore write resets the TTL
JOB_STORE_BACKEND = "sqlite"                      # STATUS: ACTIVE — "sqlite" or "memory"
WORKER_CONCURRENCY = 1                            # STATUS: ACTIVE — number of consumer tasks
MAX_QUEUED_JOBS = 100                             # STATUS: ACTIVE — 0 disables the bound
EXPIRY_SWEEP_INTERVAL_SECONDS = 300               # STATUS: ACTIVE — api/container.py background sweep

# ── Rate limiting (requests per window, per client) ────────────────────
ANALYSIS_RATE_LIMIT = 5                           # STATUS: ACTIVE — submit + cancel share this ceiling
STATUS_RATE_LIMIT = 30                            # STATUS: ACTIVE — polling ceiling
RATE_LIMIT_WINDOW_SECONDS = 60                    # STATUS: ACTIVE

# ── Analysis provider ──────────────────────────────────────────────────
PROVIDER_BASE_URL = "https://api.openai.com/v1"   # STATUS: ACTIVE — provider/client.py
PROVIDER_TIMEOUT_SECONDS = 60.0                   # STATUS: ACTIVE — per-call HTTP timeout
SYSTEM_PROMPT = (                                 # STATUS: ACTIVE — sent as the system message
    "You are a marketing expert analyzing text according to See-Think-Do-Care. "
    "Reply in Swedish. Provide short bullet points under each heading: "
    "See, Think, Do, and Care."
)

# ── Logging ────────────────────────────────────────────────────────────
LOG_LEVEL = "INFO"                                # STATUS: ACTIVE — api/main.py lifespan
LOG_FORMAT = "structured"                         # STATUS: ACTIVE — "structured" or "json"


def validate_config(settings: Any = None) -> List[Dict[str, str]]:
    """Check runtime settings for common misconfigurations.

    Returns a list of dicts: [{"level": "WARNING"|"ERROR", "message": str}].
    Called on server startup and reported by ``GET /api/health``.

    *settings* is an ``ApiSettings`` instance; when omitted the defaults
    (with environment overrides) are loaded.
    """
    if settings is None:
        from .api.config import ApiSettings

        settings = ApiSettings()

    issues: List[Dict[str, str]] = []

    # 1. Provider credentials
    if not settings.provider_api_key:
        issues.append({
            "level": "WARNING",
            "message": (
                "STDC_API_PROVIDER_API_KEY is not set. Every analysis job will "
                "end in status 'error' until a provider key is configured."
            ),
        })

    # 2. Text bounds
    if settings.text_min_length < 1:
        issues.append({
            "level": "ERROR",
            "message": f"text_min_length must be >= 1, got {settings.text_min_length}.",
        })
    if settings.text_min_length > settings.text_max_length:
        issues.append({
            "level": "ERROR",
            "message": (
                f"text_min_length ({settings.text_min_length}) exceeds "
                f"text_max_length ({settings.text_max_length}); no submission can pass validation."
            ),
        })

    # 3. Model set
    if not settings.model_costs:
        issues.append({
            "level": "ERROR",
            "message": "model_costs is empty; no analysis model can be selected.",
        })
    for model, cost in sorted(settings.model_costs.items()):
        if cost <= 0:
            issues.append({
                "level": "ERROR",
                "message": f"model_costs[{model!r}] must be positive, got {cost}.",
            })

    # 4. Lifecycle knobs
    if settings.job_ttl_seconds <= 0:
        issues.append({
            "level": "ERROR",
            "message": f"job_ttl_seconds must be positive, got {settings.job_ttl_seconds}.",
        })
    if settings.worker_concurrency < 1:
        issues.append({
            "level": "ERROR",
            "message": f"worker_concurrency must be >= 1, got {settings.worker_concurrency}.",
        })
    if settings.store_backend not in ("sqlite", "memory"):
        issues.append({
            "level": "ERROR",
            "message": f"store_backend must be 'sqlite' or 'memory', got {settings.store_backend!r}.",
        })

    # 5. TLS pair
    key, cert = settings.tls_keyfile, settings.tls_certfile
    if bool(key) != bool(cert):
        issues.append({
            "level": "ERROR",
            "message": "TLS requires both tls_keyfile and tls_certfile; only one is set.",
        })
    for label, path in (("tls_keyfile", key), ("tls_certfile", cert)):
        if path and not Path(path).is_file():
            issues.append({
                "level": "ERROR",
                "message": (
                    f"{label} ({path}) does not exist. Generate a self-signed pair with: "
                    "openssl req -x509 -nodes -days 365 -newkey rsa:2048 "
                    "-keyout server.key -out server.crt -subj '/CN=localhost'"
                ),
            })

    return issues
