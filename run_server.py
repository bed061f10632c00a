"""API server entry point.

Usage:
    # Development (plain HTTP):
    python run_server.py

    # HTTPS with a local self-signed pair:
    python run_server.py --tls-key server.key --tls-cert server.crt

    # Custom host/port:
    python run_server.py --host 0.0.0.0 --port 3000
"""
from __future__ import annotations

import argparse
import logging
import sys

logger = logging.getLogger(__name__)


def main() -> None:
    parser = argparse.ArgumentParser(description="See-Think-Do-Care Analysis API Server")
    parser.add_argument("--host", default=None, help="Bind address (default: STDC_API_HOST or 0.0.0.0)")
    parser.add_argument("--port", type=int, default=None, help="Port (default: STDC_API_PORT or 3000)")
    parser.add_argument("--tls-key", default=None, help="TLS private key file")
    parser.add_argument("--tls-cert", default=None, help="TLS certificate file")
    parser.add_argument("--store", choices=["sqlite", "memory"], default=None, help="Job store backend")
    parser.add_argument("--workers", type=int, default=None, help="Concurrent analysis consumers")
    parser.add_argument("--log-level", default=None, choices=["debug", "info", "warning", "error"])
    args = parser.parse_args()

    from stdc_engine.api.config import ApiSettings
    from stdc_engine.api.main import run_server
    from stdc_engine.config import validate_config

    overrides = {
        "host": args.host,
        "port": args.port,
        "tls_keyfile": args.tls_key,
        "tls_certfile": args.tls_cert,
        "store_backend": args.store,
        "worker_concurrency": args.workers,
        "log_level": args.log_level.upper() if args.log_level else None,
    }
    settings = ApiSettings(**{k: v for k, v in overrides.items() if v is not None})

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    tls_errors = [i for i in validate_config(settings) if i["level"] == "ERROR" and "tls_" in i["message"]]
    if tls_errors:
        for issue in tls_errors:
            logger.error(issue["message"])
        sys.exit(1)

    scheme = "https" if settings.tls_certfile else "http"
    logger.info("Starting analysis API on %s://%s:%s", scheme, settings.host, settings.port)
    run_server(settings)


if __name__ == "__main__":
    main()
