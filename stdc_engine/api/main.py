"""FastAPI application factory and server entry point."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..config import validate_config
from .config import ApiSettings
from .container import ServiceContainer
from .errors import register_error_handlers

logger = logging.getLogger(__name__)


def configure_logging(settings: ApiSettings) -> None:
    """Install the process-wide log format chosen by ``settings.log_format``."""
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    if settings.log_format == "json":
        fmt = '{"time":"%(asctime)s","level":"%(levelname)s","logger":"%(name)s","message":"%(message)s"}'
    else:
        fmt = "%(asctime)s | %(levelname)-7s | %(name)s | %(message)s"
    logging.basicConfig(level=level, format=fmt, datefmt="%Y-%m-%d %H:%M:%S", force=True)


@asynccontextmanager
async def _lifespan(app: FastAPI):
    """Startup / shutdown lifecycle."""
    services: ServiceContainer = app.state.services
    settings = services.settings

    configure_logging(settings)
    logger.info("Starting stdc_engine API on %s:%s", settings.host, settings.port)

    issues = validate_config(settings)
    for issue in issues:
        if issue["level"] == "ERROR":
            logger.error("Config validation: %s", issue["message"])
        else:
            logger.warning("Config validation: %s", issue["message"])
    if not issues:
        logger.info("Config validation: all checks passed")

    await services.start()

    yield

    await services.stop()
    logger.info("Shutting down stdc_engine API")


def create_app(
    settings: ApiSettings | None = None,
    services: ServiceContainer | None = None,
) -> FastAPI:
    """Build and return the FastAPI application.

    Pass *services* to inject pre-built handles (tests use this to supply a
    fake provider or a memory store).
    """
    if services is None:
        services = ServiceContainer(settings or ApiSettings())
    settings = services.settings

    app = FastAPI(
        title="See-Think-Do-Care Analysis API",
        description="Queue text for See-Think-Do-Care analysis, poll for the result, or cancel.",
        version="1.0.0",
        lifespan=_lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )
    app.state.services = services

    # CORS
    origins = settings.origins
    allow_creds = "*" not in origins
    if not allow_creds:
        logger.warning(
            "CORS origins contain '*'. Credentials will NOT be allowed. "
            "Set explicit origins (e.g. 'https://localhost:3001') for "
            "credentialed cross-origin requests."
        )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=allow_creds,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    # Error handlers
    register_error_handlers(app)

    from .routers import all_routers

    for router in all_routers():
        app.include_router(router)

    return app


def run_server(settings: ApiSettings | None = None) -> None:
    """CLI entry point: ``python -m stdc_engine.api.main``.

    Serves HTTPS when both ``tls_keyfile`` and ``tls_certfile`` are set.
    """
    import uvicorn

    settings = settings or ApiSettings()
    if bool(settings.tls_keyfile) != bool(settings.tls_certfile):
        raise SystemExit("TLS requires both STDC_API_TLS_KEYFILE and STDC_API_TLS_CERTFILE.")
    app = create_app(settings)
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        ssl_keyfile=settings.tls_keyfile,
        ssl_certfile=settings.tls_certfile,
    )


if __name__ == "__main__":
    run_server()
