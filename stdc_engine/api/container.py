"""Explicitly constructed service handles with a start/stop lifecycle."""
from __future__ import annotations

import asyncio
import logging
from typing import Optional

from ..provider.client import AnalysisProvider, ChatCompletionsProvider, ProviderPolicy
from .config import ApiSettings
from .deps.rate_limit import RateLimiter
from .jobs.queue import JobQueue
from .jobs.store import InfrastructureError, JobStore, MemoryJobStore, SqliteJobStore
from .jobs.worker import AnalysisWorker
from .services.analysis_service import AnalysisService

logger = logging.getLogger(__name__)


def build_store(settings: ApiSettings) -> JobStore:
    """Instantiate the configured JobStore backend."""
    if settings.store_backend == "memory":
        return MemoryJobStore(ttl_seconds=settings.job_ttl_seconds)
    if settings.store_backend == "sqlite":
        return SqliteJobStore(settings.job_db_path, ttl_seconds=settings.job_ttl_seconds)
    raise ValueError(f"Unknown store backend: {settings.store_backend!r}")


def build_provider(settings: ApiSettings) -> AnalysisProvider:
    policy = ProviderPolicy(base_url=settings.provider_base_url, timeout_seconds=settings.provider_timeout)
    return ChatCompletionsProvider(settings.provider_api_key, policy=policy)


class ServiceContainer:
    """Owns the store, queue, worker, provider and limiters for one app.

    ``start`` opens the store, launches the worker pool and the expiry
    sweep; ``stop`` reverses it.  Routers reach these through
    ``request.app.state.services``.
    """

    def __init__(
        self,
        settings: ApiSettings,
        *,
        store: Optional[JobStore] = None,
        queue: Optional[JobQueue] = None,
        provider: Optional[AnalysisProvider] = None,
    ) -> None:
        self.settings = settings
        self.store = store or build_store(settings)
        self.queue = queue or JobQueue(max_queued=settings.max_queued)
        self.provider = provider or build_provider(settings)
        self.worker = AnalysisWorker(
            self.store, self.queue, self.provider, concurrency=settings.worker_concurrency
        )
        self.analysis = AnalysisService(self.store, self.queue, settings)
        # Submit and cancel share one ceiling; polling has its own.
        self.analysis_limiter = RateLimiter(settings.analysis_rate_limit, settings.rate_limit_window)
        self.status_limiter = RateLimiter(settings.status_rate_limit, settings.rate_limit_window)
        self._sweep_task: Optional[asyncio.Task] = None

    async def start(self) -> None:
        await self.store.initialize()
        self.worker.start()
        if self.settings.expiry_sweep_interval > 0:
            self._sweep_task = asyncio.create_task(self._expiry_sweep_loop())

    async def stop(self) -> None:
        if self._sweep_task is not None:
            self._sweep_task.cancel()
            await asyncio.gather(self._sweep_task, return_exceptions=True)
            self._sweep_task = None
        await self.worker.stop()
        self.provider.close()
        await self.store.close()

    async def _expiry_sweep_loop(self) -> None:
        """Background task that deletes records past their TTL."""
        while True:
            await asyncio.sleep(self.settings.expiry_sweep_interval)
            try:
                removed = await self.store.purge_expired()
                if removed:
                    logger.info("Expiry sweep removed %d job record(s)", removed)
            except InfrastructureError:
                logger.warning("Expiry sweep failed", exc_info=True)
