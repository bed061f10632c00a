"""Shared test fixtures for the stdc_engine test suite."""
from __future__ import annotations

import asyncio
import threading
from typing import List, Optional, Tuple

import pytest

from stdc_engine.api.config import ApiSettings
from stdc_engine.api.jobs.models import JobStatus
from stdc_engine.api.jobs.store import JobStore, MemoryJobStore, SqliteJobStore
from stdc_engine.provider.client import AnalysisProvider, ProviderError

SAMPLE_TEXT = (
    "Our new running shoe is built for city commuters who want comfort all day long."
)


class FakeClock:
    """Manually advanced wall clock for TTL tests."""

    def __init__(self, start: float = 1_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeProvider(AnalysisProvider):
    """Records calls; can block on a gate or fail on demand."""

    def __init__(self, result: str = "See: ...\nThink: ...\nDo: ...\nCare: ...") -> None:
        self.result = result
        self.calls: List[Tuple[str, str]] = []
        self.error: Optional[Exception] = None
        self.gate: Optional[threading.Event] = None
        self.entered = threading.Event()
        self.closed = False

    def hold(self) -> threading.Event:
        """Make subsequent calls block until the returned event is set."""
        self.gate = threading.Event()
        return self.gate

    def analyze(self, text: str, model: str) -> str:
        self.calls.append((text, model))
        self.entered.set()
        if self.gate is not None:
            self.gate.wait(timeout=5)
        if self.error is not None:
            raise self.error
        return self.result

    def close(self) -> None:
        self.closed = True


async def wait_for_status(store: JobStore, job_id: str, status: JobStatus, timeout: float = 3.0):
    """Poll the store until *job_id* reaches *status*."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while True:
        rec = await store.get(job_id)
        if rec is not None and rec.status is status:
            return rec
        if loop.time() >= deadline:
            raise AssertionError(f"job {job_id} never reached {status.value}; last={rec}")
        await asyncio.sleep(0.01)


async def wait_until(predicate, timeout: float = 3.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() >= deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(0.01)


# ── Core fixtures ────────────────────────────────────────────────────


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture(params=["memory", "sqlite"])
async def store(request, clock):
    """Each store test runs against both backends."""
    if request.param == "memory":
        s = MemoryJobStore(ttl_seconds=3600, clock=clock)
    else:
        s = SqliteJobStore(":memory:", ttl_seconds=3600, clock=clock)
    await s.initialize()
    yield s
    await s.close()


@pytest.fixture
def provider():
    p = FakeProvider()
    yield p
    if p.gate is not None:
        p.gate.set()


@pytest.fixture
def settings(tmp_path):
    return ApiSettings(
        store_backend="memory",
        job_db_path=str(tmp_path / "test_jobs.db"),
        provider_api_key="test-key",
        expiry_sweep_interval=0,
        analysis_rate_limit=1000,
        status_rate_limit=1000,
        cors_origins="https://localhost:3001",
    )


# ── API fixtures ─────────────────────────────────────────────────────


@pytest.fixture
async def services(settings, provider):
    """Started service container with a fake provider."""
    from stdc_engine.api.container import ServiceContainer

    container = ServiceContainer(settings, provider=provider)
    await container.start()
    yield container
    if provider.gate is not None:
        provider.gate.set()
    await container.stop()


@pytest.fixture
async def app(services):
    from stdc_engine.api.main import create_app

    return create_app(services=services)


@pytest.fixture
async def client(app):
    """Async HTTP client bound to the test app."""
    from httpx import ASGITransport, AsyncClient

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://testserver",
    ) as ac:
        yield ac
