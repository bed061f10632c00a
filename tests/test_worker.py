"""Tests for AnalysisWorker: execution, cancellation races, FIFO start order."""
import asyncio

import pytest

from conftest import SAMPLE_TEXT, wait_for_status, wait_until
from stdc_engine.api.jobs.models import AnalysisJob, JobRecord, JobStatus
from stdc_engine.api.jobs.queue import JobQueue
from stdc_engine.api.jobs.store import MemoryJobStore
from stdc_engine.api.jobs.worker import AnalysisWorker
from stdc_engine.provider.client import ProviderError


class CountingStore(MemoryJobStore):
    """Memory store that records every write attempt."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.writes = []

    async def put(self, job_id, record, ttl=None):
        self.writes.append(("put", job_id, record.status))
        return await super().put(job_id, record, ttl)

    async def transition(self, job_id, record, *, expected=JobStatus.pending, ttl=None):
        self.writes.append(("transition", job_id, record.status))
        return await super().transition(job_id, record, expected=expected, ttl=ttl)


@pytest.fixture
async def mem_store(clock):
    s = CountingStore(ttl_seconds=3600, clock=clock)
    await s.initialize()
    yield s
    await s.close()


@pytest.fixture
def queue():
    return JobQueue()


@pytest.fixture
async def worker(mem_store, queue, provider):
    w = AnalysisWorker(mem_store, queue, provider)
    yield w
    if provider.gate is not None:
        provider.gate.set()
    await w.stop()


async def _submit(store, text=SAMPLE_TEXT, model="gpt-4") -> AnalysisJob:
    job = AnalysisJob(text=text, model=model)
    await store.put(job.id, JobRecord.pending())
    return job


@pytest.mark.asyncio
async def test_process_completes(worker, mem_store, provider):
    job = await _submit(mem_store)
    assert await worker.process(job) is JobStatus.completed
    rec = await mem_store.get(job.id)
    assert rec.status is JobStatus.completed
    assert rec.analysis == provider.result
    assert provider.calls == [(SAMPLE_TEXT, "gpt-4")]


@pytest.mark.asyncio
async def test_cancelled_before_start_is_skipped(worker, mem_store, provider):
    job = await _submit(mem_store)
    await mem_store.transition(job.id, JobRecord.cancelled())
    mem_store.writes.clear()

    assert await worker.process(job) is None
    assert provider.calls == []
    assert mem_store.writes == []
    assert (await mem_store.get(job.id)).status is JobStatus.cancelled


@pytest.mark.asyncio
async def test_cancel_during_execution_discards_result(worker, mem_store, provider):
    job = await _submit(mem_store)
    gate = provider.hold()
    task = asyncio.create_task(worker.process(job))
    await wait_until(provider.entered.is_set)

    assert await mem_store.transition(job.id, JobRecord.cancelled()) is True
    gate.set()

    assert await asyncio.wait_for(task, timeout=3) is None
    rec = await mem_store.get(job.id)
    assert rec.status is JobStatus.cancelled
    assert rec.analysis is None


@pytest.mark.asyncio
async def test_provider_error_recorded(worker, mem_store, provider):
    provider.error = ProviderError("Provider returned status=500: upstream down")
    job = await _submit(mem_store)
    assert await worker.process(job) is JobStatus.error
    rec = await mem_store.get(job.id)
    assert rec.message == "Provider returned status=500: upstream down"


@pytest.mark.asyncio
async def test_unexpected_exception_recorded(worker, mem_store, provider):
    provider.error = RuntimeError("boom")
    job = await _submit(mem_store)
    assert await worker.process(job) is JobStatus.error
    rec = await mem_store.get(job.id)
    assert rec.message == "Unexpected provider failure: boom"


@pytest.mark.asyncio
async def test_provider_error_after_cancel_stays_cancelled(worker, mem_store, provider):
    provider.error = ProviderError("late failure")
    job = await _submit(mem_store)
    gate = provider.hold()
    task = asyncio.create_task(worker.process(job))
    await wait_until(provider.entered.is_set)
    await mem_store.transition(job.id, JobRecord.cancelled())
    gate.set()

    assert await asyncio.wait_for(task, timeout=3) is None
    rec = await mem_store.get(job.id)
    assert rec.status is JobStatus.cancelled
    assert rec.message is None


@pytest.mark.asyncio
async def test_expired_record_is_skipped(worker, mem_store, provider, clock):
    job = await _submit(mem_store)
    clock.advance(3601)
    assert await worker.process(job) is None
    assert provider.calls == []


@pytest.mark.asyncio
async def test_start_runs_jobs_in_fifo_order(worker, mem_store, queue, provider):
    jobs = []
    for i in range(3):
        job = await _submit(mem_store, text=f"{SAMPLE_TEXT} #{i}")
        queue.enqueue(job)
        jobs.append(job)

    worker.start()
    for job in jobs:
        await wait_for_status(mem_store, job.id, JobStatus.completed)
    assert [text for text, _ in provider.calls] == [j.text for j in jobs]


@pytest.mark.asyncio
async def test_one_job_at_a_time(worker, mem_store, queue, provider):
    gate = provider.hold()
    first = await _submit(mem_store, text=f"{SAMPLE_TEXT} first")
    second = await _submit(mem_store, text=f"{SAMPLE_TEXT} second")
    queue.enqueue(first)
    queue.enqueue(second)

    worker.start()
    await wait_until(provider.entered.is_set)
    await asyncio.sleep(0.05)
    assert len(provider.calls) == 1
    assert worker.active_jobs == [first.id]
    assert second.id in queue

    gate.set()
    await wait_for_status(mem_store, second.id, JobStatus.completed)


@pytest.mark.asyncio
async def test_start_is_idempotent_and_stop_exits(worker):
    worker.start()
    tasks = list(worker._tasks)
    worker.start()
    assert worker._tasks == tasks
    assert worker.running

    await worker.stop()
    assert not worker.running
