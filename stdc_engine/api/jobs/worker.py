"""Background consumer pool that executes analysis jobs."""
from __future__ import annotations

import asyncio
import logging
import traceback
from typing import List, Optional

from ...provider.client import AnalysisProvider, ProviderError
from .models import AnalysisJob, JobRecord, JobStatus
from .queue import JobQueue, QueueClosed
from .store import InfrastructureError, JobStore

logger = logging.getLogger(__name__)


class AnalysisWorker:
    """Consumes the job queue with a fixed pool of tasks.

    Each task owns one job at a time and reports the outcome only through
    ``JobStore`` writes.  Leaving ``pending`` always goes through
    ``JobStore.transition`` so a cancellation recorded before the write wins.
    """

    def __init__(
        self,
        store: JobStore,
        queue: JobQueue,
        provider: AnalysisProvider,
        concurrency: int = 1,
    ) -> None:
        self._store = store
        self._queue = queue
        self._provider = provider
        self._concurrency = max(1, int(concurrency))
        self._tasks: List[asyncio.Task] = []
        self._current: dict = {}

    # ── Lifecycle ────────────────────────────────────────────────────

    @property
    def running(self) -> bool:
        return any(not t.done() for t in self._tasks)

    @property
    def active_jobs(self) -> List[str]:
        """Job ids currently being executed."""
        return [jid for jid in self._current.values() if jid]

    def start(self) -> None:
        """Spawn the consumer tasks.  Idempotent."""
        if self.running:
            return
        self._tasks = [
            asyncio.create_task(self._consume(i), name=f"analysis-worker-{i}")
            for i in range(self._concurrency)
        ]
        logger.info("Analysis worker started with %d consumer(s)", self._concurrency)

    async def stop(self) -> None:
        """Close the queue and wait for consumers to exit.

        In-flight provider calls are not interrupted; their consumer task is
        cancelled and the job is left for TTL expiry.
        """
        self._queue.close()
        for task in self._tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        logger.info("Analysis worker stopped")

    async def _consume(self, slot: int) -> None:
        while True:
            try:
                job = await self._queue.dequeue_next()
            except QueueClosed:
                return
            self._current[slot] = job.id
            try:
                await self.process(job)
            except InfrastructureError as exc:
                logger.error("Job %s: store unavailable, outcome not recorded: %s", job.id, exc)
            except Exception:  # noqa: BLE001
                logger.error("Job %s: worker error\n%s", job.id, traceback.format_exc())
            finally:
                self._current[slot] = None

    # ── Execution ────────────────────────────────────────────────────

    async def process(self, job: AnalysisJob) -> Optional[JobStatus]:
        """Run one job.  Returns the status written, or ``None`` if nothing was written."""
        current = await self._store.get(job.id)
        if current is None:
            logger.warning("Job %s: record missing or expired, skipping", job.id)
            return None
        if current.status is JobStatus.cancelled:
            logger.info("Job %s: cancelled before start, skipping", job.id)
            return None
        if current.status.is_terminal:
            logger.warning("Job %s: already %s, skipping", job.id, current.status.value)
            return None

        logger.info("Job %s: started (model=%s, chars=%d)", job.id, job.model, len(job.text))
        try:
            analysis = await asyncio.to_thread(self._provider.analyze, job.text, job.model)
            outcome = JobRecord.completed(analysis)
        except ProviderError as exc:
            logger.warning("Job %s failed: %s", job.id, exc)
            outcome = JobRecord.failed(str(exc))
        except Exception as exc:  # noqa: BLE001
            logger.error("Job %s failed: %s\n%s", job.id, exc, traceback.format_exc())
            outcome = JobRecord.failed(f"Unexpected provider failure: {exc}")

        return await self._finish(job.id, outcome)

    async def _finish(self, job_id: str, outcome: JobRecord) -> Optional[JobStatus]:
        written = await self._store.transition(job_id, outcome, expected=JobStatus.pending)
        if written:
            logger.info("Job %s: %s", job_id, outcome.status.value)
            return outcome.status
        latest = await self._store.get(job_id)
        logger.info(
            "Job %s: discarded %s result (status is now %s)",
            job_id,
            outcome.status.value,
            latest.status.value if latest else "expired",
        )
        return None
