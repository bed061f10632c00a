"""FIFO work queue shared by the submission path and the worker pool."""
from __future__ import annotations

import asyncio
import logging
from collections import OrderedDict
from typing import Dict

from .models import AnalysisJob
from .store import InfrastructureError

logger = logging.getLogger(__name__)


class QueueFullError(Exception):
    """Raised when the job queue is at capacity."""


class QueueClosed(Exception):
    """Raised to consumers once the queue has been shut down."""


class JobQueue:
    """Strict-FIFO queue of not-yet-started jobs.

    ``enqueue`` never waits on consumers.  ``dequeue_next`` suspends until a
    job is available.  A job leaves the queue exactly once: either a consumer
    takes it (it is then "started") or ``remove`` drops it.
    """

    def __init__(self, max_queued: int = 0) -> None:
        self._pending: "OrderedDict[str, AnalysisJob]" = OrderedDict()
        self._reserved: "OrderedDict[str, None]" = OrderedDict()
        self._available = asyncio.Event()
        self._max_queued = max_queued
        self._closed = False

    def size(self) -> int:
        """Number of jobs waiting to start."""
        return len(self._pending)

    def __len__(self) -> int:
        return len(self._pending)

    def __contains__(self, token: str) -> bool:
        return token in self._pending

    @property
    def closed(self) -> bool:
        return self._closed

    def _admit(self) -> None:
        if self._closed:
            raise InfrastructureError("Job queue is not accepting work")
        if self._max_queued and len(self._pending) + len(self._reserved) >= self._max_queued:
            raise QueueFullError(
                f"Job queue full. {self._max_queued} jobs pending. Try again later."
            )

    def reserve(self, token: str) -> int:
        """Hold a slot for *token* ahead of ``enqueue``.

        Returns the number of jobs ahead of it (waiting plus already
        reserved).  The slot counts against ``max_queued`` until it is
        enqueued or released.

        Raises
        ------
        InfrastructureError
            If the queue has been shut down.
        QueueFullError
            If ``max_queued`` slots are already taken.
        """
        self._admit()
        if token in self._pending or token in self._reserved:
            raise ValueError(f"Job {token} is already queued")
        ahead = len(self._pending) + len(self._reserved)
        self._reserved[token] = None
        return ahead

    def release(self, token: str) -> bool:
        """Give back a reserved slot that will never be enqueued."""
        if token in self._reserved:
            del self._reserved[token]
            return True
        return False

    def enqueue(self, job: AnalysisJob) -> str:
        """Append *job* and return its token (the job id).

        A job holding a reservation skips the capacity check.

        Raises
        ------
        InfrastructureError
            If the queue has been shut down.
        QueueFullError
            If ``max_queued`` jobs are already waiting.
        """
        if job.id in self._reserved:
            if self._closed:
                raise InfrastructureError("Job queue is not accepting work")
            del self._reserved[job.id]
        else:
            self._admit()
            if job.id in self._pending:
                raise ValueError(f"Job {job.id} is already queued")
        self._pending[job.id] = job
        self._available.set()
        return job.id

    async def dequeue_next(self) -> AnalysisJob:
        """Remove and return the oldest job, waiting if the queue is empty."""
        while True:
            if self._closed:
                raise QueueClosed()
            if self._pending:
                _, job = self._pending.popitem(last=False)
                if not self._pending:
                    self._available.clear()
                return job
            self._available.clear()
            await self._available.wait()

    def remove(self, token: str) -> bool:
        """Drop a job that has not started.  ``False`` if it already left the queue."""
        job = self._pending.pop(token, None)
        if not self._pending:
            self._available.clear()
        return job is not None

    def close(self) -> None:
        """Stop accepting work and wake every waiting consumer."""
        self._closed = True
        if self._pending:
            logger.warning("Closing job queue with %d unstarted job(s)", len(self._pending))
        self._available.set()

    def snapshot(self) -> Dict[str, int]:
        return {"queued": len(self._pending), "reserved": len(self._reserved), "max_queued": self._max_queued}
