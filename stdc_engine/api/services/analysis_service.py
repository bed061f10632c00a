"""Submission, status and cancellation on top of the job store and queue."""
from __future__ import annotations

import logging
from typing import Any, Dict

from ..config import ApiSettings
from ..errors import InputValidationError, JobNotFoundError
from ..jobs.estimator import estimate_wait
from ..jobs.models import AnalysisJob, JobRecord, JobStatus
from ..jobs.queue import JobQueue
from ..jobs.store import InfrastructureError, JobStore
from ..schemas.analysis import AnalysisSubmitted
from .sanitize import sanitize_text

logger = logging.getLogger(__name__)

ALREADY_COMPLETED_MESSAGE = "Job already completed"


class AnalysisService:
    """Translates gateway requests into queue and store operations."""

    def __init__(self, store: JobStore, queue: JobQueue, settings: ApiSettings) -> None:
        self._store = store
        self._queue = queue
        self._settings = settings

    # ── Validation ───────────────────────────────────────────────────

    def clean_submission(self, text: Any, model: Any) -> str:
        """Sanitize *text* and check it and *model* against configured bounds.

        Returns the sanitized text.

        Raises
        ------
        InputValidationError
            Naming the first violated constraint.
        """
        lo, hi = self._settings.text_min_length, self._settings.text_max_length
        if not isinstance(text, str):
            raise InputValidationError(f"Text must be between {lo} and {hi} characters.")
        clean = sanitize_text(text)
        if not lo <= len(clean) <= hi:
            raise InputValidationError(f"Text must be between {lo} and {hi} characters.")
        if model not in self._settings.model_costs:
            allowed = ", ".join(self._settings.allowed_models)
            raise InputValidationError(f"Model must be one of: {allowed}.")
        return clean

    # ── Operations ───────────────────────────────────────────────────

    async def submit(self, text: Any, model: Any) -> AnalysisSubmitted:
        """Validate, reserve a queue slot, record as pending, enqueue, and estimate the wait."""
        clean = self.clean_submission(text, model)

        job = AnalysisJob(text=clean, model=model)
        # Capacity and depth are taken together, before anything awaits.
        depth = self._queue.reserve(job.id)
        try:
            await self._store.put(job.id, JobRecord.pending())
        except BaseException:
            self._queue.release(job.id)
            raise
        try:
            self._queue.enqueue(job)
        except InfrastructureError as exc:
            # The record must not stay pending without a queue entry behind it.
            await self._store.transition(job.id, JobRecord.failed(f"Job could not be queued: {exc}"))
            raise

        wait = estimate_wait(depth, model, self._settings.model_costs)
        logger.info("Job %s submitted (model=%s, depth=%d, estimated_wait=%.1fs)", job.id, model, depth, wait)
        return AnalysisSubmitted(id=job.id, estimated_wait=wait)

    async def status(self, job_id: str) -> JobRecord:
        rec = await self._store.get(job_id)
        if rec is None:
            raise JobNotFoundError(f"Job '{job_id}' not found")
        return rec

    async def cancel(self, job_id: str) -> Dict[str, Any]:
        """Cancel a job unless it already reached a terminal state.

        The queue removal is best-effort: the job may already be running, in
        which case the worker discards its result when it sees ``cancelled``.
        """
        current = await self.status(job_id)
        if current.status.is_terminal:
            return self._cancel_view(current)

        removed = self._queue.remove(job_id)
        if await self._store.transition(job_id, JobRecord.cancelled(), expected=JobStatus.pending):
            logger.info("Job %s cancelled (%s)", job_id, "removed from queue" if removed else "already started")
            return {"status": JobStatus.cancelled.value}

        # A worker wrote its outcome between our read and our write.
        latest = await self.status(job_id)
        return self._cancel_view(latest)

    @staticmethod
    def _cancel_view(rec: JobRecord) -> Dict[str, Any]:
        if rec.status is JobStatus.completed:
            return {"status": JobStatus.completed.value, "message": ALREADY_COMPLETED_MESSAGE}
        return rec.public_view()

    def describe(self) -> Dict[str, Any]:
        """Allowed models with their per-job cost and the text bounds."""
        return {
            "models": [
                {"model": name, "cost_seconds": self._settings.model_costs[name]}
                for name in self._settings.allowed_models
            ],
            "text_min_length": self._settings.text_min_length,
            "text_max_length": self._settings.text_max_length,
        }
