"""Asynchronous analysis job lifecycle: store, queue, estimator, worker."""
from .estimator import estimate_wait
from .models import AnalysisJob, JobRecord, JobStatus
from .queue import JobQueue, QueueClosed, QueueFullError
from .store import InfrastructureError, JobStore, MemoryJobStore, SqliteJobStore
from .worker import AnalysisWorker

__all__ = [
    "AnalysisJob",
    "AnalysisWorker",
    "InfrastructureError",
    "JobQueue",
    "JobRecord",
    "JobStatus",
    "JobStore",
    "MemoryJobStore",
    "QueueClosed",
    "QueueFullError",
    "SqliteJobStore",
    "estimate_wait",
]
