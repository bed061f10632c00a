"""TTL-bounded persistence for job records.

Two backends share one contract:

* ``SqliteJobStore``: aiosqlite; the compare-and-write is a single
  conditional ``UPDATE``.
* ``MemoryJobStore``: dict; the compare-and-write runs under a per-job
  ``asyncio.Lock``.

Every write replaces the whole record and restarts its TTL.  Records past
their ``expires_at`` are never returned, whether or not a sweep has
physically removed them yet.
"""
from __future__ import annotations

import asyncio
import logging
import sqlite3
import time
from abc import ABC, abstractmethod
from typing import Callable, Dict, Optional

import aiosqlite

from .models import JobRecord, JobStatus

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


class InfrastructureError(Exception):
    """The job store or queue backend is unavailable."""


class JobStore(ABC):
    """Base contract for job-record stores."""

    def __init__(self, ttl_seconds: float = 3600, clock: Optional[Clock] = None) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock: Clock = clock or time.time

    def _expiry(self, ttl: Optional[float]) -> float:
        return self._clock() + (self.ttl_seconds if ttl is None else ttl)

    async def initialize(self) -> None:
        """Open backend resources.  Called once at process start."""

    async def close(self) -> None:
        """Release backend resources.  Called once at shutdown."""

    @abstractmethod
    async def put(self, job_id: str, record: JobRecord, ttl: Optional[float] = None) -> JobRecord:
        """Create or overwrite the record for *job_id* and restart its TTL."""

    @abstractmethod
    async def get(self, job_id: str) -> Optional[JobRecord]:
        """Return the live record for *job_id*, or ``None`` if absent or expired."""

    @abstractmethod
    async def transition(
        self,
        job_id: str,
        record: JobRecord,
        *,
        expected: JobStatus = JobStatus.pending,
        ttl: Optional[float] = None,
    ) -> bool:
        """Atomically write *record* only if the live status equals *expected*.

        Returns ``True`` when the write happened.  This is the only operation
        callers may use to leave ``pending``.
        """

    @abstractmethod
    async def purge_expired(self) -> int:
        """Physically delete expired records.  Returns the number removed."""


# ── SQLite ───────────────────────────────────────────────────────────


class SqliteJobStore(JobStore):
    """Async SQLite store for job lifecycle tracking."""

    def __init__(
        self,
        db_path: str = "stdc_jobs.db",
        ttl_seconds: float = 3600,
        clock: Optional[Clock] = None,
    ) -> None:
        super().__init__(ttl_seconds=ttl_seconds, clock=clock)
        self.db_path = db_path
        self._db: Optional[aiosqlite.Connection] = None

    async def initialize(self) -> None:
        """Create the jobs table if it doesn't exist."""
        try:
            self._db = await aiosqlite.connect(self.db_path)
            await self._db.execute("""
                CREATE TABLE IF NOT EXISTS jobs (
                    job_id TEXT PRIMARY KEY,
                    status TEXT NOT NULL,
                    analysis TEXT,
                    message TEXT,
                    expires_at REAL NOT NULL
                )
            """)
            await self._db.execute("CREATE INDEX IF NOT EXISTS jobs_expires_at ON jobs (expires_at)")
            await self._db.commit()
        except (sqlite3.Error, OSError) as exc:
            raise InfrastructureError(f"Job store unavailable: {exc}") from exc

    async def close(self) -> None:
        if self._db:
            await self._db.close()
            self._db = None

    async def _conn(self) -> aiosqlite.Connection:
        if self._db is None:
            await self.initialize()
        return self._db

    # ── CRUD ─────────────────────────────────────────────────────────

    async def put(self, job_id: str, record: JobRecord, ttl: Optional[float] = None) -> JobRecord:
        rec = record.with_expiry(self._expiry(ttl))
        try:
            db = await self._conn()
            await db.execute(
                "INSERT OR REPLACE INTO jobs (job_id, status, analysis, message, expires_at) "
                "VALUES (?,?,?,?,?)",
                (job_id, rec.status.value, rec.analysis, rec.message, rec.expires_at),
            )
            await db.commit()
        except sqlite3.Error as exc:
            raise InfrastructureError(f"Job store write failed: {exc}") from exc
        return rec

    async def get(self, job_id: str) -> Optional[JobRecord]:
        try:
            db = await self._conn()
            async with db.execute(
                "SELECT status, analysis, message, expires_at FROM jobs "
                "WHERE job_id = ? AND expires_at > ?",
                (job_id, self._clock()),
            ) as cur:
                row = await cur.fetchone()
        except sqlite3.Error as exc:
            raise InfrastructureError(f"Job store read failed: {exc}") from exc
        if row is None:
            return None
        status, analysis, message, expires_at = row
        return JobRecord(status=JobStatus(status), analysis=analysis, message=message, expires_at=expires_at)

    async def transition(
        self,
        job_id: str,
        record: JobRecord,
        *,
        expected: JobStatus = JobStatus.pending,
        ttl: Optional[float] = None,
    ) -> bool:
        now = self._clock()
        expires_at = now + (self.ttl_seconds if ttl is None else ttl)
        try:
            db = await self._conn()
            cur = await db.execute(
                "UPDATE jobs SET status = ?, analysis = ?, message = ?, expires_at = ? "
                "WHERE job_id = ? AND status = ? AND expires_at > ?",
                (record.status.value, record.analysis, record.message, expires_at,
                 job_id, expected.value, now),
            )
            written = cur.rowcount == 1
            await cur.close()
            await db.commit()
        except sqlite3.Error as exc:
            raise InfrastructureError(f"Job store write failed: {exc}") from exc
        return written

    async def purge_expired(self) -> int:
        try:
            db = await self._conn()
            cur = await db.execute("DELETE FROM jobs WHERE expires_at <= ?", (self._clock(),))
            removed = cur.rowcount
            await cur.close()
            await db.commit()
        except sqlite3.Error as exc:
            raise InfrastructureError(f"Job store sweep failed: {exc}") from exc
        return max(removed, 0)


# ── In-memory ────────────────────────────────────────────────────────


class MemoryJobStore(JobStore):
    """Process-local store; conditional writes hold a per-job lock."""

    def __init__(self, ttl_seconds: float = 3600, clock: Optional[Clock] = None) -> None:
        super().__init__(ttl_seconds=ttl_seconds, clock=clock)
        self._records: Dict[str, JobRecord] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    def _lock(self, job_id: str) -> asyncio.Lock:
        lock = self._locks.get(job_id)
        if lock is None:
            lock = self._locks[job_id] = asyncio.Lock()
        return lock

    def _live(self, job_id: str) -> Optional[JobRecord]:
        rec = self._records.get(job_id)
        if rec is None or rec.expires_at <= self._clock():
            return None
        return rec

    async def close(self) -> None:
        self._records.clear()
        self._locks.clear()

    async def put(self, job_id: str, record: JobRecord, ttl: Optional[float] = None) -> JobRecord:
        async with self._lock(job_id):
            rec = record.with_expiry(self._expiry(ttl))
            self._records[job_id] = rec
            return rec

    async def get(self, job_id: str) -> Optional[JobRecord]:
        return self._live(job_id)

    async def transition(
        self,
        job_id: str,
        record: JobRecord,
        *,
        expected: JobStatus = JobStatus.pending,
        ttl: Optional[float] = None,
    ) -> bool:
        async with self._lock(job_id):
            current = self._live(job_id)
            if current is None or current.status is not expected:
                return False
            self._records[job_id] = record.with_expiry(self._expiry(ttl))
            return True

    async def purge_expired(self) -> int:
        now = self._clock()
        removed = 0
        for job_id in [jid for jid, rec in self._records.items() if rec.expires_at <= now]:
            lock = self._locks.get(job_id)
            if lock is not None and lock.locked():
                continue
            del self._records[job_id]
            self._locks.pop(job_id, None)
            removed += 1
        return removed
