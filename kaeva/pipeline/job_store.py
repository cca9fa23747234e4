"""
Job record storage for fact-check analyses.

Two backends share one interface:
- MemoryJobStore: process-local dict with TTL eviction
- RedisJobStore: records serialized as JSON under ``kaeva:job:<id>`` with SETEX

Each job's record is written only by that job's pipeline run, so no locking is
done here. Progress never moves backwards except on the terminal error
transition, which resets it to 0.
"""

import time
from typing import Any, Dict, Optional, Tuple

import redis.asyncio as aioredis

from kaeva.config import JobBackend, Settings
from kaeva.models import JobRecord, JobStatus
from kaeva.utils.logging import get_component_logger

logger = get_component_logger("job_store")

KEY_PREFIX = "kaeva:job:"


def apply_update(record: JobRecord, fields: Dict[str, Any]) -> JobRecord:
    """Return ``record`` with ``fields`` applied under the progress rules."""
    updated = record.model_copy(update=fields)
    if updated.status != JobStatus.ERROR:
        updated.progress = max(record.progress, updated.progress)
    return updated


class JobStore:
    """Interface for job record storage."""

    ttl: int

    async def create(self, job_id: str) -> JobRecord:
        raise NotImplementedError

    async def get(self, job_id: str) -> Optional[JobRecord]:
        raise NotImplementedError

    async def update(self, job_id: str, **fields: Any) -> JobRecord:
        raise NotImplementedError

    async def close(self) -> None:
        return None


class MemoryJobStore(JobStore):
    """In-process store; records expire ``ttl`` seconds after their last write."""

    def __init__(self, ttl: int = 3600, clock=time.monotonic):
        self.ttl = ttl
        self._clock = clock
        self._records: Dict[str, Tuple[JobRecord, float]] = {}

    def _evict_expired(self) -> None:
        now = self._clock()
        expired = [job_id for job_id, (_, expires_at) in self._records.items() if expires_at <= now]
        for job_id in expired:
            del self._records[job_id]
        if expired:
            logger.debug("Evicted %d expired job records", len(expired))

    def _put(self, record: JobRecord) -> JobRecord:
        self._records[record.id] = (record, self._clock() + self.ttl)
        return record

    async def create(self, job_id: str) -> JobRecord:
        self._evict_expired()
        return self._put(JobRecord(id=job_id, status=JobStatus.PROCESSING, progress=10))

    async def get(self, job_id: str) -> Optional[JobRecord]:
        self._evict_expired()
        entry = self._records.get(job_id)
        return entry[0] if entry else None

    async def update(self, job_id: str, **fields: Any) -> JobRecord:
        current = await self.get(job_id)
        if current is None:
            # Evicted mid-run; start a fresh record rather than lose the outcome.
            current = JobRecord(id=job_id)
        return self._put(apply_update(current, fields))

    def __len__(self) -> int:
        return len(self._records)


class RedisJobStore(JobStore):
    """Redis-backed store shared across processes and restarts."""

    def __init__(self, client: aioredis.Redis, ttl: int = 3600):
        self.redis = client
        self.ttl = ttl

    @classmethod
    def from_url(cls, url: str, ttl: int = 3600) -> "RedisJobStore":
        logger.info("Using Redis job store")
        return cls(aioredis.from_url(url, decode_responses=True), ttl=ttl)

    @staticmethod
    def _key(job_id: str) -> str:
        return f"{KEY_PREFIX}{job_id}"

    async def _put(self, record: JobRecord) -> JobRecord:
        await self.redis.setex(self._key(record.id), self.ttl, record.model_dump_json())
        return record

    async def create(self, job_id: str) -> JobRecord:
        return await self._put(JobRecord(id=job_id, status=JobStatus.PROCESSING, progress=10))

    async def get(self, job_id: str) -> Optional[JobRecord]:
        raw = await self.redis.get(self._key(job_id))
        if raw is None:
            return None
        return JobRecord.model_validate_json(raw)

    async def update(self, job_id: str, **fields: Any) -> JobRecord:
        current = await self.get(job_id) or JobRecord(id=job_id)
        return await self._put(apply_update(current, fields))

    async def close(self) -> None:
        await self.redis.aclose()


def build_job_store(settings: Settings) -> JobStore:
    """Create the job store selected by configuration."""
    if settings.jobs.backend == JobBackend.REDIS:
        return RedisJobStore.from_url(settings.jobs.redis_url, ttl=settings.jobs.ttl_seconds)
    return MemoryJobStore(ttl=settings.jobs.ttl_seconds)
