"""
Decorador de ExternalSyncClient que pide un token antes de cada llamada.
"""
from datetime import date

from satsync.application.interfaces.external_sync_client import (
    CreateJobResult,
    ExternalSyncClient,
    VerifyJobResult,
)
from satsync.shared.constants.sat_constants import Direction
from satsync.shared.utils.rate_limiter import TokenBucketRateLimiter


class RateLimitedSyncClient:
    """Aplica el rate limit sin que las etapas lo sepan."""

    def __init__(self, inner: ExternalSyncClient, limiter: TokenBucketRateLimiter):
        self.inner = inner
        self.limiter = limiter

    async def create_job(
        self, subject_id: str, date_from: date, date_to: date, direction: Direction
    ) -> CreateJobResult:
        await self.limiter.acquire()
        return await self.inner.create_job(subject_id, date_from, date_to, direction)

    async def verify_job(self, subject_id: str, job_id: str) -> VerifyJobResult:
        await self.limiter.acquire()
        return await self.inner.verify_job(subject_id, job_id)

    async def fetch_package(self, subject_id: str, package_id: str) -> bytes:
        await self.limiter.acquire()
        return await self.inner.fetch_package(subject_id, package_id)

    async def aclose(self) -> None:
        close = getattr(self.inner, "aclose", None)
        if close is not None:
            await close()
