"""Freshness-windowed cache of generated returns.

The cache is an optimisation only. A stale or missing row means the caller
regenerates; a failed write is logged and never fails the caller.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional
from uuid import UUID

from app.config import settings
from app.core.exceptions import CacheWriteError
from app.repositories.report_repository import ReportRepository


logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class ReportCache:
    def __init__(
        self,
        repository: ReportRepository,
        ttl_seconds: Optional[int] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.repository = repository
        self.ttl = timedelta(
            seconds=ttl_seconds if ttl_seconds is not None else settings.REPORT_CACHE_TTL_SECONDS
        )
        self.clock = clock

    async def get_fresh(self, business_id: UUID, report_type: str, period: str) -> Optional[dict]:
        """Return the cached payload if it was generated within the window."""
        row = await self.repository.find(business_id, report_type, period)
        if row is None:
            return None

        age = self.clock() - as_utc(row.generated_at)
        if age >= self.ttl:
            logger.debug(f"Cached {report_type} for {period} is stale ({age})")
            return None
        return row.report_data

    async def store(
        self,
        business_id: UUID,
        report_type: str,
        period: str,
        report_data: dict,
        generated_by: Optional[str] = None,
    ) -> bool:
        """Upsert the payload. Returns False when the write failed."""
        try:
            await self._write(business_id, report_type, period, report_data, generated_by)
        except CacheWriteError as e:
            logger.warning(str(e))
            return False
        return True

    async def _write(
        self,
        business_id: UUID,
        report_type: str,
        period: str,
        report_data: dict,
        generated_by: Optional[str],
    ) -> None:
        try:
            await self.repository.upsert(
                business_id=business_id,
                report_type=report_type,
                period=period,
                report_data=report_data,
                generated_at=self.clock(),
                generated_by=generated_by,
            )
        except Exception as e:
            await self.repository.discard()
            raise CacheWriteError(
                f"Failed to cache {report_type} for business {business_id}, period {period}: {e}"
            ) from e
