from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.gst_report import GeneratedReport


class ReportRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def find(self, business_id: UUID, report_type: str, period: str) -> Optional[GeneratedReport]:
        result = await self.db.execute(
            select(GeneratedReport).where(
                GeneratedReport.business_id == business_id,
                GeneratedReport.report_type == report_type,
                GeneratedReport.period == period,
            )
        )
        return result.scalar_one_or_none()

    async def upsert(
        self,
        business_id: UUID,
        report_type: str,
        period: str,
        report_data: dict,
        generated_at: datetime,
        generated_by: Optional[str] = None,
    ) -> GeneratedReport:
        """Create or overwrite the row for (business, report type, period)."""
        row = await self.find(business_id, report_type, period)
        if row is None:
            row = GeneratedReport(
                business_id=business_id,
                report_type=report_type,
                period=period,
            )
            self.db.add(row)
        row.report_data = report_data
        row.generated_at = generated_at
        row.generated_by = generated_by
        await self.db.flush()
        return row

    async def discard(self) -> None:
        """Drop pending changes after a failed write."""
        await self.db.rollback()
