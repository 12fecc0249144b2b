from typing import Any, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.gst_settings import GstSettings


class GstSettingsRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_by_business(self, business_id: UUID) -> Optional[GstSettings]:
        result = await self.db.execute(
            select(GstSettings).where(GstSettings.business_id == business_id)
        )
        return result.scalar_one_or_none()

    async def create(self, business_id: UUID, **fields: Any) -> GstSettings:
        row = GstSettings(business_id=business_id, **fields)
        self.db.add(row)
        await self.db.flush()
        return row

    async def update(self, row: GstSettings, **fields: Any) -> GstSettings:
        for key, value in fields.items():
            setattr(row, key, value)
        await self.db.flush()
        return row
