from typing import Any, Iterable, List, Optional
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.gstr2a import Gstr2aImport, Gstr2aReconciliation


class Gstr2aRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    # ==================== Imports ====================

    async def find_import(self, business_id: UUID, period: str) -> Optional[Gstr2aImport]:
        result = await self.db.execute(
            select(Gstr2aImport).where(
                Gstr2aImport.business_id == business_id,
                Gstr2aImport.period == period,
            )
        )
        return result.scalar_one_or_none()

    async def get_import(self, import_id: UUID) -> Optional[Gstr2aImport]:
        return await self.db.get(Gstr2aImport, import_id)

    async def upsert_import(self, business_id: UUID, period: str, **fields: Any) -> Gstr2aImport:
        row = await self.find_import(business_id, period)
        if row is None:
            row = Gstr2aImport(business_id=business_id, period=period, **fields)
            self.db.add(row)
        else:
            for key, value in fields.items():
                setattr(row, key, value)
        await self.db.flush()
        return row

    async def update_import(self, row: Gstr2aImport, **fields: Any) -> Gstr2aImport:
        for key, value in fields.items():
            setattr(row, key, value)
        await self.db.flush()
        return row

    # ==================== Reconciliation rows ====================

    async def replace_reconciliations(
        self, import_id: UUID, rows: Iterable[Gstr2aReconciliation]
    ) -> List[Gstr2aReconciliation]:
        await self.db.execute(
            delete(Gstr2aReconciliation).where(Gstr2aReconciliation.import_id == import_id)
        )
        rows = list(rows)
        for row in rows:
            row.import_id = import_id
            self.db.add(row)
        await self.db.flush()
        return rows

    async def list_reconciliations(self, import_id: UUID) -> List[Gstr2aReconciliation]:
        result = await self.db.execute(
            select(Gstr2aReconciliation)
            .where(Gstr2aReconciliation.import_id == import_id)
            .order_by(
                Gstr2aReconciliation.supplier_gstin,
                Gstr2aReconciliation.invoice_number,
            )
        )
        return list(result.scalars().all())

    async def get_reconciliation(self, reconciliation_id: UUID) -> Optional[Gstr2aReconciliation]:
        return await self.db.get(Gstr2aReconciliation, reconciliation_id)

    async def update_reconciliation(self, row: Gstr2aReconciliation, **fields: Any) -> Gstr2aReconciliation:
        for key, value in fields.items():
            setattr(row, key, value)
        await self.db.flush()
        return row
