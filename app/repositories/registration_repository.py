from typing import Any, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.registration import EInvoiceRequest, EWayBillRequest


class EInvoiceRequestRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_by_status(self, business_id: UUID, invoice_id: UUID, status: str) -> Optional[EInvoiceRequest]:
        result = await self.db.execute(
            select(EInvoiceRequest)
            .where(
                EInvoiceRequest.business_id == business_id,
                EInvoiceRequest.invoice_id == invoice_id,
                EInvoiceRequest.status == status,
            )
            .order_by(EInvoiceRequest.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def find_latest(self, business_id: UUID, invoice_id: UUID) -> Optional[EInvoiceRequest]:
        result = await self.db.execute(
            select(EInvoiceRequest)
            .where(EInvoiceRequest.business_id == business_id, EInvoiceRequest.invoice_id == invoice_id)
            .order_by(EInvoiceRequest.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def create(self, **fields: Any) -> EInvoiceRequest:
        row = EInvoiceRequest(**fields)
        self.db.add(row)
        await self.db.flush()
        return row

    async def update(self, row: EInvoiceRequest, **fields: Any) -> EInvoiceRequest:
        for key, value in fields.items():
            setattr(row, key, value)
        await self.db.flush()
        return row

    async def commit(self) -> None:
        await self.db.commit()


class EWayBillRequestRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_by_status(self, business_id: UUID, invoice_id: UUID, status: str) -> Optional[EWayBillRequest]:
        result = await self.db.execute(
            select(EWayBillRequest)
            .where(
                EWayBillRequest.business_id == business_id,
                EWayBillRequest.invoice_id == invoice_id,
                EWayBillRequest.status == status,
            )
            .order_by(EWayBillRequest.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def find_latest(self, business_id: UUID, invoice_id: UUID) -> Optional[EWayBillRequest]:
        result = await self.db.execute(
            select(EWayBillRequest)
            .where(EWayBillRequest.business_id == business_id, EWayBillRequest.invoice_id == invoice_id)
            .order_by(EWayBillRequest.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def create(self, **fields: Any) -> EWayBillRequest:
        row = EWayBillRequest(**fields)
        self.db.add(row)
        await self.db.flush()
        return row

    async def update(self, row: EWayBillRequest, **fields: Any) -> EWayBillRequest:
        for key, value in fields.items():
            setattr(row, key, value)
        await self.db.flush()
        return row

    async def commit(self) -> None:
        await self.db.commit()
