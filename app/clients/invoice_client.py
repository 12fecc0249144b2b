import logging
from datetime import date
from typing import List
from uuid import UUID

from app.clients.base import ServiceHttpClient
from app.config import settings
from app.schemas.external import Invoice


logger = logging.getLogger(__name__)


class InvoiceServiceClient(ServiceHttpClient):
    """Reads invoices (with items) from the invoice service."""

    PAGE_SIZE = 1000

    def __init__(self, base_url: str = None, **kwargs):
        super().__init__(base_url or settings.INVOICE_SERVICE_URL, **kwargs)

    async def get_invoices_by_period(
        self, business_id: UUID, start_date: date, end_date: date, token: str
    ) -> List[Invoice]:
        """All invoices of every type dated within [start_date, end_date]."""
        invoices: List[Invoice] = []
        page = 1
        while True:
            data = await self.get_json(
                "/invoices",
                token,
                business_id,
                params={
                    "business_id": str(business_id),
                    "start_date": start_date.isoformat(),
                    "end_date": end_date.isoformat(),
                    "include_items": "true",
                    "page": page,
                    "limit": self.PAGE_SIZE,
                },
                resource="Invoices",
            )
            batch = data.get("invoices") or []
            invoices.extend(Invoice.model_validate(item) for item in batch)

            # The service may cap the page below PAGE_SIZE; trust total when it is sent
            total = data.get("total")
            if not batch:
                break
            if total is not None:
                if len(invoices) >= total:
                    break
            elif len(batch) < self.PAGE_SIZE:
                break
            page += 1

        logger.debug(f"Fetched {len(invoices)} invoices for business {business_id} ({start_date} - {end_date})")
        return invoices

    async def get_invoice(self, business_id: UUID, invoice_id: UUID, token: str) -> Invoice:
        data = await self.get_json(
            f"/invoices/{invoice_id}",
            token,
            business_id,
            params={"include_items": "true"},
            resource=f"Invoice {invoice_id}",
        )
        return Invoice.model_validate(data)
