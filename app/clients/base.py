"""Shared HTTP plumbing and the narrow interfaces the engine consumes."""
import logging
from datetime import date
from typing import Any, Dict, List, Optional, Protocol, Sequence
from uuid import UUID

import httpx

from app.config import settings
from app.core.exceptions import GSTNotFoundError
from app.schemas.external import BusinessProfile, Invoice, Party


logger = logging.getLogger(__name__)


class InvoiceStore(Protocol):
    async def get_invoices_by_period(
        self, business_id: UUID, start_date: date, end_date: date, token: str
    ) -> List[Invoice]: ...

    async def get_invoice(self, business_id: UUID, invoice_id: UUID, token: str) -> Invoice: ...


class PartyStore(Protocol):
    async def get_party(self, business_id: UUID, party_id: UUID, token: str) -> Party: ...

    async def get_parties_by_ids(
        self, business_id: UUID, party_ids: Sequence[UUID], token: str
    ) -> Dict[UUID, Party]: ...


class BusinessStore(Protocol):
    async def get_business(self, business_id: UUID, token: str) -> BusinessProfile: ...


class ServiceHttpClient:
    """
    JSON-over-HTTP client for a sibling service.

    The caller's bearer token and business id are forwarded on every call.
    No retries; transport errors propagate.
    """

    API_PREFIX = "/api/v1"

    def __init__(
        self,
        base_url: str,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/") + self.API_PREFIX
        self.timeout = timeout if timeout is not None else settings.SERVICE_HTTP_TIMEOUT
        self._transport = transport

    def _headers(self, token: str, business_id: UUID) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {token}",
            "X-Business-Id": str(business_id),
        }

    async def get_json(
        self,
        path: str,
        token: str,
        business_id: UUID,
        params: Optional[Dict[str, Any]] = None,
        resource: str = "Resource",
    ) -> Any:
        url = f"{self.base_url}{path}"
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            try:
                response = await client.get(
                    url,
                    params=params,
                    headers=self._headers(token, business_id),
                )
            except httpx.RequestError as e:
                logger.error(f"GET {url} failed: {e}")
                raise

        if response.status_code == 404:
            raise GSTNotFoundError(
                f"{resource} not found",
                error_code="NOT_FOUND",
                details={"url": url},
            )
        if response.is_error:
            logger.error(f"GET {url} returned {response.status_code}")
        response.raise_for_status()
        return response.json()
