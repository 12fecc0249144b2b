"""Uniform contract for GST Suvidha Provider (GSP) gateways.

Providers report business-level failures (rejected payload, bad
credentials, duplicate IRN...) as ``success=False`` results with an
``error_code``. Only transport failures raise, as ``GSPProviderError``.
"""
from abc import ABC, abstractmethod
from typing import Optional

from app.schemas.gsp import (
    EInvoicePayload,
    EWayBillCancelResult,
    EWayBillPayload,
    EWayBillResult,
    EWayBillStatusResult,
    EWayBillUpdate,
    GSPCredentials,
    IRNCancelResult,
    IRNResult,
    IRNStatusResult,
)


class GSPProvider(ABC):
    """Base class for GSP gateway adapters."""

    name: str = ""
    requires_credentials: bool = True

    def __init__(self, credentials: GSPCredentials, base_url: Optional[str] = None):
        self.credentials = credentials
        self.base_url = base_url

    @abstractmethod
    async def authenticate(self) -> str:
        """Return an access token, fetching a new one when needed."""

    @abstractmethod
    async def generate_irn(self, payload: EInvoicePayload) -> IRNResult:
        pass

    @abstractmethod
    async def cancel_irn(self, irn: str, reason: str, remarks: Optional[str] = None) -> IRNCancelResult:
        pass

    @abstractmethod
    async def generate_ewaybill(self, payload: EWayBillPayload) -> EWayBillResult:
        pass

    @abstractmethod
    async def cancel_ewaybill(
        self, ewaybill_number: str, reason: str, remarks: Optional[str] = None
    ) -> EWayBillCancelResult:
        pass

    @abstractmethod
    async def update_ewaybill(self, ewaybill_number: str, update: EWayBillUpdate) -> EWayBillResult:
        pass

    @abstractmethod
    async def get_irn_status(self, irn: str) -> IRNStatusResult:
        pass

    @abstractmethod
    async def get_ewaybill_status(self, ewaybill_number: str) -> EWayBillStatusResult:
        pass
