"""Request-scoped dependencies: session, caller identity and service wiring."""
from typing import Annotated, Optional
import logging

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from app.clients import (
    BusinessServiceClient,
    BusinessStore,
    InvoiceServiceClient,
    InvoiceStore,
    PartyServiceClient,
    PartyStore,
)
from app.database import get_db
from app.repositories import (
    EInvoiceRequestRepository,
    EWayBillRequestRepository,
    GstSettingsRepository,
    Gstr2aRepository,
    ReportRepository,
)
from app.services.einvoice_service import EInvoiceService
from app.services.encryption_service import get_encryption_service
from app.services.ewaybill_service import EWayBillService
from app.services.gsp import CredentialStore, GSPProviderRegistry, get_provider_registry
from app.services.gst.report_cache import ReportCache
from app.services.gst_settings_service import GstSettingsService
from app.services.gstr1_service import GSTR1Service
from app.services.gstr2a_reconciliation_service import Gstr2aReconciliationService
from app.services.gstr3b_service import GSTR3BService
from app.services.gstr4_service import GSTR4Service


logger = logging.getLogger(__name__)

# HTTP Bearer security scheme; the token is forwarded to the invoice,
# party and business services, which validate it.
security = HTTPBearer(auto_error=False)

DB = Annotated[AsyncSession, Depends(get_db)]


async def get_auth_token(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
) -> str:
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return credentials.credentials


async def get_user_id(x_user_id: Annotated[Optional[str], Header()] = None) -> Optional[str]:
    """Caller id set by the gateway; recorded as generated_by / matched_by."""
    return x_user_id


AuthToken = Annotated[str, Depends(get_auth_token)]
UserId = Annotated[Optional[str], Depends(get_user_id)]


# ==================== Collaborators ====================

def get_invoice_store() -> InvoiceStore:
    return InvoiceServiceClient()


def get_party_store() -> PartyStore:
    return PartyServiceClient()


def get_business_store() -> BusinessStore:
    return BusinessServiceClient()


def get_registry() -> GSPProviderRegistry:
    return get_provider_registry()


def get_credential_store() -> CredentialStore:
    return CredentialStore(get_encryption_service())


Invoices = Annotated[InvoiceStore, Depends(get_invoice_store)]
Parties = Annotated[PartyStore, Depends(get_party_store)]
Businesses = Annotated[BusinessStore, Depends(get_business_store)]


# ==================== Services ====================

def get_report_cache(db: DB) -> ReportCache:
    return ReportCache(ReportRepository(db))


def get_gstr1_service(
    invoices: Invoices,
    parties: Parties,
    businesses: Businesses,
    cache: Annotated[ReportCache, Depends(get_report_cache)],
) -> GSTR1Service:
    return GSTR1Service(invoices, parties, businesses, cache)


def get_gstr3b_service(
    invoices: Invoices,
    parties: Parties,
    businesses: Businesses,
    cache: Annotated[ReportCache, Depends(get_report_cache)],
) -> GSTR3BService:
    return GSTR3BService(invoices, parties, businesses, cache)


def get_gstr4_service(
    db: DB,
    invoices: Invoices,
    parties: Parties,
    businesses: Businesses,
    cache: Annotated[ReportCache, Depends(get_report_cache)],
) -> GSTR4Service:
    return GSTR4Service(
        invoices,
        parties,
        businesses,
        cache,
        settings_repository=GstSettingsRepository(db),
    )


def get_reconciliation_service(
    db: DB,
    invoices: Invoices,
    parties: Parties,
    businesses: Businesses,
) -> Gstr2aReconciliationService:
    return Gstr2aReconciliationService(Gstr2aRepository(db), invoices, parties, businesses)


def get_settings_service(
    db: DB,
    credential_store: Annotated[CredentialStore, Depends(get_credential_store)],
    registry: Annotated[GSPProviderRegistry, Depends(get_registry)],
) -> GstSettingsService:
    return GstSettingsService(GstSettingsRepository(db), credential_store, registry)


def get_einvoice_service(
    db: DB,
    settings_service: Annotated[GstSettingsService, Depends(get_settings_service)],
    invoices: Invoices,
    parties: Parties,
    businesses: Businesses,
) -> EInvoiceService:
    return EInvoiceService(EInvoiceRequestRepository(db), settings_service, invoices, parties, businesses)


def get_ewaybill_service(
    db: DB,
    settings_service: Annotated[GstSettingsService, Depends(get_settings_service)],
    invoices: Invoices,
    parties: Parties,
    businesses: Businesses,
) -> EWayBillService:
    return EWayBillService(EWayBillRequestRepository(db), settings_service, invoices, parties, businesses)
