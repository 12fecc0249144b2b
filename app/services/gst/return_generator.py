"""
Shared flow of the GSTR-1, GSTR-3B and GSTR-4 generators.

Every generator:
1. parses the period and resolves the business profile (GSTIN required)
2. returns a cached report generated within the freshness window
3. fetches the period's invoices and builds the report
4. upserts the report into the cache, a failed write is only logged
"""
import logging
from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import Callable, ClassVar, Dict, Iterable, List, Optional, Type
from uuid import UUID

from app.clients.base import BusinessStore, InvoiceStore, PartyStore
from app.core import period_parser
from app.core.exceptions import GSTValidationError
from app.core.period_parser import PeriodRange
from app.schemas.base import ReportSchema
from app.schemas.external import BusinessProfile, Invoice, Party
from app.services.gst.report_cache import ReportCache, utc_now


logger = logging.getLogger(__name__)


class ReturnGenerator(ABC):
    report_type: ClassVar[str]
    report_model: ClassVar[Type[ReportSchema]]

    def __init__(
        self,
        invoice_store: InvoiceStore,
        party_store: PartyStore,
        business_store: BusinessStore,
        report_cache: ReportCache,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.invoice_store = invoice_store
        self.party_store = party_store
        self.business_store = business_store
        self.report_cache = report_cache
        self.clock = clock

    async def generate(
        self,
        business_id: UUID,
        period: str,
        auth_token: str,
        *,
        force: bool = False,
        generated_by: Optional[str] = None,
    ) -> ReportSchema:
        """
        Generate the return for a business and period.

        Args:
            business_id: Business the return is filed for
            period: ``MMYYYY`` or ``Q[1-4]-YYYY``
            auth_token: Bearer token forwarded to the invoice/party/business stores
            force: Skip the cache read and always regenerate
            generated_by: Recorded on the cached row

        Raises:
            GSTValidationError: malformed period, no GSTIN, or the business
                cannot file this return for the period
        """
        parsed = period_parser.parse(period)

        business = await self.business_store.get_business(business_id, auth_token)
        if not business.gstin:
            raise GSTValidationError(
                f"Business GSTIN is required for {self.report_type.upper()} generation",
                error_code="GSTIN_REQUIRED",
                details={"business_id": str(business_id)},
            )
        await self.check_eligibility(business, parsed)

        if not force:
            cached = await self.report_cache.get_fresh(business_id, self.report_type, period)
            if cached is not None:
                logger.info(f"Returning cached {self.report_type} for business {business_id}, period {period}")
                return self.report_model.model_validate(cached)

        invoices = await self.fetch_invoices(business_id, parsed, auth_token)
        report = await self.build(business, parsed, invoices, auth_token)

        await self.report_cache.store(
            business_id,
            self.report_type,
            period,
            report.model_dump(mode="json"),
            generated_by=generated_by,
        )
        logger.info(
            f"Generated {self.report_type} for business {business_id}, period {period} "
            f"from {len(invoices)} invoices"
        )
        return report

    async def check_eligibility(self, business: BusinessProfile, period: PeriodRange) -> None:
        """Hook for return-specific preconditions. Raise GSTValidationError to refuse."""
        return None

    @abstractmethod
    async def build(
        self,
        business: BusinessProfile,
        period: PeriodRange,
        invoices: List[Invoice],
        auth_token: str,
    ) -> ReportSchema:
        ...

    async def fetch_invoices(self, business_id: UUID, period: PeriodRange, auth_token: str) -> List[Invoice]:
        """Invoices dated within the period, in a stable order."""
        start, end = period.start.date(), period.end.date()
        invoices = await self.invoice_store.get_invoices_by_period(business_id, start, end, auth_token)
        in_period = [inv for inv in invoices if start <= inv.invoice_date <= end]
        return sorted(in_period, key=lambda inv: (inv.invoice_date, inv.invoice_number, str(inv.id)))

    async def fetch_parties(
        self, business_id: UUID, invoices: Iterable[Invoice], auth_token: str
    ) -> Dict[UUID, Party]:
        party_ids = [inv.party_id for inv in invoices if inv.party_id is not None]
        if not party_ids:
            return {}
        return await self.party_store.get_parties_by_ids(business_id, party_ids, auth_token)

    def today(self) -> date:
        return self.clock().date()
