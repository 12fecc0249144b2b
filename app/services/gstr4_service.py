"""
GSTR-4 Service

Quarterly return for businesses registered under the Composition Scheme.
Tax is a flat percentage of turnover, so only invoice-level values are needed.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Callable, Dict, List, Optional
from uuid import UUID

from app.clients.base import BusinessStore, InvoiceStore, PartyStore
from app.core.exceptions import GSTValidationError
from app.core.money import round_money, sum_money
from app.core.period_parser import PeriodRange
from app.models.gst_settings import GstSettings
from app.repositories.gst_settings_repository import GstSettingsRepository
from app.schemas.external import BusinessProfile, Invoice, InvoiceType, Party
from app.schemas.gst_returns import GSTR4Invoice, GSTR4Report
from app.services.gst.constants import GSTType, NOT_AVAILABLE, ReportType
from app.services.gst.filing_calendar import GSTR4_LATE_FEE_PER_DAY, gstr4_due_date, late_fee_details
from app.services.gst.report_cache import ReportCache, utc_now
from app.services.gst.return_generator import ReturnGenerator


logger = logging.getLogger(__name__)

DEFAULT_COMPOSITION_RATE = Decimal("1")


class GSTR4Service(ReturnGenerator):
    """Generates GSTR-4 for composition dealers."""

    report_type = ReportType.GSTR4
    report_model = GSTR4Report

    def __init__(
        self,
        invoice_store: InvoiceStore,
        party_store: PartyStore,
        business_store: BusinessStore,
        report_cache: ReportCache,
        settings_repository: Optional[GstSettingsRepository] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        super().__init__(invoice_store, party_store, business_store, report_cache, clock=clock)
        self.settings_repository = settings_repository
        self._settings: Dict[UUID, Optional[GstSettings]] = {}

    async def _gst_settings(self, business_id: UUID) -> Optional[GstSettings]:
        if self.settings_repository is None:
            return None
        if business_id not in self._settings:
            self._settings[business_id] = await self.settings_repository.find_by_business(business_id)
        return self._settings[business_id]

    async def check_eligibility(self, business: BusinessProfile, period: PeriodRange) -> None:
        if not period.is_quarterly:
            raise GSTValidationError(
                "GSTR-4 is filed quarterly. Period must be in Q1-YYYY format (e.g., Q1-2024)",
                error_code="QUARTERLY_PERIOD_REQUIRED",
                details={"period": period.period},
            )

        gst_type = business.gst_type
        if not gst_type:
            gst_settings = await self._gst_settings(business.id)
            gst_type = gst_settings.gst_type if gst_settings else None
        if (gst_type or "").lower() != GSTType.COMPOSITION:
            raise GSTValidationError(
                "GSTR-4 is only for businesses registered under Composition Scheme",
                error_code="NOT_COMPOSITION_DEALER",
                details={"gst_type": gst_type},
            )

    async def _composition_rate(self, business: BusinessProfile) -> Decimal:
        if business.composition_rate:
            return business.composition_rate
        gst_settings = await self._gst_settings(business.id)
        if gst_settings is not None and gst_settings.composition_rate:
            return Decimal(str(gst_settings.composition_rate))
        return DEFAULT_COMPOSITION_RATE

    async def build(
        self,
        business: BusinessProfile,
        period: PeriodRange,
        invoices: List[Invoice],
        auth_token: str,
    ) -> GSTR4Report:
        sales = [inv for inv in invoices if inv.invoice_type == InvoiceType.SALE]
        parties = await self.fetch_parties(business.id, sales, auth_token)

        b2b: List[GSTR4Invoice] = []
        b2c: List[GSTR4Invoice] = []
        for invoice in sales:
            party: Optional[Party] = parties.get(invoice.party_id) if invoice.party_id else None
            row = GSTR4Invoice(
                invoice_number=invoice.invoice_number,
                invoice_date=invoice.invoice_date.isoformat(),
                customer_gstin=party.gstin if party else None,
                customer_name=party.name if party else None,
                invoice_value=invoice.total_amount,
                place_of_supply=invoice.place_of_supply or NOT_AVAILABLE,
            )
            if party is not None and party.gstin:
                b2b.append(row)
            else:
                b2c.append(row)

        rate = await self._composition_rate(business)
        turnover = sum_money(round_money(inv.total_amount) for inv in sales)
        tax_payable = round_money(turnover * rate / Decimal("100"))

        logger.debug(
            f"GSTR-4 {period.period}: turnover {turnover} at {rate}% -> {tax_payable}"
        )
        return GSTR4Report(
            gstin=business.gstin,
            return_period=period.period,
            composition_rate=rate,
            total_turnover=turnover,
            composition_tax_payable=tax_payable,
            b2b_invoices=b2b,
            b2c_invoices=b2c,
            late_fee=late_fee_details(
                gstr4_due_date(period),
                self.today(),
                GSTR4_LATE_FEE_PER_DAY,
                tax_payable=tax_payable,
            ),
        )
