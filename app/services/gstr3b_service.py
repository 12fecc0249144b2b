"""
GSTR-3B Service

Monthly (or quarterly) summary return:
- Output tax on taxable outward supplies, by rate
- Zero-rated (export) supplies
- Input tax credit from purchases, excluding reverse charge
- Reverse charge liability and the matching credit
- Net tax payable and late fee
"""

import logging
from decimal import Decimal
from typing import List

from app.core.money import round_money
from app.core.period_parser import PeriodRange
from app.schemas.external import BusinessProfile, Invoice, InvoiceType
from app.schemas.gst_returns import (
    GSTR3BReport,
    ITCRateRow,
    ITCSection,
    NetTaxPayable,
    OutputTaxSection,
    RCMSection,
    ZeroRatedSupplies,
)
from app.services.gst.constants import FilingFrequency, ReportType
from app.services.gst.filing_calendar import (
    GSTR3B_LATE_FEE_PER_DAY,
    gstr3b_due_date,
    late_fee_details,
)
from app.services.gst.return_generator import ReturnGenerator
from app.services.gst.tax_aggregator import TaxAggregator, TaxTotals, to_rate_rows


logger = logging.getLogger(__name__)


class GSTR3BService(ReturnGenerator):
    """Generates GSTR-3B (summary return with tax liability)."""

    report_type = ReportType.GSTR3B
    report_model = GSTR3BReport

    async def build(
        self,
        business: BusinessProfile,
        period: PeriodRange,
        invoices: List[Invoice],
        auth_token: str,
    ) -> GSTR3BReport:
        sales = [inv for inv in invoices if inv.invoice_type == InvoiceType.SALE]
        purchases = [inv for inv in invoices if inv.invoice_type == InvoiceType.PURCHASE]

        output_tax = self._output_tax(sales)
        itc = self._input_tax_credit(purchases)
        rcm = self._reverse_charge(purchases)
        net = self._net_tax_payable(output_tax, itc, rcm)

        late_fee = late_fee_details(
            gstr3b_due_date(period),
            self.today(),
            GSTR3B_LATE_FEE_PER_DAY,
            tax_payable=net.total_payable,
        )

        return GSTR3BReport(
            gstin=business.gstin,
            return_period=period.period,
            filing_frequency=(
                FilingFrequency.QUARTERLY if period.is_quarterly else FilingFrequency.MONTHLY
            ),
            output_tax=output_tax,
            zero_rated_supplies=self._zero_rated(sales),
            itc=itc,
            rcm=rcm,
            net_tax_payable=net,
            late_fee=late_fee,
        )

    def _output_tax(self, sales: List[Invoice]) -> OutputTaxSection:
        """Outward taxable supplies by rate. Exports are reported as zero rated."""
        by_rate: TaxAggregator = TaxAggregator()
        for invoice in sales:
            if invoice.is_export:
                continue
            for item in invoice.items:
                by_rate.add_item(item.tax_rate, item)

        total = by_rate.total()
        return OutputTaxSection(
            by_rate=to_rate_rows(by_rate),
            total_taxable_value=total.taxable_value,
            total_cgst=total.cgst,
            total_sgst=total.sgst,
            total_igst=total.igst,
            total_cess=total.cess,
            total_tax=total.total_tax,
        )

    def _zero_rated(self, sales: List[Invoice]) -> ZeroRatedSupplies:
        totals = TaxTotals()
        for invoice in sales:
            if not invoice.is_export:
                continue
            for item in invoice.items:
                totals.add_item(item)
        return ZeroRatedSupplies(
            taxable_value=totals.taxable_value,
            igst=totals.igst,
            cess=totals.cess,
        )

    def _input_tax_credit(self, purchases: List[Invoice]) -> ITCSection:
        """
        ITC from regular purchases.

        All credit is treated as eligible: no blocked credits (section 17(5))
        and no reversals are modelled yet.
        """
        by_rate: TaxAggregator = TaxAggregator()
        for invoice in purchases:
            if invoice.is_rcm:
                continue
            for item in invoice.items:
                by_rate.add_item(item.tax_rate, item)

        total = by_rate.total()
        eligible = total.total_tax
        reversal = Decimal("0.00")

        return ITCSection(
            total_eligible_itc=eligible,
            total_ineligible_itc=Decimal("0.00"),
            igst_itc=total.igst,
            cgst_itc=total.cgst,
            sgst_itc=total.sgst,
            cess_itc=total.cess,
            by_rate=[
                ITCRateRow(
                    rate=rate,
                    taxable_value=totals.taxable_value,
                    igst_itc=totals.igst,
                    cgst_itc=totals.cgst,
                    sgst_itc=totals.sgst,
                    cess_itc=totals.cess,
                )
                for rate, totals in by_rate.items()
            ],
            itc_reversal=reversal,
            net_itc_available=eligible - reversal,
        )

    def _reverse_charge(self, purchases: List[Invoice]) -> RCMSection:
        """Tax paid on reverse charge, from invoice-level amounts, claimed back in full."""
        tax = TaxTotals()
        for invoice in purchases:
            if invoice.is_rcm:
                tax.add(
                    invoice.taxable_amount,
                    invoice.cgst_amount,
                    invoice.sgst_amount,
                    invoice.igst_amount,
                    invoice.cess_amount,
                )

        # Credit of RCM tax paid is available in the same period
        credit = TaxTotals().merge(tax)
        return RCMSection(
            rcm_taxable_value=tax.taxable_value,
            rcm_igst=tax.igst,
            rcm_cgst=tax.cgst,
            rcm_sgst=tax.sgst,
            rcm_cess=tax.cess,
            rcm_itc_igst=credit.igst,
            rcm_itc_cgst=credit.cgst,
            rcm_itc_sgst=credit.sgst,
            rcm_itc_cess=credit.cess,
            rcm_payable=round_money(tax.total_tax - credit.total_tax),
        )

    def _net_tax_payable(
        self, output_tax: OutputTaxSection, itc: ITCSection, rcm: RCMSection
    ) -> NetTaxPayable:
        """Output tax less net ITC plus RCM payable, per component."""
        # itc_reversal is not apportioned to components while it is always 0
        igst = output_tax.total_igst - itc.igst_itc + (rcm.rcm_igst - rcm.rcm_itc_igst)
        cgst = output_tax.total_cgst - itc.cgst_itc + (rcm.rcm_cgst - rcm.rcm_itc_cgst)
        sgst = output_tax.total_sgst - itc.sgst_itc + (rcm.rcm_sgst - rcm.rcm_itc_sgst)
        cess = output_tax.total_cess - itc.cess_itc + (rcm.rcm_cess - rcm.rcm_itc_cess)
        total = output_tax.total_tax - itc.net_itc_available + rcm.rcm_payable

        return NetTaxPayable(
            igst=igst,
            cgst=cgst,
            sgst=sgst,
            cess=cess,
            total_payable=total,
        )
