"""
GSTR-1 Service

Builds the outward supplies return from the period's invoices:
- B2B (registered customers, grouped by GSTIN)
- B2C Large (unregistered, invoice value >= 2.5 lakh)
- B2C Small (unregistered, summarised by place of supply and rate)
- Exports (zero-rated, without payment of tax)
- CDNR (credit/debit notes)
- Advance receipts
- Nil rated / exempted / non-GST summary
- HSN-wise summary
"""

import logging
from collections import defaultdict
from decimal import Decimal
from typing import Dict, List, Optional
from uuid import UUID

from app.core.gst_validators import has_hsn
from app.core.money import round_money, sum_money
from app.core.period_parser import PeriodRange
from app.schemas.external import BusinessProfile, Invoice, InvoiceType, Party
from app.schemas.gst_returns import (
    AdvanceReceiptEntry,
    B2BEntry,
    B2BInvoice,
    B2CLargeInvoice,
    B2CSmallEntry,
    CDNREntry,
    ExportInvoice,
    GSTR1Report,
    GSTR1Summary,
    HSNSummaryEntry,
    NilRatedSummary,
    RateRow,
)
from app.services.gst import document_refs
from app.services.gst.constants import (
    B2C_LARGE_THRESHOLD,
    DEFAULT_REASON_CODE,
    NOT_AVAILABLE,
    UNKNOWN_PLACE_OF_SUPPLY,
    ReportType,
)
from app.services.gst.return_generator import ReturnGenerator
from app.services.gst.tax_aggregator import TaxAggregator, TaxTotals, rate_rows
from app.services.gst.unit_codes import unit_code


logger = logging.getLogger(__name__)


class GSTR1Service(ReturnGenerator):
    """Generates GSTR-1 (details of outward supplies)."""

    report_type = ReportType.GSTR1
    report_model = GSTR1Report

    async def build(
        self,
        business: BusinessProfile,
        period: PeriodRange,
        invoices: List[Invoice],
        auth_token: str,
    ) -> GSTR1Report:
        sales = [inv for inv in invoices if inv.invoice_type == InvoiceType.SALE]
        notes = [
            inv for inv in invoices
            if inv.invoice_type in (InvoiceType.CREDIT_NOTE, InvoiceType.DEBIT_NOTE)
        ]
        advances = [inv for inv in invoices if inv.invoice_type == InvoiceType.ADVANCE]

        parties = await self.fetch_parties(business.id, sales + notes, auth_token)

        exports: List[Invoice] = []
        b2b: List[Invoice] = []
        b2c_large: List[Invoice] = []
        b2c_small: List[Invoice] = []
        for invoice in sales:
            party = parties.get(invoice.party_id) if invoice.party_id else None
            if invoice.is_export:
                exports.append(invoice)
            elif party is not None and party.gstin:
                b2b.append(invoice)
            elif invoice.total_amount >= B2C_LARGE_THRESHOLD:
                b2c_large.append(invoice)
            else:
                b2c_small.append(invoice)

        b2b_entries = self._b2b_section(b2b, parties)
        b2c_small_entries = self._b2c_small_section(b2c_small)
        report = GSTR1Report(
            gstin=business.gstin,
            return_period=period.period,
            b2b=b2b_entries,
            b2c_large=self._b2c_large_section(b2c_large, parties),
            b2c_small=b2c_small_entries,
            exports=self._export_section(exports),
            cdnr=self._cdnr_section(notes, parties),
            advance_receipts=self._advance_receipts_section(advances),
            nil_rated_summary=self._nil_rated_summary(sales),
            hsn_summary=self._hsn_summary(sales),
            summary=self._summary(
                sales,
                b2b_invoices=sum(len(entry.invoices) for entry in b2b_entries),
                b2c_large_invoices=len(b2c_large),
                b2c_small_entries=len(b2c_small_entries),
                export_invoices=len(exports),
                cdnr_notes=len(notes),
                advance_receipts=len(advances),
            ),
        )
        logger.debug(
            f"GSTR-1 {period.period}: {len(b2b)} B2B, {len(b2c_large)} B2CL, "
            f"{len(b2c_small)} B2CS, {len(exports)} exports, {len(notes)} notes"
        )
        return report

    # ==================== Sections ====================

    def _b2b_section(self, invoices: List[Invoice], parties: Dict[UUID, Party]) -> List[B2BEntry]:
        """B2B invoices grouped by customer GSTIN."""
        by_gstin: Dict[str, List[Invoice]] = defaultdict(list)
        names: Dict[str, str] = {}
        for invoice in invoices:
            party = parties[invoice.party_id]
            by_gstin[party.gstin].append(invoice)
            names.setdefault(party.gstin, party.name)

        return [
            B2BEntry(
                customer_gstin=gstin,
                customer_name=names[gstin],
                invoices=[
                    B2BInvoice(
                        invoice_number=inv.invoice_number,
                        invoice_date=inv.invoice_date.isoformat(),
                        invoice_value=inv.total_amount,
                        place_of_supply=_place_of_supply(inv),
                        reverse_charge=inv.is_rcm,
                        items=rate_rows(inv.items),
                    )
                    for inv in by_gstin[gstin]
                ],
            )
            for gstin in sorted(by_gstin)
        ]

    def _b2c_large_section(
        self, invoices: List[Invoice], parties: Dict[UUID, Party]
    ) -> List[B2CLargeInvoice]:
        section = []
        for invoice in invoices:
            party: Optional[Party] = parties.get(invoice.party_id) if invoice.party_id else None
            address = party.address.one_line() if party and party.address else None
            section.append(
                B2CLargeInvoice(
                    invoice_number=invoice.invoice_number,
                    invoice_date=invoice.invoice_date.isoformat(),
                    invoice_value=invoice.total_amount,
                    place_of_supply=_place_of_supply(invoice),
                    customer_name=party.name if party else None,
                    customer_address=address or None,
                    items=rate_rows(invoice.items),
                )
            )
        return section

    def _b2c_small_section(self, invoices: List[Invoice]) -> List[B2CSmallEntry]:
        """Item-level totals per (place of supply, rate), not per invoice."""
        aggregator: TaxAggregator = TaxAggregator()
        for invoice in invoices:
            place = _place_of_supply(invoice)
            for item in invoice.items:
                aggregator.add_item((place, item.tax_rate), item)

        return [
            B2CSmallEntry(
                place_of_supply=place,
                rate=rate,
                taxable_value=totals.taxable_value,
                cgst=totals.cgst,
                sgst=totals.sgst,
                igst=totals.igst,
                cess=totals.cess,
            )
            for (place, rate), totals in aggregator.items()
        ]

    def _export_section(self, invoices: List[Invoice]) -> List[ExportInvoice]:
        """Exports without payment of tax: one zero-rated row per invoice."""
        section = []
        for invoice in invoices:
            items: List[RateRow] = []
            if invoice.items:
                taxable = sum_money(round_money(item.taxable_amount) for item in invoice.items)
                items.append(
                    RateRow(
                        rate=Decimal("0"),
                        taxable_value=taxable,
                        cgst=Decimal("0"),
                        sgst=Decimal("0"),
                        igst=Decimal("0"),
                        cess=Decimal("0"),
                    )
                )
            section.append(
                ExportInvoice(
                    invoice_number=invoice.invoice_number,
                    invoice_date=invoice.invoice_date.isoformat(),
                    invoice_value=invoice.total_amount,
                    port_code=document_refs.port_code(invoice),
                    shipping_bill_number=document_refs.shipping_bill_number(invoice),
                    shipping_bill_date=(
                        invoice.shipping_bill_date.isoformat() if invoice.shipping_bill_date else None
                    ),
                    items=items,
                )
            )
        return section

    def _cdnr_section(self, notes: List[Invoice], parties: Dict[UUID, Party]) -> List[CDNREntry]:
        section = []
        for note in notes:
            party = parties.get(note.party_id) if note.party_id else None
            totals = TaxTotals()
            for item in note.items:
                totals.add_item(item)

            section.append(
                CDNREntry(
                    customer_gstin=party.gstin if party else None,
                    customer_name=party.name if party else None,
                    note_type="C" if note.invoice_type == InvoiceType.CREDIT_NOTE else "D",
                    note_number=note.invoice_number,
                    note_date=note.invoice_date.isoformat(),
                    original_invoice_number=document_refs.original_invoice_number(note) or NOT_AVAILABLE,
                    original_invoice_date=(
                        note.original_invoice_date.isoformat() if note.original_invoice_date else None
                    ),
                    reason_code=note.reason_code or DEFAULT_REASON_CODE,
                    place_of_supply=_place_of_supply(note),
                    note_value=note.total_amount,
                    taxable_value=totals.taxable_value,
                    cgst=totals.cgst,
                    sgst=totals.sgst,
                    igst=totals.igst,
                    cess=totals.cess,
                )
            )
        return section

    def _advance_receipts_section(self, receipts: List[Invoice]) -> List[AdvanceReceiptEntry]:
        section = []
        for receipt in receipts:
            totals = TaxTotals()
            for item in receipt.items:
                totals.add_item(item)
            section.append(
                AdvanceReceiptEntry(
                    receipt_number=receipt.invoice_number,
                    receipt_date=receipt.invoice_date.isoformat(),
                    place_of_supply=_place_of_supply(receipt),
                    advance_amount=receipt.total_amount,
                    cgst=totals.cgst,
                    sgst=totals.sgst,
                    igst=totals.igst,
                    cess=totals.cess,
                )
            )
        return section

    def _nil_rated_summary(self, sales: List[Invoice]) -> NilRatedSummary:
        """
        Zero-rate items split by HSN presence.

        An item with 0% rate and a taxable value is nil rated when it carries
        no tax and has an HSN code, otherwise exempted. An item with no HSN
        code is additionally counted as non-GST.
        """
        nil_rated = Decimal("0.00")
        exempted = Decimal("0.00")
        non_gst = Decimal("0.00")

        for invoice in sales:
            for item in invoice.items:
                if item.tax_rate != 0 or item.taxable_amount <= 0:
                    continue
                taxable = round_money(item.taxable_amount)
                untaxed = (
                    item.cgst_amount == 0
                    and item.sgst_amount == 0
                    and item.igst_amount == 0
                    and item.cess_amount == 0
                )
                if untaxed and has_hsn(item.hsn_code):
                    nil_rated += taxable
                else:
                    exempted += taxable
                if not has_hsn(item.hsn_code):
                    non_gst += taxable

        return NilRatedSummary(nil_rated=nil_rated, exempted=exempted, non_gst=non_gst)

    def _hsn_summary(self, sales: List[Invoice]) -> List[HSNSummaryEntry]:
        aggregator: TaxAggregator[str] = TaxAggregator()
        descriptions: Dict[str, str] = {}
        units: Dict[str, str] = {}
        quantities: Dict[str, Decimal] = defaultdict(lambda: Decimal("0"))

        for invoice in sales:
            for item in invoice.items:
                code = item.hsn_code.strip() if has_hsn(item.hsn_code) else NOT_AVAILABLE
                aggregator.add_item(code, item)
                descriptions.setdefault(code, item.item_description or item.item_name or "")
                units.setdefault(code, unit_code(item.unit))
                quantities[code] += item.quantity

        return [
            HSNSummaryEntry(
                hsn_code=code,
                description=descriptions[code],
                uqc=units[code],
                quantity=quantities[code],
                taxable_value=totals.taxable_value,
                cgst=totals.cgst,
                sgst=totals.sgst,
                igst=totals.igst,
                cess=totals.cess,
                total_value=totals.total_value,
            )
            for code, totals in aggregator.items()
        ]

    def _summary(self, sales: List[Invoice], **counts: int) -> GSTR1Summary:
        totals = TaxTotals()
        for invoice in sales:
            for item in invoice.items:
                totals.add_item(item)

        return GSTR1Summary(
            b2b_invoices=counts["b2b_invoices"],
            b2c_large_invoices=counts["b2c_large_invoices"],
            b2c_small_entries=counts["b2c_small_entries"],
            export_invoices=counts["export_invoices"],
            cdnr_notes=counts["cdnr_notes"],
            advance_receipts=counts["advance_receipts"],
            total_taxable_value=totals.taxable_value,
            total_tax=totals.total_tax,
            total_invoice_value=sum_money(round_money(inv.total_amount) for inv in sales),
        )


def _place_of_supply(invoice: Invoice) -> str:
    return invoice.place_of_supply or UNKNOWN_PLACE_OF_SUPPLY
