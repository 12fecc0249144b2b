"""Payload schemas for generated GST returns (GSTR-1, GSTR-3B, GSTR-4).

Every monetary field is a ``Money`` value: rounded half-up to 2 places when
the row is built, serialized as a JSON number.
"""
from decimal import Decimal
from typing import List, Optional

from app.schemas.base import Money, Quantity, Rate, ReportSchema


# ==================== Shared ====================

class RateRow(ReportSchema):
    """Taxable value and tax components for a single tax rate."""
    rate: Rate
    taxable_value: Money
    cgst: Money
    sgst: Money
    igst: Money
    cess: Money


class LateFeeDetails(ReportSchema):
    due_date: str
    days_late: int = 0
    late_fee: Money = Decimal("0")
    interest: Money = Decimal("0")


# ==================== GSTR-1 ====================

class B2BInvoice(ReportSchema):
    invoice_number: str
    invoice_date: str
    invoice_value: Money
    place_of_supply: str
    reverse_charge: bool = False
    items: List[RateRow]


class B2BEntry(ReportSchema):
    customer_gstin: str
    customer_name: str
    invoices: List[B2BInvoice]


class B2CLargeInvoice(ReportSchema):
    invoice_number: str
    invoice_date: str
    invoice_value: Money
    place_of_supply: str
    customer_name: Optional[str] = None
    customer_address: Optional[str] = None
    items: List[RateRow]


class B2CSmallEntry(ReportSchema):
    place_of_supply: str
    rate: Rate
    taxable_value: Money
    cgst: Money
    sgst: Money
    igst: Money
    cess: Money


class ExportInvoice(ReportSchema):
    invoice_number: str
    invoice_date: str
    invoice_value: Money
    export_type: str = "WOPAY"
    port_code: Optional[str] = None
    shipping_bill_number: Optional[str] = None
    shipping_bill_date: Optional[str] = None
    items: List[RateRow]


class CDNREntry(ReportSchema):
    customer_gstin: Optional[str] = None
    customer_name: Optional[str] = None
    note_type: str
    note_number: str
    note_date: str
    original_invoice_number: str
    original_invoice_date: Optional[str] = None
    reason_code: str
    place_of_supply: str
    note_value: Money
    taxable_value: Money
    cgst: Money
    sgst: Money
    igst: Money
    cess: Money


class AdvanceReceiptEntry(ReportSchema):
    receipt_number: str
    receipt_date: str
    place_of_supply: str
    advance_amount: Money
    cgst: Money
    sgst: Money
    igst: Money
    cess: Money


class NilRatedSummary(ReportSchema):
    nil_rated: Money
    exempted: Money
    non_gst: Money


class HSNSummaryEntry(ReportSchema):
    hsn_code: str
    description: str
    uqc: str
    quantity: Quantity
    taxable_value: Money
    cgst: Money
    sgst: Money
    igst: Money
    cess: Money
    total_value: Money


class GSTR1Summary(ReportSchema):
    b2b_invoices: int
    b2c_large_invoices: int
    b2c_small_entries: int
    export_invoices: int
    cdnr_notes: int
    advance_receipts: int
    total_taxable_value: Money
    total_tax: Money
    total_invoice_value: Money


class GSTR1Report(ReportSchema):
    gstin: str
    return_period: str
    b2b: List[B2BEntry]
    b2c_large: List[B2CLargeInvoice]
    b2c_small: List[B2CSmallEntry]
    exports: List[ExportInvoice]
    cdnr: List[CDNREntry]
    advance_receipts: List[AdvanceReceiptEntry]
    nil_rated_summary: NilRatedSummary
    hsn_summary: List[HSNSummaryEntry]
    summary: GSTR1Summary


# ==================== GSTR-3B ====================

class OutputTaxSection(ReportSchema):
    by_rate: List[RateRow]
    total_taxable_value: Money
    total_cgst: Money
    total_sgst: Money
    total_igst: Money
    total_cess: Money
    total_tax: Money


class ZeroRatedSupplies(ReportSchema):
    taxable_value: Money
    igst: Money
    cess: Money


class ITCRateRow(ReportSchema):
    rate: Rate
    taxable_value: Money
    igst_itc: Money
    cgst_itc: Money
    sgst_itc: Money
    cess_itc: Money


class ITCSection(ReportSchema):
    total_eligible_itc: Money
    total_ineligible_itc: Money
    igst_itc: Money
    cgst_itc: Money
    sgst_itc: Money
    cess_itc: Money
    by_rate: List[ITCRateRow]
    itc_reversal: Money
    net_itc_available: Money


class RCMSection(ReportSchema):
    rcm_taxable_value: Money
    rcm_igst: Money
    rcm_cgst: Money
    rcm_sgst: Money
    rcm_cess: Money
    rcm_itc_igst: Money
    rcm_itc_cgst: Money
    rcm_itc_sgst: Money
    rcm_itc_cess: Money
    rcm_payable: Money


class NetTaxPayable(ReportSchema):
    igst: Money
    cgst: Money
    sgst: Money
    cess: Money
    total_payable: Money


class GSTR3BReport(ReportSchema):
    gstin: str
    return_period: str
    filing_frequency: str
    output_tax: OutputTaxSection
    zero_rated_supplies: ZeroRatedSupplies
    itc: ITCSection
    rcm: RCMSection
    net_tax_payable: NetTaxPayable
    late_fee: LateFeeDetails


# ==================== GSTR-4 ====================

class GSTR4Invoice(ReportSchema):
    invoice_number: str
    invoice_date: str
    customer_gstin: Optional[str] = None
    customer_name: Optional[str] = None
    invoice_value: Money
    place_of_supply: str


class GSTR4Report(ReportSchema):
    gstin: str
    return_period: str
    composition_rate: Rate
    total_turnover: Money
    composition_tax_payable: Money
    b2b_invoices: List[GSTR4Invoice]
    b2c_invoices: List[GSTR4Invoice]
    late_fee: LateFeeDetails
