"""
Invoice -> NIC e-invoice (IRN) payload, schema version 1.1.

Every amount is recomputed from the item lines and rounded to 2 places
here, independently of the totals stored on the invoice record.
"""
from decimal import Decimal
from typing import List, Optional

from app.core.gst_validators import state_code_from_gstin
from app.core.money import round_money
from app.schemas.external import Address, BusinessProfile, Invoice, Party
from app.schemas.gsp import (
    BuyerDetails,
    DocumentDetails,
    EInvoiceItem,
    EInvoicePayload,
    ExportDetails,
    PaymentDetails,
    SellerDetails,
    TransactionDetails,
    ValueDetails,
)
from app.services.gst import document_refs
from app.services.gst.unit_codes import unit_code

UNREGISTERED_PERSON = "URP"
# State code NIC expects for buyers outside India
OTHER_COUNTRY_STATE_CODE = "96"
OTHER_COUNTRY_PINCODE = 999999


def _pincode(address: Optional[Address]) -> Optional[int]:
    if address and address.pincode and address.pincode.strip().isdigit():
        return int(address.pincode.strip())
    return None


def _supply_type(invoice: Invoice) -> str:
    if not invoice.is_export:
        return "B2B"
    return "EXPWP" if invoice.igst_amount > 0 else "EXPWOP"


def format_items(invoice: Invoice) -> List[EInvoiceItem]:
    items = []
    for index, item in enumerate(invoice.items, start=1):
        taxable = round_money(item.taxable_amount)
        igst = round_money(item.igst_amount)
        cgst = round_money(item.cgst_amount)
        sgst = round_money(item.sgst_amount)
        cess = round_money(item.cess_amount)
        items.append(
            EInvoiceItem(
                SlNo=str(index),
                PrdDesc=item.item_name or item.item_description or "Item",
                HsnCd=item.hsn_code or "N/A",
                Qty=item.quantity,
                Unit=unit_code(item.unit),
                Rate=round_money(item.unit_price),
                TotAmt=round_money(item.unit_price * item.quantity),
                Discount=round_money(item.discount_amount),
                TaxableAmt=taxable,
                IgstAmt=igst,
                CgstAmt=cgst,
                SgstAmt=sgst,
                CesAmt=cess,
                CesRt=item.cess_rate,
                CesNonAdvlAmt=Decimal("0"),
                TotItemVal=taxable + igst + cgst + sgst + cess,
            )
        )
    return items


def format_invoice(invoice: Invoice, business: BusinessProfile, party: Party) -> EInvoicePayload:
    items = format_items(invoice)

    assessable = sum((i.TaxableAmt for i in items), Decimal("0"))
    cgst = sum((i.CgstAmt for i in items), Decimal("0"))
    sgst = sum((i.SgstAmt for i in items), Decimal("0"))
    igst = sum((i.IgstAmt for i in items), Decimal("0"))
    cess = sum((i.CesAmt for i in items), Decimal("0"))
    round_off = round_money(invoice.round_off)
    total = assessable + cgst + sgst + igst + cess + round_off

    seller_address = business.address or Address()
    buyer_address = party.address or Address()

    buyer_state = party.state_code or state_code_from_gstin(party.gstin) or ""
    place_of_supply = invoice.place_of_supply or buyer_state
    buyer_pin = _pincode(buyer_address)
    if invoice.is_export:
        buyer_state = place_of_supply = OTHER_COUNTRY_STATE_CODE
        buyer_pin = OTHER_COUNTRY_PINCODE

    payload = {
        "TranDtls": TransactionDetails(
            SupTyp=_supply_type(invoice),
            RegRev="Y" if invoice.is_rcm else "N",
        ),
        "DocDtls": DocumentDetails(
            Typ="INV",
            No=invoice.invoice_number,
            Dt=document_refs.format_gov_date(invoice.invoice_date),
        ),
        "SellerDtls": SellerDetails(
            Gstin=business.gstin or "",
            LglNm=business.name,
            TrdNm=business.name,
            Addr1=seller_address.street or "",
            Loc=seller_address.city or "",
            Pin=_pincode(seller_address),
            Stcd=business.state_code or state_code_from_gstin(business.gstin) or "",
            Ph=business.phone,
            Em=business.email,
        ),
        "BuyerDtls": BuyerDetails(
            Gstin=party.gstin or UNREGISTERED_PERSON,
            LglNm=party.name,
            TrdNm=party.name,
            Pos=place_of_supply,
            Addr1=buyer_address.street or "",
            Loc=buyer_address.city or "",
            Pin=buyer_pin,
            Stcd=buyer_state,
            Ph=party.phone,
            Em=party.email,
        ),
        "ItemList": items,
        "ValDtls": ValueDetails(
            AssVal=assessable,
            CgstVal=cgst,
            SgstVal=sgst,
            IgstVal=igst,
            CesVal=cess,
            RndOffAmt=round_off,
            TotInvVal=total,
        ),
    }

    if invoice.payment_status and invoice.payment_status != "unpaid":
        paid = round_money(invoice.paid_amount)
        payload["PayDtls"] = PaymentDetails(PaidAmt=paid, PaymtDue=total - paid)

    if invoice.is_export:
        payload["ExpDtls"] = ExportDetails(
            ShipBNo=document_refs.shipping_bill_number(invoice),
            ShipBDt=(
                document_refs.format_gov_date(invoice.shipping_bill_date)
                if invoice.shipping_bill_date else None
            ),
            Port=document_refs.port_code(invoice) or "",
        )

    return EInvoicePayload(**payload)
