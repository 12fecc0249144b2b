"""Invoice -> e-way bill generation payload."""
from decimal import Decimal
from typing import List, Optional

from app.core.gst_validators import state_code_from_gstin
from app.core.money import round_money
from app.schemas.external import Address, BusinessProfile, Invoice, InvoiceType, Party
from app.schemas.gsp import EWayBillItem, EWayBillPayload
from app.services.gst import document_refs
from app.services.gst.unit_codes import unit_code

SUPPLY_OUTWARD = "O"
SUPPLY_INWARD = "I"
EXPORT_SUB_SUPPLY = "EXPWP"
DEFAULT_TRANSPORT_MODE = "1"  # Road


def _pincode(address: Optional[Address]) -> Optional[int]:
    if address and address.pincode and address.pincode.strip().isdigit():
        return int(address.pincode.strip())
    return None


def format_items(invoice: Invoice) -> List[EWayBillItem]:
    return [
        EWayBillItem(
            productName=item.item_name or "Item",
            productDesc=item.item_description,
            hsnCode=item.hsn_code or "N/A",
            quantity=item.quantity,
            qtyUnit=unit_code(item.unit),
            cgstRate=item.cgst_rate,
            sgstRate=item.sgst_rate,
            igstRate=item.igst_rate,
            cessRate=item.cess_rate,
            cessNonAdvol=Decimal("0"),
            taxableAmount=round_money(item.taxable_amount),
        )
        for item in invoice.items
    ]


def format_invoice(invoice: Invoice, business: BusinessProfile, party: Party) -> EWayBillPayload:
    items = format_items(invoice)

    taxable = sum((round_money(i.taxable_amount) for i in invoice.items), Decimal("0"))
    cgst = sum((round_money(i.cgst_amount) for i in invoice.items), Decimal("0"))
    sgst = sum((round_money(i.sgst_amount) for i in invoice.items), Decimal("0"))
    igst = sum((round_money(i.igst_amount) for i in invoice.items), Decimal("0"))
    cess = sum((round_money(i.cess_amount) for i in invoice.items), Decimal("0"))

    from_address = business.address or Address()
    to_address = party.address or Address()

    return EWayBillPayload(
        userGstin=business.gstin or "",
        supplyType=SUPPLY_OUTWARD if invoice.invoice_type == InvoiceType.SALE else SUPPLY_INWARD,
        subSupplyType=EXPORT_SUB_SUPPLY if invoice.is_export else None,
        docType="INV",
        docNo=invoice.invoice_number,
        docDate=document_refs.format_gov_date(invoice.invoice_date),
        fromGstin=business.gstin,
        fromTrdName=business.name,
        fromAddr1=from_address.street or "",
        fromAddr2="",
        fromPlace=from_address.city or "",
        fromPincode=_pincode(from_address),
        fromStateCode=business.state_code or state_code_from_gstin(business.gstin) or "",
        toGstin=party.gstin or "URP",
        toTrdName=party.name,
        toAddr1=to_address.street or "",
        toAddr2="",
        toPlace=to_address.city or "",
        toPincode=_pincode(to_address),
        toStateCode=party.state_code or state_code_from_gstin(party.gstin) or "",
        itemList=items,
        totalValue=taxable,
        cgstValue=cgst,
        sgstValue=sgst,
        igstValue=igst,
        cessValue=cess,
        totInvValue=taxable + cgst + sgst + igst + cess + round_money(invoice.round_off),
        transMode=DEFAULT_TRANSPORT_MODE,
        transDistance=document_refs.transport_distance(invoice),
        transporterId=document_refs.transporter_id(invoice),
        transporterName=invoice.transporter_name,
        vehicleNo=document_refs.vehicle_number(invoice),
    )
