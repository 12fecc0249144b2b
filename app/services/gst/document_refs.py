"""Document references carried in an invoice's free-text notes.

Older invoices record things like the original invoice of a credit note or
the port code of an export only in ``notes``. Structured fields win when
both are present.
"""
import re
from datetime import date
from typing import Optional

from app.schemas.external import Invoice

ORIGINAL_INVOICE_PATTERNS = (
    re.compile(r"original[:\s]+invoice[:\s]+([A-Z0-9/-]+)", re.IGNORECASE),
    re.compile(r"against[:\s]+([A-Z0-9/-]+)", re.IGNORECASE),
)
PORT_PATTERN = re.compile(r"\bport[:\s]+([A-Z0-9]+)", re.IGNORECASE)
SHIPPING_BILL_PATTERN = re.compile(r"shipping[:\s]+bill[:\s]+([A-Z0-9]+)", re.IGNORECASE)
TRANSPORTER_PATTERN = re.compile(r"\btransport[:\s]+([A-Z0-9]+)", re.IGNORECASE)
VEHICLE_PATTERN = re.compile(r"\bvehicle[:\s]+([A-Z0-9]+)", re.IGNORECASE)
DISTANCE_PATTERN = re.compile(r"\bdistance[:\s]+(\d+)", re.IGNORECASE)


def _search(pattern: re.Pattern, text: Optional[str]) -> Optional[str]:
    if not text:
        return None
    match = pattern.search(text)
    return match.group(1) if match else None


def format_gov_date(value: date) -> str:
    """DD-MM-YYYY, the date format of the e-invoice and e-way bill schemas."""
    return value.strftime("%d-%m-%Y")


def original_invoice_number(invoice: Invoice) -> Optional[str]:
    if invoice.original_invoice_number:
        return invoice.original_invoice_number
    for pattern in ORIGINAL_INVOICE_PATTERNS:
        found = _search(pattern, invoice.notes)
        if found:
            return found
    return None


def port_code(invoice: Invoice) -> Optional[str]:
    return invoice.port_code or _search(PORT_PATTERN, invoice.notes)


def shipping_bill_number(invoice: Invoice) -> Optional[str]:
    return invoice.shipping_bill_number or _search(SHIPPING_BILL_PATTERN, invoice.notes)


def transporter_id(invoice: Invoice) -> Optional[str]:
    return invoice.transporter_id or _search(TRANSPORTER_PATTERN, invoice.notes)


def vehicle_number(invoice: Invoice) -> Optional[str]:
    return invoice.vehicle_number or _search(VEHICLE_PATTERN, invoice.notes)


def transport_distance(invoice: Invoice) -> Optional[int]:
    if invoice.transport_distance is not None:
        return invoice.transport_distance
    found = _search(DISTANCE_PATTERN, invoice.notes)
    return int(found) if found else None
