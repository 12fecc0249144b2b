"""Read-only records supplied by the invoice, party and business stores.

The engine never mutates these. Field names follow the collaborators' JSON.
"""
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.schemas.base import Money, Quantity, Rate


class InvoiceType(str, Enum):
    """Invoice document types."""
    SALE = "sale"
    PURCHASE = "purchase"
    CREDIT_NOTE = "credit_note"
    DEBIT_NOTE = "debit_note"
    ADVANCE = "advance"


# Older invoice records use short names for notes and advances
INVOICE_TYPE_ALIASES = {
    "credit": InvoiceType.CREDIT_NOTE,
    "debit": InvoiceType.DEBIT_NOTE,
    "advance_receipt": InvoiceType.ADVANCE,
}


class ExternalRecord(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")


class Address(ExternalRecord):
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    pincode: Optional[str] = None
    country: Optional[str] = None

    @field_validator("pincode", mode="before")
    @classmethod
    def pincode_as_str(cls, v):
        return str(v) if v is not None else None

    def one_line(self) -> str:
        parts = [self.street, self.city, self.state, self.pincode]
        return ", ".join(p for p in parts if p)


class InvoiceItem(ExternalRecord):
    item_name: Optional[str] = None
    item_description: Optional[str] = None
    hsn_code: Optional[str] = None
    unit: Optional[str] = None
    quantity: Quantity = Decimal("0")
    unit_price: Money = Decimal("0")
    discount_amount: Money = Decimal("0")
    tax_rate: Rate = Decimal("0")
    cgst_rate: Rate = Decimal("0")
    sgst_rate: Rate = Decimal("0")
    igst_rate: Rate = Decimal("0")
    cess_rate: Rate = Decimal("0")
    taxable_amount: Money = Decimal("0")
    cgst_amount: Money = Decimal("0")
    sgst_amount: Money = Decimal("0")
    igst_amount: Money = Decimal("0")
    cess_amount: Money = Decimal("0")
    total_amount: Money = Decimal("0")

    @field_validator(
        "quantity", "unit_price", "discount_amount", "tax_rate", "cgst_rate",
        "sgst_rate", "igst_rate", "cess_rate", "taxable_amount", "cgst_amount",
        "sgst_amount", "igst_amount", "cess_amount", "total_amount",
        mode="before",
    )
    @classmethod
    def null_as_zero(cls, v):
        return 0 if v is None else v


class Invoice(ExternalRecord):
    id: UUID
    business_id: UUID
    party_id: Optional[UUID] = None
    invoice_number: str
    invoice_type: InvoiceType = InvoiceType.SALE
    invoice_date: date
    place_of_supply: Optional[str] = None
    is_interstate: bool = False
    is_export: bool = False
    is_rcm: bool = False
    subtotal: Money = Decimal("0")
    discount_amount: Money = Decimal("0")
    taxable_amount: Money = Decimal("0")
    cgst_amount: Money = Decimal("0")
    sgst_amount: Money = Decimal("0")
    igst_amount: Money = Decimal("0")
    cess_amount: Money = Decimal("0")
    round_off: Money = Decimal("0")
    total_amount: Money = Decimal("0")
    paid_amount: Money = Decimal("0")
    payment_status: Optional[str] = None
    status: Optional[str] = None
    notes: Optional[str] = None

    # Structured document references, when the invoice store captures them
    original_invoice_number: Optional[str] = None
    original_invoice_date: Optional[date] = None
    reason_code: Optional[str] = None
    port_code: Optional[str] = None
    shipping_bill_number: Optional[str] = None
    shipping_bill_date: Optional[date] = None
    transporter_id: Optional[str] = None
    transporter_name: Optional[str] = None
    vehicle_number: Optional[str] = None
    transport_distance: Optional[int] = None

    items: List[InvoiceItem] = Field(default_factory=list)

    @field_validator("invoice_type", mode="before")
    @classmethod
    def normalise_type(cls, v):
        if isinstance(v, str):
            v = v.strip().lower()
            return INVOICE_TYPE_ALIASES.get(v, v)
        return v

    @field_validator("invoice_date", "original_invoice_date", "shipping_bill_date", mode="before")
    @classmethod
    def date_from_timestamp(cls, v):
        # "2024-12-15T10:30:00.000Z" -> "2024-12-15"
        if isinstance(v, str) and "T" in v:
            return v.split("T", 1)[0]
        return v

    @field_validator(
        "subtotal", "discount_amount", "taxable_amount", "cgst_amount", "sgst_amount",
        "igst_amount", "cess_amount", "round_off", "total_amount", "paid_amount",
        mode="before",
    )
    @classmethod
    def null_as_zero(cls, v):
        return 0 if v is None else v

    @property
    def total_tax(self) -> Decimal:
        return self.cgst_amount + self.sgst_amount + self.igst_amount + self.cess_amount


class Party(ExternalRecord):
    id: UUID
    name: str
    gstin: Optional[str] = None
    pan: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[Address] = None
    state_code: Optional[str] = None

    @field_validator("gstin", mode="before")
    @classmethod
    def blank_gstin_is_none(cls, v):
        if isinstance(v, str):
            v = v.strip().upper()
            return v or None
        return v


class BusinessProfile(ExternalRecord):
    id: UUID
    name: str
    gstin: Optional[str] = None
    pan: Optional[str] = None
    address: Optional[Address] = None
    state_code: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    annual_turnover: Optional[Money] = None
    gst_type: Optional[str] = None
    composition_rate: Optional[Rate] = None
    filing_frequency: Optional[str] = None

    @field_validator("gstin", mode="before")
    @classmethod
    def blank_gstin_is_none(cls, v):
        if isinstance(v, str):
            v = v.strip().upper()
            return v or None
        return v
