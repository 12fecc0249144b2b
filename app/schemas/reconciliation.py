"""GSTR-2A/2B import and reconciliation schemas."""
from datetime import date, datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import Field, field_validator

from app.models.gstr2a import ImportType
from app.schemas.base import BaseCreateSchema, BaseResponseSchema, Money


class Gstr2aImportRequest(BaseCreateSchema):
    """Raw statement as downloaded from the GST portal."""
    period: str = Field(..., description="MMYYYY or Q1-YYYY")
    import_type: ImportType = ImportType.GSTR2A
    data: Dict[str, Any]

    @field_validator("period")
    @classmethod
    def strip_period(cls, v: str) -> str:
        return v.strip().upper()


class ManualMatchRequest(BaseCreateSchema):
    invoice_id: UUID


class Gstr2aImportResponse(BaseResponseSchema):
    id: UUID
    business_id: UUID
    period: str
    import_type: str
    total_invoices: int
    matched_invoices: int
    missing_invoices: int
    mismatched_invoices: int
    imported_by: Optional[str] = None
    imported_at: Optional[datetime] = None


class ReconciliationLine(BaseResponseSchema):
    """A statement line, or one of our purchase invoices for ``extra``."""
    id: Optional[UUID] = None
    invoice_id: Optional[UUID] = None
    supplier_gstin: Optional[str] = None
    supplier_name: Optional[str] = None
    invoice_number: str
    invoice_date: Optional[date] = None
    taxable_value: Money
    igst: Money
    cgst: Money
    sgst: Money
    cess: Money
    total_value: Money
    match_status: str
    match_details: Optional[Dict[str, Any]] = None
    is_manual_match: bool = False


class ReconciliationReport(BaseResponseSchema):
    gstin: str
    period: str
    import_type: str
    total_gstr2a_invoices: int
    total_purchase_invoices: int
    matched_count: int
    missing_count: int
    mismatched_count: int
    extra_count: int
    matched: List[ReconciliationLine]
    missing: List[ReconciliationLine]
    mismatched: List[ReconciliationLine]
    extra: List[ReconciliationLine]


class ReconciliationRecordResponse(BaseResponseSchema):
    id: UUID
    import_id: UUID
    business_id: UUID
    supplier_gstin: str
    supplier_name: Optional[str] = None
    invoice_number: str
    invoice_date: Optional[date] = None
    invoice_id: Optional[UUID] = None
    match_status: str
    match_details: Optional[Dict[str, Any]] = None
    auto_match_status: Optional[str] = None
    auto_match_details: Optional[Dict[str, Any]] = None
    auto_invoice_id: Optional[UUID] = None
    is_manual_match: bool
    matched_by: Optional[str] = None
    manual_matched_at: Optional[datetime] = None

