"""E-invoice and e-way bill request/response schemas."""
from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import Field

from app.schemas.base import BaseCreateSchema, BaseResponseSchema


# ==================== E-Invoice ====================

class IRNCancelRequest(BaseCreateSchema):
    """NIC reason codes: 1 duplicate, 2 data entry mistake, 3 order cancelled, 4 others."""
    reason: str = Field(..., min_length=1, max_length=255)
    remarks: Optional[str] = Field(None, max_length=100)


class EInvoiceResponse(BaseResponseSchema):
    id: UUID
    business_id: UUID
    invoice_id: UUID
    status: str
    gsp_provider: Optional[str] = None
    irn: Optional[str] = None
    ack_number: Optional[str] = None
    ack_date: Optional[str] = None
    qr_code: Optional[str] = None
    generated_at: Optional[datetime] = None
    error_code: Optional[str] = None
    error_message: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    cancel_reason: Optional[str] = None
    created_at: Optional[datetime] = None


# ==================== E-Way Bill ====================

class EWayBillGenerateRequest(BaseCreateSchema):
    """Transport details; any field left out is read from the invoice."""
    transporter_id: Optional[str] = Field(None, max_length=20)
    transporter_name: Optional[str] = None
    vehicle_number: Optional[str] = Field(None, max_length=20)
    transport_distance: Optional[int] = Field(None, ge=0, le=4000)


class EWayBillUpdateRequest(BaseCreateSchema):
    vehicle_number: str = Field(..., min_length=1, max_length=20)
    transport_mode: str = Field("1", pattern=r"^[1-4]$")
    reason_code: str = Field("1", description="1 breakdown, 2 transhipment, 3 others, 4 first time")
    reason_remarks: Optional[str] = None
    from_place: Optional[str] = None
    from_state_code: Optional[str] = None
    transporter_id: Optional[str] = None


class EWayBillCancelRequest(BaseCreateSchema):
    reason: str = Field(..., min_length=1, max_length=255)
    remarks: Optional[str] = Field(None, max_length=100)


class EWayBillResponse(BaseResponseSchema):
    id: UUID
    business_id: UUID
    invoice_id: UUID
    status: str
    gsp_provider: Optional[str] = None
    ewaybill_number: Optional[str] = None
    ewaybill_date: Optional[datetime] = None
    valid_until: Optional[datetime] = None
    vehicle_number: Optional[str] = None
    transporter_id: Optional[str] = None
    transport_mode: Optional[str] = None
    error_code: Optional[str] = None
    error_message: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    cancel_reason: Optional[str] = None
    created_at: Optional[datetime] = None
