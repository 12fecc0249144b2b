"""E-invoice (IRN) and e-way bill registration requests.

One row per invoice attempt. Rows are updated in place as the request moves
through its states and are never deleted.
"""
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import String, DateTime, Text, Index
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base
from app.db_types import UUIDType, JSONType


class EInvoiceStatus(str, Enum):
    """IRN request lifecycle: pending -> success | failed, success -> cancelled."""
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"
    CANCELLED = "cancelled"


class EWayBillStatus(str, Enum):
    """E-way bill lifecycle: pending -> generated | failed, generated -> cancelled."""
    PENDING = "pending"
    GENERATED = "generated"
    FAILED = "failed"
    CANCELLED = "cancelled"


class EInvoiceRequest(Base):
    """IRN registration attempt for an invoice."""
    __tablename__ = "einvoice_requests"
    __table_args__ = (
        Index("ix_einvoice_requests_invoice_status", "invoice_id", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )
    business_id: Mapped[uuid.UUID] = mapped_column(UUIDType(as_uuid=True), nullable=False, index=True)
    invoice_id: Mapped[uuid.UUID] = mapped_column(UUIDType(as_uuid=True), nullable=False, index=True)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=EInvoiceStatus.PENDING.value,
        comment="pending, success, failed, cancelled"
    )
    gsp_provider: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    request_payload: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)
    response_payload: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)

    # Issued by the IRP
    irn: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    ack_number: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    ack_date: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    qr_code: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    signed_invoice: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    generated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    error_code: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    cancel_reason: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc)
    )

    def __repr__(self) -> str:
        return f"<EInvoiceRequest(invoice_id='{self.invoice_id}', status='{self.status}')>"


class EWayBillRequest(Base):
    """E-way bill generation attempt for an invoice."""
    __tablename__ = "ewaybill_requests"
    __table_args__ = (
        Index("ix_ewaybill_requests_invoice_status", "invoice_id", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )
    business_id: Mapped[uuid.UUID] = mapped_column(UUIDType(as_uuid=True), nullable=False, index=True)
    invoice_id: Mapped[uuid.UUID] = mapped_column(UUIDType(as_uuid=True), nullable=False, index=True)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=EWayBillStatus.PENDING.value,
        comment="pending, generated, failed, cancelled"
    )
    gsp_provider: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    request_payload: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)
    response_payload: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)

    ewaybill_number: Mapped[Optional[str]] = mapped_column(
        String(20),
        nullable=True,
        index=True,
        comment="12-digit E-Way Bill number"
    )
    ewaybill_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    valid_until: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Part-B
    vehicle_number: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    transporter_id: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    transport_mode: Mapped[Optional[str]] = mapped_column(String(2), nullable=True, comment="1=Road, 2=Rail, 3=Air, 4=Ship")

    error_code: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    cancel_reason: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc)
    )

    def __repr__(self) -> str:
        return f"<EWayBillRequest(invoice_id='{self.invoice_id}', status='{self.status}')>"
