"""GSTR-2A/2B statement imports and line-level reconciliation."""
import uuid
from datetime import datetime, date, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import String, Boolean, DateTime, Date, Integer, ForeignKey
from sqlalchemy import UniqueConstraint, Index
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base
from app.db_types import JSONType, MoneyType, UUIDType


class ImportType(str, Enum):
    """Counterparty statement types."""
    GSTR2A = "gstr2a"
    GSTR2B = "gstr2b"


class MatchStatus(str, Enum):
    """Persisted reconciliation outcomes. ``extra`` is derived on read."""
    MATCHED = "matched"
    MISSING = "missing"          # In statement, not in our books
    MISMATCHED = "mismatched"    # In both, amounts differ


class Gstr2aImport(Base):
    """One imported statement per business and period."""
    __tablename__ = "gstr2a_imports"
    __table_args__ = (
        UniqueConstraint("business_id", "period", name="uq_gstr2a_import_period"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )
    business_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        nullable=False,
        index=True
    )
    period: Mapped[str] = mapped_column(String(10), nullable=False)
    import_type: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        default=ImportType.GSTR2A.value,
        comment="gstr2a, gstr2b"
    )
    import_data: Mapped[dict] = mapped_column(JSONType, nullable=False)

    total_invoices: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    matched_invoices: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    missing_invoices: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    mismatched_invoices: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    imported_by: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    imported_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc)
    )


class Gstr2aReconciliation(Base):
    """One row per invoice line reported by a supplier in the statement."""
    __tablename__ = "gstr2a_reconciliations"
    __table_args__ = (
        Index("ix_gstr2a_recon_business_status", "business_id", "match_status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )
    import_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("gstr2a_imports.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    business_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        nullable=False,
        index=True
    )

    # Supplier line as reported
    supplier_gstin: Mapped[str] = mapped_column(String(15), nullable=False)
    supplier_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    invoice_number: Mapped[str] = mapped_column(String(50), nullable=False)
    invoice_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    document_type: Mapped[str] = mapped_column(
        String(10),
        default="invoice",
        nullable=False,
        comment="invoice, note"
    )
    taxable_value: Mapped[Decimal] = mapped_column(MoneyType, default=0, nullable=False)
    igst_amount: Mapped[Decimal] = mapped_column(MoneyType, default=0, nullable=False)
    cgst_amount: Mapped[Decimal] = mapped_column(MoneyType, default=0, nullable=False)
    sgst_amount: Mapped[Decimal] = mapped_column(MoneyType, default=0, nullable=False)
    cess_amount: Mapped[Decimal] = mapped_column(MoneyType, default=0, nullable=False)

    # Our purchase invoice, when one was found
    invoice_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType(as_uuid=True),
        nullable=True,
        index=True
    )
    match_status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=MatchStatus.MISSING.value,
        comment="matched, missing, mismatched"
    )
    match_details: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)

    # Outcome of the automatic attempt, kept when a user overrides it
    auto_match_status: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    auto_match_details: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)
    auto_invoice_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUIDType(as_uuid=True), nullable=True)

    is_manual_match: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    matched_by: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    manual_matched_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc)
    )

    @property
    def total_value(self) -> Decimal:
        return (
            (self.taxable_value or 0) + (self.igst_amount or 0) + (self.cgst_amount or 0)
            + (self.sgst_amount or 0) + (self.cess_amount or 0)
        )
