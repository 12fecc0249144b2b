"""Cached GST return payloads."""
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import String, DateTime, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base
from app.db_types import UUIDType, JSONType


class GeneratedReport(Base):
    """
    Generated return keyed by (business, report type, period).

    One row per key; regeneration overwrites the payload in place.
    """
    __tablename__ = "gst_reports"
    __table_args__ = (
        UniqueConstraint("business_id", "report_type", "period", name="uq_gst_report_key"),
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
    report_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="gstr1, gstr3b, gstr4"
    )
    period: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        comment="MMYYYY or Q[1-4]-YYYY"
    )
    report_data: Mapped[dict] = mapped_column(JSONType, nullable=False)
    generated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc)
    )
    generated_by: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    def __repr__(self) -> str:
        return f"<GeneratedReport(type='{self.report_type}', period='{self.period}')>"
