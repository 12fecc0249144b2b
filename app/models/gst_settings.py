"""Per-business GST configuration."""
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import String, Boolean, DateTime, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base
from app.db_types import RateType, TurnoverType, UUIDType


class GstSettings(Base):
    """
    GST settings for a business.

    Created on first configuration, updated via upsert, never deleted.
    GSP credentials are stored encrypted (``iv_hex:ciphertext_hex``).
    """
    __tablename__ = "gst_settings"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )
    business_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        unique=True,
        nullable=False,
        index=True
    )

    gst_type: Mapped[str] = mapped_column(
        String(20),
        default="regular",
        nullable=False,
        comment="regular, composition"
    )
    annual_turnover: Mapped[Optional[Decimal]] = mapped_column(
        TurnoverType,
        nullable=True
    )
    filing_frequency: Mapped[str] = mapped_column(
        String(20),
        default="monthly",
        nullable=False,
        comment="monthly, quarterly"
    )
    composition_rate: Mapped[Optional[Decimal]] = mapped_column(
        RateType,
        nullable=True,
        comment="Composition tax rate in percent"
    )

    # GSP
    gsp_provider: Mapped[Optional[str]] = mapped_column(
        String(50),
        nullable=True,
        comment="Registered GSP provider name e.g. cleartax"
    )
    gsp_credentials: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        comment="Encrypted GSP credentials"
    )

    einvoice_enabled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    ewaybill_enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

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
        return f"<GstSettings(business_id='{self.business_id}', gst_type='{self.gst_type}')>"
