"""Per-business GST settings schemas. Credentials are write-only."""
from datetime import datetime
from typing import Literal, Optional
from uuid import UUID

from pydantic import Field, field_validator

from app.schemas.base import BaseCreateSchema, BaseResponseSchema, Money, Rate
from app.schemas.gsp import GSPCredentials


class GstSettingsUpsert(BaseCreateSchema):
    """Fields left out are kept as stored."""
    gst_type: Optional[Literal["regular", "composition"]] = None
    annual_turnover: Optional[Money] = Field(None, ge=0)
    filing_frequency: Optional[Literal["monthly", "quarterly"]] = None
    composition_rate: Optional[Rate] = Field(None, ge=0, le=100)
    gsp_provider: Optional[str] = None
    gsp_credentials: Optional[GSPCredentials] = None
    einvoice_enabled: Optional[bool] = None
    ewaybill_enabled: Optional[bool] = None

    @field_validator("gsp_provider")
    @classmethod
    def lower_provider(cls, v: Optional[str]) -> Optional[str]:
        return v.strip().lower() if v else v


class GstSettingsResponse(BaseResponseSchema):
    id: Optional[UUID] = None
    business_id: UUID
    gst_type: str
    annual_turnover: Optional[Money] = None
    filing_frequency: str
    composition_rate: Optional[Rate] = None
    gsp_provider: Optional[str] = None
    has_credentials: bool = False
    einvoice_enabled: bool
    ewaybill_enabled: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
