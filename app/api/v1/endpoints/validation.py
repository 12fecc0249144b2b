"""Format checks for GSTIN and HSN/SAC codes."""
from typing import Optional

from fastapi import APIRouter
from pydantic import BaseModel

from app.core.gst_validators import is_valid_gstin, is_valid_hsn, state_code_from_gstin


router = APIRouter()


class GSTINValidationResponse(BaseModel):
    gstin: str
    is_valid: bool
    state_code: Optional[str] = None


class HSNValidationResponse(BaseModel):
    hsn_code: str
    is_valid: bool


@router.get("/validate/gstin/{gstin}", response_model=GSTINValidationResponse)
async def validate_gstin(gstin: str):
    gstin = gstin.strip().upper()
    valid = is_valid_gstin(gstin)
    return GSTINValidationResponse(
        gstin=gstin,
        is_valid=valid,
        state_code=state_code_from_gstin(gstin) if valid else None,
    )


@router.get("/validate/hsn/{hsn_code}", response_model=HSNValidationResponse)
async def validate_hsn(hsn_code: str):
    return HSNValidationResponse(hsn_code=hsn_code, is_valid=is_valid_hsn(hsn_code))
