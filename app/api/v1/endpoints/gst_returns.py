"""API endpoints for GST return generation.

Provides:
- GSTR-1 (outward supplies) for a month or quarter
- GSTR-3B (monthly summary with net tax payable)
- GSTR-4 (quarterly composition return)

Reports are cached per business, return type and period for an hour;
``force=true`` rebuilds from the invoice store.
"""
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from app.api.deps import (
    AuthToken,
    UserId,
    get_gstr1_service,
    get_gstr3b_service,
    get_gstr4_service,
)
from app.schemas.gst_returns import GSTR1Report, GSTR3BReport, GSTR4Report
from app.services.gstr1_service import GSTR1Service
from app.services.gstr3b_service import GSTR3BService
from app.services.gstr4_service import GSTR4Service


router = APIRouter()

PeriodQuery = Annotated[str, Query(..., description="Period as MMYYYY or Q1-YYYY")]
ForceQuery = Annotated[bool, Query(description="Ignore a cached report and rebuild it")]


@router.get(
    "/{business_id}/gstr1",
    response_model=GSTR1Report,
    summary="Generate GSTR-1",
    description="""
    Outward supplies for the period, split into B2B, B2C large, B2C small,
    exports, credit/debit notes, advances, nil-rated and HSN summary.

    **Business Rules:**
    - Business must have a GSTIN
    - B2C invoices of 2,50,000 and above are reported individually
    """,
    responses={
        200: {"description": "GSTR-1 report"},
        400: {"description": "Invalid period or business has no GSTIN"},
        404: {"description": "Business not found"},
    },
)
async def get_gstr1(
    business_id: UUID,
    period: PeriodQuery,
    token: AuthToken,
    user_id: UserId,
    service: Annotated[GSTR1Service, Depends(get_gstr1_service)],
    force: ForceQuery = False,
):
    """Generate (or read from cache) the GSTR-1 report."""
    return await service.generate(business_id, period, token, force=force, generated_by=user_id)


@router.get(
    "/{business_id}/gstr3b",
    response_model=GSTR3BReport,
    summary="Generate GSTR-3B",
    description="""
    Summary return: output tax, zero-rated supplies, ITC, reverse charge and
    net tax payable, with the late fee accrued against the due date (20th of
    the following month).
    """,
)
async def get_gstr3b(
    business_id: UUID,
    period: PeriodQuery,
    token: AuthToken,
    user_id: UserId,
    service: Annotated[GSTR3BService, Depends(get_gstr3b_service)],
    force: ForceQuery = False,
):
    """Generate (or read from cache) the GSTR-3B report."""
    return await service.generate(business_id, period, token, force=force, generated_by=user_id)


@router.get(
    "/{business_id}/gstr4",
    response_model=GSTR4Report,
    summary="Generate GSTR-4",
    description="""
    Quarterly return for composition dealers.

    **Business Rules:**
    - Period must be a quarter (Q1-YYYY .. Q4-YYYY)
    - Business must be registered under the composition scheme
    """,
)
async def get_gstr4(
    business_id: UUID,
    period: PeriodQuery,
    token: AuthToken,
    user_id: UserId,
    service: Annotated[GSTR4Service, Depends(get_gstr4_service)],
    force: ForceQuery = False,
):
    return await service.generate(business_id, period, token, force=force, generated_by=user_id)
