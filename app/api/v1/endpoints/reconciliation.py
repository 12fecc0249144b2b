"""API endpoints for GSTR-2A/2B import and purchase reconciliation."""
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from app.api.deps import AuthToken, UserId, get_reconciliation_service
from app.schemas.reconciliation import (
    Gstr2aImportRequest,
    Gstr2aImportResponse,
    ManualMatchRequest,
    ReconciliationRecordResponse,
    ReconciliationReport,
)
from app.services.gstr2a_reconciliation_service import Gstr2aReconciliationService


router = APIRouter()

ReconciliationSvc = Annotated[Gstr2aReconciliationService, Depends(get_reconciliation_service)]


@router.post(
    "/{business_id}/gstr2a/import",
    response_model=Gstr2aImportResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Import GSTR-2A/2B statement",
    description="""
    Store the supplier statement downloaded from the GST portal and match
    every line against the business's purchase invoices for the period.

    Re-importing a period replaces the earlier statement.
    """,
)
async def import_gstr2a(
    business_id: UUID,
    request: Gstr2aImportRequest,
    token: AuthToken,
    user_id: UserId,
    service: ReconciliationSvc,
):
    """Import and reconcile a GSTR-2A/2B statement."""
    return await service.import_statement(
        business_id,
        request.period,
        request.import_type.value,
        request.data,
        user_id,
        token,
    )


@router.get(
    "/{business_id}/gstr2a",
    response_model=ReconciliationReport,
    summary="Get reconciliation",
    description="Matched, missing, mismatched and extra (unclaimed purchase) invoices for the period.",
)
async def get_gstr2a_reconciliation(
    business_id: UUID,
    token: AuthToken,
    service: ReconciliationSvc,
    period: str = Query(..., description="Period as MMYYYY or Q1-YYYY"),
):
    return await service.get_reconciliation(business_id, period.strip().upper(), token)


@router.post(
    "/{business_id}/gstr2a/{reconciliation_id}/match",
    response_model=ReconciliationRecordResponse,
    summary="Manually match a statement line",
    description="Link a statement line to a purchase invoice. The automatic outcome is kept for audit.",
)
async def manual_match(
    business_id: UUID,
    reconciliation_id: UUID,
    request: ManualMatchRequest,
    token: AuthToken,
    user_id: UserId,
    service: ReconciliationSvc,
):
    return await service.manual_match(reconciliation_id, request.invoice_id, business_id, user_id, token)
