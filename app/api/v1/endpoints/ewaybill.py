"""API endpoints for e-way bills."""
from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Query

from app.api.deps import AuthToken, get_ewaybill_service
from app.schemas.registration import (
    EWayBillCancelRequest,
    EWayBillGenerateRequest,
    EWayBillResponse,
    EWayBillUpdateRequest,
)
from app.services.ewaybill_service import EWayBillService


router = APIRouter()

EWayBillSvc = Annotated[EWayBillService, Depends(get_ewaybill_service)]


@router.post(
    "/{business_id}/ewaybill/{invoice_id}/generate",
    response_model=EWayBillResponse,
    summary="Generate E-Way Bill",
    description="""
    Generate an e-way bill for an invoice of 50,000 and above.

    Transport details in the body override the ones on the invoice.
    """,
)
async def generate_ewaybill(
    business_id: UUID,
    invoice_id: UUID,
    token: AuthToken,
    service: EWayBillSvc,
    request: Annotated[Optional[EWayBillGenerateRequest], Body()] = None,
):
    return await service.generate(business_id, invoice_id, token, transport=request)


@router.post(
    "/{business_id}/ewaybill/{invoice_id}/update",
    response_model=EWayBillResponse,
    summary="Update E-Way Bill vehicle details",
)
async def update_ewaybill(
    business_id: UUID,
    invoice_id: UUID,
    request: EWayBillUpdateRequest,
    token: AuthToken,
    service: EWayBillSvc,
):
    """Part-B update: vehicle number and transport mode."""
    return await service.update(business_id, invoice_id, request)


@router.post(
    "/{business_id}/ewaybill/{invoice_id}/cancel",
    response_model=EWayBillResponse,
    summary="Cancel E-Way Bill",
)
async def cancel_ewaybill(
    business_id: UUID,
    invoice_id: UUID,
    request: EWayBillCancelRequest,
    token: AuthToken,
    service: EWayBillSvc,
):
    return await service.cancel(business_id, invoice_id, request.reason, request.remarks)


@router.get(
    "/{business_id}/ewaybill/{invoice_id}",
    response_model=EWayBillResponse,
    summary="Get E-Way Bill status",
)
async def get_ewaybill_status(
    business_id: UUID,
    invoice_id: UUID,
    token: AuthToken,
    service: EWayBillSvc,
    refresh: bool = Query(False, description="Check the status with the GSP"),
):
    return await service.get_status(business_id, invoice_id, refresh=refresh)
