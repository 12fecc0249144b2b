"""API endpoints for e-invoice (IRN) registration."""
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from app.api.deps import AuthToken, get_einvoice_service
from app.schemas.registration import EInvoiceResponse, IRNCancelRequest
from app.services.einvoice_service import EInvoiceService


router = APIRouter()

EInvoiceSvc = Annotated[EInvoiceService, Depends(get_einvoice_service)]


@router.post(
    "/{business_id}/einvoice/{invoice_id}/generate",
    response_model=EInvoiceResponse,
    summary="Generate IRN",
    description="""
    Register a sale invoice with the IRP through the configured GSP.

    **Business Rules:**
    - E-invoicing must be enabled (annual turnover of 5 crore and above)
    - Every item needs an HSN code
    - An invoice that already has an IRN returns it unchanged
    """,
    responses={
        200: {"description": "IRN generated, or the existing one"},
        400: {"description": "Invoice not eligible or GSP rejected it"},
    },
)
async def generate_irn(
    business_id: UUID,
    invoice_id: UUID,
    token: AuthToken,
    service: EInvoiceSvc,
):
    return await service.generate_irn(business_id, invoice_id, token)


@router.post(
    "/{business_id}/einvoice/{invoice_id}/cancel",
    response_model=EInvoiceResponse,
    summary="Cancel IRN",
    description="Cancel an IRN within 24 hours of generation.",
)
async def cancel_irn(
    business_id: UUID,
    invoice_id: UUID,
    request: IRNCancelRequest,
    token: AuthToken,
    service: EInvoiceSvc,
):
    return await service.cancel_irn(business_id, invoice_id, request.reason, request.remarks)


@router.get(
    "/{business_id}/einvoice/{invoice_id}",
    response_model=EInvoiceResponse,
    summary="Get e-invoice status",
)
async def get_einvoice_status(
    business_id: UUID,
    invoice_id: UUID,
    token: AuthToken,
    service: EInvoiceSvc,
    refresh: bool = Query(False, description="Check the IRN status with the GSP"),
):
    return await service.get_status(business_id, invoice_id, refresh=refresh)
