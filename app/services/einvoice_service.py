"""
E-Invoice Service

Registers sale invoices with the Invoice Registration Portal (IRP) through
the business's GSP and tracks each attempt as an EInvoiceRequest.

Request lifecycle:
    pending -> success | failed
    success -> cancelled (within 24 hours of generation)

The pending row is committed before the provider is called and moved to its
terminal state only after the call resolves. A crash in between leaves the
row pending; a retry re-checks for an existing IRN first.
"""

import logging
from datetime import datetime, timedelta
from typing import Callable, Optional
from uuid import UUID

from app.clients.base import BusinessStore, InvoiceStore, PartyStore
from app.core.exceptions import (
    GSPProviderError,
    GSTConflictError,
    GSTNotFoundError,
    GSTValidationError,
)
from app.core.gst_validators import has_hsn
from app.models.registration import EInvoiceRequest, EInvoiceStatus
from app.repositories.registration_repository import EInvoiceRequestRepository
from app.schemas.external import Invoice, InvoiceType
from app.services.gst import einvoice_formatter
from app.services.gst.constants import IRN_CANCEL_WINDOW_HOURS
from app.services.gst.report_cache import as_utc, utc_now
from app.services.gst_settings_service import GstSettingsService


logger = logging.getLogger(__name__)


class EInvoiceService:
    """IRN generation, cancellation and status for a business's invoices."""

    def __init__(
        self,
        repository: EInvoiceRequestRepository,
        settings_service: GstSettingsService,
        invoice_store: InvoiceStore,
        party_store: PartyStore,
        business_store: BusinessStore,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.repository = repository
        self.settings_service = settings_service
        self.invoice_store = invoice_store
        self.party_store = party_store
        self.business_store = business_store
        self.clock = clock

    async def generate_irn(self, business_id: UUID, invoice_id: UUID, auth_token: str) -> EInvoiceRequest:
        """
        Generate an IRN for a sale invoice.

        Returns the existing request untouched when the invoice already has
        an IRN.

        Raises:
            GSTValidationError: e-invoicing not enabled, invoice not eligible,
                no business GSTIN or no GSP credentials
            GSPProviderError: the GSP rejected the invoice or could not be reached
        """
        business = await self.business_store.get_business(business_id, auth_token)
        if not await self.settings_service.is_einvoice_enabled(business_id, business):
            raise GSTValidationError(
                "E-Invoice is not enabled for this business. Annual turnover must be >= 5 Crore.",
                error_code="EINVOICE_NOT_ENABLED",
            )

        existing = await self.repository.find_by_status(business_id, invoice_id, EInvoiceStatus.SUCCESS.value)
        if existing is not None and existing.irn:
            logger.warning(f"IRN already exists for invoice {invoice_id}: {existing.irn}")
            return existing

        invoice = await self.invoice_store.get_invoice(business_id, invoice_id, auth_token)
        self._validate_invoice(invoice)

        if not business.gstin:
            raise GSTValidationError(
                "Business GSTIN is required for E-Invoice generation",
                error_code="GSTIN_REQUIRED",
            )
        if invoice.party_id is None:
            raise GSTValidationError(
                "Invoice has no customer; a buyer is required for E-Invoice",
                error_code="PARTY_REQUIRED",
            )
        party = await self.party_store.get_party(business_id, invoice.party_id, auth_token)
        provider = await self.settings_service.resolve_provider(business_id)

        payload = einvoice_formatter.format_invoice(invoice, business, party)
        request = await self.repository.create(
            business_id=business_id,
            invoice_id=invoice_id,
            status=EInvoiceStatus.PENDING.value,
            gsp_provider=provider.name,
            request_payload=payload.to_payload(),
        )
        await self.repository.commit()

        try:
            result = await provider.generate_irn(payload)
        except Exception as e:
            await self.repository.update(
                request,
                status=EInvoiceStatus.FAILED.value,
                error_code=getattr(e, "error_code", None) or "GSP_ERROR",
                error_message=str(e),
            )
            await self.repository.commit()
            logger.error(f"IRN generation failed for invoice {invoice_id}: {e}")
            raise

        if not result.success:
            await self.repository.update(
                request,
                status=EInvoiceStatus.FAILED.value,
                error_code=result.error_code,
                error_message=result.error or "IRN generation failed",
                response_payload=result.raw_response,
            )
            await self.repository.commit()
            logger.error(f"IRN generation rejected for invoice {invoice_id}: {result.error}")
            raise GSPProviderError(
                f"IRN generation failed: {result.error or 'Unknown error'}",
                error_code=result.error_code,
                details={"request_id": str(request.id)},
            )

        await self.repository.update(
            request,
            status=EInvoiceStatus.SUCCESS.value,
            irn=result.irn,
            ack_number=result.ack_no,
            ack_date=result.ack_date,
            qr_code=result.signed_qr_code or result.qr_code,
            signed_invoice=result.signed_invoice,
            generated_at=self.clock(),
            response_payload=result.raw_response,
            error_code=None,
            error_message=None,
        )
        await self.repository.commit()
        logger.info(f"IRN generated for invoice {invoice_id}: {result.irn}")
        return request

    async def cancel_irn(
        self,
        business_id: UUID,
        invoice_id: UUID,
        reason: str,
        remarks: Optional[str] = None,
    ) -> EInvoiceRequest:
        """Cancel a generated IRN. The GSP is called before anything is stored."""
        request = await self.repository.find_by_status(business_id, invoice_id, EInvoiceStatus.SUCCESS.value)
        if request is None or not request.irn:
            latest = await self.repository.find_latest(business_id, invoice_id)
            if latest is None:
                raise GSTNotFoundError("IRN not found for this invoice", error_code="IRN_NOT_FOUND")
            raise GSTConflictError(
                f"Cannot cancel IRN. Current status: {latest.status}",
                error_code="INVALID_STATE",
                details={"status": latest.status},
            )

        if request.generated_at is not None:
            deadline = as_utc(request.generated_at) + timedelta(hours=IRN_CANCEL_WINDOW_HOURS)
            if self.clock() > deadline:
                raise GSTValidationError(
                    f"IRN can only be cancelled within {IRN_CANCEL_WINDOW_HOURS} hours of generation",
                    error_code="CANCEL_WINDOW_EXPIRED",
                    details={"irn": request.irn},
                )

        provider = await self.settings_service.resolve_provider(business_id)
        result = await provider.cancel_irn(request.irn, reason, remarks)
        if not result.success:
            logger.error(f"IRN cancellation rejected for {request.irn}: {result.error}")
            raise GSPProviderError(
                f"IRN cancellation failed: {result.error or 'Unknown error'}",
                error_code=result.error_code,
            )

        await self.repository.update(
            request,
            status=EInvoiceStatus.CANCELLED.value,
            cancelled_at=self.clock(),
            cancel_reason=reason,
        )
        await self.repository.commit()
        logger.info(f"IRN {request.irn} cancelled for invoice {invoice_id}")
        return request

    async def get_status(self, business_id: UUID, invoice_id: UUID, refresh: bool = False) -> EInvoiceRequest:
        """Latest request for the invoice; ``refresh`` syncs a cancellation made at the GSP."""
        request = await self.repository.find_latest(business_id, invoice_id)
        if request is None:
            raise GSTNotFoundError("No E-Invoice request for this invoice", error_code="EINVOICE_NOT_FOUND")

        if refresh and request.status == EInvoiceStatus.SUCCESS.value and request.irn:
            provider = await self.settings_service.resolve_provider(business_id)
            result = await provider.get_irn_status(request.irn)
            if not result.success:
                logger.warning(f"IRN status lookup failed for {request.irn}: {result.error}")
            elif (result.status or "").upper() == "CANCELLED":
                await self.repository.update(
                    request,
                    status=EInvoiceStatus.CANCELLED.value,
                    cancelled_at=self.clock(),
                    cancel_reason="Cancelled at GSP",
                )
                await self.repository.commit()
        return request

    def _validate_invoice(self, invoice: Invoice) -> None:
        if invoice.invoice_type != InvoiceType.SALE:
            raise GSTValidationError(
                "E-Invoice can only be generated for sale invoices",
                error_code="NOT_A_SALE",
            )
        if not invoice.items:
            raise GSTValidationError("Invoice must have at least one item", error_code="NO_ITEMS")
        if any(not has_hsn(item.hsn_code) for item in invoice.items):
            raise GSTValidationError(
                "All invoice items must have valid HSN codes for E-Invoice generation",
                error_code="HSN_REQUIRED",
            )
        if invoice.total_amount <= 0:
            raise GSTValidationError("Invoice must have a valid total amount", error_code="INVALID_TOTAL")
