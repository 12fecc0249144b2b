"""
E-Way Bill Service

Generates, updates (Part-B) and cancels e-way bills for invoices whose value
crosses the 50,000 threshold. Each generation attempt is stored as an
EWayBillRequest:

    pending -> generated | failed
    generated -> cancelled
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
from app.models.registration import EWayBillRequest, EWayBillStatus
from app.repositories.registration_repository import EWayBillRequestRepository
from app.schemas.external import Invoice
from app.schemas.gsp import EWayBillUpdate
from app.schemas.registration import EWayBillGenerateRequest, EWayBillUpdateRequest
from app.services.gst import ewaybill_formatter
from app.services.gst.constants import EWAYBILL_THRESHOLD, EWAYBILL_VALIDITY_DAYS
from app.services.gst.report_cache import as_utc, utc_now
from app.services.gst_settings_service import GstSettingsService


logger = logging.getLogger(__name__)

# Formats seen in NIC e-way bill responses
_EWB_DATETIME_FORMATS = ("%d/%m/%Y %I:%M:%S %p", "%d/%m/%Y %H:%M:%S")


def _parse_provider_datetime(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    for fmt in _EWB_DATETIME_FORMATS:
        try:
            return as_utc(datetime.strptime(value, fmt))
        except ValueError:
            continue
    try:
        return as_utc(datetime.fromisoformat(value))
    except ValueError:
        logger.warning(f"Unrecognised e-way bill datetime: {value!r}")
        return None


class EWayBillService:
    """E-way bill generation, Part-B update, cancellation and status."""

    def __init__(
        self,
        repository: EWayBillRequestRepository,
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

    async def generate(
        self,
        business_id: UUID,
        invoice_id: UUID,
        auth_token: str,
        transport: Optional[EWayBillGenerateRequest] = None,
    ) -> EWayBillRequest:
        """
        Generate an e-way bill for an invoice.

        Transport details in ``transport`` take precedence over the ones on
        the invoice. An invoice that already has a generated e-way bill gets
        that one back.

        Raises:
            GSTValidationError: e-way bills disabled, invoice below threshold
                or incomplete, no business GSTIN or no GSP credentials
            GSPProviderError: the GSP rejected the request or could not be reached
        """
        if not await self.settings_service.is_ewaybill_enabled(business_id):
            raise GSTValidationError(
                "E-Way Bill is not enabled for this business",
                error_code="EWAYBILL_NOT_ENABLED",
            )

        existing = await self.repository.find_by_status(business_id, invoice_id, EWayBillStatus.GENERATED.value)
        if existing is not None and existing.ewaybill_number:
            logger.warning(f"E-Way Bill already exists for invoice {invoice_id}: {existing.ewaybill_number}")
            return existing

        invoice = await self.invoice_store.get_invoice(business_id, invoice_id, auth_token)
        self._validate_invoice(invoice)
        if transport is not None:
            overrides = transport.model_dump(exclude_none=True)
            if overrides:
                invoice = invoice.model_copy(update=overrides)

        business = await self.business_store.get_business(business_id, auth_token)
        if not business.gstin:
            raise GSTValidationError(
                "Business GSTIN is required for E-Way Bill generation",
                error_code="GSTIN_REQUIRED",
            )
        if invoice.party_id is None:
            raise GSTValidationError(
                "Invoice has no party; consignee details are required for E-Way Bill",
                error_code="PARTY_REQUIRED",
            )
        party = await self.party_store.get_party(business_id, invoice.party_id, auth_token)
        provider = await self.settings_service.resolve_provider(business_id)

        payload = ewaybill_formatter.format_invoice(invoice, business, party)
        request = await self.repository.create(
            business_id=business_id,
            invoice_id=invoice_id,
            status=EWayBillStatus.PENDING.value,
            gsp_provider=provider.name,
            request_payload=payload.to_payload(),
            vehicle_number=payload.vehicleNo,
            transporter_id=payload.transporterId,
            transport_mode=payload.transMode,
        )
        await self.repository.commit()

        try:
            result = await provider.generate_ewaybill(payload)
        except Exception as e:
            await self.repository.update(
                request,
                status=EWayBillStatus.FAILED.value,
                error_code=getattr(e, "error_code", None) or "GSP_ERROR",
                error_message=str(e),
            )
            await self.repository.commit()
            logger.error(f"E-Way Bill generation failed for invoice {invoice_id}: {e}")
            raise

        if not result.success:
            await self.repository.update(
                request,
                status=EWayBillStatus.FAILED.value,
                error_code=result.error_code,
                error_message=result.error or "E-Way Bill generation failed",
                response_payload=result.raw_response,
            )
            await self.repository.commit()
            logger.error(f"E-Way Bill generation rejected for invoice {invoice_id}: {result.error}")
            raise GSPProviderError(
                f"E-Way Bill generation failed: {result.error or 'Unknown error'}",
                error_code=result.error_code,
                details={"request_id": str(request.id)},
            )

        generated_at = self.clock()
        await self.repository.update(
            request,
            status=EWayBillStatus.GENERATED.value,
            ewaybill_number=result.ewaybill_no,
            ewaybill_date=generated_at,
            valid_until=generated_at + timedelta(days=EWAYBILL_VALIDITY_DAYS),
            response_payload=result.raw_response,
            error_code=None,
            error_message=None,
        )
        await self.repository.commit()
        logger.info(f"E-Way Bill generated for invoice {invoice_id}: {result.ewaybill_no}")
        return request

    async def update(self, business_id: UUID, invoice_id: UUID, data: EWayBillUpdateRequest) -> EWayBillRequest:
        """Part-B update (vehicle / transport). The GSP is called before anything is stored."""
        request = await self._generated_request(business_id, invoice_id, action="update")

        update = EWayBillUpdate(
            vehicleNo=data.vehicle_number,
            transMode=data.transport_mode,
            transporterId=data.transporter_id,
            fromPlace=data.from_place,
            fromStateCode=data.from_state_code,
            reasonCode=data.reason_code,
            reasonRem=data.reason_remarks,
        )
        provider = await self.settings_service.resolve_provider(business_id)
        result = await provider.update_ewaybill(request.ewaybill_number, update)
        if not result.success:
            logger.error(f"E-Way Bill update rejected for {request.ewaybill_number}: {result.error}")
            raise GSPProviderError(
                f"E-Way Bill update failed: {result.error or 'Unknown error'}",
                error_code=result.error_code,
            )

        fields = {
            "vehicle_number": data.vehicle_number,
            "transport_mode": data.transport_mode,
        }
        if data.transporter_id:
            fields["transporter_id"] = data.transporter_id
        valid_until = _parse_provider_datetime(result.valid_upto)
        if valid_until is not None:
            fields["valid_until"] = valid_until

        await self.repository.update(request, **fields)
        await self.repository.commit()
        logger.info(f"E-Way Bill {request.ewaybill_number} updated: vehicle {data.vehicle_number}")
        return request

    async def cancel(
        self,
        business_id: UUID,
        invoice_id: UUID,
        reason: str,
        remarks: Optional[str] = None,
    ) -> EWayBillRequest:
        request = await self._generated_request(business_id, invoice_id, action="cancel")

        provider = await self.settings_service.resolve_provider(business_id)
        result = await provider.cancel_ewaybill(request.ewaybill_number, reason, remarks)
        if not result.success:
            logger.error(f"E-Way Bill cancellation rejected for {request.ewaybill_number}: {result.error}")
            raise GSPProviderError(
                f"E-Way Bill cancellation failed: {result.error or 'Unknown error'}",
                error_code=result.error_code,
            )

        await self.repository.update(
            request,
            status=EWayBillStatus.CANCELLED.value,
            cancelled_at=self.clock(),
            cancel_reason=reason,
        )
        await self.repository.commit()
        logger.info(f"E-Way Bill {request.ewaybill_number} cancelled for invoice {invoice_id}")
        return request

    async def get_status(self, business_id: UUID, invoice_id: UUID, refresh: bool = False) -> EWayBillRequest:
        """Latest request for the invoice; ``refresh`` syncs a cancellation made at the GSP."""
        request = await self.repository.find_latest(business_id, invoice_id)
        if request is None:
            raise GSTNotFoundError("No E-Way Bill request for this invoice", error_code="EWAYBILL_NOT_FOUND")

        if refresh and request.status == EWayBillStatus.GENERATED.value and request.ewaybill_number:
            provider = await self.settings_service.resolve_provider(business_id)
            result = await provider.get_ewaybill_status(request.ewaybill_number)
            if not result.success:
                logger.warning(f"E-Way Bill status lookup failed for {request.ewaybill_number}: {result.error}")
            elif (result.status or "").upper() == "CANCELLED":
                await self.repository.update(
                    request,
                    status=EWayBillStatus.CANCELLED.value,
                    cancelled_at=self.clock(),
                    cancel_reason="Cancelled at GSP",
                )
                await self.repository.commit()
        return request

    async def _generated_request(self, business_id: UUID, invoice_id: UUID, action: str) -> EWayBillRequest:
        request = await self.repository.find_by_status(business_id, invoice_id, EWayBillStatus.GENERATED.value)
        if request is not None and request.ewaybill_number:
            return request

        latest = await self.repository.find_latest(business_id, invoice_id)
        if latest is None:
            raise GSTNotFoundError("E-Way Bill not found for this invoice", error_code="EWAYBILL_NOT_FOUND")
        raise GSTConflictError(
            f"Cannot {action} E-Way Bill. Current status: {latest.status}",
            error_code="INVALID_STATE",
            details={"status": latest.status},
        )

    def _validate_invoice(self, invoice: Invoice) -> None:
        if invoice.total_amount < EWAYBILL_THRESHOLD:
            raise GSTValidationError(
                f"E-Way Bill is required only for invoices with value >= {EWAYBILL_THRESHOLD}",
                error_code="BELOW_THRESHOLD",
                details={"total_amount": float(invoice.total_amount)},
            )
        if not invoice.items:
            raise GSTValidationError("Invoice must have at least one item", error_code="NO_ITEMS")
        if invoice.is_interstate and not invoice.place_of_supply:
            raise GSTValidationError(
                "Place of supply is required for inter-state invoices",
                error_code="PLACE_OF_SUPPLY_REQUIRED",
            )
