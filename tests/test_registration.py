import uuid
from datetime import timedelta
from decimal import Decimal

import pytest

from app.core.exceptions import (
    GSPProviderError,
    GSTConflictError,
    GSTNotFoundError,
    GSTValidationError,
)
from app.repositories import EInvoiceRequestRepository, EWayBillRequestRepository
from app.schemas.external import BusinessProfile
from app.schemas.gsp import EWayBillResult, IRNResult, IRNStatusResult
from app.schemas.registration import EWayBillGenerateRequest, EWayBillUpdateRequest
from app.services.einvoice_service import EInvoiceService
from app.services.encryption_service import EncryptionService
from app.services.ewaybill_service import EWayBillService
from app.services.gsp import CredentialStore, build_default_registry
from app.services.gsp.sandbox import SandboxProvider
from app.services.gst_settings_service import GstSettingsService

from tests.factories import FIXED_NOW, TOKEN, FakeBusinessStore, make_invoice, make_item, make_party


class Clock:
    def __init__(self):
        self.now = FIXED_NOW

    def __call__(self):
        return self.now


class ScriptedProvider(SandboxProvider):
    """Sandbox responses unless a failure or status is scripted."""

    name = "scripted"
    calls = []
    irn_failure = None
    irn_exception = None
    irn_status = "ACTIVE"
    ewb_failure = None
    ewb_exception = None

    async def generate_irn(self, payload):
        ScriptedProvider.calls.append(("generate_irn", payload.DocDtls.No))
        if self.irn_exception is not None:
            raise self.irn_exception
        if self.irn_failure is not None:
            return self.irn_failure
        return await super().generate_irn(payload)

    async def cancel_irn(self, irn, reason, remarks=None):
        ScriptedProvider.calls.append(("cancel_irn", irn))
        return await super().cancel_irn(irn, reason, remarks)

    async def get_irn_status(self, irn):
        return IRNStatusResult(success=True, irn=irn, status=self.irn_status)

    async def generate_ewaybill(self, payload):
        ScriptedProvider.calls.append(("generate_ewaybill", payload.docNo))
        if self.ewb_exception is not None:
            raise self.ewb_exception
        if self.ewb_failure is not None:
            return self.ewb_failure
        return await super().generate_ewaybill(payload)


@pytest.fixture(autouse=True)
def reset_script():
    ScriptedProvider.calls = []
    ScriptedProvider.irn_failure = None
    ScriptedProvider.irn_exception = None
    ScriptedProvider.irn_status = "ACTIVE"
    ScriptedProvider.ewb_failure = None
    ScriptedProvider.ewb_exception = None


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def settings_service(settings_repository):
    registry = build_default_registry()
    registry.register(ScriptedProvider.name, lambda creds, url: ScriptedProvider(creds, url))
    cipher = EncryptionService(secret_key="unit-test-secret", salt="unit-test-salt")
    return GstSettingsService(settings_repository, CredentialStore(cipher), registry)


@pytest.fixture
def buyer(party_store):
    party = make_party("Acme Traders", "27AAPFU0939F1ZV", state_code="27")
    party_store.add(party)
    return party


@pytest.fixture
def sale(business, buyer, invoice_store):
    invoice = make_invoice(business.id, "INV-001", items=[make_item("50000", "18")], party_id=buyer.id)
    invoice_store.add(invoice)
    return invoice


@pytest.fixture
def other_business(business_store):
    other = BusinessProfile(id=uuid.uuid4(), name="Other Traders", gstin="27AAPFU0939F1ZV", state_code="27")
    business_store.businesses[other.id] = other
    return other


# ==================== E-Invoice ====================

@pytest.fixture
def einvoice(db, settings_service, invoice_store, party_store, business_store, clock):
    return EInvoiceService(
        EInvoiceRequestRepository(db), settings_service, invoice_store, party_store, business_store, clock=clock
    )


@pytest.fixture
async def einvoice_enabled(settings_repository, business):
    return await settings_repository.create(business.id, einvoice_enabled=True, gsp_provider="scripted")


async def test_generate_irn(einvoice, einvoice_enabled, business, sale):
    request = await einvoice.generate_irn(business.id, sale.id, TOKEN)

    assert request.status == "success"
    assert request.gsp_provider == "scripted"
    assert len(request.irn) == 64
    assert request.ack_number
    assert request.generated_at == FIXED_NOW
    assert request.request_payload["DocDtls"]["No"] == "INV-001"
    assert request.error_code is None


async def test_generate_irn_is_idempotent(einvoice, einvoice_enabled, business, sale):
    first = await einvoice.generate_irn(business.id, sale.id, TOKEN)
    second = await einvoice.generate_irn(business.id, sale.id, TOKEN)

    assert second.id == first.id
    assert second.irn == first.irn
    assert ScriptedProvider.calls == [("generate_irn", "INV-001")]


async def test_irn_of_another_business_is_not_returned(
    einvoice, einvoice_enabled, settings_repository, business, other_business, sale
):
    await einvoice.generate_irn(business.id, sale.id, TOKEN)
    await settings_repository.create(other_business.id, einvoice_enabled=True, gsp_provider="scripted")

    with pytest.raises(GSTNotFoundError):
        await einvoice.generate_irn(other_business.id, sale.id, TOKEN)
    with pytest.raises(GSTNotFoundError) as exc_info:
        await einvoice.get_status(other_business.id, sale.id)
    assert exc_info.value.error_code == "EINVOICE_NOT_FOUND"
    with pytest.raises(GSTNotFoundError) as exc_info:
        await einvoice.cancel_irn(other_business.id, sale.id, "1")
    assert exc_info.value.error_code == "IRN_NOT_FOUND"
    assert ScriptedProvider.calls == [("generate_irn", "INV-001")]


async def test_einvoice_requires_enablement(einvoice, business, sale):
    with pytest.raises(GSTValidationError) as exc_info:
        await einvoice.generate_irn(business.id, sale.id, TOKEN)
    assert exc_info.value.error_code == "EINVOICE_NOT_ENABLED"


async def test_turnover_enables_einvoice_but_credentials_are_required(
    db, settings_service, invoice_store, party_store, business, sale
):
    large = business.model_copy(update={"annual_turnover": Decimal("50000000")})
    service = EInvoiceService(
        EInvoiceRequestRepository(db), settings_service, invoice_store, party_store, FakeBusinessStore([large])
    )

    with pytest.raises(GSTValidationError) as exc_info:
        await service.generate_irn(business.id, sale.id, TOKEN)
    assert exc_info.value.error_code == "GSP_NOT_CONFIGURED"


@pytest.mark.parametrize(
    "overrides, error_code",
    [
        ({"invoice_type": "purchase"}, "NOT_A_SALE"),
        ({"items": []}, "NO_ITEMS"),
        ({"items": [make_item("1000", "18", hsn="N/A")]}, "HSN_REQUIRED"),
        ({"party_id": None}, "PARTY_REQUIRED"),
    ],
)
async def test_ineligible_invoices(einvoice, einvoice_enabled, business, buyer, invoice_store, overrides, error_code):
    fields = {"party_id": buyer.id, **overrides}
    invoice = make_invoice(business.id, "INV-X", **fields)
    invoice_store.add(invoice)

    with pytest.raises(GSTValidationError) as exc_info:
        await einvoice.generate_irn(business.id, invoice.id, TOKEN)
    assert exc_info.value.error_code == error_code
    assert ScriptedProvider.calls == []


async def test_rejected_irn_is_recorded_as_failed(einvoice, einvoice_enabled, business, sale, db):
    ScriptedProvider.irn_failure = IRNResult(
        success=False, error="Duplicate IRN", error_code="2150", raw_response={"ErrorCode": "2150"}
    )

    with pytest.raises(GSPProviderError) as exc_info:
        await einvoice.generate_irn(business.id, sale.id, TOKEN)
    assert exc_info.value.error_code == "2150"

    latest = await EInvoiceRequestRepository(db).find_latest(business.id, sale.id)
    assert latest.status == "failed"
    assert latest.error_code == "2150"
    assert latest.error_message == "Duplicate IRN"
    assert exc_info.value.details["request_id"] == str(latest.id)


async def test_transport_failure_is_recorded_and_reraised(einvoice, einvoice_enabled, business, sale, db):
    ScriptedProvider.irn_exception = GSPProviderError("GSP transport error", error_code="GSP_TRANSPORT_ERROR")

    with pytest.raises(GSPProviderError):
        await einvoice.generate_irn(business.id, sale.id, TOKEN)

    latest = await EInvoiceRequestRepository(db).find_latest(business.id, sale.id)
    assert latest.status == "failed"
    assert latest.error_code == "GSP_TRANSPORT_ERROR"


async def test_cancel_irn_within_window(einvoice, einvoice_enabled, business, sale, clock):
    generated = await einvoice.generate_irn(business.id, sale.id, TOKEN)
    clock.now = FIXED_NOW + timedelta(hours=24)

    cancelled = await einvoice.cancel_irn(business.id, sale.id, "2", "Data entry mistake")

    assert cancelled.id == generated.id
    assert cancelled.status == "cancelled"
    assert cancelled.cancel_reason == "2"
    assert cancelled.cancelled_at == clock.now


async def test_cancel_irn_after_window(einvoice, einvoice_enabled, business, sale, clock):
    await einvoice.generate_irn(business.id, sale.id, TOKEN)
    clock.now = FIXED_NOW + timedelta(hours=24, seconds=1)

    with pytest.raises(GSTValidationError) as exc_info:
        await einvoice.cancel_irn(business.id, sale.id, "2")
    assert exc_info.value.error_code == "CANCEL_WINDOW_EXPIRED"
    assert [call[0] for call in ScriptedProvider.calls] == ["generate_irn"]


async def test_cancel_without_irn(einvoice, einvoice_enabled, business, sale):
    with pytest.raises(GSTNotFoundError) as exc_info:
        await einvoice.cancel_irn(business.id, sale.id, "1")
    assert exc_info.value.error_code == "IRN_NOT_FOUND"

    ScriptedProvider.irn_failure = IRNResult(success=False, error="Invalid GSTIN", error_code="2117")
    with pytest.raises(GSPProviderError):
        await einvoice.generate_irn(business.id, sale.id, TOKEN)

    with pytest.raises(GSTConflictError) as exc_info:
        await einvoice.cancel_irn(business.id, sale.id, "1")
    assert exc_info.value.details["status"] == "failed"


async def test_status_refresh_picks_up_cancellation_at_gsp(einvoice, einvoice_enabled, business, sale):
    await einvoice.generate_irn(business.id, sale.id, TOKEN)

    assert (await einvoice.get_status(business.id, sale.id)).status == "success"

    ScriptedProvider.irn_status = "CANCELLED"
    assert (await einvoice.get_status(business.id, sale.id)).status == "success"
    refreshed = await einvoice.get_status(business.id, sale.id, refresh=True)
    assert refreshed.status == "cancelled"
    assert refreshed.cancel_reason == "Cancelled at GSP"


async def test_status_of_unknown_invoice(einvoice, business, sale):
    with pytest.raises(GSTNotFoundError) as exc_info:
        await einvoice.get_status(business.id, sale.id)
    assert exc_info.value.error_code == "EINVOICE_NOT_FOUND"


# ==================== E-Way Bill ====================

@pytest.fixture
def ewaybill(db, settings_service, invoice_store, party_store, business_store, clock):
    return EWayBillService(
        EWayBillRequestRepository(db), settings_service, invoice_store, party_store, business_store, clock=clock
    )


@pytest.fixture
async def sandbox_settings(settings_repository, business):
    return await settings_repository.create(business.id, gsp_provider="sandbox")


async def test_ewaybill_threshold_is_inclusive(ewaybill, sandbox_settings, business, buyer, invoice_store):
    below = make_invoice(business.id, "INV-LOW", items=[make_item("42372.87", "18")], total="49999.99", party_id=buyer.id)
    at = make_invoice(business.id, "INV-AT", items=[make_item("42372.88", "18")], total="50000.00", party_id=buyer.id)
    invoice_store.add(below, at)

    with pytest.raises(GSTValidationError) as exc_info:
        await ewaybill.generate(business.id, below.id, TOKEN)
    assert exc_info.value.error_code == "BELOW_THRESHOLD"

    request = await ewaybill.generate(business.id, at.id, TOKEN)
    assert request.status == "generated"
    assert len(request.ewaybill_number) == 12
    assert request.ewaybill_date == FIXED_NOW
    assert request.valid_until == FIXED_NOW + timedelta(days=1)


async def test_ewaybill_transport_overrides(ewaybill, sandbox_settings, business, sale):
    transport = EWayBillGenerateRequest(vehicle_number="KA01AB1234", transporter_id="29AAACT1234A1Z1")

    request = await ewaybill.generate(business.id, sale.id, TOKEN, transport)

    assert request.vehicle_number == "KA01AB1234"
    assert request.transporter_id == "29AAACT1234A1Z1"
    assert request.request_payload["vehicleNo"] == "KA01AB1234"


@pytest.fixture
async def scripted_settings(settings_repository, business):
    return await settings_repository.create(business.id, gsp_provider="scripted")


async def test_ewaybill_generation_is_idempotent(ewaybill, scripted_settings, business, sale):
    first = await ewaybill.generate(business.id, sale.id, TOKEN)
    second = await ewaybill.generate(business.id, sale.id, TOKEN)

    assert second.id == first.id
    assert second.ewaybill_number == first.ewaybill_number
    assert ScriptedProvider.calls == [("generate_ewaybill", "INV-001")]


async def test_rejected_ewaybill_is_recorded_as_failed(ewaybill, scripted_settings, business, sale, db):
    ScriptedProvider.ewb_failure = EWayBillResult(
        success=False, error="Invalid consignee GSTIN", error_code="238", raw_response={"errorCodes": "238"}
    )

    with pytest.raises(GSPProviderError) as exc_info:
        await ewaybill.generate(business.id, sale.id, TOKEN)
    assert exc_info.value.error_code == "238"

    latest = await EWayBillRequestRepository(db).find_latest(business.id, sale.id)
    assert latest.status == "failed"
    assert latest.error_code == "238"
    assert latest.error_message == "Invalid consignee GSTIN"
    assert latest.response_payload == {"errorCodes": "238"}
    assert latest.ewaybill_number is None
    assert exc_info.value.details["request_id"] == str(latest.id)


async def test_ewaybill_transport_failure_is_recorded_and_reraised(ewaybill, scripted_settings, business, sale, db):
    ScriptedProvider.ewb_exception = GSPProviderError("GSP transport error", error_code="GSP_TRANSPORT_ERROR")

    with pytest.raises(GSPProviderError):
        await ewaybill.generate(business.id, sale.id, TOKEN)

    latest = await EWayBillRequestRepository(db).find_latest(business.id, sale.id)
    assert latest.status == "failed"
    assert latest.error_code == "GSP_TRANSPORT_ERROR"
    assert latest.error_message == "GSP transport error"

    ScriptedProvider.ewb_exception = None
    retried = await ewaybill.generate(business.id, sale.id, TOKEN)
    assert retried.id != latest.id
    assert retried.status == "generated"


async def test_ewaybill_of_another_business_is_not_returned(
    ewaybill, scripted_settings, settings_repository, business, other_business, sale
):
    await ewaybill.generate(business.id, sale.id, TOKEN)
    await settings_repository.create(other_business.id, gsp_provider="scripted")

    with pytest.raises(GSTNotFoundError):
        await ewaybill.generate(other_business.id, sale.id, TOKEN)
    with pytest.raises(GSTNotFoundError) as exc_info:
        await ewaybill.get_status(other_business.id, sale.id)
    assert exc_info.value.error_code == "EWAYBILL_NOT_FOUND"
    with pytest.raises(GSTNotFoundError):
        await ewaybill.cancel(other_business.id, sale.id, "1")
    assert ScriptedProvider.calls == [("generate_ewaybill", "INV-001")]


async def test_ewaybill_disabled(ewaybill, settings_repository, business, sale):
    await settings_repository.create(business.id, gsp_provider="sandbox", ewaybill_enabled=False)

    with pytest.raises(GSTValidationError) as exc_info:
        await ewaybill.generate(business.id, sale.id, TOKEN)
    assert exc_info.value.error_code == "EWAYBILL_NOT_ENABLED"


async def test_interstate_ewaybill_needs_place_of_supply(ewaybill, sandbox_settings, business, buyer, invoice_store):
    invoice = make_invoice(
        business.id,
        "INV-IGST",
        items=[make_item("60000", "18", interstate=True)],
        party_id=buyer.id,
        is_interstate=True,
        place_of_supply=None,
    )
    invoice_store.add(invoice)

    with pytest.raises(GSTValidationError) as exc_info:
        await ewaybill.generate(business.id, invoice.id, TOKEN)
    assert exc_info.value.error_code == "PLACE_OF_SUPPLY_REQUIRED"


async def test_ewaybill_part_b_update(ewaybill, sandbox_settings, business, sale):
    await ewaybill.generate(business.id, sale.id, TOKEN)

    updated = await ewaybill.update(
        business.id,
        sale.id,
        EWayBillUpdateRequest(vehicle_number="MH12XY0001", transport_mode="2", reason_code="1"),
    )

    assert updated.vehicle_number == "MH12XY0001"
    assert updated.transport_mode == "2"
    assert updated.valid_until is not None


async def test_ewaybill_update_without_ewaybill(ewaybill, sandbox_settings, business, sale):
    with pytest.raises(GSTNotFoundError) as exc_info:
        await ewaybill.update(business.id, sale.id, EWayBillUpdateRequest(vehicle_number="MH12XY0001"))
    assert exc_info.value.error_code == "EWAYBILL_NOT_FOUND"


async def test_ewaybill_cancel(ewaybill, sandbox_settings, business, sale, clock):
    await ewaybill.generate(business.id, sale.id, TOKEN)
    clock.now = FIXED_NOW + timedelta(hours=2)

    cancelled = await ewaybill.cancel(business.id, sale.id, "1", "Duplicate")

    assert cancelled.status == "cancelled"
    assert cancelled.cancelled_at == clock.now
    with pytest.raises(GSTConflictError):
        await ewaybill.cancel(business.id, sale.id, "1")

    status = await ewaybill.get_status(business.id, sale.id)
    assert status.status == "cancelled"
