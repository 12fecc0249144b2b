import json

import httpx
import pytest

from app.core.exceptions import EncryptionError, GSPProviderError, GSTValidationError
from app.schemas.gsp import EWayBillUpdate, GSPCredentials
from app.services.encryption_service import EncryptionService
from app.services.gsp import CredentialStore, build_default_registry
from app.services.gsp.cleartax import ClearTaxProvider
from app.services.gsp.sandbox import SandboxProvider
from app.services.gst import einvoice_formatter, ewaybill_formatter

from tests.factories import make_invoice, make_party


# ==================== Encryption ====================

@pytest.fixture
def cipher():
    return EncryptionService(secret_key="unit-test-secret", salt="unit-test-salt")


def test_encrypt_decrypt_round_trip(cipher):
    blob = cipher.encrypt('{"client_id": "abc"}')

    iv_hex, data_hex = blob.split(":")
    assert len(bytes.fromhex(iv_hex)) == 16
    assert len(bytes.fromhex(data_hex)) % 16 == 0
    assert cipher.decrypt(blob) == '{"client_id": "abc"}'


def test_every_encryption_uses_a_fresh_iv(cipher):
    assert cipher.encrypt("same") != cipher.encrypt("same")


@pytest.mark.parametrize("blob", ["no-separator", "zz:00", "00:" + "ab" * 16, "0011:" + "ab" * 16])
def test_malformed_ciphertext_raises(cipher, blob):
    with pytest.raises(EncryptionError):
        cipher.decrypt(blob)


def test_credential_store_round_trip(cipher):
    store = CredentialStore(cipher)
    credentials = GSPCredentials(client_id="id-1", client_secret="s3cret", api_url="https://gsp.test")

    blob = store.seal(credentials)

    assert "s3cret" not in blob
    assert store.load(blob) == credentials


def test_undecryptable_credentials_load_as_none(cipher):
    blob = CredentialStore(cipher).seal(GSPCredentials(client_id="id-1", client_secret="x"))
    other = CredentialStore(EncryptionService(secret_key="another-secret", salt="unit-test-salt"))

    assert other.load(blob) is None
    assert other.load("garbage") is None
    assert other.load(None) is None


# ==================== Registry ====================

def test_registry_resolves_case_insensitively():
    registry = build_default_registry()

    assert registry.available() == ["cleartax", "sandbox"]
    assert registry.resolve_name("ClearTax") == "cleartax"
    assert isinstance(registry.create("SANDBOX", GSPCredentials()), SandboxProvider)


def test_registry_falls_back_to_default_provider():
    registry = build_default_registry()
    assert registry.resolve_name(None) == registry.default_provider


def test_unknown_provider_is_rejected():
    registry = build_default_registry()

    with pytest.raises(GSTValidationError) as exc_info:
        registry.create("masters-india", GSPCredentials())
    assert exc_info.value.error_code == "UNKNOWN_GSP_PROVIDER"
    assert exc_info.value.details["available"] == ["cleartax", "sandbox"]


# ==================== ClearTax ====================

@pytest.fixture
def einvoice_payload(business):
    buyer = make_party()
    invoice = make_invoice(business.id, "INV-001", party_id=buyer.id)
    return einvoice_formatter.format_invoice(invoice, business, buyer)


class FakeGateway:
    """Minimal ClearTax API behind httpx.MockTransport."""

    def __init__(self):
        self.requests = []
        self.responses = {}

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path.endswith("/auth/token"):
            return httpx.Response(200, json={"access_token": "tok-1", "expires_in": 3600})
        if request.headers.get("Authorization") != "Bearer tok-1":
            return httpx.Response(401, json={"message": "Unauthorized"})
        status, body = self.responses[request.url.path.split("/gst/v1", 1)[-1]]
        return httpx.Response(status, json=body)

    def provider(self, credentials=None):
        return ClearTaxProvider(
            credentials or GSPCredentials(client_id="id-1", client_secret="secret"),
            base_url="https://gsp.test/gst/v1",
            transport=httpx.MockTransport(self.handler),
        )


async def test_cleartax_generates_irn(einvoice_payload):
    gateway = FakeGateway()
    gateway.responses["/einvoice/irn/generate"] = (
        200,
        {"Irn": "a" * 64, "AckNo": 112410012345678, "AckDt": "2025-01-10 12:00:00", "SignedQRCode": "qr"},
    )
    provider = gateway.provider()

    result = await provider.generate_irn(einvoice_payload)

    assert result.success
    assert result.irn == "a" * 64
    assert result.ack_no == "112410012345678"
    assert result.signed_qr_code == "qr"
    sent = json.loads(gateway.requests[-1].content)
    assert sent["DocDtls"] == {"Typ": "INV", "No": "INV-001", "Dt": "15-12-2024"}


async def test_cleartax_reuses_token(einvoice_payload):
    gateway = FakeGateway()
    gateway.responses["/einvoice/irn/status/IRN1"] = (200, {"status": "ACTIVE"})
    provider = gateway.provider()

    await provider.get_irn_status("IRN1")
    status = await provider.get_irn_status("IRN1")

    auth_calls = [r for r in gateway.requests if r.url.path.endswith("/auth/token")]
    assert len(auth_calls) == 1
    assert status.status == "ACTIVE"


async def test_cleartax_rejection_is_a_failed_result(einvoice_payload):
    gateway = FakeGateway()
    gateway.responses["/einvoice/irn/generate"] = (400, {"message": "Duplicate IRN", "errorCode": "2150"})

    result = await gateway.provider().generate_irn(einvoice_payload)

    assert not result.success
    assert result.error == "Duplicate IRN"
    assert result.error_code == "2150"


async def test_cleartax_without_credentials_fails_without_calling_out(einvoice_payload):
    gateway = FakeGateway()

    result = await gateway.provider(GSPCredentials()).generate_irn(einvoice_payload)

    assert not result.success
    assert result.error_code == "GSP_NOT_CONFIGURED"
    assert gateway.requests == []


async def test_cleartax_transport_error_raises(einvoice_payload):
    def unreachable(request):
        raise httpx.ConnectError("connection refused", request=request)

    provider = ClearTaxProvider(
        GSPCredentials(client_id="id-1", client_secret="secret"),
        base_url="https://gsp.test/gst/v1",
        transport=httpx.MockTransport(unreachable),
    )

    with pytest.raises(GSPProviderError) as exc_info:
        await provider.generate_irn(einvoice_payload)
    assert exc_info.value.error_code == "GSP_TRANSPORT_ERROR"


async def test_cleartax_ewaybill_update_sends_part_b():
    gateway = FakeGateway()
    gateway.responses["/ewaybill/update"] = (200, {"ewayBillNo": 331001234567, "validUpto": "12/01/2025 11:59:00 PM"})

    result = await gateway.provider().update_ewaybill(
        "331001234567", EWayBillUpdate(vehicleNo="KA01AB1234", transMode="1", reasonCode="1")
    )

    assert result.success
    assert result.ewaybill_no == "331001234567"
    sent = json.loads(gateway.requests[-1].content)
    assert sent == {"ewbNo": "331001234567", "vehicleNo": "KA01AB1234", "transMode": "1", "reasonCode": "1"}


# ==================== Sandbox ====================

async def test_sandbox_irn_is_deterministic(einvoice_payload):
    provider = SandboxProvider(GSPCredentials())

    first = await provider.generate_irn(einvoice_payload)
    second = await provider.generate_irn(einvoice_payload)

    assert first.success
    assert len(first.irn) == 64
    assert first.irn == second.irn


async def test_sandbox_ewaybill_number(business):
    buyer = make_party()
    invoice = make_invoice(business.id, "INV-001", party_id=buyer.id)
    payload = ewaybill_formatter.format_invoice(invoice, business, buyer)

    result = await SandboxProvider(GSPCredentials()).generate_ewaybill(payload)

    assert result.success
    assert len(result.ewaybill_no) == 12 and result.ewaybill_no.isdigit()
