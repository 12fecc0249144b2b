import uuid
from datetime import date

import httpx
import pytest

from app.clients import BusinessServiceClient, InvoiceServiceClient, PartyServiceClient
from app.core.exceptions import GSTNotFoundError


BUSINESS_ID = uuid.uuid4()


def invoice_json(number, **fields):
    return {
        "id": str(uuid.uuid4()),
        "business_id": str(BUSINESS_ID),
        "invoice_number": number,
        "invoice_type": "sale",
        "invoice_date": "2024-12-15T10:30:00.000Z",
        "total_amount": "1180.00",
        "items": [{"hsn_code": "8421", "taxable_amount": 1000, "cgst_amount": 90, "sgst_amount": 90}],
        **fields,
    }


async def test_invoice_pages_are_followed_until_total():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        page = int(request.url.params["page"])
        batch = [invoice_json(f"INV-{page}-{i}") for i in range(2 if page == 1 else 1)]
        return httpx.Response(200, json={"invoices": batch, "total": 3})

    client = InvoiceServiceClient("http://invoices.test", transport=httpx.MockTransport(handler))
    client.PAGE_SIZE = 2

    invoices = await client.get_invoices_by_period(BUSINESS_ID, date(2024, 12, 1), date(2024, 12, 31), "tok")

    assert [i.invoice_number for i in invoices] == ["INV-1-0", "INV-1-1", "INV-2-0"]
    assert invoices[0].invoice_date.isoformat() == "2024-12-15"
    assert [r.url.params["page"] for r in seen] == ["1", "2"]
    assert seen[0].url.path == "/api/v1/invoices"
    assert seen[0].headers["Authorization"] == "Bearer tok"
    assert seen[0].headers["X-Business-Id"] == str(BUSINESS_ID)
    assert seen[0].url.params["include_items"] == "true"


async def test_capped_pages_are_followed_until_total():
    def handler(request: httpx.Request) -> httpx.Response:
        page = int(request.url.params["page"])
        batch = [invoice_json(f"INV-{page}-{i}") for i in range(2 if page < 3 else 1)]
        return httpx.Response(200, json={"invoices": batch, "total": 5})

    client = InvoiceServiceClient("http://invoices.test", transport=httpx.MockTransport(handler))

    invoices = await client.get_invoices_by_period(BUSINESS_ID, date(2024, 12, 1), date(2024, 12, 31), "tok")

    assert len(invoices) == 5
    assert invoices[-1].invoice_number == "INV-3-0"


async def test_short_page_ends_listing_without_total():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"invoices": [invoice_json("INV-1")]})

    client = InvoiceServiceClient("http://invoices.test", transport=httpx.MockTransport(handler))

    invoices = await client.get_invoices_by_period(BUSINESS_ID, date(2024, 12, 1), date(2024, 12, 31), "tok")

    assert [i.invoice_number for i in invoices] == ["INV-1"]
    assert len(seen) == 1


async def test_unknown_invoice_is_not_found():
    client = InvoiceServiceClient(
        "http://invoices.test", transport=httpx.MockTransport(lambda r: httpx.Response(404, json={}))
    )

    with pytest.raises(GSTNotFoundError) as exc_info:
        await client.get_invoice(BUSINESS_ID, uuid.uuid4(), "tok")
    assert exc_info.value.error_code == "NOT_FOUND"


async def test_server_error_propagates():
    client = BusinessServiceClient(
        "http://business.test", transport=httpx.MockTransport(lambda r: httpx.Response(503, text="down"))
    )

    with pytest.raises(httpx.HTTPStatusError):
        await client.get_business(BUSINESS_ID, "tok")


async def test_party_batch_skips_failed_lookups():
    known = uuid.uuid4()
    missing = uuid.uuid4()

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith(str(known)):
            return httpx.Response(200, json={"id": str(known), "name": "Acme Traders", "gstin": " 27aapfu0939f1zv "})
        return httpx.Response(404, json={"message": "not found"})

    client = PartyServiceClient("http://parties.test", transport=httpx.MockTransport(handler))

    parties = await client.get_parties_by_ids(BUSINESS_ID, [known, missing, known], "tok")

    assert list(parties) == [known]
    assert parties[known].gstin == "27AAPFU0939F1ZV"
