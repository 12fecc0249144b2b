from datetime import date, timedelta
from decimal import Decimal

import pytest

from app.core.exceptions import GSTValidationError, PeriodFormatError
from app.repositories import ReportRepository
from app.services.gst.report_cache import ReportCache
from app.services.gstr1_service import GSTR1Service

from tests.factories import (
    FIXED_NOW,
    TOKEN,
    FakeBusinessStore,
    fixed_clock,
    make_invoice,
    make_item,
    make_party,
)


@pytest.fixture
def service(invoice_store, party_store, business_store, report_cache):
    return GSTR1Service(invoice_store, party_store, business_store, report_cache, clock=fixed_clock)


async def test_single_b2b_sale(service, business, invoice_store, party_store):
    customer = make_party("Acme Traders", "27AAPFU0939F1ZV")
    party_store.add(customer)
    invoice_store.add(
        make_invoice(
            business.id,
            "INV-2024-001",
            items=[make_item("143998.22", "18")],
            total="170418",
            party_id=customer.id,
        )
    )

    report = await service.generate(business.id, "122024", TOKEN)

    assert report.gstin == "29ABCDE1234F1Z5"
    assert report.return_period == "122024"
    assert len(report.b2b) == 1
    entry = report.b2b[0]
    assert entry.customer_gstin == "27AAPFU0939F1ZV"
    assert entry.customer_name == "Acme Traders"
    assert len(entry.invoices) == 1

    invoice = entry.invoices[0]
    assert invoice.invoice_value == Decimal("170418.00")
    assert invoice.invoice_date == "2024-12-15"
    assert len(invoice.items) == 1
    row = invoice.items[0]
    assert row.rate == Decimal("18")
    assert row.taxable_value == Decimal("143998.22")
    assert row.cgst == Decimal("12959.84")
    assert row.sgst == Decimal("12959.84")
    assert row.igst == Decimal("0.00")

    assert report.summary.b2b_invoices == 1
    assert report.summary.total_taxable_value == Decimal("143998.22")
    assert report.summary.total_tax == Decimal("25919.68")
    assert report.b2c_large == [] and report.b2c_small == []


async def test_b2b_groups_invoices_per_customer_gstin(service, business, invoice_store, party_store):
    first = make_party("Zeta Corp", "27AAPFU0939F1ZV")
    second = make_party("Alpha Ltd", "07AAACA1234B1Z3")
    party_store.add(first, second)
    invoice_store.add(
        make_invoice(business.id, "INV-1", party_id=first.id),
        make_invoice(business.id, "INV-2", party_id=second.id),
        make_invoice(business.id, "INV-3", party_id=first.id, invoice_date=date(2024, 12, 20)),
    )

    report = await service.generate(business.id, "122024", TOKEN)

    assert [e.customer_gstin for e in report.b2b] == ["07AAACA1234B1Z3", "27AAPFU0939F1ZV"]
    assert [i.invoice_number for i in report.b2b[1].invoices] == ["INV-1", "INV-3"]
    assert report.summary.b2b_invoices == 3


async def test_b2c_large_threshold_is_inclusive(service, business, invoice_store):
    invoice_store.add(
        make_invoice(business.id, "INV-SMALL", items=[make_item("211864.40", "18")], total="249999.99"),
        make_invoice(business.id, "INV-LARGE", items=[make_item("211864.41", "18")], total="250000.00"),
    )

    report = await service.generate(business.id, "122024", TOKEN)

    assert [inv.invoice_number for inv in report.b2c_large] == ["INV-LARGE"]
    assert report.b2c_large[0].invoice_value == Decimal("250000.00")
    assert len(report.b2c_small) == 1
    assert report.b2c_small[0].taxable_value == Decimal("211864.40")


async def test_unregistered_party_counts_as_b2c(service, business, invoice_store, party_store):
    walk_in = make_party("Walk-in Customer", gstin="  ")
    party_store.add(walk_in)
    invoice_store.add(make_invoice(business.id, party_id=walk_in.id))

    report = await service.generate(business.id, "122024", TOKEN)

    assert report.b2b == []
    assert len(report.b2c_small) == 1


async def test_b2c_small_summarised_by_place_and_rate(service, business, invoice_store):
    invoice_store.add(
        make_invoice(business.id, "INV-1", items=[make_item("1000", "18"), make_item("200", "5")]),
        make_invoice(business.id, "INV-2", items=[make_item("500", "18")]),
        make_invoice(
            business.id, "INV-3", items=[make_item("300", "18", interstate=True)], place_of_supply="27"
        ),
    )

    report = await service.generate(business.id, "122024", TOKEN)

    rows = [(e.place_of_supply, e.rate, e.taxable_value) for e in report.b2c_small]
    assert rows == [
        ("27", Decimal("18"), Decimal("300.00")),
        ("29", Decimal("5"), Decimal("200.00")),
        ("29", Decimal("18"), Decimal("1500.00")),
    ]
    assert report.b2c_small[0].igst == Decimal("54.00")
    assert report.summary.b2c_small_entries == 3


async def test_exports_and_notes(service, business, invoice_store, party_store):
    customer = make_party()
    party_store.add(customer)
    invoice_store.add(
        make_invoice(
            business.id,
            "EXP-1",
            items=[make_item("5000", "0")],
            is_export=True,
            port_code="INNSA1",
        ),
        make_invoice(
            business.id,
            "CN-1",
            invoice_type="credit",
            items=[make_item("100", "18")],
            party_id=customer.id,
            notes="Returned goods against INV-001",
        ),
        make_invoice(business.id, "ADV-1", invoice_type="advance", items=[make_item("1000", "18")]),
    )

    report = await service.generate(business.id, "122024", TOKEN)

    assert len(report.exports) == 1
    export = report.exports[0]
    assert export.port_code == "INNSA1"
    assert export.export_type == "WOPAY"
    assert [(r.rate, r.taxable_value) for r in export.items] == [(Decimal("0"), Decimal("5000.00"))]

    assert len(report.cdnr) == 1
    note = report.cdnr[0]
    assert note.note_type == "C"
    assert note.original_invoice_number == "INV-001"
    assert note.original_invoice_date is None
    assert note.reason_code == "01"
    assert note.customer_gstin == customer.gstin
    assert note.cgst == Decimal("9.00")

    assert [a.receipt_number for a in report.advance_receipts] == ["ADV-1"]
    assert report.advance_receipts[0].advance_amount == Decimal("1180.00")

    # Notes and advances stay out of the sales totals
    assert report.summary.total_invoice_value == Decimal("5000.00")


async def test_nil_rated_exempted_and_non_gst(service, business, invoice_store):
    invoice_store.add(
        make_invoice(
            business.id,
            items=[
                make_item("1000", "0", hsn="0401"),
                make_item("500", "0", hsn=None),
                make_item("250", "0", hsn="N/A"),
                make_item("800", "18"),
            ],
        )
    )

    report = await service.generate(business.id, "122024", TOKEN)

    summary = report.nil_rated_summary
    assert summary.nil_rated == Decimal("1000.00")
    assert summary.exempted == Decimal("750.00")
    assert summary.non_gst == Decimal("750.00")


async def test_hsn_summary(service, business, invoice_store):
    invoice_store.add(
        make_invoice(business.id, "INV-1", items=[make_item("1000", "18", quantity=2, unit="kg")]),
        make_invoice(business.id, "INV-2", items=[make_item("500", "18", quantity=1), make_item("10", "0", hsn=None)]),
    )

    report = await service.generate(business.id, "122024", TOKEN)

    by_code = {row.hsn_code: row for row in report.hsn_summary}
    assert set(by_code) == {"8421", "N/A"}
    purifier = by_code["8421"]
    assert purifier.quantity == Decimal("3")
    assert purifier.uqc == "KGS"
    assert purifier.taxable_value == Decimal("1500.00")
    assert purifier.total_value == Decimal("1770.00")


async def test_invoices_outside_period_are_ignored(service, business, invoice_store):
    invoice_store.add(
        make_invoice(business.id, "NOV", invoice_date=date(2024, 11, 30)),
        make_invoice(business.id, "DEC", invoice_date=date(2024, 12, 31)),
        make_invoice(business.id, "JAN", invoice_date=date(2025, 1, 1)),
    )

    report = await service.generate(business.id, "122024", TOKEN)

    assert report.summary.b2c_small_entries == 1
    assert report.summary.total_taxable_value == Decimal("1000.00")


async def test_business_without_gstin_is_rejected(invoice_store, party_store, report_cache, business):
    unregistered = business.model_copy(update={"gstin": None})
    service = GSTR1Service(invoice_store, party_store, FakeBusinessStore([unregistered]), report_cache)

    with pytest.raises(GSTValidationError) as exc_info:
        await service.generate(business.id, "122024", TOKEN)
    assert exc_info.value.error_code == "GSTIN_REQUIRED"


async def test_malformed_period_is_rejected_before_any_lookup(service, business, invoice_store):
    with pytest.raises(PeriodFormatError):
        await service.generate(business.id, "2024-12", TOKEN)
    assert invoice_store.period_calls == 0


# ==================== Caching ====================

async def test_second_call_is_served_from_cache(service, business, invoice_store):
    invoice_store.add(make_invoice(business.id))

    first = await service.generate(business.id, "122024", TOKEN)
    invoice_store.add(make_invoice(business.id, "INV-LATE"))
    second = await service.generate(business.id, "122024", TOKEN)

    assert invoice_store.period_calls == 1
    assert second.model_dump(mode="json") == first.model_dump(mode="json")


async def test_force_regenerates(service, business, invoice_store):
    invoice_store.add(make_invoice(business.id))
    await service.generate(business.id, "122024", TOKEN)
    invoice_store.add(make_invoice(business.id, "INV-LATE"))

    report = await service.generate(business.id, "122024", TOKEN, force=True)

    assert invoice_store.period_calls == 2
    assert report.summary.total_taxable_value == Decimal("2000.00")


async def test_regeneration_is_byte_identical(service, business, invoice_store, party_store):
    customer = make_party()
    party_store.add(customer)
    invoice_store.add(
        make_invoice(business.id, "INV-1", party_id=customer.id),
        make_invoice(business.id, "INV-2", items=[make_item("99.995", "12")]),
    )

    first = await service.generate(business.id, "122024", TOKEN, force=True)
    second = await service.generate(business.id, "122024", TOKEN, force=True)

    assert first.model_dump_json() == second.model_dump_json()


async def test_stale_cache_is_regenerated(business, invoice_store, party_store, business_store, db):
    now = [FIXED_NOW]
    cache = ReportCache(ReportRepository(db), ttl_seconds=3600, clock=lambda: now[0])
    service = GSTR1Service(invoice_store, party_store, business_store, cache)
    invoice_store.add(make_invoice(business.id))

    await service.generate(business.id, "122024", TOKEN)
    now[0] = FIXED_NOW + timedelta(seconds=3599)
    await service.generate(business.id, "122024", TOKEN)
    assert invoice_store.period_calls == 1

    now[0] = FIXED_NOW + timedelta(seconds=3600)
    await service.generate(business.id, "122024", TOKEN)
    assert invoice_store.period_calls == 2


class BrokenReportRepository:
    async def find(self, business_id, report_type, period):
        return None

    async def upsert(self, **fields):
        raise RuntimeError("database is locked")

    async def discard(self):
        pass


async def test_cache_write_failure_does_not_fail_generation(business, invoice_store, party_store, business_store):
    cache = ReportCache(BrokenReportRepository(), ttl_seconds=3600, clock=fixed_clock)
    service = GSTR1Service(invoice_store, party_store, business_store, cache)
    invoice_store.add(make_invoice(business.id))

    report = await service.generate(business.id, "122024", TOKEN)

    assert report.summary.total_taxable_value == Decimal("1000.00")
