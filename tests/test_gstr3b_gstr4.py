from datetime import date
from decimal import Decimal

import pytest

from app.core.exceptions import GSTValidationError
from app.services.gstr3b_service import GSTR3BService
from app.services.gstr4_service import GSTR4Service

from tests.factories import (
    TOKEN,
    FakeBusinessStore,
    fixed_clock,
    make_invoice,
    make_item,
    make_party,
)


# ==================== GSTR-3B ====================

@pytest.fixture
def gstr3b(invoice_store, party_store, business_store, report_cache):
    return GSTR3BService(invoice_store, party_store, business_store, report_cache, clock=fixed_clock)


async def test_gstr3b_sections_and_net_payable(gstr3b, business, invoice_store):
    june = date(2024, 6, 10)
    invoice_store.add(
        make_invoice(business.id, "S-1", invoice_date=june, items=[make_item("10000", "18")]),
        make_invoice(business.id, "EXP-1", invoice_date=june, items=[make_item("2000", "0")], is_export=True),
        make_invoice(business.id, "P-1", invoice_type="purchase", invoice_date=june, items=[make_item("5000", "18")]),
        make_invoice(
            business.id,
            "P-RCM",
            invoice_type="purchase",
            invoice_date=june,
            items=[make_item("1000", "18", interstate=True)],
            is_rcm=True,
        ),
    )

    report = await gstr3b.generate(business.id, "062024", TOKEN)

    assert report.filing_frequency == "monthly"
    assert report.output_tax.total_taxable_value == Decimal("10000.00")
    assert report.output_tax.total_tax == Decimal("1800.00")
    assert [row.rate for row in report.output_tax.by_rate] == [Decimal("18")]
    assert report.zero_rated_supplies.taxable_value == Decimal("2000.00")

    # Reverse charge purchases are not regular ITC
    assert report.itc.total_eligible_itc == Decimal("900.00")
    assert report.itc.cgst_itc == Decimal("450.00")
    assert report.itc.net_itc_available == Decimal("900.00")

    assert report.rcm.rcm_taxable_value == Decimal("1000.00")
    assert report.rcm.rcm_igst == Decimal("180.00")
    assert report.rcm.rcm_itc_igst == Decimal("180.00")
    assert report.rcm.rcm_payable == Decimal("0.00")

    net = report.net_tax_payable
    assert net.cgst == Decimal("450.00")
    assert net.sgst == Decimal("450.00")
    assert net.igst == Decimal("0.00")
    assert net.total_payable == Decimal("900.00")


async def test_gstr3b_late_fee_is_capped(gstr3b, business):
    # Due 2024-07-20, generated 2025-01-10
    report = await gstr3b.generate(business.id, "062024", TOKEN)

    assert report.late_fee.due_date == "2024-07-20"
    assert report.late_fee.days_late == 174
    assert report.late_fee.late_fee == Decimal("5000.00")


async def test_gstr3b_not_yet_due(gstr3b, business):
    report = await gstr3b.generate(business.id, "122024", TOKEN)

    assert report.late_fee.due_date == "2025-01-20"
    assert report.late_fee.days_late == 0
    assert report.late_fee.late_fee == Decimal("0.00")


async def test_gstr3b_quarterly_period(gstr3b, business):
    report = await gstr3b.generate(business.id, "Q4-2024", TOKEN)

    assert report.filing_frequency == "quarterly"
    assert report.late_fee.due_date == "2025-01-22"


async def test_gstr3b_empty_period(gstr3b, business):
    report = await gstr3b.generate(business.id, "122024", TOKEN)

    assert report.output_tax.by_rate == []
    assert report.net_tax_payable.total_payable == Decimal("0.00")


# ==================== GSTR-4 ====================

@pytest.fixture
def composition_business(business):
    return business.model_copy(update={"gst_type": "composition", "composition_rate": Decimal("1")})


def gstr4_service(invoice_store, party_store, business, report_cache, settings_repository=None):
    return GSTR4Service(
        invoice_store,
        party_store,
        FakeBusinessStore([business]),
        report_cache,
        settings_repository=settings_repository,
        clock=fixed_clock,
    )


async def test_gstr4_tax_is_turnover_times_rate(composition_business, invoice_store, party_store, report_cache):
    customer = make_party()
    party_store.add(customer)
    october = date(2024, 10, 5)
    invoice_store.add(
        make_invoice(composition_business.id, "S-1", invoice_date=october, total="100000", party_id=customer.id),
        make_invoice(composition_business.id, "S-2", invoice_date=date(2024, 12, 1), total="50000"),
        make_invoice(
            composition_business.id, "P-1", invoice_type="purchase", invoice_date=october, total="9999"
        ),
    )
    service = gstr4_service(invoice_store, party_store, composition_business, report_cache)

    report = await service.generate(composition_business.id, "Q4-2024", TOKEN)

    assert report.composition_rate == Decimal("1")
    assert report.total_turnover == Decimal("150000.00")
    assert report.composition_tax_payable == Decimal("1500.00")
    assert [i.invoice_number for i in report.b2b_invoices] == ["S-1"]
    assert report.b2b_invoices[0].customer_gstin == customer.gstin
    assert [i.invoice_number for i in report.b2c_invoices] == ["S-2"]
    assert report.late_fee.due_date == "2025-01-18"
    assert report.late_fee.late_fee == Decimal("0.00")


async def test_gstr4_late_fee(composition_business, invoice_store, party_store, report_cache):
    service = gstr4_service(invoice_store, party_store, composition_business, report_cache)

    report = await service.generate(composition_business.id, "Q3-2024", TOKEN)

    # Due 2024-10-18: 84 days at 200/day, capped
    assert report.late_fee.days_late == 84
    assert report.late_fee.late_fee == Decimal("5000.00")


async def test_gstr4_requires_quarterly_period(composition_business, invoice_store, party_store, report_cache):
    service = gstr4_service(invoice_store, party_store, composition_business, report_cache)

    with pytest.raises(GSTValidationError) as exc_info:
        await service.generate(composition_business.id, "122024", TOKEN)
    assert exc_info.value.error_code == "QUARTERLY_PERIOD_REQUIRED"


async def test_gstr4_requires_composition_dealer(business, invoice_store, party_store, report_cache):
    regular = business.model_copy(update={"gst_type": "regular"})
    service = gstr4_service(invoice_store, party_store, regular, report_cache)

    with pytest.raises(GSTValidationError) as exc_info:
        await service.generate(business.id, "Q4-2024", TOKEN)
    assert exc_info.value.error_code == "NOT_COMPOSITION_DEALER"
    assert invoice_store.period_calls == 0


async def test_gstr4_falls_back_to_stored_settings(
    business, invoice_store, party_store, report_cache, settings_repository
):
    await settings_repository.create(business.id, gst_type="composition", composition_rate=Decimal("2"))
    invoice_store.add(make_invoice(business.id, "S-1", invoice_date=date(2024, 11, 1), total="10000"))
    service = gstr4_service(invoice_store, party_store, business, report_cache, settings_repository)

    report = await service.generate(business.id, "Q4-2024", TOKEN)

    assert report.composition_rate == Decimal("2")
    assert report.composition_tax_payable == Decimal("200.00")
