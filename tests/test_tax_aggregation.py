from datetime import date
from decimal import Decimal

from app.core import period_parser
from app.services.gst import filing_calendar
from app.services.gst.tax_aggregator import TaxAggregator, TaxTotals, rate_rows

from tests.factories import make_item


def test_contributions_are_rounded_as_they_are_added():
    totals = TaxTotals()
    totals.add(taxable_value="10.005", cgst="0.905")
    totals.add(taxable_value="10.005", cgst="0.905")

    # 10.01 + 10.01, not round(20.01)
    assert totals.taxable_value == Decimal("20.02")
    assert totals.cgst == Decimal("1.82")
    assert totals.total_tax == Decimal("1.82")
    assert totals.total_value == Decimal("21.84")


def test_rate_rows_group_items_and_sort_by_rate():
    items = [
        make_item("1000", "18"),
        make_item("500", "5"),
        make_item("250", "18"),
    ]

    rows = rate_rows(items)

    assert [row.rate for row in rows] == [Decimal("5"), Decimal("18")]
    eighteen = rows[1]
    assert eighteen.taxable_value == Decimal("1250.00")
    assert eighteen.cgst == Decimal("112.50")
    assert eighteen.sgst == Decimal("112.50")
    assert eighteen.igst == Decimal("0.00")


def test_group_totals_reconcile_with_rows():
    aggregator: TaxAggregator = TaxAggregator()
    aggregator.add_item(("29", Decimal("18")), make_item("333.33", "18"))
    aggregator.add_item(("29", Decimal("18")), make_item("333.33", "18"))
    aggregator.add_item(("27", Decimal("12")), make_item("100", "12", interstate=True))

    total = aggregator.total()
    row_sum = sum((totals.taxable_value for _, totals in aggregator.items()), Decimal("0"))

    assert len(aggregator) == 2
    assert total.taxable_value == row_sum == Decimal("766.66")
    assert [key for key, _ in aggregator.items()] == [("27", Decimal("12")), ("29", Decimal("18"))]


# ==================== Filing calendar ====================

def test_gstr3b_due_dates():
    assert filing_calendar.gstr3b_due_date(period_parser.parse("122024")) == date(2025, 1, 20)
    assert filing_calendar.gstr3b_due_date(period_parser.parse("Q4-2024")) == date(2025, 1, 22)
    assert filing_calendar.gstr3b_due_date(period_parser.parse("062024")) == date(2024, 7, 20)


def test_gstr4_due_date_after_quarter():
    assert filing_calendar.gstr4_due_date(period_parser.parse("Q1-2024")) == date(2024, 4, 18)


def test_no_late_fee_on_or_before_due_date():
    details = filing_calendar.late_fee_details(date(2025, 1, 20), date(2025, 1, 20), Decimal("50"))

    assert details.days_late == 0
    assert details.late_fee == Decimal("0.00")
    assert details.due_date == "2025-01-20"


def test_late_fee_accrues_per_day():
    details = filing_calendar.late_fee_details(date(2025, 1, 20), date(2025, 1, 30), Decimal("50"))

    assert details.days_late == 10
    assert details.late_fee == Decimal("500.00")
    assert details.interest == Decimal("0.00")


def test_late_fee_is_capped():
    details = filing_calendar.late_fee_details(date(2024, 1, 20), date(2025, 1, 20), Decimal("50"))

    assert details.days_late == 366
    assert details.late_fee == Decimal("5000.00")
