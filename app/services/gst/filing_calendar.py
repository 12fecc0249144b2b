"""Statutory due dates and late-filing charges."""
from datetime import date
from decimal import Decimal

from app.core.money import round_money
from app.core.period_parser import PeriodRange
from app.schemas.gst_returns import LateFeeDetails

GSTR3B_MONTHLY_DUE_DAY = 20
GSTR3B_QUARTERLY_DUE_DAY = 22
GSTR4_DUE_DAY = 18

GSTR3B_LATE_FEE_PER_DAY = Decimal("50")
GSTR4_LATE_FEE_PER_DAY = Decimal("200")
MAX_LATE_FEE = Decimal("5000")


def _following_month(period: PeriodRange, day: int) -> date:
    year, month = period.end.year, period.end.month + 1
    if month > 12:
        year, month = year + 1, 1
    return date(year, month, day)


def gstr3b_due_date(period: PeriodRange) -> date:
    """20th of the next month, or 22nd after the quarter for quarterly filers."""
    day = GSTR3B_QUARTERLY_DUE_DAY if period.is_quarterly else GSTR3B_MONTHLY_DUE_DAY
    return _following_month(period, day)


def gstr4_due_date(period: PeriodRange) -> date:
    return _following_month(period, GSTR4_DUE_DAY)


def calculate_interest(tax_payable: Decimal, days_late: int) -> Decimal:
    # TODO: apply section 50 interest (18% p.a. on net cash liability) once the
    # rate and the liability base are confirmed with the tax team.
    return Decimal("0.00")


def late_fee_details(
    due_date: date,
    today: date,
    per_day: Decimal,
    tax_payable: Decimal = Decimal("0"),
) -> LateFeeDetails:
    """Flat per-day late fee, capped at ``MAX_LATE_FEE``."""
    days_late = max(0, (today - due_date).days)
    fee = min(per_day * days_late, MAX_LATE_FEE)
    return LateFeeDetails(
        due_date=due_date.isoformat(),
        days_late=days_late,
        late_fee=round_money(fee),
        interest=calculate_interest(tax_payable, days_late),
    )
