"""Return period tokens.

Two shapes are accepted:

* ``MMYYYY`` - a calendar month, e.g. ``122024``
* ``Q[1-4]-YYYY`` - a calendar quarter, ``Q1`` is January to March
"""
import calendar
import re
from dataclasses import dataclass
from datetime import datetime, time

from app.core.exceptions import PeriodFormatError

MONTHLY_PATTERN = re.compile(r"^\d{6}$")
QUARTERLY_PATTERN = re.compile(r"^Q[1-4]-\d{4}$")


@dataclass(frozen=True)
class PeriodRange:
    """Inclusive date range covered by a period token."""
    period: str
    start: datetime
    end: datetime
    is_quarterly: bool

    @property
    def year(self) -> int:
        return self.start.year

    @property
    def last_month(self) -> int:
        return self.end.month


def is_valid(period: str) -> bool:
    """Pure shape check, never raises."""
    if not isinstance(period, str):
        return False
    return bool(MONTHLY_PATTERN.match(period) or QUARTERLY_PATTERN.match(period))


def is_quarterly(period: str) -> bool:
    return isinstance(period, str) and bool(QUARTERLY_PATTERN.match(period))


def parse(period: str) -> PeriodRange:
    """Parse a period token into its first and last instant."""
    if not isinstance(period, str):
        raise PeriodFormatError(repr(period))

    if MONTHLY_PATTERN.match(period):
        month = int(period[:2])
        year = int(period[2:])
        if month < 1 or month > 12:
            raise PeriodFormatError(period, f"Invalid month in period {period!r}: {month:02d}")
        first_month, last_month = month, month
        quarterly = False
    elif QUARTERLY_PATTERN.match(period):
        quarter = int(period[1])
        year = int(period[3:])
        first_month = (quarter - 1) * 3 + 1
        last_month = first_month + 2
        quarterly = True
    else:
        raise PeriodFormatError(period)

    if year < 1:
        raise PeriodFormatError(period, f"Invalid year in period {period!r}")

    last_day = calendar.monthrange(year, last_month)[1]
    start = datetime(year, first_month, 1)
    end = datetime.combine(datetime(year, last_month, last_day).date(), time.max)
    return PeriodRange(period=period, start=start, end=end, is_quarterly=quarterly)


def format_period(period: str) -> str:
    """Human readable label: ``December 2024`` or ``Q1-2024``."""
    parsed = parse(period)
    if parsed.is_quarterly:
        return period.upper()
    return f"{calendar.month_name[parsed.start.month]} {parsed.year}"
