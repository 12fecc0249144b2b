"""Statutory thresholds and limits used across the GST engine."""
from decimal import Decimal

# B2C invoices at or above this value are reported invoice-wise (B2C large)
B2C_LARGE_THRESHOLD = Decimal("250000")

# E-way bill is mandatory for consignments at or above this value
EWAYBILL_THRESHOLD = Decimal("50000")

# E-invoicing applies once annual aggregate turnover reaches 5 crore
EINVOICE_TURNOVER_THRESHOLD = Decimal("50000000")

# Absolute tolerance when matching GSTR-2A lines to purchase invoices
RECONCILIATION_TOLERANCE = Decimal("0.01")

# IRN can only be cancelled within 24 hours of generation
IRN_CANCEL_WINDOW_HOURS = 24

# E-way bill validity (distance-based validity is not modelled)
EWAYBILL_VALIDITY_DAYS = 1

DEFAULT_REASON_CODE = "01"
UNKNOWN_PLACE_OF_SUPPLY = "Unknown"
NOT_AVAILABLE = "N/A"


class ReportType:
    GSTR1 = "gstr1"
    GSTR3B = "gstr3b"
    GSTR4 = "gstr4"


class GSTType:
    REGULAR = "regular"
    COMPOSITION = "composition"


class FilingFrequency:
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
