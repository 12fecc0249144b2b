"""Format checks for GSTIN and HSN/SAC codes."""
import re
from typing import Optional

GSTIN_PATTERN = re.compile(r"^[0-9]{2}[A-Z]{5}[0-9]{4}[A-Z]{1}[1-9A-Z]{1}Z[0-9A-Z]{1}$")
HSN_PATTERN = re.compile(r"^(\d{4}|\d{6}|\d{8})$")

# Placeholder written by upstream systems when no code was captured
HSN_PLACEHOLDER = "N/A"


def is_valid_gstin(gstin: Optional[str]) -> bool:
    if not gstin:
        return False
    return bool(GSTIN_PATTERN.match(gstin.strip().upper()))


def is_valid_hsn(hsn_code: Optional[str]) -> bool:
    """4, 6 or 8 digits with a chapter between 01 and 97."""
    if not hsn_code:
        return False
    code = hsn_code.strip()
    if not HSN_PATTERN.match(code):
        return False
    chapter = int(code[:2])
    return 1 <= chapter <= 97


def has_hsn(hsn_code: Optional[str]) -> bool:
    """True when an item carries any HSN code other than the placeholder."""
    return bool(hsn_code and hsn_code.strip() and hsn_code.strip() != HSN_PLACEHOLDER)


def state_code_from_gstin(gstin: Optional[str]) -> Optional[str]:
    if gstin and len(gstin) >= 2 and gstin[:2].isdigit():
        return gstin[:2]
    return None
