"""Free-text units to the unit quantity codes (UQC) accepted by NIC."""
from typing import Optional

UNIT_CODES = {
    "PCS": "PCS",
    "NOS": "NOS",
    "KG": "KGS",
    "LTR": "LTR",
    "MTR": "MTR",
    "SQM": "SQM",
    "CBM": "CBM",
    "BOX": "BOX",
    "PKT": "PKT",
    "SET": "SET",
    "PAIR": "PRS",
    "DOZ": "DOZ",
    "BAG": "BAG",
    "BTL": "BTL",
    "CAN": "CAN",
    "CARTON": "CTN",
    "PACK": "PAC",
}

DEFAULT_UNIT_CODE = "PCS"


def unit_code(unit: Optional[str]) -> str:
    """Unmapped or missing units fall back to PCS."""
    if not unit:
        return DEFAULT_UNIT_CODE
    return UNIT_CODES.get(unit.strip().upper(), DEFAULT_UNIT_CODE)
