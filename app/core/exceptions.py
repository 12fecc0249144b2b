"""Error taxonomy for the GST engine.

Every failure raised by a service carries a closed ``GSTErrorKind`` tag; the
HTTP layer maps the tag to a status code (see ``app.main``).
"""
from enum import Enum
from typing import Any, Dict, Optional


class GSTErrorKind(str, Enum):
    """Closed set of failure categories."""
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    PROVIDER = "provider"
    CONFLICT = "conflict"


class GSTServiceError(Exception):
    """Base exception for the GST engine."""

    kind: GSTErrorKind = GSTErrorKind.VALIDATION

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class GSTValidationError(GSTServiceError):
    """Malformed input, missing GSTIN, ineligible business or invoice."""
    kind = GSTErrorKind.VALIDATION


class PeriodFormatError(GSTValidationError):
    """Period token does not match MMYYYY or Q[1-4]-YYYY."""

    def __init__(self, period: str, message: Optional[str] = None):
        super().__init__(
            message or f"Invalid period format: {period!r}. Use MMYYYY or Q1-YYYY",
            error_code="INVALID_PERIOD",
            details={"period": period},
        )
        self.period = period


class GSTNotFoundError(GSTServiceError):
    """Unknown business, invoice, party, import or reconciliation record."""
    kind = GSTErrorKind.NOT_FOUND


class GSPProviderError(GSTServiceError):
    """GSP transport failure or business-rule rejection."""
    kind = GSTErrorKind.PROVIDER


class GSTConflictError(GSTServiceError):
    """Operation not allowed in the record's current state."""
    kind = GSTErrorKind.CONFLICT


class CacheWriteError(Exception):
    """Report cache could not be written. Always logged and suppressed."""
    pass


class EncryptionError(Exception):
    """Credential encryption or decryption failed."""
    pass
