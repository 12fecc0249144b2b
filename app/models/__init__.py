"""SQLAlchemy models. Importing this package registers every table on ``Base.metadata``."""
from app.models.gst_settings import GstSettings
from app.models.gst_report import GeneratedReport
from app.models.gstr2a import Gstr2aImport, Gstr2aReconciliation, ImportType, MatchStatus
from app.models.registration import (
    EInvoiceRequest,
    EInvoiceStatus,
    EWayBillRequest,
    EWayBillStatus,
)

__all__ = [
    "GstSettings",
    "GeneratedReport",
    "Gstr2aImport",
    "Gstr2aReconciliation",
    "ImportType",
    "MatchStatus",
    "EInvoiceRequest",
    "EInvoiceStatus",
    "EWayBillRequest",
    "EWayBillStatus",
]
