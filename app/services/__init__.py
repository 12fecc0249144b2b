# Services module
from app.services.gst_settings_service import GstSettingsService

# GST returns
from app.services.gstr1_service import GSTR1Service
from app.services.gstr3b_service import GSTR3BService
from app.services.gstr4_service import GSTR4Service

# Reconciliation
from app.services.gstr2a_reconciliation_service import Gstr2aReconciliationService

# Registration workflows
from app.services.einvoice_service import EInvoiceService
from app.services.ewaybill_service import EWayBillService

__all__ = [
    "GstSettingsService",
    "GSTR1Service",
    "GSTR3BService",
    "GSTR4Service",
    "Gstr2aReconciliationService",
    "EInvoiceService",
    "EWayBillService",
]
