"""Persistence adapters over ``AsyncSession``.

Repositories flush and leave the transaction to the request. The
registration repositories also expose ``commit()``: a pending e-invoice or
e-way bill row must be durable before the GSP is called.
"""
from app.repositories.gst_settings_repository import GstSettingsRepository
from app.repositories.report_repository import ReportRepository
from app.repositories.gstr2a_repository import Gstr2aRepository
from app.repositories.registration_repository import (
    EInvoiceRequestRepository,
    EWayBillRequestRepository,
)

__all__ = [
    "GstSettingsRepository",
    "ReportRepository",
    "Gstr2aRepository",
    "EInvoiceRequestRepository",
    "EWayBillRequestRepository",
]
