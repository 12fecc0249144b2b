"""
In-process sandbox gateway for development and demos.

Issues deterministic identifiers derived from the document so repeated
calls for the same invoice return the same IRN / e-way bill number.
Nothing leaves the process.
"""
import base64
import hashlib
import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from app.schemas.gsp import (
    EInvoicePayload,
    EWayBillCancelResult,
    EWayBillPayload,
    EWayBillResult,
    EWayBillStatusResult,
    EWayBillUpdate,
    IRNCancelResult,
    IRNResult,
    IRNStatusResult,
)
from app.services.gsp.base import GSPProvider


logger = logging.getLogger(__name__)

NIC_DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"
EWB_DATETIME_FORMAT = "%d/%m/%Y %I:%M:%S %p"


def _now() -> datetime:
    return datetime.now(timezone.utc)


class SandboxProvider(GSPProvider):
    """Deterministic stand-in for a real GSP."""

    name = "sandbox"
    requires_credentials = False

    async def authenticate(self) -> str:
        return f"SANDBOX_TOKEN_{self.credentials.client_id or 'anonymous'}"

    async def generate_irn(self, payload: EInvoicePayload) -> IRNResult:
        seller = payload.SellerDtls.Gstin
        doc = payload.DocDtls
        # Same inputs the IRP hashes: GSTIN, financial year, doc type, doc no
        irn = hashlib.sha256(f"{seller}{doc.Dt[-4:]}{doc.Typ}{doc.No}".encode()).hexdigest()
        ack_no = str(int(irn[:12], 16))[:15]
        qr_data = {
            "SellerGstin": seller,
            "BuyerGstin": payload.BuyerDtls.Gstin,
            "DocNo": doc.No,
            "DocDt": doc.Dt,
            "TotInvVal": float(payload.ValDtls.TotInvVal),
            "Irn": irn,
        }
        logger.info(f"Sandbox IRN issued for {doc.No}")
        return IRNResult(
            success=True,
            irn=irn,
            ack_no=ack_no,
            ack_date=_now().strftime(NIC_DATETIME_FORMAT),
            qr_code=base64.b64encode(json.dumps(qr_data, sort_keys=True).encode()).decode(),
        )

    async def cancel_irn(self, irn: str, reason: str, remarks: Optional[str] = None) -> IRNCancelResult:
        return IRNCancelResult(success=True, irn=irn, cancel_date=_now().strftime(NIC_DATETIME_FORMAT))

    async def get_irn_status(self, irn: str) -> IRNStatusResult:
        return IRNStatusResult(success=True, irn=irn, status="ACTIVE")

    async def generate_ewaybill(self, payload: EWayBillPayload) -> EWayBillResult:
        digest = hashlib.sha256(f"{payload.userGstin}{payload.docType}{payload.docNo}".encode()).hexdigest()
        number = str(int(digest[:16], 16))[-12:].rjust(12, "0")
        generated = _now()
        return EWayBillResult(
            success=True,
            ewaybill_no=number,
            ewaybill_date=generated.strftime(EWB_DATETIME_FORMAT),
            valid_upto=(generated + timedelta(days=1)).strftime(EWB_DATETIME_FORMAT),
        )

    async def cancel_ewaybill(
        self, ewaybill_number: str, reason: str, remarks: Optional[str] = None
    ) -> EWayBillCancelResult:
        return EWayBillCancelResult(
            success=True,
            ewaybill_no=ewaybill_number,
            cancel_date=_now().strftime(EWB_DATETIME_FORMAT),
        )

    async def update_ewaybill(self, ewaybill_number: str, update: EWayBillUpdate) -> EWayBillResult:
        generated = _now()
        return EWayBillResult(
            success=True,
            ewaybill_no=ewaybill_number,
            ewaybill_date=generated.strftime(EWB_DATETIME_FORMAT),
            valid_upto=(generated + timedelta(days=1)).strftime(EWB_DATETIME_FORMAT),
        )

    async def get_ewaybill_status(self, ewaybill_number: str) -> EWayBillStatusResult:
        return EWayBillStatusResult(success=True, ewaybill_no=ewaybill_number, status="ACTIVE")
