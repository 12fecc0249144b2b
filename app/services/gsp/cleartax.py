"""
ClearTax GSP adapter.

Authenticates with OAuth client credentials (POST /auth/token) and calls
the e-invoice and e-way bill endpoints with the bearer token.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import httpx

from app.config import settings
from app.core.exceptions import GSPProviderError
from app.schemas.gsp import (
    EInvoicePayload,
    EWayBillCancelResult,
    EWayBillPayload,
    EWayBillResult,
    EWayBillStatusResult,
    EWayBillUpdate,
    GSPCredentials,
    IRNCancelResult,
    IRNResult,
    IRNStatusResult,
)
from app.services.gsp.base import GSPProvider


logger = logging.getLogger(__name__)


class ProviderRejection(Exception):
    """The gateway answered with an error status."""

    def __init__(self, message: str, error_code: Optional[str] = None, body: Optional[dict] = None):
        self.message = message
        self.error_code = error_code
        self.body = body
        super().__init__(message)


class ClearTaxProvider(GSPProvider):
    """ClearTax implementation of the GSP contract."""

    name = "cleartax"

    AUTH_PATH = "/auth/token"
    IRN_GENERATE_PATH = "/einvoice/irn/generate"
    IRN_CANCEL_PATH = "/einvoice/irn/cancel"
    IRN_STATUS_PATH = "/einvoice/irn/status"
    EWB_GENERATE_PATH = "/ewaybill/generate"
    EWB_CANCEL_PATH = "/ewaybill/cancel"
    EWB_UPDATE_PATH = "/ewaybill/update"
    EWB_STATUS_PATH = "/ewaybill/status"

    DEFAULT_TOKEN_TTL = 3600

    def __init__(
        self,
        credentials: GSPCredentials,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(credentials, base_url or credentials.api_url or settings.CLEARTAX_API_URL)
        self.timeout = timeout if timeout is not None else settings.GSP_HTTP_TIMEOUT
        self._transport = transport
        self._access_token: Optional[str] = None
        self._token_expiry: Optional[datetime] = None

    # ==================== HTTP ====================

    async def _send(
        self,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        token: Optional[str] = None,
    ) -> Dict[str, Any]:
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"

        url = f"{self.base_url.rstrip('/')}{path}"
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            try:
                response = await client.request(method, url, json=json, headers=headers)
            except httpx.RequestError as e:
                logger.error(f"ClearTax {method} {path} transport error: {e}")
                raise GSPProviderError(
                    message=f"GSP transport error: {e}",
                    error_code="GSP_TRANSPORT_ERROR",
                    details={"url": url},
                ) from e

        try:
            body = response.json()
        except ValueError:
            body = {"message": response.text}
        if not isinstance(body, dict):
            body = {"data": body}

        if response.is_error:
            raise ProviderRejection(
                message=body.get("message") or f"HTTP {response.status_code}",
                error_code=body.get("errorCode"),
                body=body,
            )
        return body

    async def authenticate(self) -> str:
        try:
            return await self._authenticate()
        except ProviderRejection as e:
            raise GSPProviderError(e.message, error_code=e.error_code, details=e.body) from e

    async def _authenticate(self) -> str:
        if not self.credentials.client_id or not self.credentials.client_secret:
            raise ProviderRejection("GSP provider not initialized with credentials", "GSP_NOT_CONFIGURED")

        now = datetime.now(timezone.utc)
        if self._access_token and self._token_expiry and self._token_expiry > now:
            return self._access_token

        request = {
            "client_id": self.credentials.client_id,
            "client_secret": self.credentials.client_secret,
            "grant_type": "client_credentials",
        }
        if self.credentials.username:
            request["username"] = self.credentials.username
            request["password"] = self.credentials.password

        try:
            data = await self._send("POST", self.AUTH_PATH, json=request)
        except ProviderRejection as e:
            raise ProviderRejection(
                f"GSP authentication failed: {e.message}",
                e.error_code or "GSP_AUTH_FAILED",
                e.body,
            ) from e

        self._access_token = data.get("access_token")
        expires_in = data.get("expires_in") or self.DEFAULT_TOKEN_TTL
        self._token_expiry = now + timedelta(seconds=int(expires_in))
        logger.info("Authenticated with ClearTax")
        return self._access_token

    async def _authorized(self, method: str, path: str, json: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        token = await self._authenticate()
        return await self._send(method, path, json=json, token=token)

    # ==================== E-Invoice ====================

    async def generate_irn(self, payload: EInvoicePayload) -> IRNResult:
        try:
            data = await self._authorized("POST", self.IRN_GENERATE_PATH, payload.to_payload())
        except ProviderRejection as e:
            logger.error(f"IRN generation failed: {e.message}")
            return IRNResult(
                success=False,
                error=e.message,
                error_code=e.error_code or "IRN_GENERATION_FAILED",
                raw_response=e.body,
            )

        return IRNResult(
            success=True,
            irn=data.get("Irn"),
            ack_no=_as_str(data.get("AckNo")),
            ack_date=data.get("AckDt"),
            qr_code=data.get("QRCode") or data.get("SignedQRCode"),
            ewaybill_no=_as_str(data.get("EwbNo")),
            signed_invoice=data.get("SignedInvoice"),
            signed_qr_code=data.get("SignedQRCode"),
            raw_response=data,
        )

    async def cancel_irn(self, irn: str, reason: str, remarks: Optional[str] = None) -> IRNCancelResult:
        request = {"Irn": irn, "CnlRsn": reason, "CnlRem": remarks or ""}
        try:
            data = await self._authorized("POST", self.IRN_CANCEL_PATH, request)
        except ProviderRejection as e:
            logger.error(f"IRN cancellation failed: {e.message}")
            return IRNCancelResult(
                success=False,
                irn=irn,
                error=e.message,
                error_code=e.error_code or "IRN_CANCEL_FAILED",
                raw_response=e.body,
            )
        return IRNCancelResult(
            success=True,
            irn=data.get("Irn") or irn,
            cancel_date=data.get("CancelDate"),
            raw_response=data,
        )

    async def get_irn_status(self, irn: str) -> IRNStatusResult:
        try:
            data = await self._authorized("GET", f"{self.IRN_STATUS_PATH}/{irn}")
        except ProviderRejection as e:
            return IRNStatusResult(
                success=False,
                irn=irn,
                error=e.message,
                error_code=e.error_code or "IRN_STATUS_FAILED",
            )
        return IRNStatusResult(
            success=True,
            irn=irn,
            status=data.get("status"),
            ack_no=_as_str(data.get("ackNo")),
            ack_date=data.get("ackDate"),
            raw_response=data,
        )

    # ==================== E-Way Bill ====================

    async def generate_ewaybill(self, payload: EWayBillPayload) -> EWayBillResult:
        try:
            data = await self._authorized("POST", self.EWB_GENERATE_PATH, payload.to_payload())
        except ProviderRejection as e:
            logger.error(f"E-Way Bill generation failed: {e.message}")
            return EWayBillResult(
                success=False,
                error=e.message,
                error_code=e.error_code or "EWAYBILL_GENERATION_FAILED",
                raw_response=e.body,
            )
        return EWayBillResult(
            success=True,
            ewaybill_no=_as_str(data.get("ewayBillNo")),
            ewaybill_date=data.get("ewayBillDate"),
            valid_upto=data.get("validUpto"),
            raw_response=data,
        )

    async def cancel_ewaybill(
        self, ewaybill_number: str, reason: str, remarks: Optional[str] = None
    ) -> EWayBillCancelResult:
        request = {"ewbNo": ewaybill_number, "cancelRsnCode": reason, "cancelRmrk": remarks or ""}
        try:
            data = await self._authorized("POST", self.EWB_CANCEL_PATH, request)
        except ProviderRejection as e:
            logger.error(f"E-Way Bill cancellation failed: {e.message}")
            return EWayBillCancelResult(
                success=False,
                ewaybill_no=ewaybill_number,
                error=e.message,
                error_code=e.error_code or "EWAYBILL_CANCEL_FAILED",
                raw_response=e.body,
            )
        return EWayBillCancelResult(
            success=True,
            ewaybill_no=_as_str(data.get("ewayBillNo")) or ewaybill_number,
            cancel_date=data.get("cancelDate"),
            raw_response=data,
        )

    async def update_ewaybill(self, ewaybill_number: str, update: EWayBillUpdate) -> EWayBillResult:
        request = {"ewbNo": ewaybill_number, **update.to_payload()}
        try:
            data = await self._authorized("POST", self.EWB_UPDATE_PATH, request)
        except ProviderRejection as e:
            logger.error(f"E-Way Bill update failed: {e.message}")
            return EWayBillResult(
                success=False,
                ewaybill_no=ewaybill_number,
                error=e.message,
                error_code=e.error_code or "EWAYBILL_UPDATE_FAILED",
                raw_response=e.body,
            )
        return EWayBillResult(
            success=True,
            ewaybill_no=_as_str(data.get("ewayBillNo")) or ewaybill_number,
            ewaybill_date=data.get("ewayBillDate"),
            valid_upto=data.get("validUpto"),
            raw_response=data,
        )

    async def get_ewaybill_status(self, ewaybill_number: str) -> EWayBillStatusResult:
        try:
            data = await self._authorized("GET", f"{self.EWB_STATUS_PATH}/{ewaybill_number}")
        except ProviderRejection as e:
            return EWayBillStatusResult(
                success=False,
                ewaybill_no=ewaybill_number,
                error=e.message,
                error_code=e.error_code or "EWAYBILL_STATUS_FAILED",
            )
        return EWayBillStatusResult(
            success=True,
            ewaybill_no=ewaybill_number,
            status=data.get("status"),
            valid_upto=data.get("validUpto"),
            raw_response=data,
        )


def _as_str(value: Any) -> Optional[str]:
    return None if value is None else str(value)
